"""Entity store - transactional reads and guarded writes for moderation.

Loaders exclude archived rows (the entity or its owning user) and lock what
they read with SELECT ... FOR UPDATE where the backend supports it. apply()
executes a CascadePlan step by step inside the caller's transaction; a
strict step that touches an unexpected number of rows raises StaleSnapshot
so the caller can roll back and re-plan.
"""

import logging
from typing import Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.base import Base
from app.db.enums import InvestigatorStatus, MatchStatus, RequestStatus
from app.db.models import (
    CustomerProfile,
    InvestigationRequest,
    InvestigatorMatch,
    InvestigatorProfile,
    User,
)
from app.services.lifecycle_engine import (
    CascadePlan,
    CustomerSnapshot,
    InvestigatorSnapshot,
    MatchRef,
    PlanStep,
    RequestRef,
    RequestSnapshot,
    StepKind,
    UserSnapshot,
)

logger = logging.getLogger(__name__)


class StaleSnapshot(Exception):
    """A guarded write found the row changed since it was read."""

    def __init__(self, step: PlanStep, rowcount: int):
        self.step = step
        self.rowcount = rowcount
        super().__init__(
            f"{step.kind.value} on {step.table} touched {rowcount} row(s), "
            f"expected {len(step.ids)}"
        )


# =============================================================================
# Loaders
# =============================================================================

def get_investigator(
    db: Session, profile_id: int, *, for_update: bool = False
) -> InvestigatorProfile | None:
    """Live investigator profile (profile and user not archived)."""
    stmt = (
        select(InvestigatorProfile)
        .join(User, InvestigatorProfile.user_id == User.id)
        .where(
            InvestigatorProfile.id == profile_id,
            InvestigatorProfile.deleted_at.is_(None),
            User.deleted_at.is_(None),
        )
    )
    if for_update:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalars().first()


def get_customer(
    db: Session, customer_id: int, *, for_update: bool = False
) -> CustomerProfile | None:
    """Live customer profile (profile and user not archived)."""
    stmt = (
        select(CustomerProfile)
        .join(User, CustomerProfile.user_id == User.id)
        .where(
            CustomerProfile.id == customer_id,
            CustomerProfile.deleted_at.is_(None),
            User.deleted_at.is_(None),
        )
    )
    if for_update:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalars().first()


def get_customer_for_user(
    db: Session, user_id: int, *, for_update: bool = False
) -> CustomerProfile | None:
    stmt = select(CustomerProfile).where(
        CustomerProfile.user_id == user_id,
        CustomerProfile.deleted_at.is_(None),
    )
    if for_update:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalars().first()


def get_request(
    db: Session, request_id: int, *, for_update: bool = False
) -> InvestigationRequest | None:
    stmt = select(InvestigationRequest).where(InvestigationRequest.id == request_id)
    if for_update:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalars().first()


def get_live_user(db: Session, user_id: int) -> User | None:
    return db.execute(
        select(User).where(User.id == user_id, User.deleted_at.is_(None))
    ).scalars().first()


# =============================================================================
# Snapshots
# =============================================================================

def _user_snapshot(user: User) -> UserSnapshot:
    return UserSnapshot(id=user.id, email=user.email, name=user.name, deleted_at=user.deleted_at)


def _match_refs(matches) -> tuple[MatchRef, ...]:
    return tuple(
        MatchRef(
            id=m.id,
            request_id=m.request_id,
            investigator_id=m.investigator_id,
            status=MatchStatus(m.status),
        )
        for m in matches
    )


def investigator_snapshot(db: Session, profile: InvestigatorProfile) -> InvestigatorSnapshot:
    requests = db.execute(
        select(InvestigationRequest.id, InvestigationRequest.status)
        .where(InvestigationRequest.investigator_id == profile.id)
        .order_by(InvestigationRequest.id)
    ).all()
    matches = db.execute(
        select(InvestigatorMatch)
        .where(InvestigatorMatch.investigator_id == profile.id)
        .order_by(InvestigatorMatch.id)
    ).scalars().all()
    return InvestigatorSnapshot(
        id=profile.id,
        user=_user_snapshot(profile.user),
        status=InvestigatorStatus(profile.status),
        version=profile.version,
        deleted_at=profile.deleted_at,
        requests=tuple(RequestRef(id=r.id, status=RequestStatus(r.status)) for r in requests),
        matches=_match_refs(matches),
    )


def customer_snapshot(db: Session, profile: CustomerProfile) -> CustomerSnapshot:
    requests = db.execute(
        select(InvestigationRequest.id, InvestigationRequest.status)
        .where(InvestigationRequest.user_id == profile.user_id)
        .order_by(InvestigationRequest.id)
    ).all()
    request_ids = [r.id for r in requests]
    matches = []
    if request_ids:
        matches = db.execute(
            select(InvestigatorMatch)
            .where(InvestigatorMatch.request_id.in_(request_ids))
            .order_by(InvestigatorMatch.id)
        ).scalars().all()
    return CustomerSnapshot(
        id=profile.id,
        user=_user_snapshot(profile.user),
        version=profile.version,
        deleted_at=profile.deleted_at,
        requests=tuple(RequestRef(id=r.id, status=RequestStatus(r.status)) for r in requests),
        matches=_match_refs(matches),
    )


def request_snapshot(db: Session, request: InvestigationRequest) -> RequestSnapshot:
    matches = db.execute(
        select(InvestigatorMatch)
        .where(InvestigatorMatch.request_id == request.id)
        .order_by(InvestigatorMatch.id)
    ).scalars().all()
    return RequestSnapshot(
        id=request.id,
        user_id=request.user_id,
        status=RequestStatus(request.status),
        version=request.version,
        investigator_id=request.investigator_id,
        owner_deleted=request.user.deleted_at is not None,
        matches=_match_refs(matches),
    )


# =============================================================================
# Plan execution
# =============================================================================

def _conditions(table, step: PlanStep) -> list[Any]:
    conditions = []
    if step.ids:
        conditions.append(table.c.id.in_(step.ids))
    for name, value in step.where.items():
        column = table.c[name]
        if value is None:
            conditions.append(column.is_(None))
        elif isinstance(value, (tuple, list, set, frozenset)):
            conditions.append(column.in_(list(value)))
        else:
            conditions.append(column == value)
    return conditions


def _execute_step(db: Session, step: PlanStep) -> int:
    table = Base.metadata.tables[step.table]

    if step.kind == StepKind.INSERT:
        try:
            db.execute(insert(table).values(**step.values))
        except IntegrityError as e:
            # A concurrent writer inserted the same pairing; caller rolls back
            raise StaleSnapshot(step, 0) from e
        return 1

    conditions = _conditions(table, step)
    if step.kind == StepKind.DELETE:
        return db.execute(delete(table).where(*conditions)).rowcount

    values = dict(step.values)
    if step.bump_version:
        values["version"] = table.c.version + 1
    return db.execute(update(table).where(*conditions).values(**values)).rowcount


def apply(db: Session, plan: CascadePlan) -> list[int]:
    """
    Execute every step of a plan in order, without committing.

    Returns:
        Rowcount per step

    Raises:
        StaleSnapshot: a strict step did not touch exactly its target rows
    """
    rowcounts = []
    for step in plan.steps:
        rowcount = _execute_step(db, step)
        if step.strict and rowcount != len(step.ids):
            logger.info(
                "Stale snapshot for %s %s (%s)",
                plan.entity_kind.value,
                plan.entity_id,
                plan.action.value,
                extra={"table": step.table, "rowcount": rowcount},
            )
            raise StaleSnapshot(step, rowcount)
        rowcounts.append(rowcount)
    return rowcounts
