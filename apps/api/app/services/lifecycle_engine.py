"""Lifecycle engine - transition rules and cascade planning.

Pure decision logic, no I/O. Given a snapshot of an entity (read inside the
caller's transaction) and a requested transition, either raise the domain
error that forbids it or return a CascadePlan: an ordered, serializable list
of row writes that keeps every dependent record consistent.

Plan ordering: writes to dependent rows (request references, matches) come
before the owner-row archival, so nothing is left pointing at an archived row.

Terminal request states stay terminal: releasing or cancelling only touches
open requests (matching/assigned). Completed requests keep their status.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from app.core.errors import (
    AlreadyApproved,
    AlreadyRejected,
    InvalidTransition,
    InvestigatorNotEligible,
    NotFound,
    ValidationFailed,
)
from app.db.enums import (
    AuditAction,
    EntityKind,
    InvestigatorStatus,
    MatchStatus,
    ModerationAction,
    OPEN_REQUEST_STATUSES,
    RequestStatus,
)
from app.utils.normalization import normalize_text

USERS = "users"
CUSTOMER_PROFILES = "customer_profiles"
INVESTIGATOR_PROFILES = "investigator_profiles"
INVESTIGATION_REQUESTS = "investigation_requests"
INVESTIGATOR_MATCHES = "investigator_matches"

OPEN_STATUS_VALUES = tuple(sorted(s.value for s in OPEN_REQUEST_STATUSES))


# =============================================================================
# Snapshots (what the store read)
# =============================================================================

@dataclass(frozen=True)
class UserSnapshot:
    id: int
    email: str
    name: str | None
    deleted_at: datetime | None = None


@dataclass(frozen=True)
class RequestRef:
    id: int
    status: RequestStatus


@dataclass(frozen=True)
class MatchRef:
    id: int
    request_id: int
    investigator_id: int
    status: MatchStatus


@dataclass(frozen=True)
class InvestigatorSnapshot:
    id: int
    user: UserSnapshot
    status: InvestigatorStatus
    version: int
    deleted_at: datetime | None = None
    requests: tuple[RequestRef, ...] = ()  # requests referencing this profile
    matches: tuple[MatchRef, ...] = ()

    @property
    def is_live(self) -> bool:
        return self.deleted_at is None and self.user.deleted_at is None

    @property
    def is_eligible(self) -> bool:
        """May be matched or assigned right now."""
        return self.is_live and self.status == InvestigatorStatus.APPROVED


@dataclass(frozen=True)
class CustomerSnapshot:
    id: int
    user: UserSnapshot
    version: int
    deleted_at: datetime | None = None
    requests: tuple[RequestRef, ...] = ()  # requests owned by the customer's user
    matches: tuple[MatchRef, ...] = ()

    @property
    def is_live(self) -> bool:
        return self.deleted_at is None and self.user.deleted_at is None


@dataclass(frozen=True)
class RequestSnapshot:
    id: int
    user_id: int
    status: RequestStatus
    version: int
    investigator_id: int | None = None
    owner_deleted: bool = False
    matches: tuple[MatchRef, ...] = ()

    def match_for(self, investigator_id: int) -> MatchRef | None:
        for match in self.matches:
            if match.investigator_id == investigator_id:
                return match
        return None


@dataclass(frozen=True)
class Transition:
    """A requested transition with its inputs."""
    action: ModerationAction
    now: datetime
    actor_id: int | None = None
    note: str | None = None
    target: InvestigatorSnapshot | None = None  # assign / propose_match


# =============================================================================
# Plans (what the store must write)
# =============================================================================

class StepKind(str, Enum):
    UPDATE = "update"
    DELETE = "delete"
    INSERT = "insert"


@dataclass(frozen=True)
class PlanStep:
    """
    One statement against one table.

    Rows are selected by ``ids`` (when given) AND every ``where`` equality;
    a None value means IS NULL and a tuple means IN. ``strict`` steps must
    touch exactly ``len(ids)`` rows, otherwise a concurrent writer changed
    the row since the snapshot was read.
    """
    kind: StepKind
    table: str
    ids: tuple[int, ...] = ()
    where: dict[str, Any] = field(default_factory=dict)
    values: dict[str, Any] = field(default_factory=dict)
    bump_version: bool = False
    strict: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


@dataclass(frozen=True)
class CascadePlan:
    entity_kind: EntityKind
    entity_id: int
    action: ModerationAction
    steps: tuple[PlanStep, ...]
    audit_action: AuditAction | None = None
    touched: dict[str, tuple[int, ...]] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_noop(self) -> bool:
        return not self.steps

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_kind": self.entity_kind.value,
            "entity_id": self.entity_id,
            "action": self.action.value,
            "audit_action": self.audit_action.value if self.audit_action else None,
            "steps": [step.to_dict() for step in self.steps],
            "touched": {key: list(ids) for key, ids in self.touched.items()},
            "metadata": dict(self.metadata),
        }


# =============================================================================
# Archival helpers
# =============================================================================

def archived_email(email: str, now: datetime) -> str:
    """Rewrite an email so the original is free for reuse: <email>#deleted-<epoch-ms>."""
    return f"{email}#deleted-{int(now.timestamp() * 1000)}"


def archived_name(name: str | None, fallback: str = "Deleted account") -> str:
    return f"{name} (deleted)" if name else fallback


def _archive_user_step(user: UserSnapshot, now: datetime, fallback_name: str) -> PlanStep:
    return PlanStep(
        StepKind.UPDATE,
        USERS,
        ids=(user.id,),
        where={"deleted_at": None},
        values={
            "deleted_at": now,
            "email": archived_email(user.email, now),
            "name": archived_name(user.name, fallback_name),
        },
        strict=True,
    )


def _release_investigator_steps(profile_id: int) -> list[PlanStep]:
    """Reopen open requests assigned to the investigator and drop every match."""
    return [
        PlanStep(
            StepKind.UPDATE,
            INVESTIGATION_REQUESTS,
            where={"investigator_id": profile_id, "status": OPEN_STATUS_VALUES},
            values={"investigator_id": None, "status": RequestStatus.MATCHING.value},
            bump_version=True,
        ),
        # Terminal requests keep their status but must not reference the profile
        PlanStep(
            StepKind.UPDATE,
            INVESTIGATION_REQUESTS,
            where={"investigator_id": profile_id},
            values={"investigator_id": None},
            bump_version=True,
        ),
        PlanStep(
            StepKind.DELETE,
            INVESTIGATOR_MATCHES,
            where={"investigator_id": profile_id},
        ),
    ]


def _open_ids(requests: tuple[RequestRef, ...]) -> tuple[int, ...]:
    return tuple(sorted(r.id for r in requests if r.status in OPEN_REQUEST_STATUSES))


# =============================================================================
# Investigator profile
# =============================================================================

def _require_live_investigator(snapshot: InvestigatorSnapshot) -> None:
    if not snapshot.is_live:
        raise NotFound("Investigator not found")


def plan_investigator_approve(snapshot: InvestigatorSnapshot, t: Transition) -> CascadePlan:
    _require_live_investigator(snapshot)
    if snapshot.status == InvestigatorStatus.APPROVED:
        raise AlreadyApproved()
    if snapshot.status != InvestigatorStatus.PENDING:
        raise InvalidTransition("Rejected investigators cannot be approved")

    note = normalize_text(t.note)
    step = PlanStep(
        StepKind.UPDATE,
        INVESTIGATOR_PROFILES,
        ids=(snapshot.id,),
        where={"version": snapshot.version, "deleted_at": None},
        values={
            "status": InvestigatorStatus.APPROVED.value,
            "review_note": note,
            "reviewed_at": t.now,
            "reviewed_by_id": t.actor_id,
        },
        bump_version=True,
        strict=True,
    )
    return CascadePlan(
        EntityKind.INVESTIGATOR,
        snapshot.id,
        t.action,
        (step,),
        audit_action=AuditAction.INVESTIGATOR_APPROVED,
        metadata={"previous_status": snapshot.status.value, "note": note},
    )


def plan_investigator_reject(snapshot: InvestigatorSnapshot, t: Transition) -> CascadePlan:
    _require_live_investigator(snapshot)
    note = normalize_text(t.note)
    if not note:
        raise ValidationFailed("A review note is required to reject", code="NOTE_REQUIRED")
    if snapshot.status == InvestigatorStatus.REJECTED:
        raise AlreadyRejected()

    steps = _release_investigator_steps(snapshot.id)
    steps.append(
        PlanStep(
            StepKind.UPDATE,
            INVESTIGATOR_PROFILES,
            ids=(snapshot.id,),
            where={"version": snapshot.version, "deleted_at": None},
            values={
                "status": InvestigatorStatus.REJECTED.value,
                "review_note": note,
                "reviewed_at": t.now,
                "reviewed_by_id": t.actor_id,
            },
            bump_version=True,
            strict=True,
        )
    )
    return CascadePlan(
        EntityKind.INVESTIGATOR,
        snapshot.id,
        t.action,
        tuple(steps),
        audit_action=AuditAction.INVESTIGATOR_REJECTED,
        touched={
            "released_request_ids": _open_ids(snapshot.requests),
            "removed_match_ids": tuple(sorted(m.id for m in snapshot.matches)),
        },
        metadata={"previous_status": snapshot.status.value, "note": note},
    )


def plan_investigator_delete(snapshot: InvestigatorSnapshot, t: Transition) -> CascadePlan:
    """Reject + soft-delete. Unconditional on status; a second delete is NotFound."""
    _require_live_investigator(snapshot)

    steps = _release_investigator_steps(snapshot.id)
    steps.append(
        PlanStep(
            StepKind.UPDATE,
            INVESTIGATOR_PROFILES,
            ids=(snapshot.id,),
            where={"version": snapshot.version, "deleted_at": None},
            values={"status": InvestigatorStatus.REJECTED.value, "deleted_at": t.now},
            bump_version=True,
            strict=True,
        )
    )
    steps.append(_archive_user_step(snapshot.user, t.now, "Deleted account"))
    return CascadePlan(
        EntityKind.INVESTIGATOR,
        snapshot.id,
        t.action,
        tuple(steps),
        audit_action=AuditAction.INVESTIGATOR_DELETED,
        touched={
            "released_request_ids": _open_ids(snapshot.requests),
            "removed_match_ids": tuple(sorted(m.id for m in snapshot.matches)),
            "user_ids": (snapshot.user.id,),
        },
        metadata={"previous_status": snapshot.status.value},
    )


# =============================================================================
# Customer profile
# =============================================================================

def plan_customer_delete(snapshot: CustomerSnapshot, t: Transition) -> CascadePlan:
    """Cancel the customer's open requests, drop their matches, archive profile and user."""
    if not snapshot.is_live:
        raise NotFound("Customer not found")

    steps: list[PlanStep] = []
    request_ids = tuple(sorted(r.id for r in snapshot.requests))
    if request_ids:
        steps.append(
            PlanStep(
                StepKind.DELETE,
                INVESTIGATOR_MATCHES,
                where={"request_id": request_ids},
            )
        )
    steps.append(
        PlanStep(
            StepKind.UPDATE,
            INVESTIGATION_REQUESTS,
            where={"user_id": snapshot.user.id, "status": OPEN_STATUS_VALUES},
            values={"status": RequestStatus.CANCELLED.value, "investigator_id": None},
            bump_version=True,
        )
    )
    steps.append(
        PlanStep(
            StepKind.UPDATE,
            CUSTOMER_PROFILES,
            ids=(snapshot.id,),
            where={"version": snapshot.version, "deleted_at": None},
            values={"deleted_at": t.now},
            bump_version=True,
            strict=True,
        )
    )
    steps.append(_archive_user_step(snapshot.user, t.now, "Deleted customer"))
    return CascadePlan(
        EntityKind.CUSTOMER,
        snapshot.id,
        t.action,
        tuple(steps),
        audit_action=AuditAction.CUSTOMER_DELETED,
        touched={
            "cancelled_request_ids": _open_ids(snapshot.requests),
            "removed_match_ids": tuple(sorted(m.id for m in snapshot.matches)),
            "user_ids": (snapshot.user.id,),
        },
    )


# =============================================================================
# Investigation request
# =============================================================================

def _require_live_request(snapshot: RequestSnapshot) -> None:
    if snapshot.owner_deleted:
        raise NotFound("Investigation request not found")


def _require_eligible(target: InvestigatorSnapshot | None) -> InvestigatorSnapshot:
    if target is None or not target.is_eligible:
        raise InvestigatorNotEligible()
    return target


def _claim_target_step(target: InvestigatorSnapshot) -> PlanStep:
    """
    Bump the target investigator's version while it is still approved and live.

    A concurrent reject/delete that read the profile before this commit now
    misses its own version guard and re-plans, so it sees the new assignment.
    """
    return PlanStep(
        StepKind.UPDATE,
        INVESTIGATOR_PROFILES,
        ids=(target.id,),
        where={
            "version": target.version,
            "status": InvestigatorStatus.APPROVED.value,
            "deleted_at": None,
        },
        bump_version=True,
        strict=True,
    )


def _request_update_step(snapshot: RequestSnapshot, values: dict[str, Any]) -> PlanStep:
    return PlanStep(
        StepKind.UPDATE,
        INVESTIGATION_REQUESTS,
        ids=(snapshot.id,),
        where={"version": snapshot.version, "status": snapshot.status.value},
        values=values,
        bump_version=True,
        strict=True,
    )


def plan_request_assign(snapshot: RequestSnapshot, t: Transition) -> CascadePlan:
    _require_live_request(snapshot)
    if snapshot.status != RequestStatus.MATCHING:
        raise InvalidTransition(f"Cannot assign request with status: {snapshot.status.value}")
    target = _require_eligible(t.target)

    steps = [
        _claim_target_step(target),
        _request_update_step(
            snapshot,
            {"status": RequestStatus.ASSIGNED.value, "investigator_id": target.id},
        ),
    ]
    existing = snapshot.match_for(target.id)
    if existing is None:
        steps.append(
            PlanStep(
                StepKind.INSERT,
                INVESTIGATOR_MATCHES,
                values={
                    "request_id": snapshot.id,
                    "investigator_id": target.id,
                    "status": MatchStatus.CONFIRMED.value,
                },
            )
        )
    elif existing.status != MatchStatus.CONFIRMED:
        steps.append(
            PlanStep(
                StepKind.UPDATE,
                INVESTIGATOR_MATCHES,
                ids=(existing.id,),
                values={"status": MatchStatus.CONFIRMED.value},
                strict=True,
            )
        )
    return CascadePlan(
        EntityKind.INVESTIGATION_REQUEST,
        snapshot.id,
        t.action,
        tuple(steps),
        audit_action=AuditAction.REQUEST_ASSIGNED,
        metadata={"from": snapshot.status.value, "investigator_id": target.id},
    )


def plan_request_propose_match(snapshot: RequestSnapshot, t: Transition) -> CascadePlan:
    """Propose a pairing; proposing an existing pair again changes nothing."""
    _require_live_request(snapshot)
    if snapshot.status != RequestStatus.MATCHING:
        raise InvalidTransition(
            f"Cannot propose a match for request with status: {snapshot.status.value}"
        )
    target = _require_eligible(t.target)

    steps = []
    if snapshot.match_for(target.id) is None:
        steps.append(_claim_target_step(target))
        steps.append(
            PlanStep(
                StepKind.INSERT,
                INVESTIGATOR_MATCHES,
                values={
                    "request_id": snapshot.id,
                    "investigator_id": target.id,
                    "status": MatchStatus.PROPOSED.value,
                },
            )
        )
    return CascadePlan(
        EntityKind.INVESTIGATION_REQUEST,
        snapshot.id,
        t.action,
        tuple(steps),
        audit_action=AuditAction.MATCH_PROPOSED,
        metadata={"investigator_id": target.id},
    )


def plan_request_cancel(snapshot: RequestSnapshot, t: Transition) -> CascadePlan:
    _require_live_request(snapshot)
    if snapshot.status not in OPEN_REQUEST_STATUSES:
        raise InvalidTransition(f"Cannot cancel request with status: {snapshot.status.value}")

    steps: list[PlanStep] = []
    if snapshot.matches:
        steps.append(
            PlanStep(
                StepKind.DELETE,
                INVESTIGATOR_MATCHES,
                where={"request_id": snapshot.id},
            )
        )
    steps.append(
        _request_update_step(
            snapshot,
            {"status": RequestStatus.CANCELLED.value, "investigator_id": None},
        )
    )
    return CascadePlan(
        EntityKind.INVESTIGATION_REQUEST,
        snapshot.id,
        t.action,
        tuple(steps),
        audit_action=AuditAction.REQUEST_CANCELLED,
        touched={"removed_match_ids": tuple(sorted(m.id for m in snapshot.matches))},
        metadata={"from": snapshot.status.value, "investigator_id": snapshot.investigator_id},
    )


def plan_request_complete(snapshot: RequestSnapshot, t: Transition) -> CascadePlan:
    _require_live_request(snapshot)
    if snapshot.status != RequestStatus.ASSIGNED:
        raise InvalidTransition(f"Cannot complete request with status: {snapshot.status.value}")

    return CascadePlan(
        EntityKind.INVESTIGATION_REQUEST,
        snapshot.id,
        t.action,
        (_request_update_step(snapshot, {"status": RequestStatus.COMPLETED.value}),),
        audit_action=AuditAction.REQUEST_COMPLETED,
        metadata={"from": snapshot.status.value, "investigator_id": snapshot.investigator_id},
    )


# =============================================================================
# Dispatch
# =============================================================================

Planner = Callable[[Any, Transition], CascadePlan]

PLANNERS: dict[tuple[EntityKind, ModerationAction], Planner] = {
    (EntityKind.INVESTIGATOR, ModerationAction.APPROVE): plan_investigator_approve,
    (EntityKind.INVESTIGATOR, ModerationAction.REJECT): plan_investigator_reject,
    (EntityKind.INVESTIGATOR, ModerationAction.DELETE): plan_investigator_delete,
    (EntityKind.CUSTOMER, ModerationAction.DELETE): plan_customer_delete,
    (EntityKind.INVESTIGATION_REQUEST, ModerationAction.ASSIGN): plan_request_assign,
    (EntityKind.INVESTIGATION_REQUEST, ModerationAction.PROPOSE_MATCH): plan_request_propose_match,
    (EntityKind.INVESTIGATION_REQUEST, ModerationAction.CANCEL): plan_request_cancel,
    (EntityKind.INVESTIGATION_REQUEST, ModerationAction.COMPLETE): plan_request_complete,
}


def plan_transition(entity_kind: EntityKind, snapshot: Any, transition: Transition) -> CascadePlan:
    """
    Decide whether a transition is valid and compute its cascade plan.

    Raises:
        DomainError subclass describing why the transition is refused
    """
    planner = PLANNERS.get((entity_kind, transition.action))
    if planner is None:
        raise InvalidTransition(
            f"Action '{transition.action.value}' is not defined for {entity_kind.value}"
        )
    return planner(snapshot, transition)
