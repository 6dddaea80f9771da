"""Investigator service - read-side queries over investigator profiles."""

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from app.db.enums import InvestigatorStatus
from app.db.models import InvestigatorProfile, User
from app.utils.pagination import PaginationParams, paginate_query


def _live_profiles():
    return (
        select(InvestigatorProfile)
        .join(User, InvestigatorProfile.user_id == User.id)
        .where(InvestigatorProfile.deleted_at.is_(None), User.deleted_at.is_(None))
        .options(joinedload(InvestigatorProfile.user))
    )


def list_investigators(
    db: Session,
    status: InvestigatorStatus | None = None,
    pagination: PaginationParams | None = None,
) -> tuple[list[InvestigatorProfile], int]:
    """Non-deleted profiles for the admin queue, oldest first."""
    stmt = _live_profiles()
    if status is not None:
        stmt = stmt.where(InvestigatorProfile.status == status.value)
    stmt = stmt.order_by(InvestigatorProfile.created_at, InvestigatorProfile.id)
    return paginate_query(db, stmt, pagination or PaginationParams())


def list_public_investigators(
    db: Session, pagination: PaginationParams | None = None
) -> tuple[list[InvestigatorProfile], int]:
    """Approved, non-deleted investigators (public directory)."""
    stmt = (
        _live_profiles()
        .where(InvestigatorProfile.status == InvestigatorStatus.APPROVED.value)
        .order_by(InvestigatorProfile.id)
    )
    return paginate_query(db, stmt, pagination or PaginationParams())


def get_profile_for_user(db: Session, user_id: int) -> InvestigatorProfile | None:
    return db.execute(
        select(InvestigatorProfile).where(
            InvestigatorProfile.user_id == user_id,
            InvestigatorProfile.deleted_at.is_(None),
        )
    ).scalars().first()
