"""Investigation request service - customer intake and listing.

State changes after intake (assign, cancel, complete, match) go through
the moderation orchestrator.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.errors import ConcurrentModification, Forbidden
from app.core.structured_logging import build_log_context
from app.db.enums import RequestStatus, Role
from app.db.models import CustomerProfile, InvestigationRequest, InvestigatorMatch
from app.schemas.auth import CallerContext
from app.services import entity_store, investigator_service
from app.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)


def create_request(
    db: Session, caller: CallerContext, title: str, details: str
) -> InvestigationRequest:
    """
    Open a new request in MATCHING for the caller.

    The customer profile is locked and its version bumped in the same
    transaction, so a customer delete planned before this commit goes stale
    and re-reads the customer's requests.

    Raises:
        Forbidden: caller has no live customer profile
        ConcurrentModification: the profile changed between read and write
    """
    profile = entity_store.get_customer_for_user(db, caller.user_id, for_update=True)
    if profile is None:
        raise Forbidden("Only customers can submit investigation requests")

    claimed = db.execute(
        update(CustomerProfile)
        .where(
            CustomerProfile.id == profile.id,
            CustomerProfile.version == profile.version,
            CustomerProfile.deleted_at.is_(None),
        )
        .values(version=CustomerProfile.version + 1)
    ).rowcount
    if claimed != 1:
        db.rollback()
        raise ConcurrentModification()

    request = InvestigationRequest(
        user_id=caller.user_id,
        title=title.strip(),
        details=details.strip(),
        status=RequestStatus.MATCHING.value,
    )
    db.add(request)
    db.commit()
    db.refresh(request)
    logger.info(
        "Investigation request created",
        extra=build_log_context(
            actor_id=caller.user_id,
            target_type="InvestigationRequest",
            target_id=request.id,
            action="create",
        ),
    )
    return request


def list_requests_for_caller(
    db: Session,
    caller: CallerContext,
    status: RequestStatus | None = None,
    pagination: PaginationParams | None = None,
) -> tuple[list[InvestigationRequest], int]:
    """Customers see their own requests; investigators see requests assigned to them."""
    stmt = select(InvestigationRequest)
    if caller.role == Role.INVESTIGATOR:
        profile = investigator_service.get_profile_for_user(db, caller.user_id)
        if profile is None:
            return [], 0
        stmt = stmt.where(InvestigationRequest.investigator_id == profile.id)
    elif caller.role == Role.CUSTOMER:
        stmt = stmt.where(InvestigationRequest.user_id == caller.user_id)
    # Admins see everything
    if status is not None:
        stmt = stmt.where(InvestigationRequest.status == status.value)
    stmt = stmt.order_by(InvestigationRequest.created_at.desc(), InvestigationRequest.id.desc())
    return paginate_query(db, stmt, pagination or PaginationParams())


def list_matches(db: Session, request_id: int) -> list[InvestigatorMatch]:
    return list(
        db.execute(
            select(InvestigatorMatch)
            .where(InvestigatorMatch.request_id == request_id)
            .order_by(InvestigatorMatch.id)
        ).scalars().all()
    )
