"""Investigation requests router - customer intake, listing and cancel."""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.deps import EntityId, get_db, require_capability
from app.core.policies import POLICIES
from app.db.enums import RequestStatus
from app.schemas.auth import CallerContext
from app.schemas.investigation_request import (
    InvestigationRequestCreate,
    InvestigationRequestListResponse,
    InvestigationRequestRead,
)
from app.schemas.moderation import RequestTransitionResponse
from app.services import investigation_request_service
from app.services.audit_service import AuditRecorder, get_recorder, record_later
from app.services.moderation_service import ModerationService
from app.utils.pagination import PaginationParams, get_pagination

router = APIRouter(prefix="/investigation-requests", tags=["Investigation Requests"])

policy = POLICIES["investigation_requests"]


@router.post("", response_model=InvestigationRequestRead, status_code=status.HTTP_201_CREATED)
def create_request(
    data: InvestigationRequestCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_capability(policy.actions["create"])),
):
    """Submit a new request; it starts in matching."""
    request = investigation_request_service.create_request(db, caller, data.title, data.details)
    return InvestigationRequestRead.model_validate(request)


@router.get("", response_model=InvestigationRequestListResponse)
def list_my_requests(
    status_filter: RequestStatus | None = Query(None, alias="status"),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_capability(policy.default)),
):
    items, total = investigation_request_service.list_requests_for_caller(
        db, caller, status_filter, pagination
    )
    return InvestigationRequestListResponse(
        items=[InvestigationRequestRead.model_validate(r) for r in items],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )


@router.post("/{request_id}/cancel", response_model=RequestTransitionResponse)
def cancel_my_request(
    request_id: EntityId,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_capability(policy.actions["create"])),
    recorder: AuditRecorder = Depends(get_recorder),
):
    """Owner-only cancel; another customer's request is 404."""
    result = ModerationService(db).cancel_own_request(caller, request_id)
    record_later(background_tasks, recorder, result.event)
    return RequestTransitionResponse(
        message="REQUEST_CANCELLED",
        request=InvestigationRequestRead.model_validate(result.entity),
        removed_match_ids=result.ids("removed_match_ids"),
    )
