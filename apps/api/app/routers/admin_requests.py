"""Admin investigation requests router - assignment and request lifecycle."""

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import EntityId, get_db, require_capability
from app.core.errors import NotFound
from app.core.policies import POLICIES
from app.db.enums import EntityKind, ModerationAction, RequestStatus
from app.schemas.auth import CallerContext
from app.schemas.investigation_request import (
    InvestigationRequestListResponse,
    InvestigationRequestRead,
    InvestigatorTarget,
    MatchRead,
)
from app.schemas.moderation import RequestTransitionResponse
from app.services import entity_store, investigation_request_service
from app.services.audit_service import AuditRecorder, get_recorder, record_later
from app.services.moderation_service import ModerationResult, ModerationService
from app.utils.pagination import PaginationParams, get_pagination

router = APIRouter(prefix="/admin/investigation-requests", tags=["Admin: Requests"])

policy = POLICIES["admin_requests"]


def _transition_response(db: Session, message: str, result: ModerationResult) -> RequestTransitionResponse:
    matches = investigation_request_service.list_matches(db, result.plan.entity_id)
    return RequestTransitionResponse(
        message=message,
        request=InvestigationRequestRead.model_validate(result.entity),
        removed_match_ids=result.ids("removed_match_ids"),
        matches=[MatchRead.model_validate(m) for m in matches],
    )


@router.get("", response_model=InvestigationRequestListResponse)
def list_requests(
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


@router.get("/{request_id}/matches", response_model=list[MatchRead])
def list_request_matches(
    request_id: EntityId,
    db: Session = Depends(get_db),
    _caller: CallerContext = Depends(require_capability(policy.default)),
):
    if entity_store.get_request(db, request_id) is None:
        raise NotFound("Investigation request not found")
    return [MatchRead.model_validate(m) for m in investigation_request_service.list_matches(db, request_id)]


@router.post("/{request_id}/assign", response_model=RequestTransitionResponse)
def assign_request(
    request_id: EntityId,
    data: InvestigatorTarget,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_capability(policy.actions["assign"])),
    recorder: AuditRecorder = Depends(get_recorder),
):
    """Assign a matching request to an approved, active investigator."""
    result = ModerationService(db).execute(
        caller,
        EntityKind.INVESTIGATION_REQUEST,
        request_id,
        ModerationAction.ASSIGN,
        target_id=data.investigator_id,
    )
    record_later(background_tasks, recorder, result.event)
    return _transition_response(db, "REQUEST_ASSIGNED", result)


@router.post("/{request_id}/matches", response_model=RequestTransitionResponse)
def propose_match(
    request_id: EntityId,
    data: InvestigatorTarget,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_capability(policy.actions["propose_match"])),
    recorder: AuditRecorder = Depends(get_recorder),
):
    """Propose an investigator for a matching request (idempotent per pair)."""
    result = ModerationService(db).execute(
        caller,
        EntityKind.INVESTIGATION_REQUEST,
        request_id,
        ModerationAction.PROPOSE_MATCH,
        target_id=data.investigator_id,
    )
    record_later(background_tasks, recorder, result.event)
    return _transition_response(db, "MATCH_PROPOSED", result)


@router.post("/{request_id}/cancel", response_model=RequestTransitionResponse)
def cancel_request(
    request_id: EntityId,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_capability(policy.actions["cancel"])),
    recorder: AuditRecorder = Depends(get_recorder),
):
    result = ModerationService(db).execute(
        caller, EntityKind.INVESTIGATION_REQUEST, request_id, ModerationAction.CANCEL
    )
    record_later(background_tasks, recorder, result.event)
    return _transition_response(db, "REQUEST_CANCELLED", result)


@router.post("/{request_id}/complete", response_model=RequestTransitionResponse)
def complete_request(
    request_id: EntityId,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_capability(policy.actions["complete"])),
    recorder: AuditRecorder = Depends(get_recorder),
):
    result = ModerationService(db).execute(
        caller, EntityKind.INVESTIGATION_REQUEST, request_id, ModerationAction.COMPLETE
    )
    record_later(background_tasks, recorder, result.event)
    return _transition_response(db, "REQUEST_COMPLETED", result)
