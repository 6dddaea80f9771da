"""Admin investigators router - review queue and moderation actions."""

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import EntityId, get_db, require_capability
from app.core.policies import POLICIES
from app.db.enums import EntityKind, InvestigatorStatus, ModerationAction
from app.schemas.auth import CallerContext
from app.schemas.investigator import (
    ApproveInvestigatorRequest,
    InvestigatorListResponse,
    InvestigatorRead,
    RejectInvestigatorRequest,
)
from app.schemas.moderation import (
    InvestigatorApprovedResponse,
    InvestigatorDeletedResponse,
    InvestigatorRejectedResponse,
)
from app.services import investigator_service
from app.services.audit_service import AuditRecorder, get_recorder, record_later
from app.services.moderation_service import ModerationService
from app.utils.pagination import PaginationParams, get_pagination

router = APIRouter(prefix="/admin/investigators", tags=["Admin: Investigators"])

policy = POLICIES["investigators"]


@router.get("", response_model=InvestigatorListResponse)
def list_investigators(
    status_filter: InvestigatorStatus | None = Query(None, alias="status"),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
    _caller: CallerContext = Depends(require_capability(policy.default)),
):
    """List non-deleted investigator profiles, optionally by status."""
    items, total = investigator_service.list_investigators(db, status_filter, pagination)
    return InvestigatorListResponse(
        items=[InvestigatorRead.model_validate(p) for p in items],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )


@router.post("/{investigator_id}/approve", response_model=InvestigatorApprovedResponse)
def approve_investigator(
    investigator_id: EntityId,
    background_tasks: BackgroundTasks,
    data: ApproveInvestigatorRequest | None = None,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_capability(policy.actions["approve"])),
    recorder: AuditRecorder = Depends(get_recorder),
):
    """
    Approve a pending investigator.

    409 ALREADY_APPROVED when the profile is already approved.
    """
    result = ModerationService(db).execute(
        caller,
        EntityKind.INVESTIGATOR,
        investigator_id,
        ModerationAction.APPROVE,
        note=data.note if data else None,
    )
    record_later(background_tasks, recorder, result.event)
    return InvestigatorApprovedResponse(
        investigator=InvestigatorRead.model_validate(result.entity)
    )


@router.post("/{investigator_id}/reject", response_model=InvestigatorRejectedResponse)
def reject_investigator(
    investigator_id: EntityId,
    data: RejectInvestigatorRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_capability(policy.actions["reject"])),
    recorder: AuditRecorder = Depends(get_recorder),
):
    """Reject an investigator, releasing their open assignments."""
    result = ModerationService(db).execute(
        caller,
        EntityKind.INVESTIGATOR,
        investigator_id,
        ModerationAction.REJECT,
        note=data.note,
    )
    record_later(background_tasks, recorder, result.event)
    return InvestigatorRejectedResponse(
        investigator=InvestigatorRead.model_validate(result.entity),
        released_request_ids=result.ids("released_request_ids"),
        removed_match_ids=result.ids("removed_match_ids"),
    )


@router.delete("/{investigator_id}", response_model=InvestigatorDeletedResponse)
def delete_investigator(
    investigator_id: EntityId,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_capability(policy.actions["delete"])),
    recorder: AuditRecorder = Depends(get_recorder),
):
    """
    Reject and soft-delete an investigator and archive their account.

    A second delete of the same profile is 404.
    """
    result = ModerationService(db).execute(
        caller, EntityKind.INVESTIGATOR, investigator_id, ModerationAction.DELETE
    )
    record_later(background_tasks, recorder, result.event)
    return InvestigatorDeletedResponse(
        investigator_id=investigator_id,
        user_id=result.entity.user_id,
        released_request_ids=result.ids("released_request_ids"),
        removed_match_ids=result.ids("removed_match_ids"),
    )
