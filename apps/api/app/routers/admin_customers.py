"""Admin customers router."""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from app.core.deps import EntityId, get_db, require_capability
from app.core.policies import POLICIES
from app.db.enums import EntityKind, ModerationAction
from app.schemas.auth import CallerContext
from app.schemas.moderation import CustomerDeletedResponse
from app.services.audit_service import AuditRecorder, get_recorder, record_later
from app.services.moderation_service import ModerationService

router = APIRouter(prefix="/admin/customers", tags=["Admin: Customers"])


@router.delete("/{customer_id}", response_model=CustomerDeletedResponse)
def delete_customer(
    customer_id: EntityId,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(
        require_capability(POLICIES["customers"].actions["delete"])
    ),
    recorder: AuditRecorder = Depends(get_recorder),
):
    """Cancel the customer's open requests and archive profile and account."""
    result = ModerationService(db).execute(
        caller, EntityKind.CUSTOMER, customer_id, ModerationAction.DELETE
    )
    record_later(background_tasks, recorder, result.event)
    return CustomerDeletedResponse(
        customer_id=customer_id,
        user_id=result.entity.user_id,
        cancelled_request_ids=result.ids("cancelled_request_ids"),
        removed_match_ids=result.ids("removed_match_ids"),
    )
