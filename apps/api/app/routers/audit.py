"""Audit router - API endpoints for viewing the moderation audit trail."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_capability
from app.core.policies import POLICIES
from app.schemas.audit import AuditLogListResponse, AuditLogRead
from app.schemas.auth import CallerContext
from app.services import audit_service
from app.utils.pagination import PaginationParams, get_pagination

router = APIRouter(prefix="/admin/audit-logs", tags=["Audit"])


@router.get("", response_model=AuditLogListResponse)
def list_audit_logs(
    target_type: str | None = Query(None, description="Filter by target type"),
    target_id: int | None = Query(None, gt=0, description="Filter by target id"),
    action: str | None = Query(None, description="Filter by action"),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
    _caller: CallerContext = Depends(require_capability(POLICIES["audit"].default)),
) -> AuditLogListResponse:
    """List audit entries, newest first."""
    items, total = audit_service.list_audit_logs(
        db,
        target_type=target_type,
        target_id=target_id,
        action=action,
        pagination=pagination,
    )
    return AuditLogListResponse(
        items=[AuditLogRead.model_validate(i) for i in items],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )
