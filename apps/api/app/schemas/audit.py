"""Audit log schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class AuditLogRead(BaseModel):
    """Audit log entry for API response."""
    id: int
    actor_id: int | None
    action: str
    target_type: str
    target_id: int
    details: dict[str, Any] | None
    occurred_at: datetime

    model_config = {"from_attributes": True}


class AuditLogListResponse(BaseModel):
    """Paginated audit log response."""
    items: list[AuditLogRead]
    total: int
    page: int
    per_page: int
