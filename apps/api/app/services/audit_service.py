"""Audit recorder - best-effort moderation trail.

The recorder runs after the audited transaction has committed, in its own
short-lived session. It never raises: a failed write is logged and dropped,
and the moderation result stands.

Security guidelines:
- NEVER record tokens
- Hash emails in metadata (use hash_email)
- Use ids instead of raw data where possible
"""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.structured_logging import build_log_context
from app.db.models import AuditLog
from app.db.session import SessionLocal
from app.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)


def hash_email(email: str) -> str:
    """Hash email for the audit trail (prefix + SHA256 suffix for debugging)."""
    if not email:
        return ""
    prefix = email.split("@")[0][:3] if "@" in email else email[:3]
    suffix = hashlib.sha256(email.lower().encode()).hexdigest()[:12]
    return f"{prefix}...@[hash:{suffix}]"


@dataclass(frozen=True)
class AuditEvent:
    actor_id: int | None
    action: str
    target_type: str
    target_id: int
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AuditRecorder:
    """Persist audit events; swallow and log every failure."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        *,
        enabled: bool | None = None,
    ):
        self.session_factory = session_factory
        self.enabled = settings.AUDIT_ENABLED if enabled is None else enabled

    def record(self, event: AuditEvent) -> None:
        if not self.enabled:
            return
        context = build_log_context(
            actor_id=event.actor_id,
            target_type=event.target_type,
            target_id=event.target_id,
            action=event.action,
        )
        if settings.is_dev:
            logger.info("audit %s", event.action, extra=context)

        try:
            db = self.session_factory()
        except Exception:
            logger.exception("Audit session unavailable", extra=context)
            return
        try:
            db.add(
                AuditLog(
                    actor_id=event.actor_id,
                    action=event.action,
                    target_type=event.target_type,
                    target_id=event.target_id,
                    details=event.metadata or None,
                    occurred_at=event.timestamp,
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to record audit event", extra=context)
        finally:
            db.close()


_recorder: AuditRecorder | None = None


def get_recorder() -> AuditRecorder:
    """Process-wide recorder (FastAPI dependency)."""
    global _recorder
    if _recorder is None:
        _recorder = AuditRecorder()
    return _recorder


def list_audit_logs(
    db: Session,
    *,
    target_type: str | None = None,
    target_id: int | None = None,
    action: str | None = None,
    pagination: PaginationParams | None = None,
) -> tuple[list[AuditLog], int]:
    """List audit entries newest first."""
    stmt = select(AuditLog)
    if target_type:
        stmt = stmt.where(AuditLog.target_type == target_type)
    if target_id is not None:
        stmt = stmt.where(AuditLog.target_id == target_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    stmt = stmt.order_by(AuditLog.occurred_at.desc(), AuditLog.id.desc())
    return paginate_query(db, stmt, pagination or PaginationParams())


def record_later(background_tasks: BackgroundTasks, recorder: AuditRecorder, event: AuditEvent | None) -> None:
    """Schedule an event to be recorded after the response is sent."""
    if event is not None:
        background_tasks.add_task(recorder.record, event)
