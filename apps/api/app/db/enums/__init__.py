"""Enum definitions for application constants."""

from app.db.enums.audit import AuditAction
from app.db.enums.auth import Role
from app.db.enums.investigation_requests import (
    MatchStatus,
    OPEN_REQUEST_STATUSES,
    RequestStatus,
)
from app.db.enums.investigators import InvestigatorStatus
from app.db.enums.moderation import EntityKind, ModerationAction

__all__ = [
    "AuditAction",
    "EntityKind",
    "InvestigatorStatus",
    "MatchStatus",
    "ModerationAction",
    "OPEN_REQUEST_STATUSES",
    "RequestStatus",
    "Role",
]
