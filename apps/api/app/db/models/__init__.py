"""SQLAlchemy ORM models."""

from app.db.models.audit import AuditLog
from app.db.models.auth import User
from app.db.models.investigations import InvestigationRequest, InvestigatorMatch
from app.db.models.profiles import CustomerProfile, InvestigatorProfile

__all__ = [
    "AuditLog",
    "CustomerProfile",
    "InvestigationRequest",
    "InvestigatorMatch",
    "InvestigatorProfile",
    "User",
]
