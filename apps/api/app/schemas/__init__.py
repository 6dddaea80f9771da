"""Pydantic schemas for API request/response models."""

from app.schemas.auth import CallerContext, TokenPayload
from app.schemas.audit import AuditLogListResponse, AuditLogRead
from app.schemas.investigation_request import (
    InvestigationRequestCreate,
    InvestigationRequestListResponse,
    InvestigationRequestRead,
    InvestigatorTarget,
    MatchRead,
)
from app.schemas.investigator import (
    ApproveInvestigatorRequest,
    InvestigatorListResponse,
    InvestigatorPublicRead,
    InvestigatorRead,
    RejectInvestigatorRequest,
)
from app.schemas.moderation import (
    CustomerDeletedResponse,
    InvestigatorApprovedResponse,
    InvestigatorDeletedResponse,
    InvestigatorRejectedResponse,
    RequestTransitionResponse,
)

__all__ = [
    "ApproveInvestigatorRequest",
    "AuditLogListResponse",
    "AuditLogRead",
    "CallerContext",
    "CustomerDeletedResponse",
    "InvestigationRequestCreate",
    "InvestigationRequestListResponse",
    "InvestigationRequestRead",
    "InvestigatorApprovedResponse",
    "InvestigatorDeletedResponse",
    "InvestigatorListResponse",
    "InvestigatorPublicRead",
    "InvestigatorRead",
    "InvestigatorRejectedResponse",
    "InvestigatorTarget",
    "MatchRead",
    "RejectInvestigatorRequest",
    "RequestTransitionResponse",
    "TokenPayload",
]
