"""Moderation target kinds and actions."""

from enum import Enum


class EntityKind(str, Enum):
    """Entities whose lifecycle is moderated."""

    INVESTIGATOR = "InvestigatorProfile"
    CUSTOMER = "CustomerProfile"
    INVESTIGATION_REQUEST = "InvestigationRequest"


class ModerationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    DELETE = "delete"
    ASSIGN = "assign"
    PROPOSE_MATCH = "propose_match"
    CANCEL = "cancel"
    COMPLETE = "complete"
