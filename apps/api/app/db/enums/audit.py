"""Audit enums."""

from enum import Enum


class AuditAction(str, Enum):
    """Actions recorded in the audit trail."""

    INVESTIGATOR_APPROVED = "INVESTIGATOR_APPROVED"
    INVESTIGATOR_REJECTED = "INVESTIGATOR_REJECTED"
    INVESTIGATOR_DELETED = "INVESTIGATOR_DELETED"
    CUSTOMER_DELETED = "CUSTOMER_DELETED"
    REQUEST_ASSIGNED = "REQUEST_ASSIGNED"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"
    REQUEST_COMPLETED = "REQUEST_COMPLETED"
    MATCH_PROPOSED = "MATCH_PROPOSED"
