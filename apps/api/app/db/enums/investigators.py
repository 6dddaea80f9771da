"""Investigator profile enums."""

from enum import Enum


class InvestigatorStatus(str, Enum):
    """
    Review status of an investigator profile.

    Workflow: pending → approved → rejected
    Rejected is terminal once the profile is also soft-deleted.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
