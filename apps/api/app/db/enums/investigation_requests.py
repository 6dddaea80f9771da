"""Investigation request and match enums."""

from enum import Enum


class RequestStatus(str, Enum):
    """
    Status of a customer's investigation request.

    Workflow: matching → assigned → completed
    Cancelled is reachable from matching or assigned.
    """

    MATCHING = "matching"  # Open, waiting for an investigator
    ASSIGNED = "assigned"  # Paired with an approved investigator
    COMPLETED = "completed"
    CANCELLED = "cancelled"


OPEN_REQUEST_STATUSES = frozenset({RequestStatus.MATCHING, RequestStatus.ASSIGNED})


class MatchStatus(str, Enum):
    """Pairing between a request and an investigator."""

    PROPOSED = "proposed"
    CONFIRMED = "confirmed"
