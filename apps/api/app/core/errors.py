"""Domain error taxonomy.

Every error carries a stable machine-readable ``code``, the HTTP status it
maps to, and whether the caller may retry. The API renders them as
``{"error": code, "message": message, "retryable": bool}``.
"""

from fastapi import status


class DomainError(Exception):
    """Base exception for lifecycle and moderation errors."""

    code = "DOMAIN_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    retryable = False
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None, *, code: str | None = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "retryable": self.retryable}


# =============================================================================
# Authorization
# =============================================================================

class Unauthenticated(DomainError):
    """Token missing, malformed, unverifiable, or its user is archived."""

    code = "AUTH_REQUIRED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class Forbidden(DomainError):
    """Caller lacks the capability for this action."""

    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not allowed to perform this action"


# =============================================================================
# Input
# =============================================================================

class InvalidId(DomainError):
    code = "INVALID_ID"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Identifier must be a positive integer"


class ValidationFailed(DomainError):
    code = "VALIDATION_FAILED"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request payload"


# =============================================================================
# Domain rules
# =============================================================================

class NotFound(DomainError):
    """Entity absent, or it (or its owning user) is already archived."""

    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class AlreadyApproved(DomainError):
    code = "ALREADY_APPROVED"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Investigator is already approved"


class AlreadyRejected(DomainError):
    code = "ALREADY_REJECTED"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Investigator is already rejected"


class InvestigatorNotEligible(DomainError):
    code = "INVESTIGATOR_NOT_ELIGIBLE"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Investigator must be approved and active"


class InvalidTransition(DomainError):
    code = "TRANSITION_NOT_ALLOWED"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Status transition not allowed"


# =============================================================================
# Storage
# =============================================================================

class ConcurrentModification(DomainError):
    """A concurrent writer won; re-reading did not settle the race."""

    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    retryable = True
    default_message = "The record was modified concurrently, retry the request"


class StorageError(DomainError):
    """Transaction or connection failure. Never carries driver detail."""

    code = "STORAGE_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable = True
    default_message = "Storage failure, retry the request"
