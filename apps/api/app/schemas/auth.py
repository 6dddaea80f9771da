"""Authentication-related Pydantic schemas."""

from pydantic import BaseModel

from app.db.enums import Role


class TokenPayload(BaseModel):
    """Verified access token claims."""
    user_id: int
    role: str


class CallerContext(BaseModel):
    """
    Authorized caller for a single request.

    Returned by the capability gate and carried into every
    moderation call as the acting identity.
    """
    user_id: int
    role: Role  # Validated enum, taken from the stored user row
    email: str
    name: str | None = None
    capabilities: frozenset[str] = frozenset()

    def can(self, capability: str) -> bool:
        return capability in self.capabilities
