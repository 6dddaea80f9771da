"""Security utilities for bearer access tokens."""

from datetime import datetime, timedelta, timezone

import jwt
from pydantic import ValidationError

from app.core.config import settings
from app.schemas.auth import TokenPayload


def create_access_token(user_id: int, role: str, expires_hours: int | None = None) -> str:
    """
    Create signed access JWT.

    Always signs with current secret (JWT_SECRET).
    """
    now = datetime.now(timezone.utc)
    hours = settings.JWT_EXPIRES_HOURS if expires_hours is None else expires_hours
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=hours),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_access_token(token: str) -> dict:
    """
    Decode and verify access JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


def verify_token(token: str) -> TokenPayload | None:
    """Verify a token, returning its payload or None when it cannot be trusted."""
    try:
        claims = decode_access_token(token)
    except jwt.InvalidTokenError:
        return None
    try:
        return TokenPayload(user_id=claims["sub"], role=claims["role"])
    except (KeyError, ValidationError):
        return None
