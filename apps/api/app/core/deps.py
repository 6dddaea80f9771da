"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Annotated, Generator

from fastapi import Depends, Path, Request
from sqlalchemy.orm import Session

from app.core.errors import Forbidden, Unauthenticated
from app.core.permissions import get_role_capabilities
from app.core.security import verify_token
from app.db.enums import Role
from app.db.session import SessionLocal
from app.schemas.auth import CallerContext
from app.services.entity_store import get_live_user

BEARER_PREFIX = "bearer "

# Positive integer path id; failures render as 400 INVALID_ID
EntityId = Annotated[int, Path(gt=0)]


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def extract_bearer_token(authorization: str | None) -> str:
    """
    Pull the token out of an Authorization header.

    Raises:
        Unauthenticated: header missing or not a bearer credential
    """
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        raise Unauthenticated()
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthenticated()
    return token


def resolve_caller(db: Session, token: str | None) -> CallerContext:
    """
    Verify a token and load its (non-archived) user.

    The stored role wins over the role claim, so a demoted user loses
    capabilities without waiting for token expiry.

    Raises:
        Unauthenticated: token missing/unverifiable, user absent or archived
    """
    if not token:
        raise Unauthenticated()
    payload = verify_token(token)
    if payload is None:
        raise Unauthenticated("Invalid or expired token", code="INVALID_TOKEN")

    user = get_live_user(db, payload.user_id)
    if user is None:
        raise Unauthenticated("Account not found or deleted", code="INVALID_TOKEN")
    if not Role.has_value(user.role):
        raise Forbidden(f"Unknown role '{user.role}'. Contact administrator.")

    role = Role(user.role)
    return CallerContext(
        user_id=user.id,
        role=role,
        email=user.email,
        name=user.name,
        capabilities=get_role_capabilities(role),
    )


def authorize(db: Session, token: str | None, capability: str) -> CallerContext:
    """
    Capability gate: token -> CallerContext, or Unauthenticated / Forbidden.

    Read-only; no state is touched.
    """
    caller = resolve_caller(db, token)
    if not caller.can(capability):
        raise Forbidden(f"Missing capability '{capability}'")
    return caller


def require_capability(capability: str):
    """
    Dependency factory for capability-based authorization.

    Usage:
        @router.post("/x")
        def handler(caller: CallerContext = Depends(require_capability(C.AUDIT_READ))):
    """
    capability = getattr(capability, "value", capability)

    def dependency(request: Request, db: Session = Depends(get_db)) -> CallerContext:
        token = extract_bearer_token(request.headers.get("authorization"))
        return authorize(db, token, capability)

    return dependency
