"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created and dropped per test
- Users of each role with bearer tokens
- HTTPX AsyncClient wired to the test session
"""
import os
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

# Configure before the app (and its engine) is imported
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

from app.main import app
from app.db.base import Base
from app.db.session import engine, SessionLocal
from app.core.deps import get_db
from app.core.permissions import get_role_capabilities
from app.core.security import create_access_token
from app.db.enums import InvestigatorStatus, RequestStatus, Role
from app.db.models import InvestigationRequest, InvestigatorMatch, User
from app.schemas.auth import CallerContext
from app.services import user_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    App code commits for real; dropping the schema afterwards isolates tests.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


# =============================================================================
# Data Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    @property
    def caller(self) -> CallerContext:
        role = Role(self.user.role)
        return CallerContext(
            user_id=self.user.id,
            role=role,
            email=self.user.email,
            name=self.user.name,
            capabilities=get_role_capabilities(role),
        )


def _auth(user: User) -> TestAuth:
    return TestAuth(user=user, token=create_access_token(user.id, user.role))


@pytest.fixture(scope="function")
def make_user(db: Session):
    """Factory: create a user (and role profile) with a token."""
    counter = {"n": 0}

    def factory(role: Role = Role.CUSTOMER, name: str | None = None, **kwargs) -> TestAuth:
        counter["n"] += 1
        email = kwargs.pop("email", None) or f"{role.value}-{counter['n']}@test.com"
        user = user_service.create_user(db, email, role, name or f"{role.value.title()} {counter['n']}", **kwargs)
        return _auth(user)

    return factory


@pytest.fixture(scope="function")
def admin_auth(make_user) -> TestAuth:
    return make_user(Role.ADMIN, "Admin")


@pytest.fixture(scope="function")
def customer_auth(make_user) -> TestAuth:
    return make_user(Role.CUSTOMER, "Customer")


@pytest.fixture(scope="function")
def investigator_auth(make_user) -> TestAuth:
    return make_user(Role.INVESTIGATOR, "Investigator")


@pytest.fixture(scope="function")
def approved_investigator(db: Session, make_user) -> TestAuth:
    """An investigator whose profile is already approved."""
    auth = make_user(Role.INVESTIGATOR, "Approved Investigator")
    profile = auth.user.investigator_profile
    profile.status = InvestigatorStatus.APPROVED.value
    db.commit()
    db.refresh(auth.user)
    return auth


@pytest.fixture(scope="function")
def make_request(db: Session):
    """Factory: insert a request in a given state, optionally with a match."""

    def factory(
        owner: User,
        status: RequestStatus = RequestStatus.MATCHING,
        investigator_id: int | None = None,
        with_match: bool = False,
        title: str = "Find my cat",
    ) -> InvestigationRequest:
        request = InvestigationRequest(
            user_id=owner.id,
            title=title,
            details="Details of the case",
            status=status.value,
            investigator_id=investigator_id,
        )
        db.add(request)
        db.flush()
        if with_match and investigator_id is not None:
            db.add(
                InvestigatorMatch(
                    request_id=request.id,
                    investigator_id=investigator_id,
                    status="confirmed" if status == RequestStatus.ASSIGNED else "proposed",
                )
            )
        db.commit()
        db.refresh(request)
        return request

    return factory


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient sharing the test session; pass auth headers per request."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
