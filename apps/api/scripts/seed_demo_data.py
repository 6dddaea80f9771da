"""
Seed script: one admin, a few customers and investigators, open requests.
Run with: python -m scripts.seed_demo_data
"""

import random

from app.db.base import Base
from app.db.enums import EntityKind, ModerationAction, Role
from app.db.models import InvestigationRequest
from app.db.session import SessionLocal, engine
from app.core.errors import DomainError
from app.core.permissions import get_role_capabilities
from app.schemas.auth import CallerContext
from app.services import investigation_request_service, user_service
from app.services.audit_service import AuditRecorder
from app.services.moderation_service import moderate

CUSTOMER_NAMES = ["Ava Kim", "Noah Park", "Mia Choi", "Liam Jung", "Ella Han"]
INVESTIGATOR_NAMES = ["Grace Lee", "Daniel Seo", "Chloe Yoon", "Owen Lim"]
SPECIALTIES = ["Missing persons", "Corporate fraud", "Background checks", "Infidelity", "Asset tracing"]
REQUEST_TITLES = [
    "Locate a former business partner",
    "Verify a tenant's background",
    "Trace unexplained account transfers",
    "Find a lost relative",
    "Check a contractor's history",
]


def _caller(user) -> CallerContext:
    role = Role(user.role)
    return CallerContext(
        user_id=user.id,
        role=role,
        email=user.email,
        name=user.name,
        capabilities=get_role_capabilities(role),
    )


def main():
    """Main entry point."""
    print("Seeding demo data...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    recorder = AuditRecorder()
    try:
        admin = user_service.get_live_user_by_email(db, "admin@lira.test") or user_service.create_user(
            db, "admin@lira.test", Role.ADMIN, "Lira Admin"
        )

        investigators = []
        for i, name in enumerate(INVESTIGATOR_NAMES):
            email = f"investigator{i + 1}@lira.test"
            user = user_service.get_live_user_by_email(db, email) or user_service.create_user(
                db,
                email,
                Role.INVESTIGATOR,
                name,
                specialties=random.choice(SPECIALTIES),
                experience_years=random.randint(1, 20),
            )
            investigators.append(user.investigator_profile)

        # Approve all but the last investigator so the review queue is not empty
        for profile in investigators[:-1]:
            try:
                moderate(
                    db,
                    _caller(admin),
                    EntityKind.INVESTIGATOR,
                    profile.id,
                    ModerationAction.APPROVE,
                    note="Seeded",
                    recorder=recorder,
                )
            except DomainError as e:
                print(f"  skip investigator {profile.id}: {e.code}")

        for i, name in enumerate(CUSTOMER_NAMES):
            email = f"customer{i + 1}@lira.test"
            user = user_service.get_live_user_by_email(db, email) or user_service.create_user(
                db, email, Role.CUSTOMER, name
            )
            if db.query(InvestigationRequest).filter(InvestigationRequest.user_id == user.id).count():
                continue
            investigation_request_service.create_request(
                db,
                _caller(user),
                REQUEST_TITLES[i % len(REQUEST_TITLES)],
                "Seeded request for local development.",
            )

        print("✓ Seed complete")
        print("  Admin: admin@lira.test (python -m app.cli issue-token --email admin@lira.test)")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
