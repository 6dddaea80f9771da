"""User service - account creation and lookups."""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ValidationFailed
from app.db.enums import InvestigatorStatus, Role
from app.db.models import CustomerProfile, InvestigatorProfile, User
from app.utils.normalization import normalize_email, normalize_name


class EmailInUseError(ValidationFailed):
    """A live account already uses this email."""

    code = "EMAIL_IN_USE"
    default_message = "Email already registered"


def get_live_user_by_email(db: Session, email: str) -> User | None:
    """Get the non-archived user for an email (case-insensitive)."""
    normalized = normalize_email(email)
    if not normalized:
        return None
    return (
        db.query(User)
        .filter(User.email == normalized, User.deleted_at.is_(None))
        .first()
    )


def create_user(
    db: Session,
    email: str,
    role: Role,
    name: str | None = None,
    *,
    phone: str | None = None,
    specialties: str | None = None,
    experience_years: int | None = None,
) -> User:
    """
    Create a user together with the profile its role implies.

    Customers get a CustomerProfile, investigators a pending
    InvestigatorProfile. Admins have no profile.

    Raises:
        ValidationFailed: email missing
        EmailInUseError: a live account already uses the email
    """
    normalized = normalize_email(email)
    if not normalized:
        raise ValidationFailed("Email is required", code="EMAIL_REQUIRED")
    if get_live_user_by_email(db, normalized):
        raise EmailInUseError()

    user = User(email=normalized, name=normalize_name(name), role=role.value)
    db.add(user)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        raise EmailInUseError() from e

    if role == Role.CUSTOMER:
        db.add(CustomerProfile(user_id=user.id, phone=phone))
    elif role == Role.INVESTIGATOR:
        db.add(
            InvestigatorProfile(
                user_id=user.id,
                status=InvestigatorStatus.PENDING.value,
                specialties=specialties,
                experience_years=experience_years,
            )
        )
    db.commit()
    db.refresh(user)
    return user
