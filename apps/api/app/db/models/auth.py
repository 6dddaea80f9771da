"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

from datetime import datetime

from sqlalchemy import Index, Integer, String, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.db.models import CustomerProfile, InvestigatorProfile


class User(Base):
    """
    Account identity.

    Password hashes and social identities live with the external auth
    provider; this row only carries what moderation needs.

    Soft delete: deleted_at is set and email/name are rewritten to an
    archived form so the original email can register again. The partial
    unique index enforces "live emails are unique" on stores that support it.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index(
            "uq_users_email_live",
            "email",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("ix_users_deleted_at", "deleted_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)  # Role
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    customer_profile: Mapped["CustomerProfile | None"] = relationship(
        back_populates="user", uselist=False
    )
    investigator_profile: Mapped["InvestigatorProfile | None"] = relationship(
        back_populates="user",
        uselist=False,
        foreign_keys="InvestigatorProfile.user_id",
    )
