"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import InvestigatorStatus

if TYPE_CHECKING:
    from app.db.models import User


class CustomerProfile(Base):
    """
    Customer side of an account (1:1 with a customer User).

    Deleting a customer archives the profile and its User together.
    """

    __tablename__ = "customer_profiles"
    __table_args__ = (Index("ix_customer_profiles_deleted_at", "deleted_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # Optimistic concurrency token, bumped by every moderation write
    version: Mapped[int] = mapped_column(Integer, default=1, server_default="1", nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    user: Mapped["User"] = relationship(back_populates="customer_profile")


class InvestigatorProfile(Base):
    """
    Investigator side of an account (1:1 with an investigator User).

    Workflow: pending → approved → rejected.
    Only approved, non-deleted profiles may be matched or assigned.
    Deleting always forces status to rejected in the same transaction.
    """

    __tablename__ = "investigator_profiles"
    __table_args__ = (
        Index("ix_investigator_profiles_status", "status"),
        Index("ix_investigator_profiles_deleted_at", "deleted_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=InvestigatorStatus.PENDING.value, nullable=False
    )
    specialties: Mapped[str | None] = mapped_column(Text, nullable=True)
    experience_years: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Review details
    review_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reviewed_by_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    version: Mapped[int] = mapped_column(Integer, default=1, server_default="1", nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    user: Mapped["User"] = relationship(
        back_populates="investigator_profile", foreign_keys=[user_id]
    )
    reviewed_by: Mapped["User | None"] = relationship(foreign_keys=[reviewed_by_id])
