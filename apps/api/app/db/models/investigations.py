"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import MatchStatus, RequestStatus

if TYPE_CHECKING:
    from app.db.models import InvestigatorProfile, User


class InvestigationRequest(Base):
    """
    A customer's case.

    Owned by the customer User; only back-references the investigator.
    Invariant: status 'assigned' ⇔ investigator_id references a live,
    approved investigator.
    """

    __tablename__ = "investigation_requests"
    __table_args__ = (
        Index("ix_investigation_requests_user_id", "user_id"),
        Index("ix_investigation_requests_investigator_id", "investigator_id"),
        Index("ix_investigation_requests_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    investigator_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("investigator_profiles.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    details: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=RequestStatus.MATCHING.value, nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, default=1, server_default="1", nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship()
    investigator: Mapped["InvestigatorProfile | None"] = relationship()
    matches: Mapped[list["InvestigatorMatch"]] = relationship(back_populates="request")


class InvestigatorMatch(Base):
    """
    Proposed or confirmed pairing between a request and an investigator.

    Exists only while both sides are active: removed (not left dangling)
    whenever either side is deleted.
    """

    __tablename__ = "investigator_matches"
    __table_args__ = (
        UniqueConstraint("request_id", "investigator_id", name="uq_match_request_investigator"),
        Index("ix_investigator_matches_investigator_id", "investigator_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    request_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("investigation_requests.id", ondelete="CASCADE"), nullable=False
    )
    investigator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("investigator_profiles.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=MatchStatus.PROPOSED.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    request: Mapped["InvestigationRequest"] = relationship(back_populates="matches")
    investigator: Mapped["InvestigatorProfile"] = relationship()
