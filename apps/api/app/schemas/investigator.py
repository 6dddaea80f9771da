"""Investigator profile schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class InvestigatorUserRead(BaseModel):
    id: int
    name: str | None
    email: str

    model_config = {"from_attributes": True}


class InvestigatorRead(BaseModel):
    """Investigator profile as returned to admins."""
    id: int
    user_id: int
    status: str
    specialties: str | None = None
    experience_years: int | None = None
    review_note: str | None = None
    reviewed_at: datetime | None = None
    reviewed_by_id: int | None = None
    deleted_at: datetime | None = None
    user: InvestigatorUserRead | None = None

    model_config = {"from_attributes": True}


class InvestigatorPublicRead(BaseModel):
    """Approved investigator as listed publicly (no contact data)."""
    id: int
    name: str | None
    specialties: str | None = None
    experience_years: int | None = None


class InvestigatorListResponse(BaseModel):
    items: list[InvestigatorRead]
    total: int
    page: int
    per_page: int


class ApproveInvestigatorRequest(BaseModel):
    note: str | None = None


class RejectInvestigatorRequest(BaseModel):
    note: str = Field("", description="Reason shown to the investigator")
