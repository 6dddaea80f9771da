"""Investigation request schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class InvestigationRequestCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    details: str = Field(..., min_length=5)


class InvestigationRequestRead(BaseModel):
    id: int
    user_id: int
    investigator_id: int | None
    title: str
    details: str
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class InvestigationRequestListResponse(BaseModel):
    items: list[InvestigationRequestRead]
    total: int
    page: int
    per_page: int


class InvestigatorTarget(BaseModel):
    """Body for assign / propose: the investigator profile to pair with."""
    investigator_id: int = Field(..., gt=0)


class MatchRead(BaseModel):
    id: int
    request_id: int
    investigator_id: int
    status: str

    model_config = {"from_attributes": True}
