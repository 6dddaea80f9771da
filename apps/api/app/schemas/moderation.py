"""Moderation response schemas."""

from pydantic import BaseModel

from app.schemas.investigation_request import InvestigationRequestRead, MatchRead
from app.schemas.investigator import InvestigatorRead


class InvestigatorApprovedResponse(BaseModel):
    message: str = "INVESTIGATOR_APPROVED"
    investigator: InvestigatorRead


class InvestigatorRejectedResponse(BaseModel):
    message: str = "INVESTIGATOR_REJECTED"
    investigator: InvestigatorRead
    released_request_ids: list[int] = []
    removed_match_ids: list[int] = []


class InvestigatorDeletedResponse(BaseModel):
    message: str = "INVESTIGATOR_DELETED"
    investigator_id: int
    user_id: int
    released_request_ids: list[int] = []
    removed_match_ids: list[int] = []


class CustomerDeletedResponse(BaseModel):
    message: str = "CUSTOMER_DELETED"
    customer_id: int
    user_id: int
    cancelled_request_ids: list[int] = []
    removed_match_ids: list[int] = []


class RequestTransitionResponse(BaseModel):
    message: str
    request: InvestigationRequestRead
    removed_match_ids: list[int] = []
    matches: list[MatchRead] = []
