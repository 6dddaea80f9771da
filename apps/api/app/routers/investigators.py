"""Public investigators directory (no auth)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.schemas.investigator import InvestigatorPublicRead
from app.services import investigator_service
from app.utils.pagination import PaginationParams, get_pagination

router = APIRouter(prefix="/investigators", tags=["Investigators"])


@router.get("", response_model=list[InvestigatorPublicRead])
def list_investigators(
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    """Approved, non-deleted investigators only."""
    items, _total = investigator_service.list_public_investigators(db, pagination)
    return [
        InvestigatorPublicRead(
            id=p.id,
            name=p.user.name,
            specialties=p.specialties,
            experience_years=p.experience_years,
        )
        for p in items
    ]
