"""Practitioner router - Directory of bookable practitioners"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from .repository import PractitionerRepository
from .schemas import PractitionerResponse

router = APIRouter(prefix="/practitioners", tags=["Practitioners"])


@router.get("", response_model=list[PractitionerResponse])
async def list_practitioners(db: Session = Depends(get_db)):
    """Active practitioners, by name"""
    return [
        PractitionerResponse(id=p.id, name=p.name, email=p.email, phone=p.phone)
        for p in PractitionerRepository.list_active(db)
    ]
