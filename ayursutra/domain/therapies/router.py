"""Therapy router - FastAPI endpoints for the therapy catalog"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_roles
from ...database import get_db
from ...models import Therapy, User
from .schemas import TherapyCreate, TherapyPreparation, TherapyResponse, TherapyUpdate
from .service import TherapyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/therapies", tags=["Therapies"])


def get_therapy_service(db: Session = Depends(get_db)) -> TherapyService:
    """Dependency injection for TherapyService"""
    return TherapyService(db)


def to_response(therapy: Therapy) -> TherapyResponse:
    return TherapyResponse(
        id=therapy.id,
        name=therapy.name,
        sanskritName=therapy.sanskrit_name,
        category=therapy.category,
        type=therapy.therapy_type,
        description=therapy.description,
        benefits=therapy.benefits or [],
        indications=therapy.indications or [],
        contraindications=therapy.contraindications or [],
        materials=therapy.materials or [],
        preparation=TherapyPreparation.from_record(therapy.preparation),
        sessionMinutes=therapy.session_minutes,
        courseSessions=therapy.course_sessions,
        pricePerSession=therapy.price_per_session,
        priceFullCourse=therapy.full_course_price,
        difficulty=therapy.difficulty,
        preferredTimeSlots=therapy.preferred_time_slots or [],
        daysBetweenSessions=therapy.days_between_sessions,
        isActive=therapy.is_active,
        createdById=therapy.created_by_id,
        createdAt=therapy.created_at,
    )


# ============================================================================
# CATALOG READS (public)
# ============================================================================


@router.get("", response_model=list[TherapyResponse])
async def list_therapies(service: TherapyService = Depends(get_therapy_service)):
    """Get all active therapies, newest first"""
    return [to_response(t) for t in service.list_therapies()]


@router.get("/categories", response_model=list[str])
async def list_categories(service: TherapyService = Depends(get_therapy_service)):
    return service.categories()


@router.get("/types", response_model=list[str])
async def list_types(service: TherapyService = Depends(get_therapy_service)):
    return service.types()


@router.get("/recommended", response_model=list[TherapyResponse])
async def recommended_therapies(
    condition: str = Query(..., min_length=1),
    service: TherapyService = Depends(get_therapy_service),
):
    """Therapies indicated for a condition"""
    return [to_response(t) for t in service.recommended(condition)]


@router.get("/{therapy_id}", response_model=TherapyResponse)
async def get_therapy(therapy_id: int, service: TherapyService = Depends(get_therapy_service)):
    return to_response(service.get_therapy(therapy_id))


# ============================================================================
# CATALOG WRITES (practitioners and admins)
# ============================================================================


@router.post("", response_model=TherapyResponse, status_code=201)
async def create_therapy(
    data: TherapyCreate,
    current_user: User = Depends(require_roles("practitioner", "admin")),
    service: TherapyService = Depends(get_therapy_service),
):
    return to_response(service.create_therapy(data, current_user))


@router.patch("/{therapy_id}", response_model=TherapyResponse)
async def update_therapy(
    therapy_id: int,
    data: TherapyUpdate,
    current_user: User = Depends(require_roles("practitioner", "admin")),
    service: TherapyService = Depends(get_therapy_service),
):
    return to_response(service.update_therapy(therapy_id, data, current_user))


@router.delete("/{therapy_id}")
async def delete_therapy(
    therapy_id: int,
    current_user: User = Depends(require_roles("practitioner", "admin")),
    service: TherapyService = Depends(get_therapy_service),
):
    """Soft delete a therapy"""
    service.delete_therapy(therapy_id, current_user)
    return {"message": "Therapy deleted successfully"}
