"""Appointment router - FastAPI endpoints for booking and the appointment lifecycle"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import Appointment, User
from .schemas import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentFeedback,
    AppointmentNotes,
    AppointmentResponse,
    AppointmentUpdate,
    AvailableSlotsResponse,
    CancellationInfo,
    CancelResponse,
    PaymentInfo,
    ProgressResponse,
    ScheduledTime,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(request: Request, db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    state = request.app.state
    return AppointmentService(db, state.booking_lock, state.scheduling, clock=state.clock)


def to_response(appointment: Appointment, viewer: User) -> AppointmentResponse:
    """Serialize for ``viewer``; admin notes are only shown to admins"""
    cancellation = None
    if appointment.status == "cancelled":
        cancellation = CancellationInfo(
            cancelledAt=appointment.cancelled_at,
            cancelledBy=appointment.cancelled_by_id,
            reason=appointment.cancellation_reason,
            refundStatus=appointment.refund_status,
            refundAmount=appointment.refund_amount,
        )

    return AppointmentResponse(
        id=appointment.id,
        patientId=appointment.patient_id,
        practitionerId=appointment.practitioner_id,
        therapyId=appointment.therapy_id,
        therapyName=appointment.therapy.name if appointment.therapy else None,
        sessionNumber=appointment.session_number,
        totalSessions=appointment.total_sessions,
        scheduledDate=appointment.scheduled_date,
        scheduledTime=ScheduledTime(start=appointment.start_time, end=appointment.end_time),
        duration=appointment.duration,
        status=appointment.status,
        payment=PaymentInfo(
            amount=appointment.payment_amount,
            status=appointment.payment_status,
            method=appointment.payment_method,
            transactionId=appointment.transaction_id,
            paidAt=appointment.paid_at,
        ),
        notes=AppointmentNotes(
            patient=appointment.patient_notes,
            practitioner=appointment.practitioner_notes,
            admin=appointment.admin_notes if viewer.role == "admin" else None,
        ),
        feedback=AppointmentFeedback(
            patientRating=appointment.patient_rating,
            patientReview=appointment.patient_review,
            practitionerNotes=appointment.practitioner_feedback,
            effectiveness=appointment.effectiveness,
        ),
        cancellation=cancellation,
        room=appointment.room,
        nextAppointmentId=appointment.next_appointment_id,
        createdAt=appointment.created_at,
        updatedAt=appointment.updated_at,
    )


# ============================================================================
# BOOKING
# ============================================================================


@router.post("", response_model=AppointmentResponse, status_code=201)
def create_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(require_roles("patient")),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book an appointment for the current patient"""
    return to_response(service.create_appointment(data, current_user), current_user)


@router.get("", response_model=list[AppointmentResponse])
async def list_appointments(
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Patients see their bookings, practitioners their schedule, admins everything"""
    return [to_response(a, current_user) for a in service.list_appointments(current_user)]


@router.get("/available-slots", response_model=AvailableSlotsResponse)
async def available_slots(
    practitioner_id: int = Query(..., alias="practitionerId"),
    day: date = Query(..., alias="date"),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Free slots for a practitioner on a date"""
    slots = service.list_available_slots(practitioner_id, day)
    return AvailableSlotsResponse(practitionerId=practitioner_id, scheduledDate=day, slots=slots)


@router.get("/progress", response_model=ProgressResponse)
async def patient_progress(
    therapy_id: int = Query(..., alias="therapyId"),
    patient_id: Optional[int] = Query(None, alias="patientId"),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Sessions completed so far in a therapy course"""
    progress = service.patient_progress(current_user, therapy_id, patient_id)
    progress["sessions"] = [to_response(a, current_user) for a in progress["sessions"]]
    return progress


# ============================================================================
# SINGLE APPOINTMENT
# ============================================================================


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return to_response(service.get_appointment(appointment_id, current_user), current_user)


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Update status, notes or payment, or reschedule"""
    return to_response(service.update_appointment(appointment_id, current_user, data), current_user)


@router.post("/{appointment_id}/cancel", response_model=CancelResponse)
def cancel_appointment(
    appointment_id: int,
    data: Optional[AppointmentCancel] = Body(None),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    reason = data.reason if data else None
    appointment, refund = service.cancel_appointment(appointment_id, current_user, reason)
    return CancelResponse(
        message="Appointment cancelled successfully",
        refundAmount=refund,
        appointment=to_response(appointment, current_user),
    )
