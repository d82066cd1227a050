"""Appointment service - Booking, rescheduling and cancellation rules"""

import logging
from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...booking_lock import BookingLock
from ...config import SchedulingConfig
from ...errors import (
    ConflictError,
    ForbiddenError,
    NotCancellableError,
    NotFoundError,
    TerminalStateError,
    ValidationError,
)
from ...models import TERMINAL_STATUSES, Appointment, User
from ..notifications.service import NotificationService, utc_now
from ..practitioners.repository import PractitionerRepository
from ..scheduling import cancellation_policy
from ..scheduling.availability_service import AvailabilityService
from ..scheduling.conflict_checker import ConflictChecker, describe_conflict
from ..scheduling.time_calculator import as_clinic_time, parse_time
from ..therapies.repository import TherapyRepository
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentStatus, AppointmentUpdate

logger = logging.getLogger(__name__)

MIN_DURATION_MINUTES = 15
DEFAULT_CANCELLATION_REASON = "No reason provided"

# Status changes allowed through update; cancellation has its own operation
TRANSITIONS = {
    AppointmentStatus.SCHEDULED: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.RESCHEDULED,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.RESCHEDULED,
    },
    AppointmentStatus.IN_PROGRESS: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.RESCHEDULED,
    },
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.NO_SHOW: set(),
    AppointmentStatus.RESCHEDULED: set(),
}


def can_transition(current: str, target: str) -> bool:
    return AppointmentStatus(target) in TRANSITIONS[AppointmentStatus(current)]


def validate_time_range(start: str, end: str) -> tuple[int, int]:
    """Parse an HH:MM range and enforce ordering and minimum length"""
    start_minute = parse_time(start)
    end_minute = parse_time(end)
    if end_minute <= start_minute:
        raise ValidationError("End time must be after start time")
    if end_minute - start_minute < MIN_DURATION_MINUTES:
        raise ValidationError(f"Appointments must last at least {MIN_DURATION_MINUTES} minutes")
    return start_minute, end_minute


class AppointmentService:
    """Service layer for the appointment lifecycle"""

    def __init__(
        self,
        db: Session,
        booking_lock: BookingLock,
        scheduling: SchedulingConfig,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.repo = AppointmentRepository()
        self.booking_lock = booking_lock
        self.scheduling = scheduling
        self.clock = clock or utc_now
        self.notifications = NotificationService(db, clock=self.clock)

    def now(self) -> datetime:
        """Current time in the clinic zone"""
        return as_clinic_time(self.clock(), self.scheduling.timezone)

    def today(self) -> date:
        return self.now().date()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: int, user: User) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        if user.role != "admin" and not appointment.involves(user):
            logger.warning(f"⚠️ User {user.id} denied access to appointment {appointment_id}")
            raise ForbiddenError("Not authorized to access this appointment")
        return appointment

    def list_appointments(self, user: User) -> list[Appointment]:
        return self.repo.list_for_user(self.db, user)

    def list_available_slots(self, practitioner_id: int, day: date) -> list[dict]:
        return AvailabilityService(self.db, self.scheduling).available_slots(practitioner_id, day)

    def patient_progress(self, user: User, therapy_id: int, patient_id: Optional[int] = None) -> dict:
        """Completed and in-progress sessions of one therapy course for a patient"""
        if user.role == "patient":
            if patient_id is not None and patient_id != user.id:
                raise ForbiddenError("Patients can only view their own progress")
            patient_id = user.id
        elif patient_id is None:
            raise ValidationError("patientId is required")

        therapy = TherapyRepository.get_by_id(self.db, therapy_id, active_only=False)
        if not therapy:
            raise NotFoundError("Therapy not found")

        sessions = self.repo.get_progress(self.db, patient_id, therapy_id)
        total = max((s.total_sessions for s in sessions), default=therapy.course_sessions)
        return {
            "patientId": patient_id,
            "therapyId": therapy_id,
            "totalSessions": total,
            "completedSessions": sum(1 for s in sessions if s.status == "completed"),
            "inProgressSessions": sum(1 for s in sessions if s.status == "in-progress"),
            "sessions": sessions,
        }

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_appointment(self, data: AppointmentCreate, patient: User) -> Appointment:
        """Book a session for ``patient``, rejecting overlaps with the practitioner's schedule"""
        logger.info(
            f"📥 Booking request: patient {patient.id}, practitioner {data.practitionerId}, "
            f"{data.scheduledDate} {data.scheduledTime.start}-{data.scheduledTime.end}"
        )

        if patient.role != "patient":
            raise ForbiddenError("Only patients can book appointments")

        therapy = TherapyRepository.get_by_id(self.db, data.therapyId)
        if not therapy:
            raise NotFoundError("Therapy not found or not available")

        practitioner = PractitionerRepository.get_active(self.db, data.practitionerId)
        if not practitioner:
            raise NotFoundError("Practitioner not found or not available")

        if data.scheduledDate <= self.today():
            raise ValidationError("Appointment date must be in the future")

        start, end = validate_time_range(data.scheduledTime.start, data.scheduledTime.end)

        total_sessions = data.totalSessions or therapy.course_sessions
        if data.sessionNumber > total_sessions:
            raise ValidationError(
                f"Session number {data.sessionNumber} exceeds total sessions {total_sessions}"
            )

        with self.booking_lock.hold(practitioner.id, data.scheduledDate):
            conflicts = ConflictChecker.find_conflicts(
                self.db, practitioner.id, data.scheduledDate, start, end
            )
            if conflicts:
                logger.warning(
                    f"⚠️ Slot taken for practitioner {practitioner.id} on {data.scheduledDate}: "
                    f"{[c.id for c in conflicts]}"
                )
                raise ConflictError(
                    "Time slot is not available. Please choose a different time.",
                    [describe_conflict(c) for c in conflicts],
                )

            appointment = self.repo.create(
                self.db,
                patient_id=patient.id,
                practitioner_id=practitioner.id,
                therapy_id=therapy.id,
                session_number=data.sessionNumber,
                total_sessions=total_sessions,
                scheduled_date=data.scheduledDate,
                start_minute=start,
                end_minute=end,
                duration=end - start,
                status=AppointmentStatus.SCHEDULED.value,
                payment_amount=therapy.price_per_session,
                payment_status="pending",
                payment_method=data.paymentMethod,
                patient_notes=data.notes.patient if data.notes else None,
            )

        logger.info(f"✅ Appointment {appointment.id} scheduled")
        self._notify(appointment, "appointment_confirmation", patient)
        return appointment

    # ------------------------------------------------------------------
    # Update / reschedule
    # ------------------------------------------------------------------

    def update_appointment(self, appointment_id: int, user: User, patch: AppointmentUpdate) -> Appointment:
        appointment = self.get_appointment(appointment_id, user)

        if appointment.status in TERMINAL_STATUSES:
            raise TerminalStateError(f"Cannot update a {appointment.status} appointment")

        updates = {}

        if patch.status is not None and patch.status.value != appointment.status:
            target = patch.status.value
            if target == AppointmentStatus.CANCELLED.value:
                raise ValidationError("Use the cancel operation to cancel an appointment")
            if not can_transition(appointment.status, target):
                raise ValidationError(f"Cannot change status from {appointment.status} to {target}")
            updates["status"] = target

        session_number = patch.sessionNumber or appointment.session_number
        total_sessions = patch.totalSessions or appointment.total_sessions
        if session_number > total_sessions:
            raise ValidationError(
                f"Session number {session_number} exceeds total sessions {total_sessions}"
            )
        if patch.sessionNumber is not None:
            updates["session_number"] = patch.sessionNumber
        if patch.totalSessions is not None:
            updates["total_sessions"] = patch.totalSessions

        updates.update(self._note_updates(patch, user))

        if patch.room is not None:
            updates["room"] = patch.room
        if patch.paymentStatus is not None:
            updates["payment_status"] = patch.paymentStatus
            if patch.paymentStatus == "paid" and appointment.paid_at is None:
                updates["paid_at"] = self.now()
        if patch.paymentMethod is not None:
            updates["payment_method"] = patch.paymentMethod
        if patch.transactionId is not None:
            updates["transaction_id"] = patch.transactionId
        if patch.nextAppointmentId is not None:
            if patch.nextAppointmentId == appointment.id:
                raise ValidationError("An appointment cannot follow itself")
            if not self.repo.get_by_id(self.db, patch.nextAppointmentId):
                raise NotFoundError("Next appointment not found")
            updates["next_appointment_id"] = patch.nextAppointmentId

        rescheduling = patch.scheduledDate is not None or patch.scheduledTime is not None
        if not rescheduling:
            appointment = self.repo.update(self.db, appointment, **updates)
            logger.info(f"✅ Appointment {appointment.id} updated by user {user.id}")
            return appointment

        new_date = patch.scheduledDate or appointment.scheduled_date
        if patch.scheduledDate is not None and new_date <= self.today():
            raise ValidationError("Appointment date must be in the future")

        if patch.scheduledTime is not None:
            start, end = validate_time_range(patch.scheduledTime.start, patch.scheduledTime.end)
        else:
            start, end = appointment.start_minute, appointment.end_minute

        with self.booking_lock.hold(appointment.practitioner_id, new_date):
            conflicts = ConflictChecker.find_conflicts(
                self.db,
                appointment.practitioner_id,
                new_date,
                start,
                end,
                exclude_appointment_id=appointment.id,
            )
            if conflicts:
                logger.warning(f"⚠️ Reschedule of appointment {appointment.id} conflicts")
                raise ConflictError(
                    "Time slot is not available. Please choose a different time.",
                    [describe_conflict(c) for c in conflicts],
                )

            updates.update(
                scheduled_date=new_date,
                start_minute=start,
                end_minute=end,
                duration=end - start,
            )
            appointment = self.repo.update(self.db, appointment, **updates)

        logger.info(f"🔄 Appointment {appointment.id} rescheduled to {new_date} {appointment.time_range}")
        self._notify(appointment, "appointment_rescheduled", user)
        return appointment

    @staticmethod
    def _note_updates(patch: AppointmentUpdate, user: User) -> dict:
        """Notes and feedback, each writable only by the party it belongs to"""
        updates = {}
        is_admin = user.role == "admin"
        is_staff = is_admin or user.role == "practitioner"

        if patch.notes is not None:
            if patch.notes.patient is not None:
                updates["patient_notes"] = patch.notes.patient
            if patch.notes.practitioner is not None:
                if not is_staff:
                    raise ForbiddenError("Only practitioners can write practitioner notes")
                updates["practitioner_notes"] = patch.notes.practitioner
            if patch.notes.admin is not None:
                if not is_admin:
                    raise ForbiddenError("Only admins can write admin notes")
                updates["admin_notes"] = patch.notes.admin

        if patch.feedback is not None:
            feedback = patch.feedback
            if feedback.patientRating is not None or feedback.patientReview is not None:
                if user.role != "patient" and not is_admin:
                    raise ForbiddenError("Only the patient can rate an appointment")
                if feedback.patientRating is not None:
                    updates["patient_rating"] = feedback.patientRating
                if feedback.patientReview is not None:
                    updates["patient_review"] = feedback.patientReview
            if feedback.practitionerNotes is not None or feedback.effectiveness is not None:
                if not is_staff:
                    raise ForbiddenError("Only practitioners can assess effectiveness")
                if feedback.practitionerNotes is not None:
                    updates["practitioner_feedback"] = feedback.practitionerNotes
                if feedback.effectiveness is not None:
                    updates["effectiveness"] = feedback.effectiveness

        return updates

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def cancel_appointment(
        self, appointment_id: int, user: User, reason: Optional[str] = None
    ) -> tuple[Appointment, float]:
        """Cancel within policy and stamp the refund owed"""
        appointment = self.get_appointment(appointment_id, user)
        now = self.now()
        tz = self.scheduling.timezone

        if not cancellation_policy.can_cancel(appointment, now, tz):
            if appointment.status not in cancellation_policy.CANCELLABLE_STATUSES:
                message = f"Cannot cancel a {appointment.status} appointment"
            else:
                message = (
                    f"Appointments can only be cancelled at least "
                    f"{cancellation_policy.MIN_CANCELLATION_HOURS} hours in advance"
                )
            logger.warning(f"⚠️ Cancellation of appointment {appointment.id} refused: {message}")
            raise NotCancellableError(message)

        refund = cancellation_policy.refund_amount(appointment, now, tz)
        appointment = self.repo.update(
            self.db,
            appointment,
            status=AppointmentStatus.CANCELLED.value,
            cancelled_at=now,
            cancelled_by_id=user.id,
            cancellation_reason=reason or DEFAULT_CANCELLATION_REASON,
            refund_status="pending" if refund > 0 else "none",
            refund_amount=refund,
        )

        logger.info(f"🚫 Appointment {appointment.id} cancelled by user {user.id}, refund {refund}")
        self._notify(appointment, "appointment_cancelled", user)
        return appointment, refund

    def _notify(self, appointment: Appointment, event: str, sender: User) -> None:
        # The appointment is already committed; a failed notification must not undo it
        try:
            self.notifications.notify_appointment_event(appointment, event, sender)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to record {event} for appointment {appointment.id}: {str(e)}")
