"""Appointment repository - Database operations for appointments"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import OCCUPYING_STATUSES, Appointment, User


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.therapy))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def get_occupying(
        db: Session,
        practitioner_id: int,
        day: date,
        exclude_appointment_id: Optional[int] = None,
    ) -> list[Appointment]:
        """Appointments that block the practitioner's time on ``day``"""
        query = db.query(Appointment).filter(
            Appointment.practitioner_id == practitioner_id,
            Appointment.scheduled_date == day,
            Appointment.status.in_(OCCUPYING_STATUSES),
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.order_by(Appointment.start_minute).all()

    @staticmethod
    def list_for_user(db: Session, user: User) -> list[Appointment]:
        """Appointments visible to ``user``: own bookings, own schedule, or all for admins"""
        query = db.query(Appointment).options(joinedload(Appointment.therapy))
        if user.role == "patient":
            query = query.filter(Appointment.patient_id == user.id)
        elif user.role == "practitioner":
            query = query.filter(Appointment.practitioner_id == user.id)
        return query.order_by(Appointment.scheduled_date, Appointment.start_minute).all()

    @staticmethod
    def get_progress(db: Session, patient_id: int, therapy_id: int) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(
                Appointment.patient_id == patient_id,
                Appointment.therapy_id == therapy_id,
                Appointment.status.in_(("completed", "in-progress")),
            )
            .order_by(Appointment.session_number)
            .all()
        )

    @staticmethod
    def create(db: Session, **appointment_data) -> Appointment:
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def update(db: Session, appointment: Appointment, **updates) -> Appointment:
        """Apply ``updates`` as given; None values clear the field"""
        for key, value in updates.items():
            if hasattr(appointment, key):
                setattr(appointment, key, value)

        db.commit()
        db.refresh(appointment)
        return appointment
