"""Conflict detection for a practitioner's day"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment
from ..appointments.repository import AppointmentRepository
from .time_calculator import overlaps

logger = logging.getLogger(__name__)


def describe_conflict(appointment: Appointment) -> dict:
    """Client-facing summary of a conflicting appointment"""
    return {
        "id": appointment.id,
        "start": appointment.start_time,
        "end": appointment.end_time,
        "time": appointment.time_range,
        "therapyId": appointment.therapy_id,
    }


class ConflictChecker:
    """Finds occupying appointments that overlap a proposed time range"""

    @staticmethod
    def find_conflicts(
        db: Session,
        practitioner_id: int,
        day: date,
        start: int,
        end: int,
        exclude_appointment_id: Optional[int] = None,
    ) -> list[Appointment]:
        """
        Return the practitioner's scheduled, confirmed or in-progress
        appointments on ``day`` whose [start, end) overlaps the requested range.

        Args:
            db: Database session
            practitioner_id: Practitioner whose schedule is checked
            day: Calendar date (other dates never conflict)
            start: Requested start, minutes since midnight
            end: Requested end, minutes since midnight
            exclude_appointment_id: Appointment being rescheduled, ignored
        """
        existing = AppointmentRepository.get_occupying(
            db, practitioner_id, day, exclude_appointment_id
        )
        conflicts = [
            appointment
            for appointment in existing
            if overlaps(start, end, appointment.start_minute, appointment.end_minute)
        ]
        if conflicts:
            logger.debug(
                f"🔍 {len(conflicts)} conflict(s) for practitioner {practitioner_id} on {day}"
            )
        return conflicts
