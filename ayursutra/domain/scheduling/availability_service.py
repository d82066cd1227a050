"""Free slot computation for a practitioner's day"""

import logging
from datetime import date
from typing import Iterable

from sqlalchemy.orm import Session

from ...config import SchedulingConfig
from ...errors import NotFoundError
from ..appointments.repository import AppointmentRepository
from ..practitioners.repository import PractitionerRepository
from .time_calculator import format_time, overlaps, parse_time

logger = logging.getLogger(__name__)


def generate_slots(config: SchedulingConfig, busy: Iterable[tuple[int, int]]) -> list[tuple[int, int]]:
    """
    Walk the working window in fixed steps and keep the free slots.

    A slot is kept only if it ends inside working hours and overlaps no busy
    interval. A trailing slot that would run past closing is dropped, never
    shortened.
    """
    day_start = parse_time(config.working_hours_start)
    day_end = parse_time(config.working_hours_end)
    step = config.slot_length_minutes
    busy = list(busy)

    slots = []
    cursor = day_start
    while cursor < day_end:
        slot_end = cursor + step
        if slot_end > day_end:
            break
        if not any(overlaps(cursor, slot_end, b_start, b_end) for b_start, b_end in busy):
            slots.append((cursor, slot_end))
        cursor = slot_end
    return slots


class AvailabilityService:
    """Available slots for a practitioner on a date, recomputed on every call"""

    def __init__(self, db: Session, config: SchedulingConfig):
        self.db = db
        self.config = config

    def available_slots(self, practitioner_id: int, day: date) -> list[dict]:
        practitioner = PractitionerRepository.get_active(self.db, practitioner_id)
        if not practitioner:
            raise NotFoundError("Practitioner not found")

        busy = [
            (appointment.start_minute, appointment.end_minute)
            for appointment in AppointmentRepository.get_occupying(self.db, practitioner_id, day)
        ]
        slots = generate_slots(self.config, busy)
        logger.debug(
            f"📅 Practitioner {practitioner_id} on {day}: {len(slots)} free, {len(busy)} booked"
        )
        return [{"start": format_time(start), "end": format_time(end)} for start, end in slots]
