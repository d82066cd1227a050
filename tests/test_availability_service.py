"""Tests for free slot generation."""

import pytest
from conftest import TOMORROW

from ayursutra.config import SchedulingConfig
from ayursutra.domain.scheduling.availability_service import AvailabilityService, generate_slots
from ayursutra.domain.scheduling.time_calculator import parse_time
from ayursutra.errors import NotFoundError


def busy(start, end):
    return (parse_time(start), parse_time(end))


class TestGenerateSlots:
    """Tests for the pure slot walk."""

    def test_full_free_day_has_eight_hourly_slots(self):
        slots = generate_slots(SchedulingConfig(), [])
        assert len(slots) == 8
        assert slots[0] == busy("09:00", "10:00")
        assert slots[-1] == busy("16:00", "17:00")

    def test_booking_removes_every_overlapping_slot(self):
        slots = generate_slots(SchedulingConfig(), [busy("10:00", "11:30")])
        assert busy("10:00", "11:00") not in slots
        assert busy("11:00", "12:00") not in slots
        assert busy("12:00", "13:00") in slots
        assert busy("09:00", "10:00") in slots
        assert len(slots) == 6

    def test_partial_trailing_slot_is_dropped(self):
        config = SchedulingConfig(working_hours_start="09:00", working_hours_end="12:30")
        slots = generate_slots(config, [])
        assert slots == [busy("09:00", "10:00"), busy("10:00", "11:00"), busy("11:00", "12:00")]

    def test_custom_slot_length(self):
        config = SchedulingConfig(
            working_hours_start="09:00", working_hours_end="11:00", slot_length_minutes=45
        )
        assert generate_slots(config, []) == [busy("09:00", "09:45"), busy("09:45", "10:30")]

    def test_slots_are_fixed_not_shifted_around_bookings(self):
        slots = generate_slots(SchedulingConfig(), [busy("09:15", "09:45")])
        assert busy("09:00", "10:00") not in slots
        assert slots[0] == busy("10:00", "11:00")


class TestSchedulingConfig:
    def test_end_must_follow_start(self):
        with pytest.raises(ValueError):
            SchedulingConfig(working_hours_start="17:00", working_hours_end="09:00")

    def test_slot_length_must_be_positive(self):
        with pytest.raises(ValueError):
            SchedulingConfig(slot_length_minutes=0)

    def test_times_must_be_valid(self):
        with pytest.raises(ValueError):
            SchedulingConfig(working_hours_start="9am")


class TestAvailabilityService:
    def test_available_slots_for_practitioner(self, db_session, users, make_appointment, scheduling):
        make_appointment(start="10:00", end="11:30", status="confirmed")
        make_appointment(start="14:00", end="15:00", status="cancelled")

        slots = AvailabilityService(db_session, scheduling).available_slots(
            users["practitioner"].id, TOMORROW
        )

        starts = [slot["start"] for slot in slots]
        assert starts == ["09:00", "12:00", "13:00", "14:00", "15:00", "16:00"]
        assert slots[0] == {"start": "09:00", "end": "10:00"}

    def test_unknown_practitioner(self, db_session, users, scheduling):
        with pytest.raises(NotFoundError):
            AvailabilityService(db_session, scheduling).available_slots(9999, TOMORROW)

    def test_inactive_practitioner(self, db_session, users, scheduling):
        with pytest.raises(NotFoundError):
            AvailabilityService(db_session, scheduling).available_slots(
                users["inactive_practitioner"].id, TOMORROW
            )

    def test_patient_is_not_a_practitioner(self, db_session, users, scheduling):
        with pytest.raises(NotFoundError):
            AvailabilityService(db_session, scheduling).available_slots(
                users["patient"].id, TOMORROW
            )
