"""Tests for the appointment lifecycle service."""

from datetime import date, timedelta

import pytest
from conftest import TODAY, TOMORROW

from ayursutra.domain.appointments.schemas import (
    AppointmentCreate,
    AppointmentNotes,
    AppointmentUpdate,
    ScheduledTime,
)
from ayursutra.domain.appointments.service import TRANSITIONS, AppointmentStatus, can_transition
from ayursutra.errors import (
    ConflictError,
    ForbiddenError,
    NotCancellableError,
    NotFoundError,
    TerminalStateError,
    ValidationError,
)
from ayursutra.models import Notification


def booking(practitioner, therapy, day=TOMORROW, start="10:00", end="11:00", **extra):
    return AppointmentCreate(
        practitionerId=practitioner.id,
        therapyId=therapy.id,
        scheduledDate=day,
        scheduledTime=ScheduledTime(start=start, end=end),
        **extra,
    )


class TestTransitions:
    def test_happy_path(self):
        assert can_transition("scheduled", "confirmed")
        assert can_transition("confirmed", "in-progress")
        assert can_transition("in-progress", "completed")

    def test_no_skipping_ahead(self):
        assert not can_transition("scheduled", "completed")
        assert not can_transition("scheduled", "in-progress")

    def test_cancel_is_not_an_update_transition(self):
        for targets in TRANSITIONS.values():
            assert AppointmentStatus.CANCELLED not in targets

    @pytest.mark.parametrize("source", ["scheduled", "confirmed", "in-progress"])
    def test_no_show_and_rescheduled_reachable_from_active_states(self, source):
        assert can_transition(source, "no-show")
        assert can_transition(source, "rescheduled")

    @pytest.mark.parametrize("source", ["completed", "cancelled", "no-show", "rescheduled"])
    def test_final_states_have_no_way_out(self, source):
        assert TRANSITIONS[AppointmentStatus(source)] == set()


class TestCreateAppointment:
    def test_books_with_therapy_defaults(self, service, users, therapy, db_session):
        appointment = service.create_appointment(
            booking(users["practitioner"], therapy, start="10:00", end="11:30"), users["patient"]
        )

        assert appointment.status == "scheduled"
        assert appointment.duration == 90
        assert appointment.total_sessions == therapy.course_sessions
        assert appointment.payment_amount == therapy.price_per_session
        assert appointment.payment_status == "pending"
        assert appointment.payment_method == "cash"
        assert appointment.room == "Main Treatment Room"
        assert appointment.time_range == "10:00 - 11:30"

        recipients = {
            n.recipient_id
            for n in db_session.query(Notification).filter(
                Notification.related_appointment_id == appointment.id,
                Notification.type == "appointment_confirmation",
            )
        }
        assert recipients == {users["patient"].id, users["practitioner"].id}

    def test_explicit_total_sessions_and_notes(self, service, users, therapy):
        appointment = service.create_appointment(
            booking(
                users["practitioner"],
                therapy,
                sessionNumber=2,
                totalSessions=3,
                notes={"patient": "Lower back pain"},
            ),
            users["patient"],
        )
        assert (appointment.session_number, appointment.total_sessions) == (2, 3)
        assert appointment.patient_notes == "Lower back pain"

    def test_overlapping_booking_is_rejected(self, service, users, therapy):
        first = service.create_appointment(booking(users["practitioner"], therapy), users["patient"])

        with pytest.raises(ConflictError) as exc_info:
            service.create_appointment(
                booking(users["practitioner"], therapy, start="10:30", end="11:30"),
                users["other_patient"],
            )

        conflicts = exc_info.value.conflicts
        assert len(conflicts) == 1
        assert conflicts[0]["id"] == first.id
        assert conflicts[0]["time"] == "10:00 - 11:00"

    def test_back_to_back_booking_is_accepted(self, service, users, therapy):
        service.create_appointment(booking(users["practitioner"], therapy), users["patient"])
        second = service.create_appointment(
            booking(users["practitioner"], therapy, start="11:00", end="12:00"),
            users["other_patient"],
        )
        assert second.id is not None

    def test_same_time_with_another_practitioner_is_fine(self, service, users, therapy):
        service.create_appointment(booking(users["practitioner"], therapy), users["patient"])
        other = service.create_appointment(
            booking(users["other_practitioner"], therapy), users["patient"]
        )
        assert other.practitioner_id == users["other_practitioner"].id

    @pytest.mark.parametrize("day", [TODAY, TODAY - timedelta(days=1)])
    def test_date_must_be_after_today(self, service, users, therapy, day):
        with pytest.raises(ValidationError):
            service.create_appointment(booking(users["practitioner"], therapy, day=day), users["patient"])

    @pytest.mark.parametrize("start,end", [("11:00", "10:00"), ("10:00", "10:00"), ("10:00", "10:10")])
    def test_time_range_rules(self, service, users, therapy, start, end):
        with pytest.raises(ValidationError):
            service.create_appointment(
                booking(users["practitioner"], therapy, start=start, end=end), users["patient"]
            )

    def test_fifteen_minutes_is_enough(self, service, users, therapy):
        appointment = service.create_appointment(
            booking(users["practitioner"], therapy, start="10:00", end="10:15"), users["patient"]
        )
        assert appointment.duration == 15

    def test_session_number_cannot_exceed_total(self, service, users, therapy):
        with pytest.raises(ValidationError):
            service.create_appointment(
                booking(users["practitioner"], therapy, sessionNumber=6), users["patient"]
            )

    def test_inactive_therapy(self, service, users, therapy, db_session):
        therapy.is_active = False
        db_session.commit()
        with pytest.raises(NotFoundError):
            service.create_appointment(booking(users["practitioner"], therapy), users["patient"])

    def test_inactive_practitioner(self, service, users, therapy):
        with pytest.raises(NotFoundError):
            service.create_appointment(
                booking(users["inactive_practitioner"], therapy), users["patient"]
            )

    def test_practitioner_id_must_be_a_practitioner(self, service, users, therapy):
        with pytest.raises(NotFoundError):
            service.create_appointment(booking(users["other_patient"], therapy), users["patient"])

    def test_only_patients_book(self, service, users, therapy):
        with pytest.raises(ForbiddenError):
            service.create_appointment(booking(users["practitioner"], therapy), users["admin"])


class TestUpdateAppointment:
    def test_status_follows_state_machine(self, service, users, make_appointment):
        appointment = make_appointment(status="scheduled")
        practitioner = users["practitioner"]

        for target in ("confirmed", "in-progress", "completed"):
            appointment = service.update_appointment(
                appointment.id, practitioner, AppointmentUpdate(status=target)
            )
            assert appointment.status == target

    def test_invalid_transition(self, service, users, make_appointment):
        appointment = make_appointment(status="scheduled")
        with pytest.raises(ValidationError):
            service.update_appointment(
                appointment.id, users["practitioner"], AppointmentUpdate(status="completed")
            )

    def test_cancel_through_update_is_rejected(self, service, users, make_appointment):
        appointment = make_appointment(status="confirmed")
        with pytest.raises(ValidationError):
            service.update_appointment(
                appointment.id, users["patient"], AppointmentUpdate(status="cancelled")
            )

    @pytest.mark.parametrize("status", ["completed", "cancelled"])
    def test_terminal_states_reject_updates(self, service, users, make_appointment, status):
        appointment = make_appointment(status=status)
        with pytest.raises(TerminalStateError):
            service.update_appointment(appointment.id, users["admin"], AppointmentUpdate(room="Room 2"))

    def test_no_show_has_no_outgoing_status(self, service, users, make_appointment):
        appointment = make_appointment(status="no-show")
        with pytest.raises(ValidationError):
            service.update_appointment(
                appointment.id, users["practitioner"], AppointmentUpdate(status="confirmed")
            )

    def test_only_parties_and_admins(self, service, users, make_appointment):
        appointment = make_appointment()
        with pytest.raises(ForbiddenError):
            service.update_appointment(
                appointment.id, users["other_patient"], AppointmentUpdate(room="Room 2")
            )
        with pytest.raises(ForbiddenError):
            service.update_appointment(
                appointment.id, users["other_practitioner"], AppointmentUpdate(room="Room 2")
            )
        updated = service.update_appointment(appointment.id, users["admin"], AppointmentUpdate(room="Room 2"))
        assert updated.room == "Room 2"

    def test_reschedule_into_conflict(self, service, users, make_appointment):
        make_appointment(start="10:00", end="11:00")
        moving = make_appointment(start="12:00", end="13:00", patient=users["other_patient"])

        with pytest.raises(ConflictError) as exc_info:
            service.update_appointment(
                moving.id,
                users["other_patient"],
                AppointmentUpdate(scheduledTime=ScheduledTime(start="10:30", end="11:30")),
            )
        assert len(exc_info.value.conflicts) == 1

    def test_reschedule_overlapping_its_own_slot(self, service, users, make_appointment, db_session):
        appointment = make_appointment(start="10:00", end="11:00")
        updated = service.update_appointment(
            appointment.id,
            users["patient"],
            AppointmentUpdate(scheduledTime=ScheduledTime(start="10:30", end="11:45")),
        )
        assert updated.time_range == "10:30 - 11:45"
        assert updated.duration == 75

        rescheduled = db_session.query(Notification).filter(
            Notification.related_appointment_id == appointment.id,
            Notification.type == "appointment_rescheduled",
        )
        assert rescheduled.count() == 2

    def test_reschedule_to_another_day(self, service, users, make_appointment):
        appointment = make_appointment()
        new_day = TOMORROW + timedelta(days=2)
        updated = service.update_appointment(
            appointment.id, users["patient"], AppointmentUpdate(scheduledDate=new_day)
        )
        assert updated.scheduled_date == new_day
        assert updated.time_range == "10:00 - 11:00"

    def test_reschedule_date_must_be_future(self, service, users, make_appointment):
        appointment = make_appointment()
        with pytest.raises(ValidationError):
            service.update_appointment(
                appointment.id, users["patient"], AppointmentUpdate(scheduledDate=TODAY)
            )

    def test_session_bounds_on_update(self, service, users, make_appointment):
        appointment = make_appointment()
        with pytest.raises(ValidationError):
            service.update_appointment(
                appointment.id, users["practitioner"], AppointmentUpdate(sessionNumber=6)
            )

    def test_admin_notes_are_admin_only(self, service, users, make_appointment):
        appointment = make_appointment()
        with pytest.raises(ForbiddenError):
            service.update_appointment(
                appointment.id, users["patient"], AppointmentUpdate(notes=AppointmentNotes(admin="x"))
            )
        updated = service.update_appointment(
            appointment.id, users["admin"], AppointmentUpdate(notes=AppointmentNotes(admin="Paid at desk"))
        )
        assert updated.admin_notes == "Paid at desk"

    def test_feedback(self, service, users, make_appointment):
        appointment = make_appointment(status="in-progress")
        updated = service.update_appointment(
            appointment.id, users["patient"], AppointmentUpdate(feedback={"patientRating": 5})
        )
        assert updated.patient_rating == 5
        with pytest.raises(ForbiddenError):
            service.update_appointment(
                appointment.id, users["patient"], AppointmentUpdate(feedback={"effectiveness": 4})
            )

    def test_marking_paid_stamps_paid_at(self, service, users, make_appointment):
        appointment = make_appointment()
        updated = service.update_appointment(
            appointment.id, users["admin"], AppointmentUpdate(paymentStatus="paid", paymentMethod="upi")
        )
        assert updated.payment_status == "paid"
        assert updated.payment_method == "upi"
        assert updated.paid_at is not None

    def test_unknown_appointment(self, service, users):
        with pytest.raises(NotFoundError):
            service.update_appointment(9999, users["admin"], AppointmentUpdate(room="Room 2"))


class TestCancelAppointment:
    def test_fifty_hours_ahead_is_a_full_refund(self, service, users, make_appointment, db_session):
        # FIXED_NOW is 10 March 09:00, so 12 March 11:00 is 50 hours away
        appointment = make_appointment(day=date(2025, 3, 12), start="11:00", end="12:00", amount=1000)

        cancelled, refund = service.cancel_appointment(appointment.id, users["patient"], "Travelling")

        assert refund == 1000
        assert cancelled.status == "cancelled"
        assert cancelled.refund_status == "pending"
        assert cancelled.refund_amount == 1000
        assert cancelled.cancellation_reason == "Travelling"
        assert cancelled.cancelled_by_id == users["patient"].id
        assert cancelled.cancelled_at is not None

        notified = db_session.query(Notification).filter(
            Notification.related_appointment_id == appointment.id,
            Notification.type == "appointment_cancelled",
        )
        assert notified.count() == 2

    def test_thirty_hours_ahead_is_a_half_refund(self, service, users, make_appointment):
        appointment = make_appointment(day=date(2025, 3, 11), start="15:00", end="16:00")
        cancelled, refund = service.cancel_appointment(appointment.id, users["practitioner"])
        assert refund == 500
        assert cancelled.refund_status == "pending"
        assert cancelled.cancellation_reason == "No reason provided"

    def test_zero_amount_refund_status_is_none(self, service, users, make_appointment):
        appointment = make_appointment(day=date(2025, 3, 13), amount=0)
        cancelled, refund = service.cancel_appointment(appointment.id, users["patient"])
        assert refund == 0
        assert cancelled.refund_status == "none"

    def test_too_late_to_cancel(self, service, users, make_appointment):
        appointment = make_appointment(day=TODAY, start="19:00", end="20:00")
        with pytest.raises(NotCancellableError):
            service.cancel_appointment(appointment.id, users["patient"])

    def test_completed_cannot_be_cancelled(self, service, users, make_appointment):
        appointment = make_appointment(day=date(2025, 3, 20), status="completed")
        with pytest.raises(NotCancellableError):
            service.cancel_appointment(appointment.id, users["patient"])

    def test_strangers_cannot_cancel(self, service, users, make_appointment):
        appointment = make_appointment(day=date(2025, 3, 20))
        with pytest.raises(ForbiddenError):
            service.cancel_appointment(appointment.id, users["other_patient"])

    def test_cancelled_slot_can_be_booked_again(self, service, users, therapy, make_appointment):
        appointment = make_appointment(day=date(2025, 3, 20), start="10:00", end="11:00")
        service.cancel_appointment(appointment.id, users["patient"])

        rebooked = service.create_appointment(
            booking(users["practitioner"], therapy, day=date(2025, 3, 20)), users["other_patient"]
        )
        assert rebooked.status == "scheduled"


class TestReads:
    def test_list_is_scoped_by_role(self, service, users, make_appointment):
        mine = make_appointment(start="09:00", end="10:00")
        theirs = make_appointment(start="10:00", end="11:00", patient=users["other_patient"])
        elsewhere = make_appointment(practitioner=users["other_practitioner"], patient=users["other_patient"])

        assert [a.id for a in service.list_appointments(users["patient"])] == [mine.id]
        assert [a.id for a in service.list_appointments(users["practitioner"])] == [mine.id, theirs.id]
        assert {a.id for a in service.list_appointments(users["admin"])} == {mine.id, theirs.id, elsewhere.id}

    def test_list_is_ordered_by_date_then_time(self, service, users, make_appointment):
        later = make_appointment(day=TOMORROW + timedelta(days=1), start="09:00", end="10:00")
        afternoon = make_appointment(start="14:00", end="15:00")
        morning = make_appointment(start="09:00", end="10:00")
        assert [a.id for a in service.list_appointments(users["patient"])] == [
            morning.id,
            afternoon.id,
            later.id,
        ]

    def test_progress(self, service, users, therapy, make_appointment):
        make_appointment(day=date(2025, 3, 1), status="completed", session_number=1)
        make_appointment(day=date(2025, 3, 3), status="completed", session_number=2)
        make_appointment(day=TOMORROW, status="scheduled", session_number=3)

        progress = service.patient_progress(users["patient"], therapy.id)

        assert progress["completedSessions"] == 2
        assert progress["totalSessions"] == 5
        assert [s.session_number for s in progress["sessions"]] == [1, 2]

    def test_progress_for_another_patient(self, service, users, therapy):
        with pytest.raises(ForbiddenError):
            service.patient_progress(users["patient"], therapy.id, users["other_patient"].id)
        progress = service.patient_progress(users["practitioner"], therapy.id, users["other_patient"].id)
        assert progress["sessions"] == []

    def test_available_slots(self, service, users, make_appointment):
        make_appointment(start="10:00", end="11:30")
        slots = service.list_available_slots(users["practitioner"].id, TOMORROW)
        assert {"start": "12:00", "end": "13:00"} in slots
        assert {"start": "10:00", "end": "11:00"} not in slots
        assert {"start": "11:00", "end": "12:00"} not in slots
