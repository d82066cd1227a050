"""Shared test fixtures."""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from ayursutra.booking_lock import BookingLock
from ayursutra.config import SchedulingConfig
from ayursutra.database import Database
from ayursutra.domain.appointments.service import AppointmentService
from ayursutra.domain.scheduling.time_calculator import parse_time
from ayursutra.main import create_app
from ayursutra.models import Appointment, Therapy, User

CLINIC_TZ = ZoneInfo("Asia/Kolkata")

# Monday 10 March 2025, 09:00 clinic time
FIXED_NOW = datetime(2025, 3, 10, 9, 0, tzinfo=CLINIC_TZ)
TODAY = FIXED_NOW.date()
TOMORROW = TODAY + timedelta(days=1)


def fixed_clock() -> datetime:
    return FIXED_NOW


def auth(user: User) -> dict:
    """Identity header for requests made as ``user``."""
    return {"X-User-Id": str(user.id)}


@pytest.fixture
def scheduling() -> SchedulingConfig:
    return SchedulingConfig(
        working_hours_start="09:00",
        working_hours_end="17:00",
        slot_length_minutes=60,
        timezone="Asia/Kolkata",
    )


@pytest.fixture
def database():
    """In-memory SQLite database with all tables."""
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def db_session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def users(db_session) -> dict:
    """Admin, two practitioners, two patients and an inactive practitioner."""
    people = {
        "admin": User(name="Admin", email="admin@test.local", role="admin"),
        "practitioner": User(name="Dr. Meera", email="meera@test.local", role="practitioner"),
        "other_practitioner": User(name="Dr. Arjun", email="arjun@test.local", role="practitioner"),
        "inactive_practitioner": User(
            name="Dr. Gone", email="gone@test.local", role="practitioner", is_active=False
        ),
        "patient": User(name="Asha", email="asha@test.local", role="patient"),
        "other_patient": User(name="Ravi", email="ravi@test.local", role="patient"),
    }
    db_session.add_all(people.values())
    db_session.commit()
    return people


@pytest.fixture
def therapy(db_session, users) -> Therapy:
    therapy = Therapy(
        name="Abhyanga",
        sanskrit_name="Abhyanga",
        category="Shamana",
        therapy_type="Abhyanga",
        description="Warm oil full body massage",
        benefits=["Relaxation"],
        indications=["Stress", "Insomnia"],
        contraindications=["Fever"],
        materials=["Sesame oil"],
        preparation={"pre_therapy": ["Light meal"], "post_therapy": [], "diet": [], "lifestyle": []},
        session_minutes=60,
        course_sessions=5,
        price_per_session=1000.0,
        created_by_id=users["practitioner"].id,
    )
    db_session.add(therapy)
    db_session.commit()
    return therapy


@pytest.fixture
def make_appointment(db_session, users, therapy):
    """Insert an appointment directly, bypassing booking rules."""

    def _create(
        day: date = TOMORROW,
        start: str = "10:00",
        end: str = "11:00",
        status: str = "confirmed",
        practitioner: User = None,
        patient: User = None,
        amount: float = 1000.0,
        session_number: int = 1,
    ) -> Appointment:
        start_minute, end_minute = parse_time(start), parse_time(end)
        appointment = Appointment(
            patient_id=(patient or users["patient"]).id,
            practitioner_id=(practitioner or users["practitioner"]).id,
            therapy_id=therapy.id,
            session_number=session_number,
            total_sessions=5,
            scheduled_date=day,
            start_minute=start_minute,
            end_minute=end_minute,
            duration=end_minute - start_minute,
            status=status,
            payment_amount=amount,
        )
        db_session.add(appointment)
        db_session.commit()
        return appointment

    return _create


@pytest.fixture
def service(db_session, scheduling) -> AppointmentService:
    return AppointmentService(db_session, BookingLock(wait=0.1), scheduling, clock=fixed_clock)


@pytest.fixture
def app(database, scheduling):
    return create_app(
        database=database,
        booking_lock=BookingLock(wait=0.1),
        scheduling=scheduling,
        clock=fixed_clock,
    )


@pytest.fixture
def client(app):
    """Test client; tables already exist so the lifespan is not needed."""
    return TestClient(app)
