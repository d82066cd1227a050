import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ayursutra.db")

# Clinic time zone used for every appointment datetime and for "now"
CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "Asia/Kolkata")

# Daily working window and slot length for availability
WORKING_HOURS_START = os.getenv("WORKING_HOURS_START", "09:00")
WORKING_HOURS_END = os.getenv("WORKING_HOURS_END", "17:00")
SLOT_LENGTH_MINUTES = int(os.getenv("SLOT_LENGTH_MINUTES", "60"))

# Booking lock (Redis when configured, in-process otherwise)
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"
BOOKING_LOCK_TIMEOUT = float(os.getenv("BOOKING_LOCK_TIMEOUT", "10"))
BOOKING_LOCK_WAIT = float(os.getenv("BOOKING_LOCK_WAIT", "5"))

# HTTP
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"


@dataclass(frozen=True)
class SchedulingConfig:
    """Working hours and slot policy for availability and booking"""

    working_hours_start: str = "09:00"
    working_hours_end: str = "17:00"
    slot_length_minutes: int = 60
    timezone: str = "Asia/Kolkata"

    def __post_init__(self):
        from .domain.scheduling.time_calculator import parse_time

        start = parse_time(self.working_hours_start)
        end = parse_time(self.working_hours_end)
        if end <= start:
            raise ValueError(
                f"Working hours end ({self.working_hours_end}) must be after "
                f"start ({self.working_hours_start})"
            )
        if self.slot_length_minutes <= 0:
            raise ValueError("Slot length must be a positive number of minutes")


def load_scheduling_config() -> SchedulingConfig:
    """Build the scheduling policy from environment settings"""
    return SchedulingConfig(
        working_hours_start=WORKING_HOURS_START,
        working_hours_end=WORKING_HOURS_END,
        slot_length_minutes=SLOT_LENGTH_MINUTES,
        timezone=CLINIC_TIMEZONE,
    )
