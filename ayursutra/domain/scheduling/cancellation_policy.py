"""
Cancellation window and refund tiers

- Cancellable: status scheduled or confirmed, at least 24 hours before start
- Refund: full amount from 48 hours out, half between 24 and 48 hours
- Boundaries go to the more generous tier
"""

from datetime import datetime, timezone, tzinfo
from typing import Union

from ...config import CLINIC_TIMEZONE
from ...models import Appointment
from .time_calculator import as_clinic_time, to_clinic_datetime

MIN_CANCELLATION_HOURS = 24
FULL_REFUND_HOURS = 48
PARTIAL_REFUND_FRACTION = 0.5

CANCELLABLE_STATUSES = ("scheduled", "confirmed")


def hours_until(
    appointment: Appointment, now: datetime, tz: Union[str, tzinfo] = CLINIC_TIMEZONE
) -> float:
    """Real elapsed hours from ``now`` until the appointment starts"""
    # Same-tzinfo subtraction ignores offsets, so compare in UTC
    starts_at = to_clinic_datetime(appointment.scheduled_date, appointment.start_minute, tz)
    elapsed = starts_at.astimezone(timezone.utc) - as_clinic_time(now, tz).astimezone(timezone.utc)
    return elapsed.total_seconds() / 3600


def can_cancel(
    appointment: Appointment, now: datetime, tz: Union[str, tzinfo] = CLINIC_TIMEZONE
) -> bool:
    if appointment.status not in CANCELLABLE_STATUSES:
        return False
    return hours_until(appointment, now, tz) >= MIN_CANCELLATION_HOURS


def refund_amount(
    appointment: Appointment, now: datetime, tz: Union[str, tzinfo] = CLINIC_TIMEZONE
) -> float:
    if not can_cancel(appointment, now, tz):
        return 0.0

    hours = hours_until(appointment, now, tz)
    if hours >= FULL_REFUND_HOURS:
        return appointment.payment_amount
    if hours >= MIN_CANCELLATION_HOURS:
        return appointment.payment_amount * PARTIAL_REFUND_FRACTION
    return 0.0
