"""Time-of-day parsing, formatting and interval arithmetic.

Times are handled internally as minutes since midnight. The ``HH:MM`` form
only exists at the API boundary: ``parse_time`` on the way in and
``format_time`` (always zero-padded) on the way out.
"""

import re
from datetime import date, datetime, time, tzinfo
from typing import Union
from zoneinfo import ZoneInfo

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")

MINUTES_PER_DAY = 24 * 60


def is_valid_time(value: str) -> bool:
    return isinstance(value, str) and TIME_PATTERN.match(value) is not None


def parse_time(value: str) -> int:
    """Convert an ``HH:MM`` string to minutes since midnight.

    Raises:
        ValueError: If the string is not a valid 24-hour time
    """
    if not is_valid_time(value):
        raise ValueError(f"Invalid time format '{value}' (use HH:MM)")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_time(minutes: int) -> str:
    """Convert minutes since midnight to a zero-padded ``HH:MM`` string"""
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"Minute offset out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """True iff the half-open intervals [start_a, end_a) and [start_b, end_b) intersect"""
    return start_a < end_b and end_a > start_b


def duration_minutes(start: int, end: int) -> int:
    duration = end - start
    if duration <= 0:
        raise ValueError("End time must be after start time")
    return duration


def get_timezone(name: Union[str, tzinfo]) -> tzinfo:
    if isinstance(name, tzinfo):
        return name
    return ZoneInfo(name)


def to_clinic_datetime(day: date, minute: int, tz: Union[str, tzinfo]) -> datetime:
    """Combine a calendar date and a minute offset into an aware clinic-local datetime"""
    clock = time(hour=minute // 60, minute=minute % 60)
    return datetime.combine(day, clock, tzinfo=get_timezone(tz))


def as_clinic_time(moment: datetime, tz: Union[str, tzinfo]) -> datetime:
    """Express ``moment`` in the clinic zone; naive values are taken as clinic-local"""
    zone = get_timezone(tz)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=zone)
    return moment.astimezone(zone)
