"""Shared utilities used across the booking core."""

import random
import re
import string
from datetime import date, datetime, time, timedelta

BOOKING_CODE_PREFIX = "BK"
MINUTES_PER_DAY = 24 * 60

_HHMM_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def generate_short_code(prefix: str = BOOKING_CODE_PREFIX) -> str:
    """Generate a human-shareable code: 2-letter prefix, 2 letters, 8 digits.

    Examples:
        >>> len(generate_short_code())
        12
        >>> generate_short_code("bk")[:2]
        'BK'
    """
    head = prefix.upper().ljust(2, "X")[:2]
    letters = "".join(random.choices(string.ascii_uppercase, k=2))
    digits = "".join(random.choices(string.digits, k=8))
    return f"{head}{letters}{digits}"


def parse_hhmm(value: str) -> int:
    """Parse an "HH:MM" wall-clock string into minutes since midnight.

    "24:00" is accepted as end of day.

    Examples:
        >>> parse_hhmm("09:30")
        570
        >>> parse_hhmm("24:00")
        1440
    """
    match = _HHMM_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid HH:MM time: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if minute > 59 or hour > 24 or (hour == 24 and minute != 0):
        raise ValueError(f"Invalid HH:MM time: {value!r}")
    return hour * 60 + minute


def format_minutes(minutes: int) -> str:
    """Format minutes since midnight as "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minutes_of(value: time) -> int:
    """Minutes since midnight for a ``datetime.time``."""
    return value.hour * 60 + value.minute


def day_name(value: date) -> str:
    """Lower-case English weekday name ("monday" .. "sunday")."""
    return value.strftime("%A").lower()


def combine(on: date, hour: int, minute: int) -> datetime:
    """Naive local datetime for a calendar date and wall-clock hour/minute."""
    return datetime.combine(on, time(hour, minute))


def shift(on: date, hour: int, minute: int, delta_minutes: int) -> tuple[date, int, int]:
    """Add ``delta_minutes`` to a date + hour/minute, rolling over midnight.

    Examples:
        >>> shift(date(2025, 3, 17), 23, 45, 30)
        (datetime.date(2025, 3, 18), 0, 15)
    """
    moved = combine(on, hour, minute) + timedelta(minutes=delta_minutes)
    return moved.date(), moved.hour, moved.minute


def covering_ticks(start_minutes: int, duration: int, interval: int) -> list[int]:
    """Tick starts (multiples of ``interval``) that intersect ``[start, start+duration)``.

    Examples:
        >>> covering_ticks(600, 45, 30)
        [600, 630]
        >>> covering_ticks(615, 30, 30)
        [600, 630]
    """
    first = (start_minutes // interval) * interval
    end = start_minutes + duration
    return list(range(first, end, interval))


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval overlap test."""
    return start_a < end_b and start_b < end_a
