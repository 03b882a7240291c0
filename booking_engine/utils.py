"""Time-of-day helpers shared by the availability and booking engines.

Times are ``"HH:MM"`` 24-hour strings; arithmetic happens on minute
offsets from midnight.

Examples:
    >>> time_to_minutes("09:30")
    570
    >>> add_minutes("23:30", 45)
    '00:15'
"""

import re

from booking_engine.errors import InvalidTimeFormatError

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def time_to_minutes(value: str) -> int:
    """Convert ``"HH:MM"`` to minutes since midnight, in [0, 1439]."""
    if not isinstance(value, str):
        raise InvalidTimeFormatError(f"Invalid time {value!r}: expected HH:MM")
    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidTimeFormatError(f"Invalid time {value!r}: expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_time(minutes: int) -> str:
    """Convert a minute offset to ``"HH:MM"``, wrapping modulo one day."""
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes(value: str, delta: int) -> str:
    """Add ``delta`` minutes to a time, wrapping across midnight."""
    return minutes_to_time(time_to_minutes(value) + delta)


def duration_minutes(start: str, end: str) -> int:
    """Minutes from ``start`` to ``end``. Callers reject zero/negative results."""
    return time_to_minutes(end) - time_to_minutes(start)


def windows_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open overlap test for ``[a_start, a_end)`` and ``[b_start, b_end)``."""
    return a_start < b_end and a_end > b_start
