"""
Discrete slot start-time generation.
"""

from __future__ import annotations

from datetime import time
from typing import Tuple

from .exceptions import InvalidInterval
from .models import minutes_since_midnight, parse_time_of_day, time_from_minutes

DEFAULT_INTERVAL_MINUTES = 30


def validate_interval(interval_minutes: object) -> int:
    """Return the interval if it is a positive integer, else raise InvalidInterval."""
    if isinstance(interval_minutes, bool) or not isinstance(interval_minutes, int):
        raise InvalidInterval(f"Interval must be a positive integer of minutes, got {interval_minutes!r}")
    if interval_minutes <= 0:
        raise InvalidInterval(f"Interval must be greater than zero, got {interval_minutes}")
    return interval_minutes


def generate_slots(
    open_time: str | time,
    close_time: str | time,
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
) -> Tuple[time, ...]:
    """
    Generate slot start times for a single day window.

    Slots start at ``open_time`` and step by ``interval_minutes`` while they
    are strictly before ``close_time``. Only start times are computed; a slot
    starting exactly at close is never emitted.

    Example:
        08:00 - 10:00 every 30 -> 08:00, 08:30, 09:00, 09:30
    """
    step = validate_interval(interval_minutes)
    start = minutes_since_midnight(parse_time_of_day(open_time))
    end = minutes_since_midnight(parse_time_of_day(close_time))

    return tuple(time_from_minutes(minute) for minute in range(start, end, step))
