"""
Domain models for schedules, slots and appointments.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

import pendulum
from pydantic import BaseModel, ConfigDict, Field

from .exceptions import InvalidDateFormat, InvalidTimeFormat

TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")
DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
# store rows may carry seconds and fractions, e.g. "09:00:00" or "09:00:00.000"
STORED_TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9](:[0-5][0-9](\.[0-9]+)?)?$")

DATE_FORMAT = "YYYY-MM-DD"


class Weekday(str, Enum):
    """The seven fixed weekday identifiers, Monday first."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        """Resolve the weekday of a calendar date."""
        return list(cls)[day.weekday()]

    @property
    def label(self) -> str:
        return self.value.capitalize()


def parse_time_of_day(value: str | time, day: Optional[str] = None) -> time:
    """
    Parse a time of day into a ``time`` truncated to whole minutes.

    Strings must be 24-hour ``HH:MM``. ``day`` only names the schedule entry
    in the raised error.
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if not isinstance(value, str) or not TIME_PATTERN.match(value.strip()):
        raise InvalidTimeFormat(day, value)
    hours, minutes = value.strip().split(":")
    return time(hour=int(hours), minute=int(minutes))


def parse_stored_time(value: str | time) -> time:
    """
    Parse a time read back from an appointment store.

    Unlike ``parse_time_of_day`` this accepts ``HH:MM:SS`` (optionally with a
    fraction) and truncates it to ``HH:MM``.
    """
    if isinstance(value, time):
        return parse_time_of_day(value)
    if not isinstance(value, str) or not STORED_TIME_PATTERN.match(value.strip()):
        raise InvalidTimeFormat(None, value)
    return parse_time_of_day(value.strip()[:5])


def format_time_of_day(value: time) -> str:
    return value.strftime("%H:%M")


def parse_date(value: str | date) -> pendulum.Date:
    """Parse a ``YYYY-MM-DD`` string or a date into a pendulum ``Date``."""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return pendulum.date(value.year, value.month, value.day)
    if not isinstance(value, str) or not DATE_PATTERN.match(value.strip()):
        raise InvalidDateFormat(f"Invalid date '{value}'. Use YYYY-MM-DD")
    try:
        parsed = pendulum.from_format(value.strip(), DATE_FORMAT)
    except ValueError as exc:
        raise InvalidDateFormat(f"Invalid date '{value}': {exc}") from exc
    return parsed.date()


def minutes_since_midnight(value: time) -> int:
    return value.hour * 60 + value.minute


def time_from_minutes(minutes: int) -> time:
    return time(hour=minutes // 60, minute=minutes % 60)


@dataclass(frozen=True)
class TimeWindow:
    """
    An immutable open/close pair for a single working day.

    Invariant: open must be before close (same day only).
    """
    open: time
    close: time

    def __post_init__(self):
        if self.open >= self.close:
            raise ValueError(f"Open time {self.open} must be before close time {self.close}")

    def contains(self, moment: time) -> bool:
        """Half-open membership: open <= moment < close."""
        return self.open <= moment < self.close

    def duration_minutes(self) -> int:
        return minutes_since_midnight(self.close) - minutes_since_midnight(self.open)

    def to_dict(self) -> Dict[str, str]:
        return {"open": format_time_of_day(self.open), "close": format_time_of_day(self.close)}

    def __str__(self) -> str:
        return f"{format_time_of_day(self.open)}-{format_time_of_day(self.close)}"


@dataclass(frozen=True, order=True)
class SlotKey:
    """Composite (date, time-of-day) key identifying one slot of a professional."""
    date: date
    time: time

    @classmethod
    def of(cls, day: str | date, moment: str | time) -> "SlotKey":
        return cls(date=parse_date(day), time=parse_time_of_day(moment))

    def __str__(self) -> str:
        return f"{self.date.isoformat()} {format_time_of_day(self.time)}"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    RELEASED = "released"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"

    @property
    def occupies_slot(self) -> bool:
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES: FrozenSet[AppointmentStatus] = frozenset(
    {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED}
)


class OverrideKind(str, Enum):
    """Exceptional bookings allowed outside the working window."""

    EMERGENCY = "emergency"
    SPECIAL_CASE = "special_case"
    EXTENDED_HOURS = "extended_hours"


class ProfessionalStatus(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class BookingPayload(BaseModel):
    """Patient data attached to a claim."""

    model_config = ConfigDict(extra="ignore")

    patient_name: str = Field(..., min_length=1, description="Full name of the patient.")
    patient_document: str = Field(default="", description="National id of the patient.")
    phone: str = Field(default="", description="Contact phone.")
    email: str = Field(default="", description="Contact email.")
    notes: str = Field(default="", description="Free-form notes for the professional.")


@dataclass
class Appointment:
    """A reserved (or formerly reserved) slot. Appointments are never deleted."""
    id: int
    professional_id: int
    date: date
    time: time
    status: AppointmentStatus
    payload: Dict[str, Any] = field(default_factory=dict)
    override: Optional[OverrideKind] = None
    created_at: Optional[datetime] = None

    @property
    def slot(self) -> SlotKey:
        return SlotKey(date=self.date, time=self.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "professionalId": self.professional_id,
            "date": self.date.isoformat(),
            "time": format_time_of_day(self.time),
            "status": self.status.value,
            "override": self.override.value if self.override else None,
            "payload": dict(self.payload),
        }
