"""
Domain-specific exception hierarchy for the slotguard engine.
"""

from __future__ import annotations

from enum import Enum


class SlotguardError(Exception):
    """Base class for all application-level errors."""


class ValidationError(SlotguardError, ValueError):
    """Raised when caller input is malformed. Never partially applied."""


class InvalidSchedule(ValidationError):
    """Raised when a raw schedule cannot be turned into a ScheduleSpec."""


class InvalidWeekday(InvalidSchedule):
    """Raised for a schedule key that is not a weekday identifier."""

    def __init__(self, day: str):
        self.day = day
        super().__init__(
            f"Invalid weekday '{day}'. Valid weekdays: monday, tuesday, "
            "wednesday, thursday, friday, saturday, sunday"
        )


class DuplicateWeekday(InvalidSchedule):
    """Raised when two schedule keys resolve to the same weekday, e.g. "monday" and "Monday"."""

    def __init__(self, day: str, key: str):
        self.day = day
        self.key = key
        super().__init__(f"Duplicate schedule entry for {day} (key '{key}')")


class InvalidTimeFormat(InvalidSchedule):
    """Raised when a time of day is not in 24-hour HH:MM format."""

    def __init__(self, day: str | None, value: object = None):
        self.day = day
        self.value = value
        if day is None:
            message = f"Invalid time '{value}'. Use HH:MM (24-hour)"
        else:
            message = f"Invalid time format for {day}. Use HH:MM (24-hour)"
        super().__init__(message)


class InvalidWindowOrder(InvalidSchedule):
    """Raised when a day's closing time is not later than its opening time."""

    def __init__(self, day: str):
        self.day = day
        super().__init__(f"Closing time must be later than opening time for {day}")


class InvalidInterval(ValidationError):
    """Raised for a slot interval that is not a positive integer of minutes."""


class InvalidLookahead(ValidationError):
    """Raised for a lookahead bound that is not a positive number of weeks."""


class InvalidDateFormat(ValidationError):
    """Raised when a date is not in YYYY-MM-DD format."""


class InvalidBookingRequest(ValidationError):
    """Raised for an unusable claim payload, override kind or status value."""


class ProfessionalNotFound(SlotguardError):
    """Raised when the professional directory has no such professional."""

    def __init__(self, professional_id: int):
        self.professional_id = professional_id
        super().__init__(f"Professional {professional_id} not found")


class RejectionReason(str, Enum):
    """Why a slot claim was refused."""

    OUTSIDE_SCHEDULE = "outside_schedule"
    SLOT_ALREADY_TAKEN = "slot_already_taken"
    PROFESSIONAL_UNAVAILABLE = "professional_unavailable"


class BookingRejected(SlotguardError):
    """Base class for expected, recoverable claim refusals."""

    reason: RejectionReason


class OutsideSchedule(BookingRejected):
    """The requested time is outside the professional's working window."""

    reason = RejectionReason.OUTSIDE_SCHEDULE


class SlotAlreadyTaken(BookingRejected):
    """Another claim already holds the requested slot."""

    reason = RejectionReason.SLOT_ALREADY_TAKEN


class ProfessionalUnavailable(BookingRejected):
    """The professional is not currently accepting bookings."""

    reason = RejectionReason.PROFESSIONAL_UNAVAILABLE
