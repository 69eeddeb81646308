"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityCalculator, AvailabilityReport, DayAvailability, WeekSummary
from .models import (
    Appointment,
    AppointmentStatus,
    BookingPayload,
    OverrideKind,
    ProfessionalStatus,
    SlotKey,
    TimeWindow,
    Weekday,
)
from .occupancy import OccupancyIndex
from .schedule import Professional, ScheduleSpec
from .slots import generate_slots

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AvailabilityCalculator",
    "AvailabilityReport",
    "BookingPayload",
    "DayAvailability",
    "OccupancyIndex",
    "OverrideKind",
    "Professional",
    "ProfessionalStatus",
    "ScheduleSpec",
    "SlotKey",
    "TimeWindow",
    "WeekSummary",
    "Weekday",
    "generate_slots",
]
