"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import AvailabilityService
from .booking import BookingArbiter
from .protocols import AppointmentStoreProtocol, ProfessionalDirectoryProtocol

__all__ = [
    "AppointmentStoreProtocol",
    "AvailabilityService",
    "BookingArbiter",
    "ProfessionalDirectoryProtocol",
]
