"""
Protocols describing the collaborators the services depend on.
"""

from __future__ import annotations

from datetime import date, time
from typing import Any, Dict, List, Optional, Protocol

from ..domain.models import Appointment, AppointmentStatus, OverrideKind, SlotKey
from ..domain.schedule import Professional


class ProfessionalDirectoryProtocol(Protocol):
    """Lookup of professionals and their validated schedules."""

    async def get_professional(self, professional_id: int) -> Optional[Professional]:
        """Return the professional, or None when unknown."""


class AppointmentStoreProtocol(Protocol):
    """Appointment persistence. ``insert_if_absent`` must be atomic."""

    async def query_active_appointments(
        self,
        professional_id: int,
        date_from: date,
        date_to: date,
    ) -> List[SlotKey]:
        """Return occupied slots (pending/confirmed) in [date_from, date_to], one consistent read."""

    async def insert_if_absent(
        self,
        professional_id: int,
        day: date,
        moment: time,
        payload: Dict[str, Any],
        override: Optional[OverrideKind] = None,
    ) -> Optional[Appointment]:
        """Insert a pending appointment, or return None if the slot is already active."""

    async def get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        """Return an appointment by id."""

    async def set_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
    ) -> Optional[Appointment]:
        """
        Change an appointment's status.

        Returns None when reactivating would collide with another active claim.
        Raises KeyError for unknown ids.
        """
