"""
In-memory directory and appointment store.

Used by the test suite and by the CLI ``--mock`` mode, without a database.
The store guards check-and-insert with a single lock, which gives the same
at-most-one-claim guarantee as the SQL unique index for a single process.
"""

from __future__ import annotations

import copy
import threading
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional

import pendulum

from ..domain.models import ACTIVE_STATUSES, Appointment, AppointmentStatus, OverrideKind, SlotKey
from ..domain.schedule import Professional


class InMemoryProfessionalDirectory:
    """Directory backed by a dict of already validated professionals."""

    def __init__(self, professionals: Iterable[Professional] = ()):
        self._professionals: Dict[int, Professional] = {p.id: p for p in professionals}

    def add(self, professional: Professional) -> None:
        self._professionals[professional.id] = professional

    async def get_professional(self, professional_id: int) -> Optional[Professional]:
        return self._professionals.get(professional_id)

    def list_professionals(self) -> List[Professional]:
        return [self._professionals[key] for key in sorted(self._professionals)]


class InMemoryAppointmentStore:
    """
    Appointment store kept in process memory.

    The active-slot map plays the role of the partial unique index: one entry
    per (professional, date, time) while the appointment is pending or confirmed.
    """

    def __init__(self, timezone: str = "UTC"):
        self._timezone = timezone
        self._lock = threading.Lock()
        self._appointments: Dict[int, Appointment] = {}
        self._active: Dict[tuple, int] = {}
        self._next_id = 1

    async def query_active_appointments(
        self,
        professional_id: int,
        date_from: date,
        date_to: date,
    ) -> List[SlotKey]:
        with self._lock:
            return sorted(
                SlotKey(date=day, time=moment)
                for (owner, day, moment) in self._active
                if owner == professional_id and date_from <= day <= date_to
            )

    async def insert_if_absent(
        self,
        professional_id: int,
        day: date,
        moment: time,
        payload: Dict[str, Any],
        override: Optional[OverrideKind] = None,
    ) -> Optional[Appointment]:
        key = (professional_id, day, moment)
        with self._lock:
            if key in self._active:
                return None
            appointment = Appointment(
                id=self._next_id,
                professional_id=professional_id,
                date=day,
                time=moment,
                status=AppointmentStatus.PENDING,
                payload=dict(payload),
                override=override,
                created_at=self._now(),
            )
            self._next_id += 1
            self._appointments[appointment.id] = appointment
            self._active[key] = appointment.id
            return copy.deepcopy(appointment)

    def seed(
        self,
        professional_id: int,
        day: date,
        moment: time,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Appointment:
        """
        Record an existing appointment, e.g. when loading fixtures.

        Raises:
            ValueError: an active appointment already holds the slot
        """
        key = (professional_id, day, moment)
        with self._lock:
            if status in ACTIVE_STATUSES and key in self._active:
                raise ValueError(f"Slot {day} {moment} already active for professional {professional_id}")
            appointment = Appointment(
                id=self._next_id,
                professional_id=professional_id,
                date=day,
                time=moment,
                status=status,
                payload=dict(payload or {}),
                created_at=self._now(),
            )
            self._next_id += 1
            self._appointments[appointment.id] = appointment
            if status in ACTIVE_STATUSES:
                self._active[key] = appointment.id
            return copy.deepcopy(appointment)

    async def get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        with self._lock:
            appointment = self._appointments.get(appointment_id)
            return copy.deepcopy(appointment) if appointment else None

    async def set_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
    ) -> Optional[Appointment]:
        with self._lock:
            if appointment_id not in self._appointments:
                raise KeyError(appointment_id)
            appointment = self._appointments[appointment_id]
            key = (appointment.professional_id, appointment.date, appointment.time)
            holder = self._active.get(key)

            if status in ACTIVE_STATUSES:
                if holder is not None and holder != appointment_id:
                    return None
                self._active[key] = appointment_id
            elif holder == appointment_id:
                del self._active[key]

            appointment.status = status
            return copy.deepcopy(appointment)

    def all_appointments(self) -> List[Appointment]:
        with self._lock:
            return [copy.deepcopy(self._appointments[key]) for key in sorted(self._appointments)]

    def _now(self) -> datetime:
        return pendulum.now(self._timezone)
