"""
Slot claiming with an at-most-one-claim guarantee.

The arbiter never performs "read occupancy, then write". Schedule policy is
checked up front, but the uniqueness decision is delegated entirely to the
store's atomic ``insert_if_absent``.
"""

from __future__ import annotations

import logging
from datetime import date, time
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

from pydantic import ValidationError as PydanticValidationError

from ..domain.exceptions import (
    InvalidBookingRequest,
    OutsideSchedule,
    ProfessionalNotFound,
    ProfessionalUnavailable,
    SlotAlreadyTaken,
)
from ..domain.models import (
    Appointment,
    AppointmentStatus,
    BookingPayload,
    OverrideKind,
    SlotKey,
    Weekday,
    parse_date,
    parse_time_of_day,
)
from .protocols import AppointmentStoreProtocol, ProfessionalDirectoryProtocol

logger = logging.getLogger(__name__)

PayloadInput = Union[BookingPayload, Mapping[str, Any]]

EnumT = TypeVar("EnumT", bound=Enum)


class BookingArbiter:
    """
    Accepts single slot claims and either reserves the slot or rejects it.

    Rejections are raised as ``BookingRejected`` subclasses. Conflicts are not
    retried here: picking an alternative slot is the caller's decision.
    """

    def __init__(
        self,
        directory: ProfessionalDirectoryProtocol,
        store: AppointmentStoreProtocol,
    ) -> None:
        self._directory = directory
        self._store = store

    async def claim_slot(
        self,
        professional_id: int,
        day: date | str,
        moment: time | str,
        payload: PayloadInput,
        override: Optional[OverrideKind | str] = None,
    ) -> Appointment:
        """
        Atomically claim ``(professional_id, day, moment)``.

        Args:
            professional_id: Professional to book
            day: Date of the slot (YYYY-MM-DD)
            moment: Start time of the slot (HH:MM)
            payload: Patient data
            override: Exceptional booking kind; bypasses the working-window
                check but never the uniqueness check

        Returns:
            The persisted appointment, status ``pending``

        Raises:
            InvalidDateFormat / InvalidTimeFormat: malformed input
            ProfessionalNotFound: unknown professional
            ProfessionalUnavailable: professional not accepting bookings
            OutsideSchedule: outside the weekday window and no override
            SlotAlreadyTaken: another claim holds the slot
        """
        slot = SlotKey(date=parse_date(day), time=parse_time_of_day(moment))
        override_kind = _parse_enum(OverrideKind, override) if override is not None else None
        booking = _normalize_payload(payload)

        professional = await self._directory.get_professional(professional_id)
        if professional is None:
            raise ProfessionalNotFound(professional_id)

        if not professional.accepts_bookings:
            logger.warning("Claim rejected: professional %s is %s", professional_id, professional.status.value)
            raise ProfessionalUnavailable(f"Professional {professional_id} is not accepting bookings")

        if override_kind is None and not professional.schedule.is_within(slot.date, slot.time):
            window = professional.schedule.window_on(slot.date)
            logger.warning(
                "Claim rejected: %s is outside the schedule of professional %s (%s)",
                slot,
                professional_id,
                window or "no window",
            )
            raise OutsideSchedule(
                f"{slot} is outside the working hours of professional {professional_id} "
                f"on {Weekday.from_date(slot.date).label} ({window or 'not working'})"
            )

        appointment = await self._store.insert_if_absent(
            professional_id=professional_id,
            day=slot.date,
            moment=slot.time,
            payload=booking,
            override=override_kind,
        )

        if appointment is None:
            logger.warning("Claim rejected: %s already taken for professional %s", slot, professional_id)
            raise SlotAlreadyTaken(f"Slot {slot} is already taken for professional {professional_id}")

        logger.info(
            "Claimed %s for professional %s (appointment %s%s)",
            slot,
            professional_id,
            appointment.id,
            f", override={override_kind.value}" if override_kind else "",
        )
        return appointment

    async def change_status(self, appointment_id: int, status: AppointmentStatus | str) -> Appointment:
        """
        Move an appointment to another status on behalf of the confirmation
        and cancellation workflows.

        Raises:
            KeyError: unknown appointment
            SlotAlreadyTaken: reactivating would double-book the slot
        """
        new_status = _parse_enum(AppointmentStatus, status)
        appointment = await self._store.set_status(appointment_id, new_status)
        if appointment is None:
            raise SlotAlreadyTaken(
                f"Appointment {appointment_id} cannot become {new_status.value}: slot already taken"
            )
        logger.info("Appointment %s is now %s", appointment_id, new_status.value)
        return appointment


def _normalize_payload(payload: PayloadInput) -> Dict[str, Any]:
    if isinstance(payload, BookingPayload):
        return payload.model_dump()
    try:
        return BookingPayload.model_validate(dict(payload)).model_dump()
    except (PydanticValidationError, TypeError, ValueError) as exc:
        raise InvalidBookingRequest(f"Invalid booking payload: {exc}") from exc


def _parse_enum(enum_cls: Type[EnumT], value: Any) -> EnumT:
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidBookingRequest(f"Invalid value '{value}'. Expected one of: {allowed}") from exc
