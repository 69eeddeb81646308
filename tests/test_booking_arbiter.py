"""
Tests for BookingArbiter against the in-memory store.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import date, time

import pytest

from slotguard.adapters.memory_store import InMemoryAppointmentStore, InMemoryProfessionalDirectory
from slotguard.domain.exceptions import (
    BookingRejected,
    InvalidBookingRequest,
    InvalidDateFormat,
    InvalidTimeFormat,
    OutsideSchedule,
    ProfessionalNotFound,
    ProfessionalUnavailable,
    RejectionReason,
    SlotAlreadyTaken,
    ValidationError,
)
from slotguard.domain.models import AppointmentStatus, BookingPayload, OverrideKind, ProfessionalStatus
from slotguard.domain.schedule import Professional, ScheduleSpec
from slotguard.services.availability import AvailabilityService
from slotguard.services.booking import BookingArbiter

MONDAY = date(2024, 11, 25)
PAYLOAD = {"patient_name": "Ana Pérez", "phone": "999111222"}


def _professional(professional_id=1, status=ProfessionalStatus.AVAILABLE, schedule=None):
    raw = schedule if schedule is not None else {"monday": {"open": "08:00", "close": "10:00"}}
    return Professional(
        id=professional_id,
        name=f"Professional {professional_id}",
        schedule=ScheduleSpec.from_raw(raw),
        status=status,
    )


@pytest.fixture
def directory():
    return InMemoryProfessionalDirectory([
        _professional(),
        _professional(2, status=ProfessionalStatus.UNAVAILABLE),
        _professional(3, schedule={}),
    ])


@pytest.fixture
def store():
    return InMemoryAppointmentStore()


@pytest.fixture
def arbiter(directory, store):
    return BookingArbiter(directory, store)


class TestClaimSlot:

    def test_successful_claim_is_pending(self, arbiter, store):
        appointment = asyncio.run(arbiter.claim_slot(1, "2024-11-25", "09:30", PAYLOAD))

        assert appointment.status == AppointmentStatus.PENDING
        assert appointment.date == MONDAY
        assert appointment.time == time(9, 30)
        assert appointment.payload["patient_name"] == "Ana Pérez"
        assert appointment.payload["email"] == ""
        assert appointment.override is None
        assert len(store.all_appointments()) == 1

    def test_claimed_slot_disappears_from_availability(self, arbiter, directory, store):
        asyncio.run(arbiter.claim_slot(1, MONDAY, "09:00", PAYLOAD))

        report = asyncio.run(AvailabilityService(directory, store).weekly_availability(1, MONDAY))

        assert report.day(MONDAY).open_slots == (time(8, 0), time(8, 30), time(9, 30))

    def test_accepts_payload_model(self, arbiter):
        payload = BookingPayload(patient_name="Luis", notes="first visit")

        appointment = asyncio.run(arbiter.claim_slot(1, MONDAY, time(8, 0), payload))

        assert appointment.payload["notes"] == "first visit"

    def test_second_claim_on_same_slot_is_taken(self, arbiter, store):
        asyncio.run(arbiter.claim_slot(1, MONDAY, "08:00", PAYLOAD))

        with pytest.raises(SlotAlreadyTaken) as exc_info:
            asyncio.run(arbiter.claim_slot(1, MONDAY, "08:00", {"patient_name": "Other"}))

        assert exc_info.value.reason == RejectionReason.SLOT_ALREADY_TAKEN
        assert len(store.all_appointments()) == 1

    def test_same_time_for_other_professional_is_independent(self, arbiter, directory):
        directory.add(_professional(4))

        asyncio.run(arbiter.claim_slot(1, MONDAY, "08:00", PAYLOAD))
        appointment = asyncio.run(arbiter.claim_slot(4, MONDAY, "08:00", PAYLOAD))

        assert appointment.professional_id == 4

    def test_close_time_is_outside_schedule(self, arbiter, store):
        with pytest.raises(OutsideSchedule) as exc_info:
            asyncio.run(arbiter.claim_slot(1, MONDAY, "10:00", PAYLOAD))

        assert exc_info.value.reason == RejectionReason.OUTSIDE_SCHEDULE
        assert store.all_appointments() == []

    def test_unscheduled_weekday_is_outside_schedule(self, arbiter):
        with pytest.raises(OutsideSchedule):
            asyncio.run(arbiter.claim_slot(1, "2024-11-26", "09:00", PAYLOAD))

    def test_professional_without_schedule_rejects_regular_claims(self, arbiter):
        with pytest.raises(OutsideSchedule):
            asyncio.run(arbiter.claim_slot(3, MONDAY, "09:00", PAYLOAD))

    def test_override_bypasses_window(self, arbiter):
        appointment = asyncio.run(
            arbiter.claim_slot(1, MONDAY, "19:00", PAYLOAD, override=OverrideKind.EMERGENCY)
        )

        assert appointment.override == OverrideKind.EMERGENCY
        assert appointment.time == time(19, 0)

    def test_override_does_not_bypass_uniqueness(self, arbiter):
        asyncio.run(arbiter.claim_slot(1, MONDAY, "09:00", PAYLOAD))

        with pytest.raises(SlotAlreadyTaken):
            asyncio.run(arbiter.claim_slot(1, MONDAY, "09:00", PAYLOAD, override="emergency"))

    def test_override_does_not_bypass_unavailable_professional(self, arbiter):
        with pytest.raises(ProfessionalUnavailable):
            asyncio.run(arbiter.claim_slot(2, "2024-11-26", "09:00", PAYLOAD, override="special_case"))

    def test_unknown_professional(self, arbiter):
        with pytest.raises(ProfessionalNotFound):
            asyncio.run(arbiter.claim_slot(99, MONDAY, "09:00", PAYLOAD))

    @pytest.mark.parametrize(
        "day, moment, error",
        [
            ("2024/11/25", "09:00", InvalidDateFormat),
            ("2024-11-25", "9:00", InvalidTimeFormat),
            ("2024-11-25", "25:00", InvalidTimeFormat),
            ("2024-11-25", "09:00:00", InvalidTimeFormat),
        ],
    )
    def test_malformed_slot(self, arbiter, store, day, moment, error):
        with pytest.raises(error):
            asyncio.run(arbiter.claim_slot(1, day, moment, PAYLOAD))

        assert store.all_appointments() == []

    @pytest.mark.parametrize("payload", [{}, {"patient_name": ""}, {"phone": "1"}])
    def test_invalid_payload(self, arbiter, payload):
        with pytest.raises(InvalidBookingRequest):
            asyncio.run(arbiter.claim_slot(1, MONDAY, "09:00", payload))

    def test_unknown_override_kind(self, arbiter):
        with pytest.raises(InvalidBookingRequest, match="emergency, special_case, extended_hours"):
            asyncio.run(arbiter.claim_slot(1, MONDAY, "09:00", PAYLOAD, override="vip"))

    def test_input_errors_are_not_rejections(self):
        assert issubclass(InvalidBookingRequest, ValidationError)
        assert not issubclass(InvalidBookingRequest, BookingRejected)
        assert issubclass(SlotAlreadyTaken, BookingRejected)


class TestConcurrentClaims:

    @pytest.mark.parametrize("workers", [2, 8, 32])
    def test_exactly_one_claim_wins(self, arbiter, store, workers):
        def attempt(index):
            try:
                asyncio.run(arbiter.claim_slot(1, MONDAY, "09:00", {"patient_name": f"Patient {index}"}))
                return "ok"
            except SlotAlreadyTaken:
                return "taken"

        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(attempt, range(workers)))

        assert outcomes.count("ok") == 1
        assert outcomes.count("taken") == workers - 1
        assert len(store.all_appointments()) == 1

    def test_concurrent_claims_on_one_event_loop(self, arbiter, store):
        async def run():
            return await asyncio.gather(
                *(arbiter.claim_slot(1, MONDAY, "08:30", PAYLOAD) for _ in range(10)),
                return_exceptions=True,
            )

        results = asyncio.run(run())

        assert sum(1 for result in results if not isinstance(result, Exception)) == 1
        assert all(isinstance(result, SlotAlreadyTaken) for result in results if isinstance(result, Exception))


class TestChangeStatus:

    def test_confirm(self, arbiter):
        appointment = asyncio.run(arbiter.claim_slot(1, MONDAY, "09:00", PAYLOAD))

        updated = asyncio.run(arbiter.change_status(appointment.id, "confirmed"))

        assert updated.status == AppointmentStatus.CONFIRMED

    def test_cancel_frees_the_slot(self, arbiter):
        first = asyncio.run(arbiter.claim_slot(1, MONDAY, "09:00", PAYLOAD))
        asyncio.run(arbiter.change_status(first.id, AppointmentStatus.CANCELLED))

        second = asyncio.run(arbiter.claim_slot(1, MONDAY, "09:00", {"patient_name": "Next"}))

        assert second.id != first.id
        assert second.status == AppointmentStatus.PENDING

    def test_reactivation_conflicts_with_new_holder(self, arbiter, store):
        first = asyncio.run(arbiter.claim_slot(1, MONDAY, "09:00", PAYLOAD))
        asyncio.run(arbiter.change_status(first.id, AppointmentStatus.RELEASED))
        asyncio.run(arbiter.claim_slot(1, MONDAY, "09:00", {"patient_name": "Next"}))

        with pytest.raises(SlotAlreadyTaken):
            asyncio.run(arbiter.change_status(first.id, AppointmentStatus.CONFIRMED))

        assert asyncio.run(store.get_appointment(first.id)).status == AppointmentStatus.RELEASED

    def test_unknown_appointment(self, arbiter):
        with pytest.raises(KeyError):
            asyncio.run(arbiter.change_status(123, AppointmentStatus.CONFIRMED))

    def test_unknown_status(self, arbiter):
        with pytest.raises(InvalidBookingRequest):
            asyncio.run(arbiter.change_status(1, "archived"))
