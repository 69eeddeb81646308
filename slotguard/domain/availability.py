"""
Core business logic for weekly availability.

Pure domain logic: the schedule and the occupancy snapshot are handed in,
nothing here talks to a store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Any, Dict, List, Optional, Tuple

from pendulum import Date

from .models import TimeWindow, Weekday, format_time_of_day, parse_date
from .occupancy import OccupancyIndex
from .schedule import NO_SCHEDULE_LABEL, ScheduleSpec
from .slots import DEFAULT_INTERVAL_MINUTES, generate_slots, validate_interval

DAYS_PER_WEEK = 7

FULLY_BOOKED_LABEL = "fully booked"


@dataclass(frozen=True)
class DayAvailability:
    """Availability of a single calendar date."""
    date: date
    weekday: Weekday
    open_slots: Tuple[time, ...]
    window: Optional[TimeWindow] = None
    reason: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return bool(self.open_slots)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "weekday": self.weekday.value,
            "isOpen": self.is_open,
            "openSlots": [format_time_of_day(slot) for slot in self.open_slots],
            "window": self.window.to_dict() if self.window else None,
        }
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass(frozen=True)
class WeekSummary:
    total_open_slots: int
    days_with_availability: int

    @property
    def week_fully_booked(self) -> bool:
        return self.total_open_slots == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalOpenSlots": self.total_open_slots,
            "daysWithAvailability": self.days_with_availability,
            "weekFullyBooked": self.week_fully_booked,
        }


@dataclass(frozen=True)
class AvailabilityReport:
    """Point-in-time availability of one professional for seven consecutive dates."""
    professional_id: int
    week_start: date
    week_end: date
    days: Tuple[DayAvailability, ...]
    summary: WeekSummary
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES

    @property
    def week_fully_booked(self) -> bool:
        return self.summary.week_fully_booked

    def day(self, target: date | str) -> DayAvailability:
        """Return the entry for ``target``; raises KeyError if outside the week."""
        wanted = parse_date(target)
        for entry in self.days:
            if entry.date == wanted:
                return entry
        raise KeyError(str(target))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "professionalId": self.professional_id,
            "weekStart": self.week_start.isoformat(),
            "weekEnd": self.week_end.isoformat(),
            "intervalMinutes": self.interval_minutes,
            "days": {entry.date.isoformat(): entry.to_dict() for entry in self.days},
            "summary": self.summary.to_dict(),
        }


def week_bounds(week_start: date | str) -> Tuple[Date, Date]:
    """Return (week_start, week_start + 6 days)."""
    start = parse_date(week_start)
    return start, start.add(days=DAYS_PER_WEEK - 1)


class AvailabilityCalculator:
    """
    Builds a 7-day availability report from a schedule and an occupancy snapshot.

    Algorithm, per date from week_start to week_start + 6:
    1. Resolve the weekday and its window
    2. No window -> closed, reason "no schedule configured"
    3. Otherwise generate slots and drop the occupied ones
    4. Sum open slots into the week summary
    """

    def __init__(self, interval_minutes: int = DEFAULT_INTERVAL_MINUTES):
        self.interval_minutes = validate_interval(interval_minutes)

    def weekly_report(
        self,
        professional_id: int,
        schedule: ScheduleSpec,
        week_start: date | str,
        occupancy: OccupancyIndex,
    ) -> AvailabilityReport:
        start, end = week_bounds(week_start)

        days: List[DayAvailability] = [
            self._build_day(start.add(days=offset), schedule, occupancy)
            for offset in range(DAYS_PER_WEEK)
        ]

        summary = WeekSummary(
            total_open_slots=sum(len(entry.open_slots) for entry in days),
            days_with_availability=sum(1 for entry in days if entry.is_open),
        )

        return AvailabilityReport(
            professional_id=professional_id,
            week_start=start,
            week_end=end,
            days=tuple(days),
            summary=summary,
            interval_minutes=self.interval_minutes,
        )

    def _build_day(
        self,
        day: Date,
        schedule: ScheduleSpec,
        occupancy: OccupancyIndex,
    ) -> DayAvailability:
        weekday = Weekday.from_date(day)
        window = schedule.window_for(weekday)

        if window is None:
            return DayAvailability(
                date=day,
                weekday=weekday,
                open_slots=(),
                reason=NO_SCHEDULE_LABEL,
            )

        open_slots = tuple(
            slot
            for slot in generate_slots(window.open, window.close, self.interval_minutes)
            if not occupancy.is_occupied(day, slot)
        )

        return DayAvailability(
            date=day,
            weekday=weekday,
            open_slots=open_slots,
            window=window,
            reason=None if open_slots else FULLY_BOOKED_LABEL,
        )
