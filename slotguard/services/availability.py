"""
Application services for weekly availability and lookahead search.

The service loads the professional through a directory adapter, takes one
occupancy snapshot from the appointment store, and delegates the report
itself to the domain-level ``AvailabilityCalculator``. Both collaborators are
typed as protocols so the SQL adapters or the in-memory ones plug in alike.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..domain.availability import DAYS_PER_WEEK, AvailabilityCalculator, AvailabilityReport, week_bounds
from ..domain.exceptions import InvalidLookahead, ProfessionalNotFound
from ..domain.occupancy import OccupancyIndex
from ..domain.models import parse_date
from ..domain.schedule import Professional
from ..domain.slots import DEFAULT_INTERVAL_MINUTES, validate_interval
from .protocols import AppointmentStoreProtocol, ProfessionalDirectoryProtocol

logger = logging.getLogger(__name__)

DEFAULT_LOOKAHEAD_WEEKS = 4


class AvailabilityService:
    """
    Read-only availability queries.

    Every call is an independent computation over a fresh occupancy snapshot,
    so any number of calls may run concurrently for the same professional.
    """

    def __init__(
        self,
        directory: ProfessionalDirectoryProtocol,
        store: AppointmentStoreProtocol,
        *,
        default_interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
        default_lookahead_weeks: int = DEFAULT_LOOKAHEAD_WEEKS,
    ) -> None:
        self._directory = directory
        self._store = store
        self._default_interval = validate_interval(default_interval_minutes)
        self._default_lookahead = _validate_lookahead(default_lookahead_weeks)

    async def weekly_availability(
        self,
        professional_id: int,
        week_start: date | str,
        interval_minutes: Optional[int] = None,
    ) -> AvailabilityReport:
        """
        Compute the 7-day availability report starting at ``week_start``.

        Raises:
            ProfessionalNotFound: unknown professional
            InvalidDateFormat: week_start is not YYYY-MM-DD
            InvalidInterval: interval is not a positive integer
        """
        interval = self._resolve_interval(interval_minutes)
        start, end = week_bounds(week_start)

        professional = await self._load_professional(professional_id)
        occupancy = await self.fetch_occupancy(professional_id, start, end)

        calculator = AvailabilityCalculator(interval_minutes=interval)
        report = calculator.weekly_report(
            professional_id=professional_id,
            schedule=professional.schedule,
            week_start=start,
            occupancy=occupancy,
        )

        logger.debug(
            "Availability for professional %s week %s: %d open slots over %d days",
            professional_id,
            start.isoformat(),
            report.summary.total_open_slots,
            report.summary.days_with_availability,
        )
        return report

    async def is_week_fully_booked(
        self,
        professional_id: int,
        week_start: date | str,
        interval_minutes: Optional[int] = None,
    ) -> bool:
        report = await self.weekly_availability(professional_id, week_start, interval_minutes)
        return report.week_fully_booked

    async def next_available_week(
        self,
        professional_id: int,
        week_start: date | str,
        max_weeks: Optional[int] = None,
        interval_minutes: Optional[int] = None,
    ) -> Optional[AvailabilityReport]:
        """
        Find the first week after ``week_start`` that is not fully booked.

        Examines ``week_start + 7*i`` for i = 1..max_weeks, each as a full
        independent computation. Returns None when every examined week is
        fully booked; that is an expected outcome, not an error.
        """
        bound = self._default_lookahead if max_weeks is None else _validate_lookahead(max_weeks)
        interval = self._resolve_interval(interval_minutes)
        start = parse_date(week_start)

        for offset in range(1, bound + 1):
            candidate = start.add(days=DAYS_PER_WEEK * offset)
            report = await self.weekly_availability(professional_id, candidate, interval)
            if not report.week_fully_booked:
                logger.debug(
                    "Next available week for professional %s: %s (offset %d)",
                    professional_id,
                    candidate.isoformat(),
                    offset,
                )
                return report

        logger.info(
            "No availability for professional %s within %d weeks after %s",
            professional_id,
            bound,
            start.isoformat(),
        )
        return None

    async def fetch_occupancy(
        self,
        professional_id: int,
        date_from: date,
        date_to: date,
    ) -> OccupancyIndex:
        """Take one occupancy snapshot for the inclusive date range."""
        entries = await self._store.query_active_appointments(
            professional_id=professional_id,
            date_from=date_from,
            date_to=date_to,
        )
        return OccupancyIndex.build(entries)

    async def _load_professional(self, professional_id: int) -> Professional:
        professional = await self._directory.get_professional(professional_id)
        if professional is None:
            raise ProfessionalNotFound(professional_id)
        return professional

    def _resolve_interval(self, interval_minutes: Optional[int]) -> int:
        if interval_minutes is None:
            return self._default_interval
        return validate_interval(interval_minutes)


def _validate_lookahead(max_weeks: object) -> int:
    if isinstance(max_weeks, bool) or not isinstance(max_weeks, int) or max_weeks <= 0:
        raise InvalidLookahead(f"max_weeks must be a positive integer, got {max_weeks!r}")
    return max_weeks
