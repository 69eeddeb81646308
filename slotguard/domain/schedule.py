"""
Validated recurring weekly working hours.

Raw schedules arrive as loosely-typed nested mappings (YAML config, JSON
columns). They are validated once here, at the boundary, and everything
downstream works with the immutable ``ScheduleSpec``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .exceptions import (
    DuplicateWeekday,
    InvalidSchedule,
    InvalidTimeFormat,
    InvalidWeekday,
    InvalidWindowOrder,
)
from .models import ProfessionalStatus, TimeWindow, Weekday, parse_time_of_day

DAY_END = time(23, 59)

NO_SCHEDULE_LABEL = "no schedule configured"


def _resolve_weekday(key: Any) -> Weekday:
    if isinstance(key, Weekday):
        return key
    if isinstance(key, str):
        try:
            return Weekday(key.strip().lower())
        except ValueError:
            pass
    raise InvalidWeekday(str(key))


def _validate_window(day: str, raw: Any) -> TimeWindow:
    if isinstance(raw, TimeWindow):
        return raw
    if not isinstance(raw, Mapping) or "open" not in raw or "close" not in raw:
        raise InvalidTimeFormat(day, raw)

    open_time = parse_time_of_day(raw["open"], day=day)
    close_time = parse_time_of_day(raw["close"], day=day)

    # close must fall in (open, 23:59]
    if not open_time < close_time <= DAY_END:
        raise InvalidWindowOrder(day)

    return TimeWindow(open=open_time, close=close_time)


@dataclass(frozen=True)
class ScheduleSpec:
    """
    A professional's weekly hours: at most one window per weekday.

    A weekday without a window means the professional does not work that day.
    """
    windows: Mapping[Weekday, TimeWindow] = field(default_factory=dict)

    def __post_init__(self):
        ordered = {day: self.windows[day] for day in Weekday if day in self.windows}
        object.__setattr__(self, "windows", MappingProxyType(ordered))

    @classmethod
    def from_raw(cls, raw: Optional[Mapping[Any, Any]]) -> "ScheduleSpec":
        """
        Validate a raw weekday -> {open, close} mapping.

        Raises:
            InvalidSchedule: root is not a mapping
            InvalidWeekday: a key is not a weekday identifier
            DuplicateWeekday: two keys name the same weekday
            InvalidTimeFormat: a window is missing a time or is not HH:MM
            InvalidWindowOrder: close is not strictly later than open
        """
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise InvalidSchedule("Schedule must be a mapping of weekday to {open, close}")

        windows: Dict[Weekday, TimeWindow] = {}
        seen: set[Weekday] = set()
        for key, value in raw.items():
            weekday = _resolve_weekday(key)
            if weekday in seen:
                raise DuplicateWeekday(weekday.value, str(key))
            seen.add(weekday)
            if value is None:
                continue
            windows[weekday] = _validate_window(weekday.value, value)

        return cls(windows=windows)

    def window_for(self, weekday: Weekday) -> Optional[TimeWindow]:
        return self.windows.get(weekday)

    def window_on(self, day: date) -> Optional[TimeWindow]:
        return self.window_for(Weekday.from_date(day))

    def is_within(self, day: date, moment: time) -> bool:
        """True when ``moment`` lies in the half-open window of ``day``'s weekday."""
        window = self.window_on(day)
        return window is not None and window.contains(moment)

    @property
    def is_empty(self) -> bool:
        return not self.windows

    def to_raw(self) -> Dict[str, Dict[str, str]]:
        return {day.value: window.to_dict() for day, window in self.windows.items()}

    def describe(self) -> str:
        """Human readable summary, e.g. ``Monday: 08:00-10:00, Friday: 14:00-18:00``."""
        if self.is_empty:
            return NO_SCHEDULE_LABEL
        return ", ".join(f"{day.label}: {window}" for day, window in self.windows.items())


@dataclass(frozen=True)
class Professional:
    """Directory entry for a bookable professional."""
    id: int
    name: str
    schedule: ScheduleSpec = field(default_factory=ScheduleSpec)
    status: ProfessionalStatus = ProfessionalStatus.AVAILABLE

    @property
    def accepts_bookings(self) -> bool:
        return self.status == ProfessionalStatus.AVAILABLE
