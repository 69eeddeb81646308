"""
Request-scoped index of already reserved slots.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import FrozenSet, Iterable, Iterator, Tuple, Union

from .models import SlotKey, parse_date, parse_stored_time

OccupiedEntry = Union[SlotKey, Tuple[Union[str, date], Union[str, time]]]


@dataclass(frozen=True)
class OccupancyIndex:
    """
    Frozen set of occupied (date, time) keys for one professional.

    Built from a single read of the appointment store and never cached:
    a stale index would offer slots that are already taken.
    """
    keys: FrozenSet[SlotKey] = field(default_factory=frozenset)

    @classmethod
    def build(cls, entries: Iterable[OccupiedEntry]) -> "OccupancyIndex":
        """Normalize store rows (SlotKey or (date, time) pairs) to HH:MM keys, dropping seconds."""
        keys = set()
        for entry in entries:
            if isinstance(entry, SlotKey):
                day, moment = entry.date, entry.time
            else:
                day, moment = entry
            keys.add(SlotKey(date=parse_date(day), time=parse_stored_time(moment)))
        return cls(keys=frozenset(keys))

    def is_occupied(self, day: date, moment: time) -> bool:
        return SlotKey(date=day, time=moment) in self.keys

    def __contains__(self, key: object) -> bool:
        return key in self.keys

    def __iter__(self) -> Iterator[SlotKey]:
        return iter(sorted(self.keys))

    def __len__(self) -> int:
        return len(self.keys)
