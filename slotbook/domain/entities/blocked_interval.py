from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time

from slotbook.domain.entities.time_range import TimeRange


@dataclass(frozen=True)
class BlockedInterval:
    date: date
    time_start: time
    time_end: time
    note: str = ""

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.time_start, self.time_end)
