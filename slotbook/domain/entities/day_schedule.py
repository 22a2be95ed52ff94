from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from slotbook.domain.entities.appointment import Appointment
from slotbook.domain.entities.blocked_interval import BlockedInterval
from slotbook.domain.entities.time_range import TimeRange


@dataclass(frozen=True)
class CommittedIntervals:
    blocked: tuple[BlockedInterval, ...] = ()
    active_appointments: tuple[Appointment, ...] = ()

    def as_ranges(self) -> list[TimeRange]:
        ranges = [b.time_range for b in self.blocked]
        ranges.extend(a.time_range for a in self.active_appointments)
        return ranges


@dataclass(frozen=True)
class DaySchedule:
    """Immutable snapshot of one date: blocked ranges plus active appointments."""

    date: date
    committed: CommittedIntervals
    fetched_at: datetime

    @property
    def blocked(self) -> tuple[BlockedInterval, ...]:
        return self.committed.blocked

    @property
    def appointments(self) -> tuple[Appointment, ...]:
        return self.committed.active_appointments
