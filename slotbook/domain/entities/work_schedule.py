from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time

from slotbook.domain.entities.time_range import TimeRange


@dataclass(frozen=True)
class WorkSchedule:
    start: time
    end: time
    lunch_start: time | None = None
    lunch_end: time | None = None

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValueError(f"Work schedule start {self.start} must be before end {self.end}")

    @property
    def hours(self) -> TimeRange:
        return TimeRange(self.start, self.end)

    def lunch_gap(self) -> TimeRange | None:
        """Return the lunch gap, or None when absent or malformed."""
        if self.lunch_start is None or self.lunch_end is None:
            return None
        gap = TimeRange(self.lunch_start, self.lunch_end)
        if not gap.is_well_ordered() or not self.hours.contains(gap):
            return None
        return gap


def resolve_work_schedule(
    day: date,
    date_overrides: dict[date, WorkSchedule],
    weekday_defaults: dict[int, WorkSchedule],
) -> WorkSchedule | None:
    """Date-specific entries win over weekday defaults (0 = Monday). None means closed."""
    override = date_overrides.get(day)
    if override is not None:
        return override
    return weekday_defaults.get(day.weekday())
