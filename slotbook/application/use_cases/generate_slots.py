from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from slotbook.application.utils.time_parser import format_time, local_datetime
from slotbook.domain.entities.service import Service
from slotbook.domain.entities.slot import Slot
from slotbook.domain.entities.time_range import TimeRange, from_minutes, intervals_overlap
from slotbook.domain.entities.work_schedule import WorkSchedule

DEFAULT_STEP_MINUTES = 15


def generate_slots(
    day: date,
    service: Service,
    work_schedule: WorkSchedule | None,
    lunch_gap: TimeRange | None,
    committed: Iterable[TimeRange],
    now: datetime,
    timezone: ZoneInfo,
    step_minutes: int = DEFAULT_STEP_MINUTES,
) -> list[Slot]:
    """
    Free start times for service on day, ascending.

    A candidate is dropped when [start, start + duration) overlaps a committed
    interval or the lunch gap, or when it starts before now.
    """
    if work_schedule is None:
        return []
    if step_minutes <= 0:
        raise ValueError("step_minutes must be positive")

    duration = service.duration_minutes
    busy = [(r.start_minutes, r.end_minutes) for r in committed]
    if lunch_gap is not None and lunch_gap.is_well_ordered():
        busy.append((lunch_gap.start_minutes, lunch_gap.end_minutes))

    slots: list[Slot] = []
    cursor = work_schedule.hours.start_minutes
    last_start = work_schedule.hours.end_minutes - duration

    while cursor <= last_start:
        slot_end = cursor + duration
        is_busy = any(intervals_overlap(cursor, slot_end, b_start, b_end) for b_start, b_end in busy)
        if not is_busy:
            start_time = from_minutes(cursor)
            start_dt = local_datetime(day, start_time, timezone)
            if start_dt >= now:
                slots.append(
                    Slot(
                        start=start_dt,
                        end=start_dt + timedelta(minutes=duration),
                        label=format_time(start_time),
                    )
                )
        cursor += step_minutes

    return slots
