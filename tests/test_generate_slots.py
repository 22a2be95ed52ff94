"""
Tests for free-slot computation.
"""

from __future__ import annotations

import random
from datetime import date, datetime, time, timezone

import pytest

from slotbook.application.use_cases.generate_slots import generate_slots
from slotbook.domain.entities.service import Service
from slotbook.domain.entities.time_range import TimeRange, from_minutes, intervals_overlap
from slotbook.domain.entities.work_schedule import WorkSchedule

DAY = date(2030, 6, 3)
HOUR_SERVICE = Service(key="HAIRCUT", name="Haircut", duration_minutes=60)
EARLY = datetime(2030, 6, 3, 8, 0, tzinfo=timezone.utc)


def _slots(schedule, committed=(), now=EARLY, service=HOUR_SERVICE, lunch=None):
    return generate_slots(
        day=DAY,
        service=service,
        work_schedule=schedule,
        lunch_gap=lunch if lunch is not None else (schedule.lunch_gap() if schedule else None),
        committed=list(committed),
        now=now,
        timezone=timezone.utc,
    )


def test_happy_path_every_quarter_hour():
    """Test that 09:00-17:00 with a 60 minute service yields 09:00..16:00 every 15 minutes."""
    slots = _slots(WorkSchedule(start=time(9, 0), end=time(17, 0)))

    labels = [s.label for s in slots]
    assert labels[0] == "09:00"
    assert labels[1] == "09:15"
    assert labels[-1] == "16:00"
    assert len(labels) == 29
    assert slots[-1].end == datetime(2030, 6, 3, 17, 0, tzinfo=timezone.utc)


def test_lunch_gap_is_never_overlapped():
    """Test that no slot overlaps a 13:00-14:00 lunch gap."""
    schedule = WorkSchedule(start=time(9, 0), end=time(17, 0), lunch_start=time(13, 0), lunch_end=time(14, 0))
    slots = _slots(schedule)

    labels = [s.label for s in slots]
    assert "12:00" in labels
    assert "12:15" not in labels
    assert "13:45" not in labels
    assert "14:00" in labels
    for slot in slots:
        assert not (slot.start.time() < time(14, 0) and time(13, 0) < slot.end.time())


def test_malformed_lunch_is_ignored():
    """Test that a lunch gap ending before it starts is treated as absent."""
    schedule = WorkSchedule(start=time(9, 0), end=time(17, 0), lunch_start=time(14, 0), lunch_end=time(13, 0))
    assert schedule.lunch_gap() is None
    assert len(_slots(schedule)) == 29


def test_closed_day_has_no_slots():
    """Test that a missing work schedule yields an empty list."""
    assert _slots(None) == []


def test_past_slots_are_dropped():
    """Test that starts before now are excluded and a start exactly at now is kept."""
    now = datetime(2030, 6, 3, 12, 0, tzinfo=timezone.utc)
    slots = _slots(WorkSchedule(start=time(9, 0), end=time(17, 0)), now=now)

    assert slots[0].label == "12:00"
    assert all(s.start >= now for s in slots)


def test_touching_committed_interval_is_not_overlap():
    """Test that a slot ending exactly when a booking starts is still offered."""
    committed = [TimeRange(time(11, 0), time(12, 0))]
    labels = [s.label for s in _slots(WorkSchedule(start=time(9, 0), end=time(17, 0)), committed)]

    assert "10:00" in labels
    assert "10:15" not in labels
    assert "11:45" not in labels
    assert "12:00" in labels


def test_service_longer_than_day():
    """Test that a service that cannot fit inside working hours produces no slots."""
    service = Service(key="LONG", name="Long", duration_minutes=600)
    assert _slots(WorkSchedule(start=time(9, 0), end=time(17, 0)), service=service) == []


@pytest.mark.parametrize("seed", range(25))
def test_random_committed_intervals_never_overlap(seed):
    """Test that for random busy intervals every returned slot is free, in hours, ordered and not past."""
    rng = random.Random(seed)
    start_minutes = rng.choice(range(6 * 60, 11 * 60, 15))
    end_minutes = start_minutes + rng.choice(range(4 * 60, 12 * 60, 15))
    schedule = WorkSchedule(start=from_minutes(start_minutes), end=from_minutes(min(end_minutes, 23 * 60)))
    service = Service(key="S", name="S", duration_minutes=rng.choice([15, 30, 45, 60, 90]))

    committed = []
    for _ in range(rng.randint(0, 6)):
        a = rng.randrange(0, 23 * 60, 5)
        b = min(a + rng.choice([15, 30, 45, 60, 120]), 23 * 60 + 59)
        committed.append(TimeRange(from_minutes(a), from_minutes(b)))

    now = datetime(2030, 6, 3, rng.randint(0, 20), rng.choice([0, 10, 30]), tzinfo=timezone.utc)
    slots = _slots(schedule, committed, now=now, service=service)

    assert slots == sorted(slots)
    for slot in slots:
        start = slot.start.hour * 60 + slot.start.minute
        end = start + service.duration_minutes
        assert slot.start >= now
        assert schedule.hours.start_minutes <= start
        assert end <= schedule.hours.end_minutes
        for busy in committed:
            assert not intervals_overlap(start, end, busy.start_minutes, busy.end_minutes)
