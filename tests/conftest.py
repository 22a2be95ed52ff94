from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

import pytest

from slotbook.application.cache.day_schedule_cache import DayScheduleCache
from slotbook.application.use_cases.booking import BookingUseCase
from slotbook.application.use_cases.cancellation import CancellationUseCase
from slotbook.domain.entities.work_schedule import WorkSchedule
from slotbook.infrastructure.catalog.service_catalog_store import JsonServiceCatalog
from slotbook.infrastructure.store.memory_store import MemoryCalendarStore

from tests.support import SERVICES, FakeClock, make_ids


@pytest.fixture
def store() -> MemoryCalendarStore:
    schedule = WorkSchedule(start=time(9, 0), end=time(17, 0))
    return MemoryCalendarStore(weekday_defaults={weekday: schedule for weekday in range(6)})


@pytest.fixture
def catalog() -> JsonServiceCatalog:
    return JsonServiceCatalog(seed=SERVICES)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2030, 6, 1, 8, 0, tzinfo=timezone.utc), step=timedelta(seconds=1))


@pytest.fixture
def cache(store) -> DayScheduleCache:
    return DayScheduleCache(store, ttl_seconds=60)


@pytest.fixture
def booking(store, catalog, cache, clock) -> BookingUseCase:
    return BookingUseCase(
        calendar=store,
        clients=store,
        catalog=catalog,
        cache=cache,
        timezone=timezone.utc,
        clock=clock,
        id_factory=make_ids(),
    )


@pytest.fixture
def cancellation(store, cache, clock) -> CancellationUseCase:
    return CancellationUseCase(calendar=store, clients=store, cache=cache, timezone=timezone.utc, clock=clock)
