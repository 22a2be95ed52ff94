from functools import lru_cache
import logging

from slotbook.application.cache.day_schedule_cache import DayScheduleCache
from slotbook.application.ports.calendar_source import CalendarSourcePort
from slotbook.application.ports.client_directory import ClientDirectoryPort
from slotbook.application.ports.service_catalog import ServiceCatalogPort
from slotbook.application.use_cases.admin import AdminUseCase
from slotbook.application.use_cases.booking import BookingUseCase
from slotbook.application.use_cases.cancellation import CancellationUseCase
from slotbook.application.utils.time_parser import parse_time, safe_timezone
from slotbook.core.config import settings
from slotbook.domain.entities.work_schedule import WorkSchedule
from slotbook.infrastructure.catalog.service_catalog_store import JsonServiceCatalog
from slotbook.infrastructure.remote.remote_calendar import RemoteCalendarStore
from slotbook.infrastructure.store.json_store import JsonCalendarStore
from slotbook.infrastructure.store.memory_store import MemoryCalendarStore


_calendar_store: MemoryCalendarStore | JsonCalendarStore | RemoteCalendarStore | None = None


def _default_weekday_schedule() -> dict[int, WorkSchedule]:
    schedule = WorkSchedule(
        start=parse_time(settings.WORKDAY_START),
        end=parse_time(settings.WORKDAY_END),
        lunch_start=parse_time(settings.WORKDAY_LUNCH_START) if settings.WORKDAY_LUNCH_START else None,
        lunch_end=parse_time(settings.WORKDAY_LUNCH_END) if settings.WORKDAY_LUNCH_END else None,
    )
    return {weekday: schedule for weekday in settings.working_days_list}


def get_calendar_store() -> MemoryCalendarStore | JsonCalendarStore | RemoteCalendarStore:
    global _calendar_store
    if _calendar_store is None:
        backend = settings.CALENDAR_BACKEND.lower()
        logger = logging.getLogger(__name__)
        if backend == "remote":
            logger.info("Using RemoteCalendarStore")
            _calendar_store = RemoteCalendarStore()
        elif backend == "memory":
            logger.info("Using MemoryCalendarStore")
            _calendar_store = MemoryCalendarStore(weekday_defaults=_default_weekday_schedule())
        else:
            logger.info("Using JsonCalendarStore", extra={"path": settings.DATA_DIR})
            _calendar_store = JsonCalendarStore(
                data_dir=settings.DATA_DIR,
                default_weekday_schedule=_default_weekday_schedule(),
            )
    return _calendar_store


def get_calendar_source() -> CalendarSourcePort:
    return get_calendar_store()


def get_client_directory() -> ClientDirectoryPort:
    return get_calendar_store()


@lru_cache
def get_service_catalog() -> ServiceCatalogPort:
    if settings.CALENDAR_BACKEND.lower() == "memory":
        return JsonServiceCatalog()
    return JsonServiceCatalog(file_path=settings.SERVICES_FILE)


@lru_cache
def get_day_schedule_cache() -> DayScheduleCache:
    return DayScheduleCache(get_calendar_source(), ttl_seconds=settings.DAY_CACHE_TTL_SECONDS)


def get_booking_use_case() -> BookingUseCase:
    return BookingUseCase(
        calendar=get_calendar_source(),
        clients=get_client_directory(),
        catalog=get_service_catalog(),
        cache=get_day_schedule_cache(),
        timezone=safe_timezone(settings.BUSINESS_TIMEZONE),
        daily_limit=settings.DAILY_BOOKING_LIMIT,
        step_minutes=settings.SLOT_STEP_MINUTES,
    )


def get_cancellation_use_case() -> CancellationUseCase:
    return CancellationUseCase(
        calendar=get_calendar_source(),
        clients=get_client_directory(),
        cache=get_day_schedule_cache(),
        timezone=safe_timezone(settings.BUSINESS_TIMEZONE),
    )


def get_admin_use_case() -> AdminUseCase:
    return AdminUseCase(
        calendar=get_calendar_source(),
        clients=get_client_directory(),
        catalog=get_service_catalog(),
        cache=get_day_schedule_cache(),
    )
