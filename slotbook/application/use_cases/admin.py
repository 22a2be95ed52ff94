from __future__ import annotations

import logging
from datetime import date

from slotbook.application.cache.day_schedule_cache import DayScheduleCache
from slotbook.application.exceptions import InvalidInputError
from slotbook.application.ports.calendar_source import CalendarSourcePort
from slotbook.application.ports.client_directory import ClientDirectoryPort
from slotbook.application.ports.service_catalog import ServiceCatalogPort, ServiceMutationResult
from slotbook.application.use_cases.revenue_stats import RevenueStats, calculate_revenue_stats
from slotbook.application.utils.time_parser import parse_date, parse_time
from slotbook.domain.entities.appointment import AppointmentStatus
from slotbook.domain.entities.blocked_interval import BlockedInterval
from slotbook.domain.entities.day_schedule import DaySchedule


class AdminUseCase:
    def __init__(
        self,
        calendar: CalendarSourcePort,
        clients: ClientDirectoryPort,
        catalog: ServiceCatalogPort,
        cache: DayScheduleCache,
    ) -> None:
        self._calendar = calendar
        self._clients = clients
        self._catalog = catalog
        self._cache = cache
        self._logger = logging.getLogger(__name__)

    def block_interval(
        self,
        day: date | str,
        time_start: str,
        time_end: str,
        note: str = "",
    ) -> BlockedInterval:
        interval = BlockedInterval(
            date=parse_date(day),
            time_start=parse_time(time_start),
            time_end=parse_time(time_end),
            note=note or "",
        )
        if not interval.time_range.is_well_ordered():
            raise InvalidInputError(f"Blocked interval start {time_start} must be before end {time_end}")

        self._calendar.add_blocked_interval(interval)
        self._cache.invalidate(interval.date)
        self._logger.info("Interval blocked", extra={"date": interval.date.isoformat(), "time": time_start})
        return interval

    def list_day(self, day: date | str) -> DaySchedule:
        return self._cache.get_day_schedule(parse_date(day), fresh=True)

    def ban_client(self, owner_identity: str, reason: str | None = None) -> None:
        self._clients.set_ban(owner_identity, True, reason)
        self._logger.info("Client banned", extra={"owner": owner_identity, "reason": reason})

    def unban_client(self, owner_identity: str) -> None:
        self._clients.set_ban(owner_identity, False)
        self._logger.info("Client unbanned", extra={"owner": owner_identity})

    def revenue_stats(self, date_from: date | str, date_to: date | str) -> RevenueStats:
        start, end = parse_date(date_from), parse_date(date_to)
        if end < start:
            raise InvalidInputError("date_to must not be before date_from")
        completed = self._calendar.find_appointments(
            status=AppointmentStatus.COMPLETED,
            date_from=start,
            date_to=end,
        )
        return calculate_revenue_stats(completed)

    def sweep_cache(self) -> int:
        return self._cache.sweep_expired()

    def create_service(
        self,
        key: str,
        name: str,
        duration_minutes: int,
        price: float | None = None,
    ) -> ServiceMutationResult:
        result = self._catalog.create_service(key, name, duration_minutes, price)
        self._log_mutation("create", key, result)
        return result

    def update_service(
        self,
        key: str,
        name: str | None = None,
        duration_minutes: int | None = None,
        price: float | None = None,
        clear_price: bool = False,
    ) -> ServiceMutationResult:
        result = self._catalog.update_service(key, name, duration_minutes, price, clear_price)
        self._log_mutation("update", key, result)
        return result

    def delete_service(self, key: str) -> ServiceMutationResult:
        result = self._catalog.delete_service(key)
        self._log_mutation("delete", key, result)
        return result

    def _log_mutation(self, action: str, key: str, result: ServiceMutationResult) -> None:
        if result.ok:
            self._logger.info(f"Service {action}d", extra={"service": key})
        else:
            self._logger.info(f"Service {action} rejected", extra={"service": key, "reason": result.error})
