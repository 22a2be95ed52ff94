from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from slotbook.application.cache.day_schedule_cache import DayScheduleCache
from slotbook.application.exceptions import CalendarSourceError, UnknownServiceError
from slotbook.application.ports.calendar_source import CalendarSourcePort
from slotbook.application.ports.client_directory import ClientDirectoryPort
from slotbook.application.ports.service_catalog import ServiceCatalogPort
from slotbook.application.use_cases.generate_slots import DEFAULT_STEP_MINUTES, generate_slots
from slotbook.application.utils.identifiers import generate_appointment_id, generate_cancel_code
from slotbook.application.utils.tie_break import overlapping_active, pick_winner
from slotbook.application.utils.time_parser import format_time, local_datetime, parse_date, parse_time
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus, InvalidTransitionError
from slotbook.domain.entities.client import ContactInfo
from slotbook.domain.entities.day_schedule import DaySchedule
from slotbook.domain.entities.results import BookingResult, ReasonCode
from slotbook.domain.entities.service import Service
from slotbook.domain.entities.slot import Slot
from slotbook.domain.entities.work_schedule import WorkSchedule

DEFAULT_DAILY_LIMIT = 3
CANCEL_CODE_ATTEMPTS = 5


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BookingUseCase:
    def __init__(
        self,
        calendar: CalendarSourcePort,
        clients: ClientDirectoryPort,
        catalog: ServiceCatalogPort,
        cache: DayScheduleCache,
        timezone: ZoneInfo,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
        step_minutes: int = DEFAULT_STEP_MINUTES,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = generate_appointment_id,
        cancel_code_factory: Callable[[], str] = generate_cancel_code,
    ) -> None:
        self._calendar = calendar
        self._clients = clients
        self._catalog = catalog
        self._cache = cache
        self._timezone = timezone
        self._daily_limit = daily_limit
        self._step_minutes = step_minutes
        self._clock = clock
        self._id_factory = id_factory
        self._cancel_code_factory = cancel_code_factory
        self._logger = logging.getLogger(__name__)

    def list_available_slots(self, service_key: str, day: date | str) -> list[Slot]:
        service = self._require_service(service_key)
        day = parse_date(day)

        work_schedule = self._load_work_schedule(day)
        if work_schedule is None:
            return []

        snapshot = self._cache.get_day_schedule(day)
        return self._build_slots(day, service, work_schedule, snapshot, self._clock())

    def book(
        self,
        service_key: str,
        day: date | str,
        time_str: str,
        owner_identity: str | None,
        contact: ContactInfo,
        comment: str = "",
    ) -> BookingResult:
        service = self._require_service(service_key)
        day = parse_date(day)
        start_time = parse_time(time_str)
        label = format_time(start_time)
        log_ctx = {"date": day.isoformat(), "time": label, "service": service.key, "owner": owner_identity}

        if owner_identity:
            ban = self._clients.get_ban_status(owner_identity)
            if ban.banned:
                self._logger.info("Booking rejected", extra={**log_ctx, "reason": ReasonCode.BANNED.value})
                return BookingResult.rejected(ReasonCode.BANNED)

        work_schedule = self._load_work_schedule(day)
        if work_schedule is None:
            self._logger.info("Booking rejected", extra={**log_ctx, "reason": ReasonCode.CLOSED.value})
            return BookingResult.rejected(ReasonCode.CLOSED)

        # Re-validate against a fresh read right before committing.
        snapshot = self._cache.get_day_schedule(day, fresh=True)
        slots = self._build_slots(day, service, work_schedule, snapshot, self._clock())
        if not any(slot.label == label for slot in slots):
            self._logger.info("Booking rejected", extra={**log_ctx, "reason": ReasonCode.SLOT_TAKEN.value})
            return BookingResult.rejected(ReasonCode.SLOT_TAKEN)

        if self._count_owner_bookings(snapshot, owner_identity, contact.phone) >= self._daily_limit:
            self._logger.info("Booking rejected", extra={**log_ctx, "reason": ReasonCode.LIMIT_EXCEEDED.value})
            return BookingResult.rejected(ReasonCode.LIMIT_EXCEEDED)

        appointment = self._commit(service, day, start_time, owner_identity, contact, comment)
        return self._reconcile(appointment)

    def list_upcoming_for_owner(self, owner_identity: str, now: datetime | None = None) -> list[Appointment]:
        now = now or self._clock()
        today = now.astimezone(self._timezone).date()
        appointments = self._calendar.find_appointments(
            status=AppointmentStatus.ACTIVE,
            owner_identity=owner_identity,
            date_from=today,
        )
        upcoming = [
            a for a in appointments if local_datetime(a.date, a.time_start, self._timezone) > now
        ]
        return sorted(upcoming, key=lambda a: (a.date, a.time_start))

    def _commit(
        self,
        service: Service,
        day: date,
        start_time: time,
        owner_identity: str | None,
        contact: ContactInfo,
        comment: str,
    ) -> Appointment:
        start_dt = datetime.combine(day, start_time)
        end_time = (start_dt + timedelta(minutes=service.duration_minutes)).time()
        created_at = self._clock()

        appointment = Appointment(
            id=self._id_factory(),
            created_at=created_at,
            service_key=service.key,
            service_name=service.name,
            price=service.price,
            date=day,
            time_start=start_time,
            time_end=end_time,
            owner_identity=owner_identity,
            contact_name=contact.name,
            contact_phone=contact.phone,
            contact_username=contact.username,
            comment=comment or "",
            cancel_code=self._unique_cancel_code(),
            status=AppointmentStatus.ACTIVE,
        )

        self._calendar.write_appointment(appointment)
        self._logger.info(
            "Appointment written",
            extra={
                "appointment_id": appointment.id,
                "date": day.isoformat(),
                "time": format_time(start_time),
                "service": service.key,
                "owner": owner_identity,
            },
        )

        if owner_identity:
            try:
                self._clients.upsert_client(
                    owner_identity,
                    name=contact.name,
                    phone=contact.phone,
                    username=contact.username,
                    last_appointment_at=created_at,
                )
            except CalendarSourceError as e:
                # Appointment is already stored; client stats are approximate.
                self._logger.exception(
                    "Client upsert failed",
                    extra={"appointment_id": appointment.id, "owner": owner_identity, "error": str(e)},
                )

        self._cache.invalidate(day)
        return appointment

    def _reconcile(self, appointment: Appointment) -> BookingResult:
        try:
            snapshot = self._cache.get_day_schedule(appointment.date, fresh=True)
        except CalendarSourceError as e:
            self._logger.warning(
                "Race check skipped, trusting commit",
                extra={"appointment_id": appointment.id, "error": str(e)},
            )
            return BookingResult.success(appointment)

        winner = pick_winner(overlapping_active(appointment, snapshot.appointments))
        if winner.id == appointment.id:
            return BookingResult.success(appointment)

        cancelled_at = self._clock()
        try:
            updated = self._calendar.update_appointment_status(
                appointment.id,
                AppointmentStatus.CANCELLED,
                cancelled_at=cancelled_at,
            )
        except InvalidTransitionError:
            # Already moved out of Active by another caller.
            updated = self._calendar.get_appointment(appointment.id)
        self._cache.invalidate(appointment.date)
        self._logger.info(
            "Booking lost race",
            extra={
                "appointment_id": appointment.id,
                "winner_id": winner.id,
                "reason": ReasonCode.SLOT_TAKEN.value,
            },
        )
        return BookingResult.rejected(
            ReasonCode.SLOT_TAKEN,
            appointment=updated or appointment.cancel(cancelled_at),
        )

    def _unique_cancel_code(self) -> str:
        for _ in range(CANCEL_CODE_ATTEMPTS):
            code = self._cancel_code_factory()
            if self._calendar.get_appointment_by_cancel_code(code) is None:
                return code
            self._logger.warning("Cancel code collision, drawing again")
        raise CalendarSourceError(f"No free cancel code after {CANCEL_CODE_ATTEMPTS} attempts")

    def _require_service(self, service_key: str) -> Service:
        service = self._catalog.get_service(service_key)
        if service is None:
            raise UnknownServiceError(f"Unknown service key: {service_key}")
        return service

    def _load_work_schedule(self, day: date) -> WorkSchedule | None:
        try:
            return self._calendar.get_work_schedule_for_date(day)
        except CalendarSourceError as e:
            self._logger.warning(
                "Work hours unavailable, treating day as closed",
                extra={"date": day.isoformat(), "error": str(e)},
            )
            return None

    def _build_slots(
        self,
        day: date,
        service: Service,
        work_schedule: WorkSchedule,
        snapshot: DaySchedule,
        now: datetime,
    ) -> list[Slot]:
        return generate_slots(
            day=day,
            service=service,
            work_schedule=work_schedule,
            lunch_gap=work_schedule.lunch_gap(),
            committed=snapshot.committed.as_ranges(),
            now=now,
            timezone=self._timezone,
            step_minutes=self._step_minutes,
        )

    def _count_owner_bookings(self, snapshot: DaySchedule, owner_identity: str | None, phone: str) -> int:
        if owner_identity:
            return sum(1 for a in snapshot.appointments if a.is_active and a.owner_identity == owner_identity)
        if phone:
            return sum(1 for a in snapshot.appointments if a.is_active and a.contact_phone == phone)
        return 0
