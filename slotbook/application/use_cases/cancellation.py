from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from slotbook.application.cache.day_schedule_cache import DayScheduleCache
from slotbook.application.exceptions import CalendarSourceError
from slotbook.application.ports.calendar_source import CalendarSourcePort
from slotbook.application.ports.client_directory import ClientDirectoryPort
from slotbook.application.utils.time_parser import local_datetime
from slotbook.domain.entities.appointment import (
    Appointment,
    AppointmentStatus,
    InvalidTransitionError,
    ensure_transition,
)
from slotbook.domain.entities.results import CancellationResult, CompletionReport, ReasonCode


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CancellationUseCase:
    """Status transitions after booking: owner cancel, code cancel, completion sweep."""

    def __init__(
        self,
        calendar: CalendarSourcePort,
        clients: ClientDirectoryPort,
        cache: DayScheduleCache,
        timezone: ZoneInfo,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._calendar = calendar
        self._clients = clients
        self._cache = cache
        self._timezone = timezone
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def cancel_by_owner(self, appointment_id: str, owner_identity: str) -> CancellationResult:
        appointment = self._calendar.get_appointment(appointment_id)
        if appointment is None:
            return self._reject(ReasonCode.APPOINTMENT_NOT_FOUND, appointment_id)
        if appointment.owner_identity is None or str(appointment.owner_identity) != str(owner_identity):
            return self._reject(ReasonCode.NOT_OWNER, appointment_id)
        if not appointment.is_active:
            return self._reject(ReasonCode.ALREADY_CANCELLED, appointment_id, appointment)
        return self._cancel(appointment)

    def cancel_by_code(self, cancel_code: str) -> CancellationResult:
        code = (cancel_code or "").strip().upper()
        appointment = self._calendar.get_appointment_by_cancel_code(code) if code else None
        if appointment is None:
            return self._reject(ReasonCode.APPOINTMENT_NOT_FOUND, None)
        if not appointment.is_active:
            return self._reject(ReasonCode.ALREADY_CANCELLED, appointment.id, appointment)
        return self._cancel(appointment)

    def complete_expired(self, now: datetime | None = None) -> CompletionReport:
        """
        Mark every active appointment whose end time has passed as completed.

        Re-running with the same now is a no-op: completed rows are no longer active.
        Failures on single rows are logged and reported; the sweep continues.
        """
        now = now or self._clock()
        active = self._calendar.find_appointments(status=AppointmentStatus.ACTIVE)

        report = CompletionReport()
        touched: set[date] = set()

        for appointment in sorted(active, key=lambda a: (a.date, a.time_end, a.id)):
            ends_at = local_datetime(appointment.date, appointment.time_end, self._timezone)
            if ends_at > now:
                continue
            try:
                ensure_transition(appointment.status, AppointmentStatus.COMPLETED)
                updated = self._calendar.update_appointment_status(
                    appointment.id,
                    AppointmentStatus.COMPLETED,
                    completed_at=now,
                )
            except InvalidTransitionError:
                # Cancelled since the listing was read.
                self._logger.info("Auto-complete skipped", extra={"appointment_id": appointment.id})
                continue
            except CalendarSourceError as e:
                self._logger.exception(
                    "Auto-complete failed",
                    extra={"appointment_id": appointment.id, "error": str(e)},
                )
                report.failed.append(appointment.id)
                continue

            if updated is None:
                self._logger.error("Auto-complete target vanished", extra={"appointment_id": appointment.id})
                report.failed.append(appointment.id)
                continue

            report.completed.append(updated)
            touched.add(appointment.date)
            self._refresh_client(appointment, now)

        for day in touched:
            self._cache.invalidate(day)

        if report.completed or report.failed:
            self._logger.info(
                "Auto-complete sweep finished",
                extra={"completed": len(report.completed), "failed": len(report.failed)},
            )
        return report

    def _cancel(self, appointment: Appointment) -> CancellationResult:
        cancelled_at = self._clock()
        try:
            ensure_transition(appointment.status, AppointmentStatus.CANCELLED)
            updated = self._calendar.update_appointment_status(
                appointment.id,
                AppointmentStatus.CANCELLED,
                cancelled_at=cancelled_at,
            )
        except InvalidTransitionError:
            current = self._calendar.get_appointment(appointment.id) or appointment
            return self._reject(ReasonCode.ALREADY_CANCELLED, appointment.id, current)
        if updated is None:
            return self._reject(ReasonCode.APPOINTMENT_NOT_FOUND, appointment.id)

        self._cache.invalidate(appointment.date)
        self._logger.info(
            "Appointment cancelled",
            extra={"appointment_id": appointment.id, "date": appointment.date.isoformat()},
        )
        return CancellationResult(ok=True, appointment=updated)

    def _refresh_client(self, appointment: Appointment, at: datetime) -> None:
        if not appointment.owner_identity:
            return
        try:
            self._clients.touch_last_appointment(appointment.owner_identity, at)
        except CalendarSourceError as e:
            self._logger.exception(
                "Client refresh failed",
                extra={"appointment_id": appointment.id, "owner": appointment.owner_identity, "error": str(e)},
            )

    def _reject(
        self,
        reason: ReasonCode,
        appointment_id: str | None,
        appointment: Appointment | None = None,
    ) -> CancellationResult:
        self._logger.info("Cancellation rejected", extra={"appointment_id": appointment_id, "reason": reason.value})
        return CancellationResult(ok=False, appointment=appointment, reason=reason)
