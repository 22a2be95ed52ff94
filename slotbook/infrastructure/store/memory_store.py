from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime, timezone

from slotbook.application.ports.calendar_source import CalendarSourcePort
from slotbook.application.ports.client_directory import ClientDirectoryPort
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus, ensure_transition
from slotbook.domain.entities.blocked_interval import BlockedInterval
from slotbook.domain.entities.client import BanStatus, Client, merge_client_upsert
from slotbook.domain.entities.day_schedule import CommittedIntervals
from slotbook.domain.entities.work_schedule import WorkSchedule, resolve_work_schedule


class MemoryCalendarStore(CalendarSourcePort, ClientDirectoryPort):
    def __init__(
        self,
        weekday_defaults: dict[int, WorkSchedule] | None = None,
        date_overrides: dict[date, WorkSchedule] | None = None,
    ) -> None:
        self._weekday_defaults: dict[int, WorkSchedule] = dict(weekday_defaults or {})
        self._date_overrides: dict[date, WorkSchedule] = dict(date_overrides or {})
        self._blocked: list[BlockedInterval] = []
        self._appointments: dict[str, Appointment] = {}
        self._clients: dict[str, Client] = {}
        self._bans: dict[str, str | None] = {}
        self._lock = threading.Lock()

    def set_date_schedule(self, day: date, schedule: WorkSchedule | None) -> None:
        with self._lock:
            if schedule is None:
                self._date_overrides.pop(day, None)
            else:
                self._date_overrides[day] = schedule

    def get_work_schedule_for_date(self, day: date) -> WorkSchedule | None:
        with self._lock:
            return resolve_work_schedule(day, self._date_overrides, self._weekday_defaults)

    def get_committed_intervals(self, day: date) -> CommittedIntervals:
        with self._lock:
            blocked = tuple(b for b in self._blocked if b.date == day)
            active = tuple(
                a for a in self._appointments.values() if a.date == day and a.status is AppointmentStatus.ACTIVE
            )
        return CommittedIntervals(blocked=blocked, active_appointments=active)

    def write_appointment(self, appointment: Appointment) -> None:
        with self._lock:
            self._appointments[appointment.id] = appointment

    def update_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        cancelled_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> Appointment | None:
        with self._lock:
            current = self._appointments.get(appointment_id)
            if current is None:
                return None
            ensure_transition(current.status, status)
            updated = replace(
                current,
                status=status,
                cancelled_at=cancelled_at or current.cancelled_at,
                completed_at=completed_at or current.completed_at,
            )
            self._appointments[appointment_id] = updated
            return updated

    def get_appointment(self, appointment_id: str) -> Appointment | None:
        with self._lock:
            return self._appointments.get(appointment_id)

    def get_appointment_by_cancel_code(self, cancel_code: str) -> Appointment | None:
        code = cancel_code.strip().upper()
        with self._lock:
            for appointment in self._appointments.values():
                if appointment.cancel_code.upper() == code:
                    return appointment
        return None

    def find_appointments(
        self,
        status: AppointmentStatus | None = None,
        owner_identity: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[Appointment]:
        with self._lock:
            return [
                a
                for a in self._appointments.values()
                if a.matches(status=status, owner_identity=owner_identity, date_from=date_from, date_to=date_to)
            ]

    def add_blocked_interval(self, interval: BlockedInterval) -> None:
        with self._lock:
            self._blocked.append(interval)

    def get_client(self, owner_identity: str) -> Client | None:
        with self._lock:
            return self._clients.get(str(owner_identity))

    def upsert_client(
        self,
        owner_identity: str,
        name: str | None = None,
        phone: str | None = None,
        username: str | None = None,
        last_appointment_at: datetime | None = None,
    ) -> Client:
        key = str(owner_identity)
        with self._lock:
            client = merge_client_upsert(
                self._clients.get(key),
                key,
                datetime.now(timezone.utc),
                name=name,
                phone=phone,
                username=username,
                last_appointment_at=last_appointment_at,
            )
            self._clients[key] = client
            return client

    def touch_last_appointment(self, owner_identity: str, at: datetime) -> None:
        key = str(owner_identity)
        with self._lock:
            client = self._clients.get(key)
            if client is not None:
                self._clients[key] = replace(client, last_appointment_at=at)

    def get_ban_status(self, owner_identity: str) -> BanStatus:
        key = str(owner_identity)
        with self._lock:
            if key in self._bans:
                return BanStatus(banned=True, reason=self._bans[key])
        return BanStatus(banned=False)

    def set_ban(self, owner_identity: str, banned: bool, reason: str | None = None) -> None:
        key = str(owner_identity)
        with self._lock:
            if banned:
                self._bans[key] = reason
            else:
                self._bans.pop(key, None)
            client = self._clients.get(key)
            if client is not None:
                self._clients[key] = replace(client, banned=banned, ban_reason=reason if banned else None)
