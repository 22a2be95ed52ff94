from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from slotbook.application.exceptions import CalendarSourceError
from slotbook.application.ports.calendar_source import CalendarSourcePort
from slotbook.application.ports.client_directory import ClientDirectoryPort
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus, ensure_transition
from slotbook.domain.entities.blocked_interval import BlockedInterval
from slotbook.domain.entities.client import BanStatus, Client, merge_client_upsert
from slotbook.domain.entities.day_schedule import CommittedIntervals
from slotbook.domain.entities.work_schedule import WorkSchedule, resolve_work_schedule
from slotbook.infrastructure.store.codec import (
    deserialize_appointment,
    deserialize_blocked,
    deserialize_client,
    deserialize_work_schedule,
    instant_to_str,
    serialize_appointment,
    serialize_blocked,
    serialize_client,
    serialize_work_schedule,
)

SCHEDULE_FILE = "schedule.json"
APPOINTMENTS_FILE = "appointments.json"
CLIENTS_FILE = "clients.json"
BANS_FILE = "bans.json"


class JsonCalendarStore(CalendarSourcePort, ClientDirectoryPort):
    """
    File-backed store for local runs: one JSON document per collection.

    Every call re-reads from disk so separate processes see each other's writes.
    Writes go to a temp file first and are renamed into place.
    """

    def __init__(
        self,
        data_dir: str = "./data/calendar",
        default_weekday_schedule: dict[int, WorkSchedule] | None = None,
    ) -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._logger = logging.getLogger(__name__)

        if not self._path(SCHEDULE_FILE).exists():
            self._save(
                SCHEDULE_FILE,
                {
                    "weekday_defaults": {
                        str(weekday): serialize_work_schedule(schedule)
                        for weekday, schedule in (default_weekday_schedule or {}).items()
                    },
                    "date_overrides": {},
                    "blocked": [],
                },
            )

    def _path(self, name: str) -> Path:
        return self._data_dir / name

    def _load(self, name: str, default: Any) -> Any:
        file_path = self._path(name)
        if not file_path.exists():
            return default
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise CalendarSourceError(f"Cannot read {file_path}: {e}") from e

    def _save(self, name: str, data: Any) -> None:
        file_path = self._path(name)
        temp_path = file_path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(file_path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)
            raise CalendarSourceError(f"Cannot write {file_path}: {e}") from e

    def _decode(self, what: str, func, rows) -> list:
        try:
            return [func(row) for row in rows]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CalendarSourceError(f"Malformed {what} row in {self._data_dir}: {e}") from e

    def _load_schedule(self) -> dict[str, Any]:
        data = self._load(SCHEDULE_FILE, {})
        data.setdefault("weekday_defaults", {})
        data.setdefault("date_overrides", {})
        data.setdefault("blocked", [])
        return data

    def _load_appointments(self) -> list[Appointment]:
        return self._decode("appointment", deserialize_appointment, self._load(APPOINTMENTS_FILE, []))

    def _save_appointments(self, appointments: list[Appointment]) -> None:
        self._save(APPOINTMENTS_FILE, [serialize_appointment(a) for a in appointments])

    def _load_clients(self) -> dict[str, Client]:
        raw = self._load(CLIENTS_FILE, {})
        return dict(zip(raw.keys(), self._decode("client", deserialize_client, raw.values())))

    def _save_clients(self, clients: dict[str, Client]) -> None:
        self._save(CLIENTS_FILE, {key: serialize_client(value) for key, value in clients.items()})

    def set_date_schedule(self, day: date, schedule: WorkSchedule | None) -> None:
        with self._lock:
            data = self._load_schedule()
            if schedule is None:
                data["date_overrides"].pop(day.isoformat(), None)
            else:
                data["date_overrides"][day.isoformat()] = serialize_work_schedule(schedule)
            self._save(SCHEDULE_FILE, data)

    def get_work_schedule_for_date(self, day: date) -> WorkSchedule | None:
        with self._lock:
            data = self._load_schedule()
        overrides: dict[date, WorkSchedule] = {}
        for key, value in data["date_overrides"].items():
            schedule = self._safe_schedule(value, key)
            if schedule is not None:
                overrides[date.fromisoformat(key)] = schedule
        defaults: dict[int, WorkSchedule] = {}
        for key, value in data["weekday_defaults"].items():
            schedule = self._safe_schedule(value, key)
            if schedule is not None:
                defaults[int(key)] = schedule
        return resolve_work_schedule(day, overrides, defaults)

    def _safe_schedule(self, value: dict[str, Any], key: str) -> WorkSchedule | None:
        try:
            return deserialize_work_schedule(value)
        except ValueError as e:
            self._logger.warning("Skipping malformed work schedule", extra={"date": key, "error": str(e)})
            return None

    def get_committed_intervals(self, day: date) -> CommittedIntervals:
        with self._lock:
            blocked = tuple(
                b for b in self._decode("blocked interval", deserialize_blocked, self._load_schedule()["blocked"])
                if b.date == day
            )
            active = tuple(
                a for a in self._load_appointments() if a.date == day and a.status is AppointmentStatus.ACTIVE
            )
        return CommittedIntervals(blocked=blocked, active_appointments=active)

    def write_appointment(self, appointment: Appointment) -> None:
        with self._lock:
            appointments = [a for a in self._load_appointments() if a.id != appointment.id]
            appointments.append(appointment)
            self._save_appointments(appointments)

    def update_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        cancelled_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> Appointment | None:
        with self._lock:
            appointments = self._load_appointments()
            for index, current in enumerate(appointments):
                if current.id != appointment_id:
                    continue
                ensure_transition(current.status, status)
                updated = replace(
                    current,
                    status=status,
                    cancelled_at=cancelled_at or current.cancelled_at,
                    completed_at=completed_at or current.completed_at,
                )
                appointments[index] = updated
                self._save_appointments(appointments)
                return updated
        return None

    def get_appointment(self, appointment_id: str) -> Appointment | None:
        with self._lock:
            for appointment in self._load_appointments():
                if appointment.id == appointment_id:
                    return appointment
        return None

    def get_appointment_by_cancel_code(self, cancel_code: str) -> Appointment | None:
        code = cancel_code.strip().upper()
        with self._lock:
            for appointment in self._load_appointments():
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
            appointments = self._load_appointments()
        return [
            a
            for a in appointments
            if a.matches(status=status, owner_identity=owner_identity, date_from=date_from, date_to=date_to)
        ]

    def add_blocked_interval(self, interval: BlockedInterval) -> None:
        with self._lock:
            data = self._load_schedule()
            data["blocked"].append(serialize_blocked(interval))
            self._save(SCHEDULE_FILE, data)

    def get_client(self, owner_identity: str) -> Client | None:
        with self._lock:
            return self._load_clients().get(str(owner_identity))

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
            clients = self._load_clients()
            client = merge_client_upsert(
                clients.get(key),
                key,
                datetime.now(timezone.utc),
                name=name,
                phone=phone,
                username=username,
                last_appointment_at=last_appointment_at,
            )
            clients[key] = client
            self._save_clients(clients)
            return client

    def touch_last_appointment(self, owner_identity: str, at: datetime) -> None:
        key = str(owner_identity)
        with self._lock:
            clients = self._load_clients()
            client = clients.get(key)
            if client is None:
                return
            clients[key] = replace(client, last_appointment_at=at)
            self._save_clients(clients)

    def get_ban_status(self, owner_identity: str) -> BanStatus:
        with self._lock:
            bans = self._load(BANS_FILE, {})
        entry = bans.get(str(owner_identity))
        if entry is None:
            return BanStatus(banned=False)
        return BanStatus(banned=True, reason=entry.get("reason"))

    def set_ban(self, owner_identity: str, banned: bool, reason: str | None = None) -> None:
        key = str(owner_identity)
        with self._lock:
            bans = self._load(BANS_FILE, {})
            if banned:
                bans[key] = {"reason": reason, "banned_at_utc": instant_to_str(datetime.now(timezone.utc))}
            else:
                bans.pop(key, None)
            self._save(BANS_FILE, bans)

            clients = self._load_clients()
            client = clients.get(key)
            if client is not None:
                clients[key] = replace(client, banned=banned, ban_reason=reason if banned else None)
                self._save_clients(clients)
