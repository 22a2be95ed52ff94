from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

import httpx

from slotbook.application.exceptions import CalendarSourceError
from slotbook.application.ports.calendar_source import CalendarSourcePort
from slotbook.application.ports.client_directory import ClientDirectoryPort
from slotbook.core.config import settings
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus, InvalidTransitionError
from slotbook.domain.entities.blocked_interval import BlockedInterval
from slotbook.domain.entities.client import BanStatus, Client
from slotbook.domain.entities.day_schedule import CommittedIntervals
from slotbook.domain.entities.work_schedule import WorkSchedule
from slotbook.infrastructure.store.codec import (
    deserialize_appointment,
    deserialize_ban_status,
    deserialize_blocked,
    deserialize_client,
    deserialize_work_schedule,
    instant_to_str,
    serialize_appointment,
    serialize_blocked,
)


class RemoteCalendarStore(CalendarSourcePort, ClientDirectoryPort):
    """
    REST adapter for the remote tabular store.

    Contract guarantees:
    - every transport failure or non-2xx response (other than an expected 404)
      raises CalendarSourceError
    - payloads that cannot be decoded raise CalendarSourceError
    - a 409 on a status update raises InvalidTransitionError
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_seconds: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = (base_url or settings.REMOTE_CALENDAR_BASE_URL or "").rstrip("/")
        self._api_key = api_key or settings.REMOTE_CALENDAR_API_KEY
        self._client = client or httpx.Client(timeout=timeout_seconds or settings.REMOTE_CALENDAR_TIMEOUT_SECONDS)
        self._logger = logging.getLogger(__name__)

        if not self._base_url:
            raise ValueError("REMOTE_CALENDAR_BASE_URL is required for the remote calendar store")

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        allow_not_found: bool = False,
        transition_conflict: bool = False,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = self._client.request(method, url, params=params, json=json, headers=self._headers())
            if allow_not_found and response.status_code == 404:
                return None
            if transition_conflict and response.status_code == 409:
                raise InvalidTransitionError(f"{method} {path} rejected: status conflict")
            response.raise_for_status()
            if not response.content:
                return {}
            return response.json()
        except httpx.HTTPError as e:
            self._logger.error("Remote calendar request failed", extra={"path": path, "error": str(e)})
            raise CalendarSourceError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise CalendarSourceError(f"{method} {path} returned invalid JSON") from e

    def _decode(self, what: str, func, payload: Any):
        try:
            return func(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise CalendarSourceError(f"Malformed {what} payload: {e}") from e

    def get_work_schedule_for_date(self, day: date) -> WorkSchedule | None:
        data = self._request("GET", f"/work-schedule/{day.isoformat()}", allow_not_found=True)
        if not data:
            return None
        return self._decode("work schedule", deserialize_work_schedule, data.get("schedule"))

    def get_committed_intervals(self, day: date) -> CommittedIntervals:
        data = self._request("GET", f"/days/{day.isoformat()}/committed")
        blocked = tuple(self._decode("blocked interval", deserialize_blocked, row) for row in data.get("blocked", []))
        appointments = tuple(
            self._decode("appointment", deserialize_appointment, row) for row in data.get("appointments", [])
        )
        active = tuple(a for a in appointments if a.date == day and a.is_active)
        return CommittedIntervals(blocked=blocked, active_appointments=active)

    def write_appointment(self, appointment: Appointment) -> None:
        self._request("POST", "/appointments", json=serialize_appointment(appointment))
        self._logger.info("Remote appointment written", extra={"appointment_id": appointment.id})

    def update_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        cancelled_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> Appointment | None:
        payload: dict[str, Any] = {"status": status.value}
        if cancelled_at is not None:
            payload["cancelled_at_utc"] = instant_to_str(cancelled_at)
        if completed_at is not None:
            payload["completed_at_utc"] = instant_to_str(completed_at)
        data = self._request(
            "PATCH",
            f"/appointments/{appointment_id}",
            json=payload,
            allow_not_found=True,
            transition_conflict=True,
        )
        if data is None:
            return None
        return self._decode("appointment", deserialize_appointment, data)

    def get_appointment(self, appointment_id: str) -> Appointment | None:
        data = self._request("GET", f"/appointments/{appointment_id}", allow_not_found=True)
        if data is None:
            return None
        return self._decode("appointment", deserialize_appointment, data)

    def get_appointment_by_cancel_code(self, cancel_code: str) -> Appointment | None:
        rows = self._request("GET", "/appointments", params={"cancel_code": cancel_code.strip().upper()})
        items = rows.get("items", []) if isinstance(rows, dict) else []
        if not items:
            return None
        return self._decode("appointment", deserialize_appointment, items[0])

    def find_appointments(
        self,
        status: AppointmentStatus | None = None,
        owner_identity: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[Appointment]:
        params: dict[str, Any] = {}
        if status is not None:
            params["status"] = status.value
        if owner_identity is not None:
            params["owner_identity"] = str(owner_identity)
        if date_from is not None:
            params["date_from"] = date_from.isoformat()
        if date_to is not None:
            params["date_to"] = date_to.isoformat()
        rows = self._request("GET", "/appointments", params=params)
        appointments = [self._decode("appointment", deserialize_appointment, row) for row in rows.get("items", [])]
        return [
            a
            for a in appointments
            if a.matches(status=status, owner_identity=owner_identity, date_from=date_from, date_to=date_to)
        ]

    def add_blocked_interval(self, interval: BlockedInterval) -> None:
        self._request("POST", "/blocked-intervals", json=serialize_blocked(interval))

    def get_client(self, owner_identity: str) -> Client | None:
        data = self._request("GET", f"/clients/{owner_identity}", allow_not_found=True)
        if data is None:
            return None
        return self._decode("client", deserialize_client, data)

    def upsert_client(
        self,
        owner_identity: str,
        name: str | None = None,
        phone: str | None = None,
        username: str | None = None,
        last_appointment_at: datetime | None = None,
    ) -> Client:
        payload = {
            "name": name,
            "phone": phone,
            "username": username,
            "last_appointment_at_utc": instant_to_str(last_appointment_at),
        }
        data = self._request("POST", f"/clients/{owner_identity}/upsert", json=payload)
        return self._decode("client", deserialize_client, data)

    def touch_last_appointment(self, owner_identity: str, at: datetime) -> None:
        self._request(
            "PATCH",
            f"/clients/{owner_identity}",
            json={"last_appointment_at_utc": instant_to_str(at)},
            allow_not_found=True,
        )

    def get_ban_status(self, owner_identity: str) -> BanStatus:
        data = self._request("GET", f"/bans/{owner_identity}", allow_not_found=True)
        return deserialize_ban_status(data)

    def set_ban(self, owner_identity: str, banned: bool, reason: str | None = None) -> None:
        if banned:
            self._request("PUT", f"/bans/{owner_identity}", json={"reason": reason})
        else:
            self._request("DELETE", f"/bans/{owner_identity}", allow_not_found=True)
