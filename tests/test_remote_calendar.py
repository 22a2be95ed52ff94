"""
Tests for the REST calendar adapter against a mocked transport.
"""

from __future__ import annotations

import json
from datetime import date, datetime, time, timezone

import httpx
import pytest

from slotbook.application.exceptions import CalendarSourceError
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus, InvalidTransitionError
from slotbook.infrastructure.remote.remote_calendar import RemoteCalendarStore
from slotbook.infrastructure.store.codec import serialize_appointment

DAY = date(2030, 6, 3)
BASE_URL = "https://calendar.test/api"


def _appointment(appointment_id: str = "A_1", status: AppointmentStatus = AppointmentStatus.ACTIVE) -> Appointment:
    return Appointment(
        id=appointment_id,
        created_at=datetime(2030, 6, 1, 8, 0, tzinfo=timezone.utc),
        service_key="HAIRCUT",
        service_name="Haircut",
        date=DAY,
        time_start=time(10, 0),
        time_end=time(11, 0),
        owner_identity="u1",
        cancel_code="ABC123",
        status=status,
    )


def _store(handler) -> RemoteCalendarStore:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return RemoteCalendarStore(base_url=BASE_URL, api_key="secret", client=client)


def test_requires_base_url():
    """Test that the adapter refuses to start without a base URL."""
    with pytest.raises(ValueError):
        RemoteCalendarStore(base_url="", client=httpx.Client())


def test_committed_intervals_keep_only_active_rows():
    """Test that committed intervals decode blocked rows and drop non-active appointments."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(
            200,
            json={
                "blocked": [{"date": "2030-06-03", "time_start": "13:00", "time_end": "14:00", "note": "lunch"}],
                "appointments": [
                    serialize_appointment(_appointment("A_1")),
                    serialize_appointment(_appointment("A_2", AppointmentStatus.CANCELLED)),
                ],
            },
        )

    committed = _store(handler).get_committed_intervals(DAY)

    assert seen["path"] == "/api/days/2030-06-03/committed"
    assert seen["auth"] == "Bearer secret"
    assert [a.id for a in committed.active_appointments] == ["A_1"]
    assert committed.blocked[0].note == "lunch"


def test_work_schedule_404_means_closed():
    """Test that a missing work schedule is reported as a closed day."""
    store = _store(lambda request: httpx.Response(404))
    assert store.get_work_schedule_for_date(DAY) is None


def test_work_schedule_decoded():
    """Test that a schedule payload is decoded with its lunch gap."""
    payload = {"schedule": {"start": "09:00", "end": "18:00", "lunch_start": "13:00", "lunch_end": "14:00"}}
    schedule = _store(lambda request: httpx.Response(200, json=payload)).get_work_schedule_for_date(DAY)

    assert schedule.start == time(9, 0)
    assert schedule.lunch_gap().end == time(14, 0)


def test_server_error_raises_calendar_error():
    """Test that a 5xx response surfaces as CalendarSourceError."""
    store = _store(lambda request: httpx.Response(503, text="unavailable"))
    with pytest.raises(CalendarSourceError):
        store.get_committed_intervals(DAY)


def test_transport_error_raises_calendar_error():
    """Test that a connection failure surfaces as CalendarSourceError."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(CalendarSourceError):
        _store(handler).write_appointment(_appointment())


def test_malformed_payload_raises_calendar_error():
    """Test that rows missing required fields surface as CalendarSourceError."""
    store = _store(lambda request: httpx.Response(200, json={"appointments": [{"id": "A_1"}]}))
    with pytest.raises(CalendarSourceError):
        store.get_committed_intervals(DAY)


def test_update_status_sends_timestamps():
    """Test that a status update sends the new status and the UTC instant."""
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=serialize_appointment(_appointment(status=AppointmentStatus.CANCELLED)))

    at = datetime(2030, 6, 2, 12, 0, tzinfo=timezone.utc)
    updated = _store(handler).update_appointment_status("A_1", AppointmentStatus.CANCELLED, cancelled_at=at)

    assert captured["method"] == "PATCH"
    assert captured["body"] == {"status": "cancelled", "cancelled_at_utc": "2030-06-02T12:00:00+00:00"}
    assert updated.status is AppointmentStatus.CANCELLED


def test_update_missing_appointment_returns_none():
    """Test that a 404 on update means the appointment does not exist."""
    store = _store(lambda request: httpx.Response(404))
    assert store.update_appointment_status("A_missing", AppointmentStatus.CANCELLED) is None


def test_update_status_conflict_raises_invalid_transition():
    """Test that a 409 on a status update means the row already left the active state."""
    store = _store(lambda request: httpx.Response(409, json={"detail": "already completed"}))

    with pytest.raises(InvalidTransitionError):
        store.update_appointment_status("A_1", AppointmentStatus.CANCELLED)


def test_find_by_cancel_code_uppercases():
    """Test that cancel codes are normalised before the lookup."""
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["code"] = request.url.params.get("cancel_code")
        return httpx.Response(200, json={"items": [serialize_appointment(_appointment())]})

    appointment = _store(handler).get_appointment_by_cancel_code(" abc123 ")

    assert captured["code"] == "ABC123"
    assert appointment.id == "A_1"


def test_ban_status():
    """Test ban lookups for banned and unknown owners."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/bans/u1"):
            return httpx.Response(200, json={"banned": True, "reason": "spam"})
        return httpx.Response(404)

    store = _store(handler)
    assert store.get_ban_status("u1").reason == "spam"
    assert not store.get_ban_status("u2").banned
