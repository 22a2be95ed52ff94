"""
Tests for the file-backed calendar store.
"""

from __future__ import annotations

import json
import tempfile
from datetime import date, datetime, time, timezone
from pathlib import Path

import pytest

from slotbook.application.exceptions import CalendarSourceError
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus, InvalidTransitionError
from slotbook.domain.entities.blocked_interval import BlockedInterval
from slotbook.domain.entities.work_schedule import WorkSchedule
from slotbook.infrastructure.store.json_store import JsonCalendarStore

DAY = date(2030, 6, 3)
WEEKDAYS = {weekday: WorkSchedule(start=time(9, 0), end=time(17, 0)) for weekday in range(5)}


def _appointment(appointment_id: str, start: time, end: time, owner: str = "u1") -> Appointment:
    return Appointment(
        id=appointment_id,
        created_at=datetime(2030, 6, 1, 8, 0, 0, 123000, tzinfo=timezone.utc),
        service_key="HAIRCUT",
        service_name="Haircut",
        price=25.0,
        date=DAY,
        time_start=start,
        time_end=end,
        owner_identity=owner,
        contact_name="Ann",
        contact_phone="+1",
        cancel_code=f"C{appointment_id[-5:]}",
    )


def test_appointments_survive_new_instance():
    """Test that a second store over the same directory sees earlier writes."""
    with tempfile.TemporaryDirectory() as tmpdir:
        JsonCalendarStore(data_dir=tmpdir, default_weekday_schedule=WEEKDAYS).write_appointment(
            _appointment("A_00001", time(10, 0), time(11, 0))
        )

        reopened = JsonCalendarStore(data_dir=tmpdir)
        loaded = reopened.get_appointment("A_00001")

        assert loaded == _appointment("A_00001", time(10, 0), time(11, 0))
        assert reopened.get_appointment_by_cancel_code("c00001") == loaded
        assert reopened.get_work_schedule_for_date(DAY) == WEEKDAYS[0]


def test_committed_intervals_only_active_for_date():
    """Test that committed intervals hold blocked ranges and active appointments of one date."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCalendarStore(data_dir=tmpdir, default_weekday_schedule=WEEKDAYS)
        store.write_appointment(_appointment("A_00001", time(10, 0), time(11, 0)))
        store.write_appointment(_appointment("A_00002", time(12, 0), time(13, 0)))
        store.update_appointment_status(
            "A_00002", AppointmentStatus.CANCELLED, cancelled_at=datetime(2030, 6, 2, tzinfo=timezone.utc)
        )
        store.add_blocked_interval(BlockedInterval(date=DAY, time_start=time(15, 0), time_end=time(16, 0)))
        store.add_blocked_interval(
            BlockedInterval(date=date(2030, 6, 4), time_start=time(9, 0), time_end=time(10, 0))
        )

        committed = store.get_committed_intervals(DAY)

        assert [a.id for a in committed.active_appointments] == ["A_00001"]
        assert [b.time_start for b in committed.blocked] == [time(15, 0)]


def test_update_status_keeps_timestamps():
    """Test that status updates persist completed_at and unknown ids return None."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCalendarStore(data_dir=tmpdir)
        store.write_appointment(_appointment("A_00001", time(10, 0), time(11, 0)))
        done_at = datetime(2030, 6, 3, 12, 0, tzinfo=timezone.utc)

        updated = store.update_appointment_status("A_00001", AppointmentStatus.COMPLETED, completed_at=done_at)

        assert updated.status is AppointmentStatus.COMPLETED
        assert store.get_appointment("A_00001").completed_at == done_at
        assert store.update_appointment_status("A_missing", AppointmentStatus.CANCELLED) is None


def test_date_override_and_malformed_entries():
    """Test that a date override wins and a malformed override is skipped."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCalendarStore(data_dir=tmpdir, default_weekday_schedule=WEEKDAYS)
        store.set_date_schedule(DAY, WorkSchedule(start=time(12, 0), end=time(14, 0)))

        schedule_path = Path(tmpdir) / "schedule.json"
        data = json.loads(schedule_path.read_text(encoding="utf-8"))
        data["date_overrides"]["2030-06-04"] = {"start": "18:00", "end": "09:00"}
        schedule_path.write_text(json.dumps(data), encoding="utf-8")

        assert store.get_work_schedule_for_date(DAY).start == time(12, 0)
        assert store.get_work_schedule_for_date(date(2030, 6, 4)) == WEEKDAYS[1]
        assert store.get_work_schedule_for_date(date(2030, 6, 8)) is None


def test_find_appointments_filters():
    """Test filtering by status, owner and date range."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCalendarStore(data_dir=tmpdir)
        store.write_appointment(_appointment("A_00001", time(10, 0), time(11, 0), owner="u1"))
        store.write_appointment(_appointment("A_00002", time(12, 0), time(13, 0), owner="u2"))

        assert [a.id for a in store.find_appointments(owner_identity="u2")] == ["A_00002"]
        assert len(store.find_appointments(status=AppointmentStatus.ACTIVE, date_from=DAY, date_to=DAY)) == 2
        assert store.find_appointments(date_from=date(2030, 6, 4)) == []


def test_clients_and_bans():
    """Test client upsert counting and ban toggling."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCalendarStore(data_dir=tmpdir)
        at = datetime(2030, 6, 1, 9, 0, tzinfo=timezone.utc)

        store.upsert_client("u1", name="Ann", phone="+1", last_appointment_at=at)
        client = store.upsert_client("u1", name="", phone="+2")

        assert client.total_appointments == 2
        assert client.name == "Ann"
        assert client.phone == "+2"
        assert client.last_appointment_at == at

        store.set_ban("u1", True, "no-shows")
        assert store.get_ban_status("u1").banned
        assert store.get_ban_status("u1").reason == "no-shows"
        assert store.get_client("u1").banned

        store.set_ban("u1", False)
        assert not store.get_ban_status("u1").banned
        assert not store.get_client("u1").banned


def test_corrupt_file_raises_calendar_error():
    """Test that an unreadable appointments file surfaces as CalendarSourceError."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCalendarStore(data_dir=tmpdir)
        (Path(tmpdir) / "appointments.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(CalendarSourceError):
            store.get_committed_intervals(DAY)


def test_malformed_rows_raise_calendar_error():
    """Test that rows missing fields or holding bad values surface as CalendarSourceError."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCalendarStore(data_dir=tmpdir)
        (Path(tmpdir) / "appointments.json").write_text(json.dumps([{"id": "A_1"}]), encoding="utf-8")
        (Path(tmpdir) / "clients.json").write_text(json.dumps({"u1": {"banned": "later", "total_appointments": "x"}}), encoding="utf-8")

        with pytest.raises(CalendarSourceError):
            store.get_committed_intervals(DAY)
        with pytest.raises(CalendarSourceError):
            store.get_appointment("A_1")
        with pytest.raises(CalendarSourceError):
            store.get_client("u1")


def test_terminal_status_is_not_overwritten():
    """Test that a completed appointment on disk cannot be cancelled."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCalendarStore(data_dir=tmpdir)
        store.write_appointment(_appointment("A_00001", time(10, 0), time(11, 0)))
        completed_at = datetime(2030, 6, 3, 11, 0, tzinfo=timezone.utc)
        store.update_appointment_status("A_00001", AppointmentStatus.COMPLETED, completed_at=completed_at)

        with pytest.raises(InvalidTransitionError):
            store.update_appointment_status("A_00001", AppointmentStatus.CANCELLED)

        reopened = JsonCalendarStore(data_dir=tmpdir).get_appointment("A_00001")
        assert reopened.status is AppointmentStatus.COMPLETED
        assert reopened.cancelled_at is None
