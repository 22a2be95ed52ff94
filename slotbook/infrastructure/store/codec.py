"""
Dict <-> entity conversion shared by the JSON file store and the remote store.

Dates are YYYY-MM-DD, wall-clock times HH:MM, instants ISO 8601 in UTC.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from slotbook.application.utils.time_parser import format_time, parse_time
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus
from slotbook.domain.entities.blocked_interval import BlockedInterval
from slotbook.domain.entities.client import BanStatus, Client
from slotbook.domain.entities.work_schedule import WorkSchedule


def instant_to_str(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def instant_from_str(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_time(value: str | None):
    return parse_time(value) if value else None


def serialize_appointment(appointment: Appointment) -> dict[str, Any]:
    return {
        "id": appointment.id,
        "created_at_utc": instant_to_str(appointment.created_at),
        "service_key": appointment.service_key,
        "service_name": appointment.service_name,
        "price": appointment.price,
        "date": appointment.date.isoformat(),
        "time_start": format_time(appointment.time_start),
        "time_end": format_time(appointment.time_end),
        "owner_identity": appointment.owner_identity,
        "contact_name": appointment.contact_name,
        "contact_phone": appointment.contact_phone,
        "contact_username": appointment.contact_username,
        "comment": appointment.comment,
        "cancel_code": appointment.cancel_code,
        "status": appointment.status.value,
        "completed_at_utc": instant_to_str(appointment.completed_at),
        "cancelled_at_utc": instant_to_str(appointment.cancelled_at),
    }


def deserialize_appointment(data: dict[str, Any]) -> Appointment:
    price = data.get("price")
    owner = data.get("owner_identity")
    return Appointment(
        id=str(data["id"]),
        created_at=instant_from_str(data.get("created_at_utc")) or datetime.fromtimestamp(0, timezone.utc),
        service_key=data.get("service_key", ""),
        service_name=data.get("service_name", ""),
        price=float(price) if price not in (None, "") else None,
        date=date.fromisoformat(data["date"]),
        time_start=parse_time(data["time_start"]),
        time_end=parse_time(data["time_end"]),
        owner_identity=str(owner) if owner not in (None, "") else None,
        contact_name=data.get("contact_name") or "",
        contact_phone=data.get("contact_phone") or "",
        contact_username=data.get("contact_username") or None,
        comment=data.get("comment") or "",
        cancel_code=data.get("cancel_code", ""),
        status=AppointmentStatus(data.get("status", AppointmentStatus.ACTIVE.value)),
        completed_at=instant_from_str(data.get("completed_at_utc")),
        cancelled_at=instant_from_str(data.get("cancelled_at_utc")),
    )


def serialize_work_schedule(schedule: WorkSchedule) -> dict[str, Any]:
    return {
        "start": format_time(schedule.start),
        "end": format_time(schedule.end),
        "lunch_start": format_time(schedule.lunch_start) if schedule.lunch_start else None,
        "lunch_end": format_time(schedule.lunch_end) if schedule.lunch_end else None,
    }


def deserialize_work_schedule(data: dict[str, Any] | None) -> WorkSchedule | None:
    if not data or not data.get("start") or not data.get("end"):
        return None
    return WorkSchedule(
        start=parse_time(data["start"]),
        end=parse_time(data["end"]),
        lunch_start=_optional_time(data.get("lunch_start")),
        lunch_end=_optional_time(data.get("lunch_end")),
    )


def serialize_blocked(interval: BlockedInterval) -> dict[str, Any]:
    return {
        "date": interval.date.isoformat(),
        "time_start": format_time(interval.time_start),
        "time_end": format_time(interval.time_end),
        "note": interval.note,
    }


def deserialize_blocked(data: dict[str, Any]) -> BlockedInterval:
    return BlockedInterval(
        date=date.fromisoformat(data["date"]),
        time_start=parse_time(data["time_start"]),
        time_end=parse_time(data["time_end"]),
        note=data.get("note") or "",
    )


def serialize_client(client: Client) -> dict[str, Any]:
    return {
        "owner_identity": client.owner_identity,
        "first_seen_utc": instant_to_str(client.first_seen_at),
        "name": client.name,
        "phone": client.phone,
        "username": client.username,
        "last_appointment_at_utc": instant_to_str(client.last_appointment_at),
        "total_appointments": client.total_appointments,
        "banned": client.banned,
        "ban_reason": client.ban_reason,
    }


def deserialize_client(data: dict[str, Any]) -> Client:
    return Client(
        owner_identity=str(data["owner_identity"]),
        first_seen_at=instant_from_str(data.get("first_seen_utc")) or datetime.fromtimestamp(0, timezone.utc),
        name=data.get("name") or "",
        phone=data.get("phone") or "",
        username=data.get("username") or None,
        last_appointment_at=instant_from_str(data.get("last_appointment_at_utc")),
        total_appointments=int(data.get("total_appointments") or 0),
        banned=bool(data.get("banned", False)),
        ban_reason=data.get("ban_reason") or None,
    )


def deserialize_ban_status(data: dict[str, Any] | None) -> BanStatus:
    if not data:
        return BanStatus(banned=False)
    return BanStatus(banned=bool(data.get("banned", False)), reason=data.get("reason") or None)
