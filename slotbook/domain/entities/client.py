from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True)
class ContactInfo:
    name: str
    phone: str
    username: str | None = None


@dataclass(frozen=True)
class Client:
    owner_identity: str
    first_seen_at: datetime
    name: str = ""
    phone: str = ""
    username: str | None = None
    last_appointment_at: datetime | None = None
    total_appointments: int = 0
    banned: bool = False
    ban_reason: str | None = None


@dataclass(frozen=True)
class BanStatus:
    banned: bool
    reason: str | None = None


def merge_client_upsert(
    existing: Client | None,
    owner_identity: str,
    now: datetime,
    name: str | None = None,
    phone: str | None = None,
    username: str | None = None,
    last_appointment_at: datetime | None = None,
) -> Client:
    """New client with total 1, or existing one with non-empty fields refreshed and total + 1."""
    if existing is None:
        return Client(
            owner_identity=owner_identity,
            first_seen_at=now,
            name=name or "",
            phone=phone or "",
            username=username or None,
            last_appointment_at=last_appointment_at,
            total_appointments=1,
        )
    return replace(
        existing,
        name=name or existing.name,
        phone=phone or existing.phone,
        username=username or existing.username,
        last_appointment_at=last_appointment_at or existing.last_appointment_at,
        total_appointments=existing.total_appointments + 1,
    )
