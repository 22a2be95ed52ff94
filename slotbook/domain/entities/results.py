from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from slotbook.domain.entities.appointment import Appointment


class ReasonCode(str, Enum):
    CLOSED = "closed"
    SLOT_TAKEN = "slot_taken"
    LIMIT_EXCEEDED = "limit_exceeded"
    APPOINTMENT_NOT_FOUND = "appointment_not_found"
    NOT_OWNER = "not_owner"
    ALREADY_CANCELLED = "already_cancelled"
    BANNED = "banned"


@dataclass(frozen=True)
class BookingResult:
    ok: bool
    appointment: Appointment | None = None
    reason: ReasonCode | None = None

    @classmethod
    def success(cls, appointment: Appointment) -> BookingResult:
        return cls(ok=True, appointment=appointment)

    @classmethod
    def rejected(cls, reason: ReasonCode, appointment: Appointment | None = None) -> BookingResult:
        return cls(ok=False, appointment=appointment, reason=reason)


@dataclass(frozen=True)
class CancellationResult:
    ok: bool
    appointment: Appointment | None = None
    reason: ReasonCode | None = None


@dataclass(frozen=True)
class CompletionReport:
    completed: list[Appointment] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)  # appointment ids
