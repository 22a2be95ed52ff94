from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time
from enum import Enum

from slotbook.domain.entities.time_range import TimeRange


class AppointmentStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.ACTIVE: frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED}),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    """Raised when a status change is not one of the allowed transitions."""
    pass


def ensure_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(f"Cannot move appointment from {current.value} to {target.value}")


@dataclass(frozen=True)
class Appointment:
    id: str
    created_at: datetime  # UTC
    service_key: str
    service_name: str
    date: date
    time_start: time
    time_end: time
    cancel_code: str
    owner_identity: str | None = None
    contact_name: str = ""
    contact_phone: str = ""
    contact_username: str | None = None
    comment: str = ""
    price: float | None = None
    status: AppointmentStatus = AppointmentStatus.ACTIVE
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.time_start, self.time_end)

    @property
    def is_active(self) -> bool:
        return self.status is AppointmentStatus.ACTIVE

    def overlaps(self, other: Appointment) -> bool:
        return self.date == other.date and self.time_range.overlaps(other.time_range)

    def cancel(self, at: datetime) -> Appointment:
        ensure_transition(self.status, AppointmentStatus.CANCELLED)
        return replace(self, status=AppointmentStatus.CANCELLED, cancelled_at=at)

    def complete(self, at: datetime) -> Appointment:
        ensure_transition(self.status, AppointmentStatus.COMPLETED)
        return replace(self, status=AppointmentStatus.COMPLETED, completed_at=at)

    def tie_break_key(self) -> tuple[datetime, str]:
        return (self.created_at, self.id)

    def matches(
        self,
        status: AppointmentStatus | None = None,
        owner_identity: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> bool:
        if status is not None and self.status is not status:
            return False
        if owner_identity is not None and self.owner_identity != str(owner_identity):
            return False
        if date_from is not None and self.date < date_from:
            return False
        if date_to is not None and self.date > date_to:
            return False
        return True
