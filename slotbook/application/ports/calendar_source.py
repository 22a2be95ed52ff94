from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime

from slotbook.domain.entities.appointment import Appointment, AppointmentStatus
from slotbook.domain.entities.blocked_interval import BlockedInterval
from slotbook.domain.entities.day_schedule import CommittedIntervals
from slotbook.domain.entities.work_schedule import WorkSchedule


class CalendarSourcePort(ABC):
    """
    Store holding work hours, blocked intervals and appointments.

    Implementations raise CalendarSourceError when the backing store fails.
    Reads may lag behind writes; callers must not assume read-after-write.
    """

    @abstractmethod
    def get_work_schedule_for_date(self, day: date) -> WorkSchedule | None:
        """Date override if present, else weekday default, else None (closed)."""
        raise NotImplementedError

    @abstractmethod
    def get_committed_intervals(self, day: date) -> CommittedIntervals:
        """Blocked intervals and active appointments for one date."""
        raise NotImplementedError

    @abstractmethod
    def write_appointment(self, appointment: Appointment) -> None:
        raise NotImplementedError

    @abstractmethod
    def update_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        cancelled_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> Appointment | None:
        """
        Update status and timestamps. Returns the updated row, or None if not found.

        Raises InvalidTransitionError when the stored status does not allow the change.
        """
        raise NotImplementedError

    @abstractmethod
    def get_appointment(self, appointment_id: str) -> Appointment | None:
        raise NotImplementedError

    @abstractmethod
    def get_appointment_by_cancel_code(self, cancel_code: str) -> Appointment | None:
        raise NotImplementedError

    @abstractmethod
    def find_appointments(
        self,
        status: AppointmentStatus | None = None,
        owner_identity: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[Appointment]:
        """Filter appointments; every given criterion must match. Date bounds are inclusive."""
        raise NotImplementedError

    @abstractmethod
    def add_blocked_interval(self, interval: BlockedInterval) -> None:
        raise NotImplementedError
