from __future__ import annotations

from datetime import date, datetime, timedelta

from slotbook.domain.entities.service import Service

# A Monday.
BOOKING_DAY = date(2030, 6, 3)

SERVICES = {
    "HAIRCUT": Service(key="HAIRCUT", name="Haircut", duration_minutes=60, price=25.0),
    "BEARD": Service(key="BEARD", name="Beard trim", duration_minutes=30, price=10.0),
}


class FakeClock:
    """Returns start, start + step, start + 2 * step, ... on each call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(0)) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


def make_ids(prefix: str = "A"):
    counter = iter(range(1, 10_000))
    return lambda: f"{prefix}_{next(counter):04d}"
