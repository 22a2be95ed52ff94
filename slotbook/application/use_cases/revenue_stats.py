from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from slotbook.domain.entities.appointment import Appointment, AppointmentStatus

UNKNOWN_SERVICE = "Unknown service"


@dataclass(frozen=True)
class ServiceRevenue:
    service: str
    revenue: float
    count: int


@dataclass(frozen=True)
class RevenueStats:
    total: float
    count: int
    by_service: list[ServiceRevenue] = field(default_factory=list)


def calculate_revenue_stats(appointments: Iterable[Appointment]) -> RevenueStats:
    """Revenue of completed appointments that carry a price, grouped by service name."""
    totals: dict[str, float] = {}
    counts: dict[str, int] = {}
    total = 0.0
    count = 0

    for appointment in appointments:
        if appointment.status is not AppointmentStatus.COMPLETED or appointment.price is None:
            continue
        name = appointment.service_name or UNKNOWN_SERVICE
        totals[name] = totals.get(name, 0.0) + appointment.price
        counts[name] = counts.get(name, 0) + 1
        total += appointment.price
        count += 1

    by_service = [
        ServiceRevenue(service=name, revenue=round(revenue, 2), count=counts[name])
        for name, revenue in totals.items()
    ]
    by_service.sort(key=lambda item: (-item.revenue, item.service))
    return RevenueStats(total=round(total, 2), count=count, by_service=by_service)
