"""
Tests for revenue aggregation over completed appointments.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone

from slotbook.application.use_cases.revenue_stats import calculate_revenue_stats
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus


def _appointment(i: int, name: str, price, status=AppointmentStatus.COMPLETED) -> Appointment:
    return Appointment(
        id=f"A_{i}",
        created_at=datetime(2030, 6, 1, tzinfo=timezone.utc),
        service_key=name.upper(),
        service_name=name,
        price=price,
        date=date(2030, 6, 3),
        time_start=time(10, 0),
        time_end=time(11, 0),
        cancel_code="ABC123",
        status=status,
    )


def test_only_completed_priced_appointments_count():
    """Test that cancelled, active and unpriced appointments are ignored."""
    stats = calculate_revenue_stats(
        [
            _appointment(1, "Haircut", 25.0),
            _appointment(2, "Haircut", 25.0),
            _appointment(3, "Beard", 10.5),
            _appointment(4, "Beard", 10.5, AppointmentStatus.CANCELLED),
            _appointment(5, "Beard", 10.5, AppointmentStatus.ACTIVE),
            _appointment(6, "Styling", None),
        ]
    )

    assert stats.total == 60.5
    assert stats.count == 3
    assert [(s.service, s.revenue, s.count) for s in stats.by_service] == [
        ("Haircut", 50.0, 2),
        ("Beard", 10.5, 1),
    ]


def test_empty_period():
    """Test that no appointments give zero totals."""
    stats = calculate_revenue_stats([])
    assert stats.total == 0
    assert stats.count == 0
    assert stats.by_service == []
