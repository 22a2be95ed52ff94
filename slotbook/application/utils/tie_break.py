from __future__ import annotations

from collections.abc import Iterable

from slotbook.domain.entities.appointment import Appointment


def overlapping_active(target: Appointment, appointments: Iterable[Appointment]) -> list[Appointment]:
    """
    Active appointments overlapping target, target included exactly once.
    The target is added even when the store has not reflected the write yet.
    """
    contenders = {target.id: target}
    for appointment in appointments:
        if appointment.id == target.id:
            continue
        if appointment.is_active and appointment.overlaps(target):
            contenders[appointment.id] = appointment
    return list(contenders.values())


def pick_winner(contenders: Iterable[Appointment]) -> Appointment:
    """Earliest created_at wins; id breaks ties."""
    ordered = sorted(contenders, key=lambda a: a.tie_break_key())
    if not ordered:
        raise ValueError("pick_winner() needs at least one appointment")
    return ordered[0]
