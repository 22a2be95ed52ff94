from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Service:
    key: str
    name: str
    duration_minutes: int
    price: float | None = None
