from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, order=True)
class Slot:
    start: datetime
    end: datetime
    label: str  # HH:MM
