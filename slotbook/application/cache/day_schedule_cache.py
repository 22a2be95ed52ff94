from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timezone

from slotbook.application.ports.calendar_source import CalendarSourcePort
from slotbook.domain.entities.day_schedule import DaySchedule


@dataclass(frozen=True)
class _CacheEntry:
    snapshot: DaySchedule
    expires_at: float


class DayScheduleCache:
    """
    Read-through cache of per-date schedules in front of a CalendarSourcePort.

    Entries are immutable snapshots; a refresh replaces the whole entry.
    """

    def __init__(
        self,
        source: CalendarSourcePort,
        ttl_seconds: float = 1200.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[date, _CacheEntry] = {}
        self._generations: dict[date, int] = {}
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def get_day_schedule(self, day: date, fresh: bool = False) -> DaySchedule:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(day)
            generation = self._generations.get(day, 0)
        if not fresh and entry is not None and entry.expires_at > now:
            self._logger.debug("Day cache hit", extra={"date": day.isoformat()})
            return entry.snapshot

        committed = self._source.get_committed_intervals(day)
        snapshot = DaySchedule(
            date=day,
            committed=committed,
            fetched_at=datetime.now(timezone.utc),
        )
        with self._lock:
            # Not stored when invalidate() ran during the read.
            if self._generations.get(day, 0) != generation:
                self._logger.debug("Day cache store skipped", extra={"date": day.isoformat()})
                return snapshot
            self._entries[day] = _CacheEntry(snapshot=snapshot, expires_at=self._clock() + self._ttl_seconds)
        self._logger.debug("Day cache refreshed", extra={"date": day.isoformat()})
        return snapshot

    def invalidate(self, day: date) -> None:
        with self._lock:
            removed = self._entries.pop(day, None)
            self._generations[day] = self._generations.get(day, 0) + 1
        if removed is not None:
            self._logger.debug("Day cache invalidated", extra={"date": day.isoformat()})

    def sweep_expired(self) -> int:
        """Drop entries past their TTL. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [day for day, entry in self._entries.items() if entry.expires_at <= now]
            for day in expired:
                del self._entries[day]
        if expired:
            self._logger.info("Day cache sweep", extra={"removed": len(expired)})
        return len(expired)

    def __contains__(self, day: object) -> bool:
        with self._lock:
            return day in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
