"""Per-session cache of fetched wearable data.

Follow-up questions in a conversation usually concern the same period, so the
last fetch for each session is kept and reused when it covers what the next
question needs. Entries live in process memory only.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from ringchat.domains.wearable.domain_logic.heart_rate import reading_day
from ringchat.domains.wearable.domain_logic.models import (
    DataTypeFlags,
    HeartRateResult,
    WearableData,
)

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 10 * 60


@dataclass
class CacheEntry:
    """The most recent fetch for one session."""

    start_date: str
    end_date: str
    data: WearableData
    included_types: DataTypeFlags
    timestamp: float = field(default=0.0)


class SessionResponseCache:
    """Session-keyed cache with TTL expiry and range/type coverage checks.

    Usage::

        cache = SessionResponseCache(ttl=3600)
        cache.start()  # periodic sweep, inside a running event loop
        entry = cache.get(session_id)
        if entry and cache.matches(entry, start, end, needed):
            data = cache.filter_data(entry, start, end)
        ...
        await cache.stop()
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._sweep_task: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        return len(self._entries)

    # ---------------------------------------------------------------
    # Entry access
    # ---------------------------------------------------------------

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > self.ttl

    def get(self, session_id: str) -> CacheEntry | None:
        """Return the session's entry, or None if absent or expired."""
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        if self._expired(entry, self._clock()):
            del self._entries[session_id]
            return None
        return entry

    def set(
        self,
        session_id: str,
        start_date: str,
        end_date: str,
        data: WearableData,
        included_types: DataTypeFlags,
    ) -> CacheEntry:
        """Store a fresh fetch, replacing any previous entry for the session."""
        entry = CacheEntry(
            start_date=start_date,
            end_date=end_date,
            data=data,
            included_types=included_types,
            timestamp=self._clock(),
        )
        self._entries[session_id] = entry
        return entry

    def clear(self, session_id: str) -> None:
        self._entries.pop(session_id, None)

    def sweep(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [sid for sid, entry in self._entries.items() if self._expired(entry, now)]
        for sid in expired:
            del self._entries[sid]
        if expired:
            logger.debug("Swept %d expired cache entries", len(expired))
        return len(expired)

    # ---------------------------------------------------------------
    # Coverage
    # ---------------------------------------------------------------

    @staticmethod
    def matches(
        entry: CacheEntry,
        start_date: str,
        end_date: str,
        needed_types: DataTypeFlags,
    ) -> bool:
        """True if the entry's range contains [start, end] and has every needed type.

        ISO dates sort lexicographically in calendar order, so plain string
        comparison is enough.
        """
        if not entry.start_date or not entry.end_date:
            return False
        if entry.start_date > start_date or entry.end_date < end_date:
            return False
        return entry.included_types.covers(needed_types)

    @staticmethod
    def filter_data(entry: CacheEntry, start_date: str, end_date: str) -> WearableData:
        """Project the cached data down to [start, end], inclusive."""

        def in_range(day: str | None) -> bool:
            return day is not None and start_date <= day <= end_date

        def by_day(items: list[dict]) -> list[dict]:
            return [item for item in items if in_range(item.get("day"))]

        readings = [r for r in entry.data.heart_rate.readings if in_range(reading_day(r))]
        daily_stats = {
            day: stats
            for day, stats in entry.data.heart_rate.daily_stats.items()
            if in_range(day)
        }

        return WearableData(
            sleep=by_day(entry.data.sleep),
            activity=by_day(entry.data.activity),
            readiness=by_day(entry.data.readiness),
            heart_rate=HeartRateResult(readings=readings, daily_stats=daily_stats),
        )

    # ---------------------------------------------------------------
    # Background sweep
    # ---------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.running:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(
            self._sweep_loop(), name="session-cache-sweep"
        )

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        task = self._sweep_task
        self._sweep_task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Cache sweep failed")
