"""Short-lived cache for period (date-range) queries.

Period reads aggregate many days and are expensive to fetch, so results are
kept for a fixed TTL from insertion. Writers do not push invalidations per
key; the reconciliation engine clears the whole cache after any mutation.
Every clear bumps a generation counter so a fetch that started before a
write cannot store its (now stale) result afterwards.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class _Entry:
    data: Any
    inserted_at: float


class PeriodCache:
    """TTL cache keyed by (subject, start date, end date).

    An entry inserted at ``T`` is a hit for lookups at ``now < T + ttl`` and a
    miss (and evicted) at ``now >= T + ttl``.

    Usage::

        cache = PeriodCache(ttl_seconds=300)
        if (data := cache.get("lucky", "2025-11-14", "2025-11-20")) is None:
            data = await fetch(...)
            cache.put("lucky", "2025-11-14", "2025-11-20", data)
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, str, str], _Entry] = {}
        self._generation = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def generation(self) -> int:
        """Number of clears so far."""
        return self._generation

    def get(self, subject: str, start: str, end: str) -> Any | None:
        """Return cached data, or None on a miss or an expired entry."""
        key = (subject, start, end)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.inserted_at >= self._ttl:
            del self._entries[key]
            logger.debug("Period cache expired: %s %s..%s", subject, start, end)
            return None
        logger.debug("Period cache hit: %s %s..%s", subject, start, end)
        return entry.data

    def put(
        self,
        subject: str,
        start: str,
        end: str,
        data: Any,
        *,
        generation: int | None = None,
    ) -> bool:
        """Store ``data``. Skipped (False) when ``generation`` is no longer current."""
        if generation is not None and generation != self._generation:
            logger.debug("Period cache put skipped: %s %s..%s fetched before a write", subject, start, end)
            return False
        self._entries[(subject, start, end)] = _Entry(data=data, inserted_at=self._clock())
        return True

    def clear(self) -> None:
        self._generation += 1
        if self._entries:
            logger.debug("Period cache cleared (%d entries)", len(self._entries))
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
