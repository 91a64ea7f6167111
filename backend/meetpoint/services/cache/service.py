"""In-memory search cache with TTL expiration.

Process-level cache mapping a search fingerprint to the venues found for it.
Never persisted. Entries live for a fixed TTL (30 minutes by default); at
capacity (50 entries by default) the oldest inserted entry is evicted. A
background sweep purges expired entries so memory stays bounded even when
nothing is read.

There is no partial invalidation: an entry is only dropped by expiry,
eviction or a full ``clear()``.
"""

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from meetpoint.models import CacheStats, Location, SearchParams, Venue

logger = logging.getLogger(__name__)


def build_fingerprint(params: SearchParams, midpoint: Location, default_radius: int = 5000) -> str:
    """Build a normalized cache key for a search.

    The key only depends on the rounded coordinates, the sorted category set,
    the radius and the rounded midpoint, so category insertion order never
    changes it.
    """
    radius = params.radius_meters or default_radius
    fields = [
        f"{params.location1.latitude:.6f}",
        f"{params.location1.longitude:.6f}",
        f"{params.location2.latitude:.6f}",
        f"{params.location2.longitude:.6f}",
        ",".join(c.value for c in params.sorted_categories()),
        str(radius),
        f"{midpoint.latitude:.6f}",
        f"{midpoint.longitude:.6f}",
    ]
    return "search:" + "|".join(fields)


@dataclass
class CacheEntry:
    fingerprint: str
    venues: list[Venue]
    created_at: float
    expires_at: float
    midpoint: Location | None = None


def _copy_venues(venues: list[Venue]) -> list[Venue]:
    return [venue.model_copy(deep=True) for venue in venues]


class SearchCache:
    """TTL-aware, size-bounded cache for venue lists."""

    def __init__(
        self,
        max_size: int = 50,
        ttl_seconds: float = 1800,
        sweep_interval_seconds: float = 600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._sweep_task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fingerprint: str) -> bool:
        return self.get(fingerprint) is not None

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def lookup(self, fingerprint: str) -> CacheEntry | None:
        """Return a copy of the live entry, or None if absent or expired."""
        entry = self._entries.get(fingerprint)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[fingerprint]
            return None
        return CacheEntry(
            fingerprint=entry.fingerprint,
            venues=_copy_venues(entry.venues),
            created_at=entry.created_at,
            expires_at=entry.expires_at,
            midpoint=entry.midpoint,
        )

    def get(self, fingerprint: str) -> list[Venue] | None:
        """Return a copy of the cached venues, or None if absent or expired."""
        entry = self.lookup(fingerprint)
        return entry.venues if entry is not None else None

    def put(
        self, fingerprint: str, venues: list[Venue], midpoint: Location | None = None
    ) -> None:
        """Store venues under a fingerprint, evicting the oldest entry at capacity."""
        if fingerprint in self._entries:
            del self._entries[fingerprint]
        elif len(self._entries) >= self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"[CACHE] Evicted {evicted}")

        now = self._clock()
        self._entries[fingerprint] = CacheEntry(
            fingerprint=fingerprint,
            venues=_copy_venues(venues),
            created_at=now,
            expires_at=now + self._ttl,
            midpoint=midpoint,
        )

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> CacheStats:
        now = self._clock()
        valid = sum(1 for entry in self._entries.values() if entry.expires_at > now)
        return CacheStats(
            total_items=len(self._entries),
            valid_items=valid,
            expired_items=len(self._entries) - valid,
            max_size=self._max_size,
        )

    # ── Background sweep ──────────────────────────────────────────────

    @property
    def sweeper_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start_sweeper(self) -> None:
        """Start the periodic purge task on the running event loop."""
        if self.sweeper_running:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def stop_sweeper(self) -> None:
        """Cancel the purge task and wait for it to finish."""
        task = self._sweep_task
        self._sweep_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            removed = self.purge_expired()
            if removed:
                logger.info(f"[CACHE] Sweep removed {removed} expired entries")
