"""
In-memory category cache for classified PGN file lists.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..catalog.classifier import PgnFile


DEFAULT_TTL_SECONDS = 12 * 60 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 600
DEFAULT_MAX_STALE_SECONDS = 24 * 60 * 60
CACHE_TYPE = "pgn_files"


@dataclass(frozen=True)
class CacheEntry:
    """Immutable snapshot of one category's classified list."""

    files: Tuple["PgnFile", ...]
    stored_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CategoryCache:
    """TTL cache keyed by category.

    Expired entries answer as absent to ``get``/``has`` but remain readable
    through ``get_stale`` until the sweep removes them, which happens once an
    entry has been expired for longer than ``max_stale_seconds``.
    Writes replace the whole entry in a single assignment.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        *,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        max_stale_seconds: float = DEFAULT_MAX_STALE_SECONDS,
        metrics: Optional["MetricsCollector"] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self.max_stale_seconds = max(0.0, max_stale_seconds)
        self.metrics = metrics
        self.logger = get_logger("pgn.cache")
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._sweeper: Optional[asyncio.Task] = None

    def get(self, key: str) -> Optional[List["PgnFile"]]:
        """Fresh read. None when the key is missing or expired."""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            self._misses += 1
            self._count("cache_misses_total")
            return None

        self._hits += 1
        self._count("cache_hits_total")
        return list(entry.files)

    def get_stale(self, key: str) -> Optional[List["PgnFile"]]:
        """Last stored value regardless of expiry, until it is swept."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return list(entry.files)

    def has(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def set(self, key: str, files: Sequence["PgnFile"]) -> None:
        """Store a complete list and restart its TTL."""
        now = self._clock()
        self._entries[key] = CacheEntry(
            files=tuple(files),
            stored_at=now,
            expires_at=now + self.ttl_seconds,
        )
        self._update_size()
        self.logger.debug("Cached category", category=key, files=len(files), ttl=self.ttl_seconds)

    def delete(self, key: str) -> bool:
        removed = self._entries.pop(key, None) is not None
        if removed:
            self._update_size()
            self.logger.info("Invalidated category", category=key)
        return removed

    def clear(self) -> int:
        count = len(self._entries)
        self._entries = {}
        self._update_size()
        self.logger.info("Flushed cache", keys_count=count)
        return count

    def sweep(self) -> int:
        """Physically remove entries expired for longer than the stale bound."""
        now = self._clock()
        doomed = [
            key for key, entry in self._entries.items()
            if now >= entry.expires_at + self.max_stale_seconds
        ]
        for key in doomed:
            self._entries.pop(key, None)
        if doomed:
            self._update_size()
            self.logger.info("Swept expired categories", keys_count=len(doomed), categories=doomed)
        return len(doomed)

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def stats(self) -> Dict[str, Any]:
        """Cache statistics for health and admin endpoints."""
        now = self._clock()
        expired = sum(1 for entry in self._entries.values() if entry.is_expired(now))
        return {
            "entries": len(self._entries),
            "fresh": len(self._entries) - expired,
            "expired": expired,
            "hits": self._hits,
            "misses": self._misses,
            "ttl_seconds": self.ttl_seconds,
            "sweep_interval_seconds": self.sweep_interval_seconds,
            "max_stale_seconds": self.max_stale_seconds,
        }

    async def start(self) -> None:
        """Start the periodic sweep task."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop(), name="pgn-cache-sweeper")
            self.logger.info("Cache sweeper started", interval=self.sweep_interval_seconds)

    async def stop(self) -> None:
        """Stop the sweep task."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        self.logger.info("Cache sweeper stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                self.sweep()
            except Exception as exc:  # pragma: no cover - sweep must keep running
                self.logger.error("Cache sweep failed", error=str(exc))

    def _count(self, metric_name: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, cache_type=CACHE_TYPE)

    def _update_size(self) -> None:
        if self.metrics:
            self.metrics.set_gauge("cache_entries", len(self._entries), cache_type=CACHE_TYPE)
