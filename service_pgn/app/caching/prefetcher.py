"""
Background prefetch of category caches.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, TYPE_CHECKING

from shared.errors import ValidationError
from shared.logging import get_logger

from ..catalog.service import validate_level

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..catalog.service import PgnCatalogService
    from .category_cache import CategoryCache


DEFAULT_MAX_LEVELS = 5


@dataclass
class PrefetchPlan:
    """Levels accepted for prefetch and the ones rejected by validation."""

    levels: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)


class CategoryPrefetcher:
    """Fire-and-forget cache warm-up for a handful of levels."""

    def __init__(
        self,
        catalog: "PgnCatalogService",
        cache: "CategoryCache",
        *,
        max_levels: int = DEFAULT_MAX_LEVELS,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.catalog = catalog
        self.cache = cache
        self.max_levels = max(1, max_levels)
        self.metrics = metrics
        self.logger = get_logger("pgn.prefetch")
        self._tasks: Set[asyncio.Task] = set()

    @staticmethod
    def split_levels(raw: Optional[str]) -> List[str]:
        """Split a comma-separated query value into non-empty keys."""
        if not raw:
            return []
        return [part.strip() for part in raw.split(",") if part.strip()]

    def plan(self, levels: Iterable[str]) -> PrefetchPlan:
        """Keep the first ``max_levels`` keys, deduplicate and drop invalid ones."""
        requested = [level for level in levels if level][:self.max_levels]

        plan = PrefetchPlan()
        for level in dict.fromkeys(requested):
            try:
                plan.levels.append(validate_level(level))
            except ValidationError:
                plan.rejected.append(level)
        return plan

    def schedule(self, levels: List[str]) -> Optional[asyncio.Task]:
        """Start prefetching in the background and return immediately."""
        if not levels:
            return None

        task = asyncio.create_task(self.prefetch(list(levels)), name="pgn-prefetch")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        self.logger.info("Prefetch scheduled", levels=levels)
        return task

    async def prefetch(self, levels: List[str]) -> Dict[str, Any]:
        """Warm each level not already cached. Failures are logged, not raised."""
        summary: Dict[str, Any] = {"planned": len(levels), "warmed": [], "skipped": [], "errors": {}}

        results = await asyncio.gather(
            *(self._prefetch_level(level) for level in levels),
            return_exceptions=True,
        )
        for level, outcome in zip(levels, results):
            if isinstance(outcome, BaseException):
                summary["errors"][level] = str(outcome) or type(outcome).__name__
            elif outcome == "hit":
                summary["skipped"].append(level)
            else:
                summary["warmed"].append(level)

        self.logger.info(
            "Prefetch completed",
            warmed=summary["warmed"],
            skipped=summary["skipped"],
            errors=len(summary["errors"]),
        )
        return summary

    async def _prefetch_level(self, level: str) -> str:
        if self.cache.has(level):
            self._record("skipped")
            return "hit"

        start = time.perf_counter()
        try:
            files = await self.catalog.load_category(level)
        except Exception as exc:
            self._record("error")
            self.logger.error(
                "Prefetch failed",
                category=level,
                error=str(exc),
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise

        self._record("warmed")
        self.logger.info("Prefetched category", category=level, files=len(files))
        return "warmed"

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("Prefetch task crashed", error=str(exc), error_type=type(exc).__name__)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait for all in-flight prefetch tasks to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel pending prefetches."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self.logger.info("Cancelled pending prefetches", count=len(tasks))

    def _record(self, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("prefetch_total", result=result)
