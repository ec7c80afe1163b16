"""
PGN catalog service: cache-first retrieval of classified PGN file lists.
"""

from __future__ import annotations

import asyncio
import re
import time
from typing import List, Optional, Tuple, TYPE_CHECKING

from shared.errors import UpstreamError, ValidationError
from shared.logging import get_logger

from service_pgn.app.adapters.asset_search_client import AssetSearchClient, SERVICE_NAME
from service_pgn.app.caching.category_cache import CategoryCache, CACHE_TYPE
from service_pgn.app.catalog.classifier import PgnFile, classify, parse_resources

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


_LEVEL_PATTERN = re.compile(r"^[A-Za-z0-9_]{1,64}$")

SOURCE_CACHE = "cache"
SOURCE_UPSTREAM = "upstream"
SOURCE_STALE = "stale"


def validate_level(level: Optional[str]) -> str:
    """Return the level unchanged, or raise ValidationError."""
    if level is None or level == "":
        raise ValidationError("Level is required", {"field": "level"})
    if not isinstance(level, str) or not _LEVEL_PATTERN.match(level):
        raise ValidationError(
            "Level may only contain letters, digits and underscores (max 64 characters)",
            {"field": "level", "value": str(level)[:100]},
        )
    return level


class PgnCatalogService:
    """Coordinates the category cache and the asset search client."""

    def __init__(
        self,
        search_client: AssetSearchClient,
        cache: CategoryCache,
        *,
        timeout_seconds: float = 8.0,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.search_client = search_client
        self.cache = cache
        self.timeout_seconds = timeout_seconds
        self.metrics = metrics
        self.logger = get_logger("pgn.catalog")

    async def fetch_category(self, level: Optional[str]) -> Tuple[List[PgnFile], str]:
        """
        Retrieve the classified files for a level.

        Returns the files and the source that satisfied the request:
        "cache", "upstream", or "stale" (expired cache served after an
        upstream failure).
        """
        level = validate_level(level)

        cached = self.cache.get(level)
        if cached is not None:
            return cached, SOURCE_CACHE

        try:
            files = await self.load_category(level)
        except UpstreamError as exc:
            stale = self.cache.get_stale(level)
            if stale is None:
                self.logger.error(
                    "Upstream fetch failed and no cached copy exists",
                    category=level,
                    error=exc.message,
                )
                raise

            self.logger.warning(
                "Serving stale cache after upstream failure",
                category=level,
                error=exc.message,
                files=len(stale),
            )
            if self.metrics:
                self.metrics.increment_counter("stale_responses_total", cache_type=CACHE_TYPE)
            return stale, SOURCE_STALE

        return files, SOURCE_UPSTREAM

    async def load_category(self, level: str) -> List[PgnFile]:
        """Query the asset store, classify, and populate the cache.

        Raises UpstreamError on timeout, transport failure or a malformed
        response; the cache is left untouched in that case.
        """
        level = validate_level(level)
        start = time.perf_counter()
        outcome = "error"
        try:
            try:
                resources = await asyncio.wait_for(
                    self.search_client.search_folder(level),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError as exc:
                outcome = "timeout"
                raise UpstreamError(
                    SERVICE_NAME,
                    f"search timed out after {self.timeout_seconds:g}s",
                    {"category": level},
                ) from exc
            except UpstreamError:
                raise
            except Exception as exc:
                raise UpstreamError(
                    SERVICE_NAME,
                    f"search failed: {exc}",
                    {"category": level, "error_type": type(exc).__name__},
                ) from exc

            if not isinstance(resources, list):
                outcome = "malformed"
                raise UpstreamError(
                    SERVICE_NAME,
                    "search response has no resource list",
                    {"category": level, "type": type(resources).__name__},
                )

            try:
                files = classify(parse_resources(resources))
            except ValueError as exc:
                outcome = "malformed"
                raise UpstreamError(SERVICE_NAME, f"malformed resource: {exc}", {"category": level}) from exc

            outcome = "success"
        finally:
            self._record_upstream(outcome, time.perf_counter() - start)

        self.cache.set(level, files)
        self.logger.info("Fetched category from asset store", category=level, files=len(files))
        return files

    def _record_upstream(self, outcome: str, duration: float) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("upstream_requests_total", outcome=outcome)
        self.metrics.observe_histogram("upstream_request_duration_seconds", duration)
