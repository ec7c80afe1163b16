"""
PGN gateway service: serves classified PGN file lists per level.
"""

import json
import secrets
from typing import Any, Dict, Optional

from fastapi import Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import AuthError, ValidationError
from shared.logging import set_category

from service_pgn.app.adapters import AssetSearchClient
from service_pgn.app.caching.category_cache import CategoryCache
from service_pgn.app.caching.prefetcher import CategoryPrefetcher
from service_pgn.app.catalog import PgnCatalogService, validate_level
from service_pgn.app.catalog.service import SOURCE_CACHE, SOURCE_STALE


CACHE_STATUS_HEADER = "X-Cache-Status"


class ClearCacheRequest(BaseModel):
    """Body of the cache invalidation endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    level: Optional[Any] = None
    api_key: Optional[str] = Field(default=None, alias="apiKey")

    @classmethod
    def from_payload(cls, payload: Any) -> "ClearCacheRequest":
        """Lenient parse: a non-object body or a non-string key counts as absent."""
        if not isinstance(payload, dict):
            return cls()
        api_key = payload.get("apiKey")
        return cls(level=payload.get("level"), api_key=api_key if isinstance(api_key, str) else None)


class PgnGatewayService(BaseService):
    """PGN gateway service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        search_client: Optional[AssetSearchClient] = None,
        cache: Optional[CategoryCache] = None,
    ):
        super().__init__("pgn", config or get_config("pgn"))

        self.search_client = search_client or AssetSearchClient(
            self.config.cloudinary_cloud_name,
            self.config.cloudinary_api_key,
            self.config.cloudinary_api_secret,
            api_url=self.config.cloudinary_api_url,
            asset_format=self.config.asset_format,
            max_results=self.config.asset_search_max_results,
            timeout=self.config.upstream_timeout_seconds,
        )
        self.cache = cache or CategoryCache(
            self.config.cache_ttl_seconds,
            sweep_interval_seconds=self.config.cache_sweep_interval_seconds,
            max_stale_seconds=self.config.cache_max_stale_seconds,
            metrics=self.metrics,
        )
        self.catalog = PgnCatalogService(
            self.search_client,
            self.cache,
            timeout_seconds=self.config.upstream_timeout_seconds,
            metrics=self.metrics,
        )
        self.prefetcher = CategoryPrefetcher(
            self.catalog,
            self.cache,
            max_levels=self.config.prefetch_max_levels,
            metrics=self.metrics,
        )

        if not self.search_client.is_configured():
            self.logger.warning("Asset store credentials missing; lookups will fail until configured")
        if not self.config.admin_api_key:
            self.logger.warning("Admin API key not configured; cache invalidation is disabled")

        self._setup_pgn_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.pgn_service = self

    async def on_startup(self) -> None:
        await self.cache.start()

    async def on_shutdown(self) -> None:
        await self.prefetcher.shutdown()
        await self.cache.stop()

    async def _check_dependencies(self) -> Dict[str, Any]:
        stats = self.cache.stats()
        return {
            "asset_store": "configured" if self.search_client.is_configured() else "unconfigured",
            "cache_entries": stats["entries"],
            "prefetch_pending": self.prefetcher.pending,
        }

    def _check_admin_key(self, provided: Optional[str]) -> None:
        expected = self.config.admin_api_key
        if not expected or not provided or not secrets.compare_digest(provided, expected):
            raise AuthError("Invalid or missing API key")

    def _setup_pgn_routes(self):
        """Set up PGN routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "pgn",
                "message": "PGN Gateway",
                "version": "1.0.0",
            }

        @self.app.get("/pgn-files")
        @self.app.get("/api/pgn-files")
        async def get_pgn_files(level: Optional[str] = Query(None)):
            """Return the classified PGN files for a level."""
            set_category(level)
            files, source = await self.catalog.fetch_category(level)

            if source == SOURCE_STALE:
                headers = {CACHE_STATUS_HEADER: "STALE", "Cache-Control": "no-cache"}
            else:
                headers = {
                    CACHE_STATUS_HEADER: "HIT" if source == SOURCE_CACHE else "MISS",
                    "Cache-Control": f"public, max-age={self.config.response_max_age_seconds}",
                }
            return JSONResponse(content=[f.to_dict() for f in files], headers=headers)

        @self.app.post("/clear-cache")
        async def clear_cache(request: Request):
            """Invalidate one level or flush the whole cache (admin)."""
            raw = await request.body()
            try:
                payload = json.loads(raw) if raw else None
            except ValueError:
                payload = None

            body = ClearCacheRequest.from_payload(payload)
            self._check_admin_key(body.api_key)

            if body.level is not None and body.level != "":
                level = validate_level(body.level)
                removed = self.cache.delete(level)
                return {
                    "success": True,
                    "message": f"Cache cleared for level: {level}",
                    "cleared": int(removed),
                }

            count = self.cache.clear()
            return {
                "success": True,
                "message": "All cache cleared",
                "cleared": count,
            }

        @self.app.get("/prefetch")
        async def prefetch(levels: Optional[str] = Query(None)):
            """Warm the cache for up to five levels in the background."""
            requested = CategoryPrefetcher.split_levels(levels)
            if not requested:
                raise ValidationError("Levels parameter is required", {"field": "levels"})

            plan = self.prefetcher.plan(requested)
            self.prefetcher.schedule(plan.levels)
            return JSONResponse(
                status_code=202,
                content={
                    "message": "Prefetching started",
                    "levels": plan.levels,
                    "rejected": plan.rejected,
                },
            )

        @self.app.get("/cache/stats")
        async def cache_stats():
            """Get cache statistics."""
            stats = self.cache.stats()
            stats["categories"] = sorted(self.cache.keys())
            return stats


def create_app():
    """Create FastAPI application."""
    service = PgnGatewayService()
    return service.app


def main():
    service = PgnGatewayService()
    service.run()


if __name__ == "__main__":
    main()
