"""
Integration tests for the PGN retrieval flow against the mock asset store.
"""

import httpx
import pytest
import pytest_asyncio

from mocks.asset_search import MockAssetSearchServer
from service_pgn.app.adapters import AssetSearchClient
from service_pgn.app.caching.category_cache import CategoryCache
from service_pgn.app.main import PgnGatewayService
from shared.config import get_config


TTL = 3600


class ManualClock:

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestPgnFlow:
    """End-to-end flow: gateway → cache → mock asset search."""

    @pytest.fixture
    def asset_store(self):
        return MockAssetSearchServer(cloud_name="demo", api_key="key", api_secret="secret")

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def service(self, asset_store, clock):
        config = get_config("pgn", port=5000, admin_api_key="admin", upstream_timeout_seconds=0.5)
        search_client = AssetSearchClient(
            "demo",
            "key",
            "secret",
            api_url="http://asset-store.test/v1_1",
            timeout=0.5,
            transport=httpx.ASGITransport(app=asset_store.app),
        )
        cache = CategoryCache(TTL, max_stale_seconds=TTL, clock=clock)
        return PgnGatewayService(config, search_client=search_client, cache=cache)

    @pytest_asyncio.fixture
    async def gateway(self, service):
        transport = httpx.ASGITransport(app=service.app)
        async with httpx.AsyncClient(transport=transport, base_url="http://gateway.test") as client:
            yield client

    @pytest.mark.asyncio
    async def test_fetch_sorts_and_caches(self, gateway, asset_store):
        response = await gateway.get("/pgn-files", params={"level": "beginner"})

        assert response.status_code == 200
        assert [f["displayName"] for f in response.json()] == [
            "2_fools_mate", "10_scholars_mate", "bishop_pair", "Queen_endgames",
        ]
        assert response.json()[0]["url"].startswith("https://res.cloudinary.com/demo/")
        assert asset_store.requests[0]["expression"] == "folder:beginner AND format:pgn"

        again = await gateway.get("/pgn-files", params={"level": "beginner"})
        assert again.headers["X-Cache-Status"] == "HIT"
        assert len(asset_store.requests) == 1

    @pytest.mark.asyncio
    async def test_stale_fallback_when_store_fails(self, gateway, asset_store, clock):
        fresh = await gateway.get("/pgn-files", params={"level": "beginner"})
        clock.now += TTL + 1
        asset_store.fail_with_status = 503

        response = await gateway.get("/pgn-files", params={"level": "beginner"})

        assert response.status_code == 200
        assert response.headers["X-Cache-Status"] == "STALE"
        assert response.json() == fresh.json()

    @pytest.mark.asyncio
    async def test_failure_without_cache_is_500(self, gateway, asset_store):
        asset_store.malformed = True

        response = await gateway.get("/pgn-files", params={"level": "beginner"})

        assert response.status_code == 500
        assert response.json()["code"] == "UPSTREAM_ERROR"

    @pytest.mark.asyncio
    async def test_timeout_without_cache_is_500(self, gateway, asset_store):
        asset_store.delay_seconds = 2.0

        response = await gateway.get("/pgn-files", params={"level": "intermediate"})

        assert response.status_code == 500

    @pytest.mark.asyncio
    async def test_refresh_after_expiry_sees_new_files(self, gateway, asset_store, clock):
        await gateway.get("/pgn-files", params={"level": "intermediate"})
        asset_store.add_asset("intermediate/0_warmup")
        clock.now += TTL

        response = await gateway.get("/pgn-files", params={"level": "intermediate"})

        assert response.headers["X-Cache-Status"] == "MISS"
        assert [f["displayName"] for f in response.json()] == ["0_warmup", "1_sicilian", "french_defence"]

    @pytest.mark.asyncio
    async def test_invalidation_forces_refetch(self, gateway, asset_store):
        await gateway.get("/pgn-files", params={"level": "beginner"})

        cleared = await gateway.post("/clear-cache", json={"level": "beginner", "apiKey": "admin"})
        refetched = await gateway.get("/pgn-files", params={"level": "beginner"})

        assert cleared.json()["cleared"] == 1
        assert refetched.headers["X-Cache-Status"] == "MISS"
        assert len(asset_store.requests) == 2

    @pytest.mark.asyncio
    async def test_prefetch_warms_cache(self, gateway, service, asset_store):
        response = await gateway.get("/prefetch", params={"levels": "beginner,intermediate,empty"})

        assert response.status_code == 202
        assert response.json()["levels"] == ["beginner", "intermediate", "empty"]

        await service.prefetcher.wait_idle()

        assert service.cache.has("beginner")
        assert service.cache.has("intermediate")
        assert service.cache.get("empty") == []

        cached = await gateway.get("/pgn-files", params={"level": "intermediate"})
        assert cached.headers["X-Cache-Status"] == "HIT"
        assert len(asset_store.requests) == 3

    @pytest.mark.asyncio
    async def test_prefetch_failure_is_swallowed(self, gateway, service, asset_store):
        asset_store.fail_with_status = 500

        response = await gateway.get("/prefetch", params={"levels": "beginner"})
        await service.prefetcher.wait_idle()

        assert response.status_code == 202
        assert service.cache.get_stale("beginner") is None
        health = await gateway.get("/health")
        assert health.status_code == 200
