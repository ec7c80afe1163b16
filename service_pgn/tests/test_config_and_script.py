"""
Tests for configuration loading and the prefetch CLI helper.
"""

import importlib.util
from pathlib import Path

import httpx
import pytest

from shared.config import get_config


SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "prefetch_levels.py"


@pytest.fixture
def prefetch_script():
    spec = importlib.util.spec_from_file_location("prefetch_levels", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestConfig:

    def test_defaults(self, monkeypatch):
        for name in ("PORT", "PGN_PORT", "ADMIN_API_KEY", "PGN_ADMIN_API_KEY"):
            monkeypatch.delenv(name, raising=False)

        config = get_config("pgn")

        assert config.port == 5000
        assert config.cache_ttl_seconds == 43200
        assert config.upstream_timeout_seconds == 8.0
        assert config.prefetch_max_levels == 5
        assert config.admin_api_key is None

    def test_original_environment_names(self, monkeypatch):
        monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "chess-cloud")
        monkeypatch.setenv("CLOUDINARY_API_KEY", "k")
        monkeypatch.setenv("CLOUDINARY_API_SECRET", "s")
        monkeypatch.setenv("PORT", "7000")
        monkeypatch.setenv("ADMIN_API_KEY", "admin")

        config = get_config("pgn")

        assert config.cloudinary_cloud_name == "chess-cloud"
        assert config.cloudinary_api_secret == "s"
        assert config.port == 7000
        assert config.admin_api_key == "admin"

    def test_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("PGN_CACHE_TTL_SECONDS", "60")
        monkeypatch.setenv("PGN_LOG_LEVEL", "debug")

        config = get_config("pgn")

        assert config.cache_ttl_seconds == 60
        assert config.log_level == "debug"

    def test_explicit_overrides_win(self, monkeypatch):
        monkeypatch.setenv("PORT", "7000")

        assert get_config("pgn", port=9000).port == 9000


class TestPrefetchScript:

    def test_batch_levels(self, prefetch_script):
        assert prefetch_script.batch_levels(["a", "b", "c"], 2) == [["a", "b"], ["c"]]
        assert prefetch_script.batch_levels(["a"], 0) == [["a"]]

    def test_prefetch_sends_batches(self, prefetch_script):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            levels = request.url.params["levels"].split(",")
            seen.append(levels)
            return httpx.Response(202, json={"levels": levels, "rejected": []})

        client = httpx.Client(base_url="http://gateway.test", transport=httpx.MockTransport(handler))

        acks = prefetch_script.prefetch(
            "http://gateway.test",
            ["l1", "l2", "l3", "l4", "l5", "l6", "l7"],
            batch_size=5,
            timeout=1.0,
            client=client,
        )

        assert seen == [["l1", "l2", "l3", "l4", "l5"], ["l6", "l7"]]
        assert acks[1] == {"levels": ["l6", "l7"], "rejected": []}

    def test_prefetch_raises_on_error_status(self, prefetch_script):
        client = httpx.Client(
            base_url="http://gateway.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(400, json={"code": "VALIDATION_ERROR"})),
        )

        with pytest.raises(httpx.HTTPStatusError):
            prefetch_script.prefetch("http://gateway.test", ["a"], batch_size=5, timeout=1.0, client=client)
