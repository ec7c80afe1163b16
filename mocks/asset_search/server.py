"""
Mock asset store exposing the Cloudinary resources search endpoint.
"""

import asyncio
import base64
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Body, FastAPI, Header, HTTPException

from shared.logging import get_logger


_EXPRESSION = re.compile(r"folder:\s*(?P<folder>\S+)\s+AND\s+format:\s*(?P<format>\S+)")


@dataclass
class MockAsset:
    """Mock stored asset."""
    public_id: str
    format: str = "pgn"
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def folder(self) -> str:
        return self.public_id.rsplit("/", 1)[0] if "/" in self.public_id else ""

    def to_resource(self, cloud_name: str) -> Dict[str, Any]:
        path = f"{cloud_name}/raw/upload/{self.public_id}.{self.format}"
        return {
            "public_id": self.public_id,
            "folder": self.folder,
            "format": self.format,
            "resource_type": "raw",
            "created_at": self.created_at,
            "secure_url": f"https://res.cloudinary.com/{path}",
            "url": f"http://res.cloudinary.com/{path}",
        }


class MockAssetSearchServer:
    """Mock asset search server with failure injection."""

    def __init__(self, cloud_name: str = "demo", api_key: str = "key", api_secret: str = "secret"):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.logger = get_logger("mock.asset_search")
        self.app = FastAPI(title="Mock Asset Search", version="1.0.0")

        self.assets: List[MockAsset] = []
        self.requests: List[Dict[str, Any]] = []

        # Failure injection
        self.fail_with_status: Optional[int] = None
        self.delay_seconds: float = 0.0
        self.malformed = False

        self._create_default_assets()
        self._setup_routes()

    def _create_default_assets(self):
        for public_id in (
            "beginner/10_scholars_mate",
            "beginner/2_fools_mate",
            "beginner/Queen_endgames",
            "beginner/bishop_pair",
            "intermediate/1_sicilian",
            "intermediate/french_defence",
        ):
            self.add_asset(public_id)

    def add_asset(self, public_id: str, fmt: str = "pgn") -> MockAsset:
        asset = MockAsset(public_id=public_id, format=fmt)
        self.assets.append(asset)
        return asset

    def reset_failures(self):
        self.fail_with_status = None
        self.delay_seconds = 0.0
        self.malformed = False

    def _check_auth(self, authorization: Optional[str]) -> None:
        expected = base64.b64encode(f"{self.api_key}:{self.api_secret}".encode()).decode()
        if authorization != f"Basic {expected}":
            raise HTTPException(status_code=401, detail={"error": {"message": "Invalid credentials"}})

    def search(self, expression: str, max_results: int = 50) -> List[Dict[str, Any]]:
        """Evaluate the supported subset of the search expression."""
        match = _EXPRESSION.search(expression or "")
        if not match:
            raise HTTPException(status_code=400, detail={"error": {"message": "Unsupported expression"}})

        folder, fmt = match.group("folder"), match.group("format")
        hits = [asset for asset in self.assets if asset.folder == folder and asset.format == fmt]
        hits.sort(key=lambda asset: asset.created_at, reverse=True)
        return [asset.to_resource(self.cloud_name) for asset in hits[:max_results]]

    def _setup_routes(self):
        """Set up mock routes."""

        @self.app.post("/v1_1/{cloud_name}/resources/search")
        async def resources_search(
            cloud_name: str,
            body: Dict[str, Any] = Body(...),
            authorization: Optional[str] = Header(None),
        ):
            self.requests.append(body)
            self._check_auth(authorization)
            if cloud_name != self.cloud_name:
                raise HTTPException(status_code=404, detail={"error": {"message": "Unknown cloud"}})

            if self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)
            if self.fail_with_status:
                raise HTTPException(status_code=self.fail_with_status, detail={"error": {"message": "Injected failure"}})
            if self.malformed:
                return {"resources": "not-a-list"}

            resources = self.search(body.get("expression", ""), int(body.get("max_results", 50)))
            self.logger.debug("Mock search", expression=body.get("expression"), hits=len(resources))
            return {"total_count": len(resources), "time": 1, "resources": resources}


def create_app():
    """Create mock asset search application."""
    server = MockAssetSearchServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8090)
