"""
Asset search client for the Cloudinary Admin Search API.
"""

from typing import Any, Dict, Optional

import httpx

from shared.logging import get_logger
from shared.errors import UpstreamError


SERVICE_NAME = "asset_store"


class AssetSearchClient:
    """Client for listing PGN assets stored under a folder."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        *,
        api_url: str = "https://api.cloudinary.com/v1_1",
        asset_format: str = "pgn",
        max_results: int = 500,
        timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.api_url = api_url.rstrip('/')
        self.asset_format = asset_format
        self.max_results = max_results
        self.timeout = timeout
        self._transport = transport
        self.logger = get_logger("pgn.asset_search")

    @property
    def search_url(self) -> str:
        return f"{self.api_url}/{self.cloud_name}/resources/search"

    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def build_query(self, folder: str) -> Dict[str, Any]:
        """Search body selecting the folder's PGN files, newest first."""
        return {
            "expression": f"folder:{folder} AND format:{self.asset_format}",
            "sort_by": [{"created_at": "desc"}],
            "max_results": self.max_results,
        }

    async def search_folder(self, folder: str) -> Any:
        """Return the raw ``resources`` member of the search response.

        The caller owns validation of the returned shape.
        """
        if not self.is_configured():
            raise UpstreamError(SERVICE_NAME, "asset store credentials are not configured")

        body = self.build_query(folder)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                auth=(self.api_key, self.api_secret),
                transport=self._transport,
            ) as client:
                response = await client.post(self.search_url, json=body)
        except httpx.HTTPError as exc:
            self.logger.error("Asset search request failed", category=folder, error=str(exc))
            raise UpstreamError(SERVICE_NAME, str(exc) or type(exc).__name__, {"category": folder}) from exc

        if response.status_code != 200:
            self.logger.error(
                "Asset search returned unexpected status",
                category=folder,
                status_code=response.status_code,
                response=response.text[:500],
            )
            raise UpstreamError(
                SERVICE_NAME,
                f"Unexpected status {response.status_code}",
                {"category": folder, "status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(SERVICE_NAME, "response body is not JSON", {"category": folder}) from exc

        if not isinstance(payload, dict):
            raise UpstreamError(SERVICE_NAME, "response body is not an object", {"category": folder})

        self.logger.debug(
            "Asset search completed",
            category=folder,
            total_count=payload.get("total_count"),
        )
        return payload.get("resources")
