"""Mock asset store search API."""

from .server import MockAssetSearchServer, MockAsset

__all__ = ["MockAssetSearchServer", "MockAsset"]
