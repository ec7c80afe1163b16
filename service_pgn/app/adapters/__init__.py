"""
Adapters package for the PGN Gateway Service.

Contains the HTTP client for the asset store search API. Adapters
encapsulate base URLs, request shapes and the mapping of transport
failures onto shared errors. They never touch the cache.
"""

from .asset_search_client import AssetSearchClient

__all__ = ["AssetSearchClient"]
