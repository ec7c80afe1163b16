"""
PGN catalog layer: classification and cache-first retrieval.
"""

from .classifier import PgnFile, classify
from .service import PgnCatalogService, validate_level

__all__ = ["PgnFile", "classify", "PgnCatalogService", "validate_level"]
