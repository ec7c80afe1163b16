"""
Shared configuration management for the PGN Gateway.
"""

from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="PGN_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Asset store (Cloudinary search API); the unprefixed names are accepted
    # so existing deployments keep their .env files.
    cloudinary_api_url: str = "https://api.cloudinary.com/v1_1"
    cloudinary_cloud_name: str = Field(
        default="",
        validation_alias=AliasChoices("PGN_CLOUDINARY_CLOUD_NAME", "CLOUDINARY_CLOUD_NAME"),
    )
    cloudinary_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("PGN_CLOUDINARY_API_KEY", "CLOUDINARY_API_KEY"),
    )
    cloudinary_api_secret: str = Field(
        default="",
        validation_alias=AliasChoices("PGN_CLOUDINARY_API_SECRET", "CLOUDINARY_API_SECRET"),
    )
    asset_format: str = "pgn"
    asset_search_max_results: int = 500
    upstream_timeout_seconds: float = 8.0

    # Cache
    cache_ttl_seconds: int = 43200
    cache_sweep_interval_seconds: int = 600
    cache_max_stale_seconds: int = 86400
    prefetch_max_levels: int = 5
    response_max_age_seconds: int = 3600

    # Security
    admin_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("PGN_ADMIN_API_KEY", "ADMIN_API_KEY"),
    )
    cors_allow_origins: List[str] = ["*"]


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int = Field(default=5000, validation_alias=AliasChoices("PGN_PORT", "PORT"))
    host: str = "0.0.0.0"


def get_config(service_name: str, port: Optional[int] = None, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    if port is not None:
        overrides["port"] = port
    return ServiceConfig(service_name=service_name, **overrides)
