"""Application settings loaded from environment variables and config files."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt, SecretStr
from pydantic.networks import PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

from shortsfeed.config import RATE_LIMITS_PATH


class ServiceRateLimit(BaseModel):
    """Rate limit configuration for an external service."""

    requests_per_minute: Optional[PositiveInt] = None
    burst: Optional[PositiveInt] = None

    model_config = ConfigDict(extra="forbid")


class RateLimitConfig(BaseModel):
    """Top-level configuration for all service rate limits."""

    services: Dict[str, ServiceRateLimit] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


def _load_rate_limits(rate_limit_path: Path) -> RateLimitConfig:
    if not rate_limit_path.exists():
        return RateLimitConfig()

    raw_data = yaml.safe_load(rate_limit_path.read_text(encoding="utf-8")) or {}

    services: Dict[str, ServiceRateLimit] = {}
    for service_name, config in (raw_data.get("services") or {}).items():
        services[service_name] = ServiceRateLimit(**(config or {}))
    return RateLimitConfig(services=services)


class Settings(BaseSettings):
    """Primary application settings for the shorts feed."""

    database_url: Optional[PostgresDsn] = Field(default=None, alias="DATABASE_URL")
    database_pool_min_connections: PositiveInt = Field(default=1, alias="DATABASE_POOL_MIN_CONNECTIONS")
    database_pool_max_connections: PositiveInt = Field(default=5, alias="DATABASE_POOL_MAX_CONNECTIONS")
    youtube_api_key: Optional[SecretStr] = Field(default=None, alias="YOUTUBE_API_KEY")
    youtube_api_base_url: str = Field(default="https://www.googleapis.com/youtube/v3", alias="YOUTUBE_API_BASE_URL")
    youtube_request_timeout_seconds: PositiveFloat = Field(default=15.0, alias="YOUTUBE_REQUEST_TIMEOUT_SECONDS")
    cron_secret: Optional[SecretStr] = Field(default=None, alias="CRON_SECRET")

    shorts_max_duration_seconds: PositiveInt = Field(default=70, alias="SHORTS_MAX_DURATION_SECONDS")
    target_shorts_per_channel: PositiveInt = Field(default=100, alias="TARGET_SHORTS_PER_CHANNEL")
    max_search_pages: PositiveInt = Field(default=10, alias="MAX_SEARCH_PAGES")
    max_search_results: PositiveInt = Field(default=500, alias="MAX_SEARCH_RESULTS")
    recency_window_years: PositiveInt = Field(default=3, alias="RECENCY_WINDOW_YEARS")

    detail_batch_pause_seconds: float = Field(default=0.1, ge=0, alias="DETAIL_BATCH_PAUSE_SECONDS")
    channel_pause_seconds: float = Field(default=2.0, ge=0, alias="CHANNEL_PAUSE_SECONDS")
    api_max_attempts: PositiveInt = Field(default=3, alias="API_MAX_ATTEMPTS")
    api_backoff_seconds: float = Field(default=1.0, ge=0, alias="API_BACKOFF_SECONDS")
    ingestion_deadline_seconds: PositiveFloat = Field(default=300.0, alias="INGESTION_DEADLINE_SECONDS")

    feed_cache_ttl_seconds: PositiveFloat = Field(default=300.0, alias="FEED_CACHE_TTL_SECONDS")
    feed_cache_max_entries: PositiveInt = Field(default=256, alias="FEED_CACHE_MAX_ENTRIES")

    rate_limits: RateLimitConfig = Field(default_factory=lambda: _load_rate_limits(RATE_LIMITS_PATH))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()


__all__ = ["RateLimitConfig", "ServiceRateLimit", "Settings", "get_settings"]
