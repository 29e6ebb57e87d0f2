"""
Application configuration via pydantic-settings.

Credentials for the weather provider and the cache service are required:
building Settings without them raises a ValidationError and the process
refuses to start. Everything else has a sensible default for local dev.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "weather-proxy"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=51000, ge=1, le=65535)

    # Weather provider (Visual Crossing)
    visual_crossing_api_key: str = Field(min_length=1)
    visual_crossing_base_url: str = Field(
        default="https://weather.visualcrossing.com/VisualCrossingWebServices/rest/services"
    )

    # Cache (Upstash Redis REST)
    upstash_redis_url: str = Field(min_length=1)
    upstash_redis_token: str = Field(min_length=1)
    cache_ttl_s: int = Field(default=12 * 60 * 60, ge=1)  # 12 hours

    # Outbound HTTP
    http_timeout_s: float = Field(default=10.0, gt=0.0)

    # Rate Limiting
    rate_limit_per_window: int = Field(default=10, ge=1)
    rate_limit_window_s: int = Field(default=60, ge=1)
    # Only enable behind a proxy that overwrites X-Forwarded-For
    rate_limit_trust_forwarded_for: bool = False
    # Empty -> in-process counters; set to share the quota across workers
    rate_limit_redis_url: str = ""

    # Sentry
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = Field(default=0.1, ge=0.0, le=1.0)

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Build Settings once per process."""
    return Settings()
