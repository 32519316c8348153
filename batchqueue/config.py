"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from batchqueue.constants import (
    DEFAULT_KEY_PREFIX,
    DEFAULT_LOCK_TTL_SECONDS,
    DEFAULT_PENDING_TTL_SECONDS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 20
    key_prefix: str = DEFAULT_KEY_PREFIX
    script_mode: Literal["evalsha", "eval"] = "evalsha"

    # Batch Configuration
    lock_ttl_seconds: int = DEFAULT_LOCK_TTL_SECONDS
    pending_ttl_seconds: int = DEFAULT_PENDING_TTL_SECONDS

    # Sweeper Configuration
    sweeper_interval_seconds: int = 60
    sweeper_unique: bool = False

    # Observability
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "batchqueue"
    tracing_enabled: bool = False
    prometheus_port: int = 9090
    metrics_enabled: bool = True
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
