"""Application settings powered by Pydantic BaseSettings."""

from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from experiment_client.cache.models import CachingOptions
from experiment_client.fetch.config import RemoteEvaluationConfig, ServerZone
from experiment_client.fetch.constants import (
    DEFAULT_FETCH_RETRIES,
    DEFAULT_FETCH_TIMEOUT_MS,
    DEFAULT_RETRY_BACKOFF_SCALAR,
    DEFAULT_RETRY_MAX_DELAY_MS,
    DEFAULT_RETRY_MIN_DELAY_MS,
)
from experiment_client.fetch.models import RetryPolicy


class AppSettings(BaseSettings):
    """Centralized environment configuration.

    Maps ``EXPERIMENT_*`` environment variables onto the plain
    configuration models consumed by the clients.
    """

    model_config = SettingsConfigDict(
        env_prefix="EXPERIMENT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    deployment_key: str | None = None
    server_zone: ServerZone = ServerZone.US
    server_url: str | None = None
    fetch_timeout_ms: int = Field(default=DEFAULT_FETCH_TIMEOUT_MS, ge=1)
    fetch_retries: int = Field(default=DEFAULT_FETCH_RETRIES, ge=0)
    retry_backoff_min_ms: int = Field(default=DEFAULT_RETRY_MIN_DELAY_MS, ge=0)
    retry_backoff_max_ms: int = Field(default=DEFAULT_RETRY_MAX_DELAY_MS, ge=0)
    retry_backoff_scalar: float = Field(default=DEFAULT_RETRY_BACKOFF_SCALAR, gt=1.0)
    cache_key_prefix: str = "experiment"
    cache_ttl_seconds: float | None = Field(default=300.0, gt=0)
    local_cache_ttl_seconds: float | None = Field(default=None, gt=0)

    def to_remote_config(self) -> RemoteEvaluationConfig:
        """Build the remote evaluation client configuration."""
        return RemoteEvaluationConfig(
            server_zone=self.server_zone,
            server_url=self.server_url,
            fetch_timeout_ms=self.fetch_timeout_ms,
            retry_policy=RetryPolicy(
                max_retries=self.fetch_retries,
                min_delay_ms=self.retry_backoff_min_ms,
                max_delay_ms=self.retry_backoff_max_ms,
                backoff_scalar=self.retry_backoff_scalar,
            ),
        )

    def to_caching_options(self) -> CachingOptions:
        """Build the caching client options."""
        return CachingOptions(
            cache_key_prefix=self.cache_key_prefix,
            absolute_expiration=_seconds(self.cache_ttl_seconds),
            local_cache_expiration=_seconds(self.local_cache_ttl_seconds),
        )


def _seconds(value: float | None) -> timedelta | None:
    return None if value is None else timedelta(seconds=value)


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
