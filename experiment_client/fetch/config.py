"""Configuration models for the remote evaluation client."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from experiment_client.fetch.constants import (
    DEFAULT_FETCH_TIMEOUT_MS,
    SERVER_URL_EU,
    SERVER_URL_US,
)
from experiment_client.fetch.models import RetryPolicy


class ServerZone(str, Enum):
    """Data residency zone of the evaluation service."""

    US = "US"
    EU = "EU"


class RemoteEvaluationConfig(BaseModel):
    """Configuration for the remote evaluation client.

    Plain values only; environment loading lives in
    ``experiment_client.settings``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    server_zone: ServerZone = ServerZone.US
    server_url: str | None = Field(
        default=None, description="Custom server URL; overrides server_zone"
    )
    fetch_timeout_ms: Annotated[int, Field(ge=1, le=300_000)] = (
        DEFAULT_FETCH_TIMEOUT_MS
    )
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)

    @field_validator("server_url")
    @classmethod
    def validate_server_url(cls, v: str | None) -> str | None:
        """Validate that a custom server URL is absolute http(s)."""
        if v is None or v == "":
            return None
        if not v.startswith(("http://", "https://")):
            msg = f"server_url must start with http:// or https://, got {v!r}"
            raise ValueError(msg)
        return v.rstrip("/")

    @property
    def fetch_timeout_seconds(self) -> float:
        """Fetch deadline in seconds."""
        return self.fetch_timeout_ms / 1000.0

    def get_server_url(self) -> str:
        """Get the effective server URL.

        Returns:
            ``server_url`` when set, otherwise the URL of ``server_zone``.
        """
        if self.server_url:
            return self.server_url
        if self.server_zone == ServerZone.EU:
            return SERVER_URL_EU
        return SERVER_URL_US
