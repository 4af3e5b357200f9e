"""Data models for the variant cache."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Annotated, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


T = TypeVar("T")

DEFAULT_CACHE_KEY_PREFIX = "experiment"
DEFAULT_ABSOLUTE_EXPIRATION = timedelta(minutes=5)


class CacheEntryOptions(BaseModel):
    """Expirations applied to one stored value.

    ``expiration`` bounds the value in every tier. ``local_expiration``
    bounds how long the in-process tier serves it and falls back to
    ``expiration`` when unset. None means the value never expires.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    expiration: timedelta | None = None
    local_expiration: timedelta | None = None

    @field_validator("expiration", "local_expiration")
    @classmethod
    def validate_positive(cls, v: timedelta | None) -> timedelta | None:
        """Reject zero or negative expirations."""
        if v is not None and v <= timedelta(0):
            msg = f"Expiration must be positive, got {v}"
            raise ValueError(msg)
        return v

    @property
    def effective_local_expiration(self) -> timedelta | None:
        """Local expiration in effect, never longer than ``expiration``."""
        if self.local_expiration is None:
            return self.expiration
        if self.expiration is None:
            return self.local_expiration
        return min(self.local_expiration, self.expiration)


class CachingOptions(BaseModel):
    """Configuration for the caching evaluation client."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    cache_key_prefix: Annotated[str, Field(min_length=1, max_length=200)] = (
        DEFAULT_CACHE_KEY_PREFIX
    )
    absolute_expiration: timedelta | None = DEFAULT_ABSOLUTE_EXPIRATION
    local_cache_expiration: timedelta | None = Field(
        default=None,
        description="In-process expiration; None uses absolute_expiration",
    )

    def entry_options(self) -> CacheEntryOptions:
        """Build the per-entry expirations for cached fetches.

        Returns:
            Entry options carrying both expirations.
        """
        return CacheEntryOptions(
            expiration=self.absolute_expiration,
            local_expiration=self.local_cache_expiration,
        )


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A stored value with its expiration instants.

    Instants are readings of the store's monotonic clock; None never expires.

    Attributes:
        value: Cached value.
        expires_at: Absolute expiration instant.
        local_expires_at: Expiration of local visibility.
    """

    value: T
    expires_at: float | None
    local_expires_at: float | None

    def is_visible(self, now: float) -> bool:
        """Check whether the entry may still be served locally.

        Args:
            now: Current clock reading.

        Returns:
            True if neither expiration has passed.
        """
        for instant in (self.expires_at, self.local_expires_at):
            if instant is not None and now >= instant:
                return False
        return True
