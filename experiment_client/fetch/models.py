"""Data models for the remote evaluation fetch layer."""

import math
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator

from experiment_client.fetch.constants import (
    DEFAULT_FETCH_RETRIES,
    DEFAULT_RETRY_BACKOFF_SCALAR,
    DEFAULT_RETRY_MAX_DELAY_MS,
    DEFAULT_RETRY_MIN_DELAY_MS,
)


class FetchErrorClass(str, Enum):
    """Classification of fetch failures for retry decisions and metrics.

    - CONNECTION_ERROR: Transport failure with no HTTP status (retryable)
    - HTTP_5XX: Server error (retryable)
    - RATE_LIMITED: 429 Too Many Requests (retryable)
    - HTTP_4XX: Client error other than 429 (never retried)
    - TIMEOUT: Fetch deadline exceeded (never retried)
    - CANCELLED: Caller aborted the fetch (never retried)
    - UNKNOWN: Not a transport or HTTP failure (never retried)
    """

    CONNECTION_ERROR = "CONNECTION_ERROR"
    HTTP_5XX = "HTTP_5XX"
    RATE_LIMITED = "RATE_LIMITED"
    HTTP_4XX = "HTTP_4XX"
    TIMEOUT = "TIMEOUT"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"

    @property
    def is_retryable(self) -> bool:
        """Whether failures of this class may succeed on a later attempt."""
        return self in RETRYABLE_ERROR_CLASSES


RETRYABLE_ERROR_CLASSES = frozenset(
    {
        FetchErrorClass.CONNECTION_ERROR,
        FetchErrorClass.HTTP_5XX,
        FetchErrorClass.RATE_LIMITED,
    }
)


class RetryPolicy(BaseModel):
    """Configuration for retry behavior.

    Controls how many times to retry and the backoff strategy. Delays grow
    exponentially from ``min_delay_ms`` and are capped at ``max_delay_ms``:
    delay = min(min_delay_ms * backoff_scalar ^ attempt, max_delay_ms)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[int, Field(ge=0)] = DEFAULT_FETCH_RETRIES
    min_delay_ms: Annotated[int, Field(ge=0)] = DEFAULT_RETRY_MIN_DELAY_MS
    max_delay_ms: Annotated[int, Field(ge=0)] = DEFAULT_RETRY_MAX_DELAY_MS
    backoff_scalar: Annotated[float, Field(gt=1.0)] = DEFAULT_RETRY_BACKOFF_SCALAR

    @model_validator(mode="after")
    def validate_delay_bounds(self) -> "RetryPolicy":
        """Ensure the minimum delay does not exceed the maximum."""
        if self.min_delay_ms > self.max_delay_ms:
            msg = (
                f"min_delay_ms ({self.min_delay_ms}) must not exceed "
                f"max_delay_ms ({self.max_delay_ms})"
            )
            raise ValueError(msg)
        return self

    def should_retry(self, error_class: FetchErrorClass, attempt: int) -> bool:
        """Determine if a failed attempt should be retried.

        Args:
            error_class: Classification of the failure.
            attempt: Current attempt number (0-indexed).

        Returns:
            True if the request should be retried.
        """
        if attempt >= self.max_retries:
            return False
        return error_class.is_retryable

    def get_delay_ms(self, attempt: int) -> int:
        """Calculate delay before the next retry attempt.

        Args:
            attempt: Current attempt number (0-indexed).

        Returns:
            Delay in milliseconds, truncated to an integer.
        """
        if attempt < 0:
            msg = f"attempt must be non-negative, got {attempt}"
            raise ValueError(msg)

        if attempt == 0 or self.min_delay_ms == 0:
            return self.min_delay_ms

        # Stop growing once the cap is reached so large attempts cannot overflow
        ceiling = math.log(self.max_delay_ms / self.min_delay_ms)
        if attempt * math.log(self.backoff_scalar) >= ceiling:
            return self.max_delay_ms

        delay = self.min_delay_ms * (self.backoff_scalar**attempt)
        return int(min(delay, self.max_delay_ms))
