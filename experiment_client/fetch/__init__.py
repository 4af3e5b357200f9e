"""Remote evaluation fetch layer with retries and failure classification.

This module provides resilient variant fetches with:
- Configurable retry policy with capped exponential backoff
- Failure classification (network, 5xx, 429, 4xx, timeout, cancellation)
- An overall fetch deadline distinct from caller cancellation
- Header redaction for security
- Metrics collection for observability
"""

from experiment_client.fetch.client import RemoteEvaluationClient
from experiment_client.fetch.config import RemoteEvaluationConfig, ServerZone
from experiment_client.fetch.errors import (
    FetchError,
    FetchTimeoutError,
    InvalidSubjectError,
    classify_status_code,
)
from experiment_client.fetch.metrics import FetchMetrics
from experiment_client.fetch.models import (
    RETRYABLE_ERROR_CLASSES,
    FetchErrorClass,
    RetryPolicy,
)
from experiment_client.fetch.protocols import RemoteEvaluationClientProtocol
from experiment_client.fetch.redact import redact_headers
from experiment_client.fetch.retry import classify_failure, execute_with_retry


__all__ = [
    # Client
    "RemoteEvaluationClient",
    "RemoteEvaluationClientProtocol",
    # Config
    "RemoteEvaluationConfig",
    "ServerZone",
    # Models
    "FetchErrorClass",
    "RETRYABLE_ERROR_CLASSES",
    "RetryPolicy",
    # Errors
    "FetchError",
    "FetchTimeoutError",
    "InvalidSubjectError",
    "classify_status_code",
    # Retry
    "classify_failure",
    "execute_with_retry",
    # Metrics
    "FetchMetrics",
    # Redaction
    "redact_headers",
]
