"""Resilient client for fetching experiment variant assignments.

Fetches variants for a subject from the remote evaluation service with
exponential backoff retries, and optionally caches results with
stampede protection so concurrent identical requests share one upstream call.
"""

from experiment_client.cache import (
    CacheEntryOptions,
    CachingOptions,
    CachingRemoteEvaluationClient,
    HybridCacheStore,
    InMemorySecondaryCache,
    derive_cache_key,
)
from experiment_client.factory import initialize_remote, initialize_remote_with_caching
from experiment_client.fetch import (
    FetchError,
    FetchErrorClass,
    FetchTimeoutError,
    InvalidSubjectError,
    RemoteEvaluationClient,
    RemoteEvaluationClientProtocol,
    RemoteEvaluationConfig,
    RetryPolicy,
    ServerZone,
    execute_with_retry,
)
from experiment_client.fetch.constants import LIBRARY_VERSION
from experiment_client.models import ExperimentUser, FetchOptions, Variant


__version__ = LIBRARY_VERSION

__all__ = [
    "CacheEntryOptions",
    "CachingOptions",
    "CachingRemoteEvaluationClient",
    "ExperimentUser",
    "FetchError",
    "FetchErrorClass",
    "FetchOptions",
    "FetchTimeoutError",
    "HybridCacheStore",
    "InMemorySecondaryCache",
    "InvalidSubjectError",
    "RemoteEvaluationClient",
    "RemoteEvaluationClientProtocol",
    "RemoteEvaluationConfig",
    "RetryPolicy",
    "ServerZone",
    "Variant",
    "derive_cache_key",
    "execute_with_retry",
    "initialize_remote",
    "initialize_remote_with_caching",
]
