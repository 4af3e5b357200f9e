"""Variant caching with stampede protection."""

from experiment_client.cache.client import CachingRemoteEvaluationClient
from experiment_client.cache.keys import derive_cache_key
from experiment_client.cache.models import (
    DEFAULT_ABSOLUTE_EXPIRATION,
    DEFAULT_CACHE_KEY_PREFIX,
    CacheEntry,
    CacheEntryOptions,
    CachingOptions,
)
from experiment_client.cache.store import (
    CacheStore,
    HybridCacheStore,
    InMemorySecondaryCache,
    SecondaryCache,
)


__all__ = [
    # Client
    "CachingRemoteEvaluationClient",
    # Keys
    "derive_cache_key",
    # Models
    "CacheEntry",
    "CacheEntryOptions",
    "CachingOptions",
    "DEFAULT_ABSOLUTE_EXPIRATION",
    "DEFAULT_CACHE_KEY_PREFIX",
    # Stores
    "CacheStore",
    "HybridCacheStore",
    "InMemorySecondaryCache",
    "SecondaryCache",
]
