"""Factories for creating remote evaluation clients."""

import structlog

from experiment_client.cache.client import CachingRemoteEvaluationClient
from experiment_client.cache.models import CachingOptions
from experiment_client.cache.store import CacheStore, HybridCacheStore
from experiment_client.fetch.client import RemoteEvaluationClient
from experiment_client.fetch.config import RemoteEvaluationConfig


def _validate_deployment_key(deployment_key: str) -> None:
    if not deployment_key or not deployment_key.strip():
        msg = "Deployment key cannot be null or empty"
        raise ValueError(msg)


def initialize_remote(
    deployment_key: str,
    config: RemoteEvaluationConfig | None = None,
    *,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> RemoteEvaluationClient:
    """Create a remote evaluation client.

    Args:
        deployment_key: Deployment key for the evaluation service.
        config: Client configuration; defaults when omitted.
        logger: Bound logger; events are discarded when omitted.

    Returns:
        A client owning its own httpx connection pool.

    Raises:
        ValueError: If the deployment key is blank.
    """
    _validate_deployment_key(deployment_key)
    return RemoteEvaluationClient(deployment_key, config, logger=logger)


def initialize_remote_with_caching(
    deployment_key: str,
    config: RemoteEvaluationConfig | None = None,
    caching_options: CachingOptions | None = None,
    *,
    cache: CacheStore | None = None,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> CachingRemoteEvaluationClient:
    """Create a remote evaluation client wrapped in the caching decorator.

    Pass ``cache`` to reuse an existing store (for example one backed by a
    shared secondary tier); otherwise a local ``HybridCacheStore`` is created.

    Args:
        deployment_key: Deployment key for the evaluation service.
        config: Client configuration; defaults when omitted.
        caching_options: Caching options; defaults when omitted.
        cache: Existing cache store to use.
        logger: Bound logger shared by the client and cache.

    Returns:
        Caching client delegating misses to a new remote client.

    Raises:
        ValueError: If the deployment key is blank.
    """
    inner = initialize_remote(deployment_key, config, logger=logger)
    store = cache if cache is not None else HybridCacheStore(logger=logger)
    return CachingRemoteEvaluationClient(inner, store, caching_options, logger)
