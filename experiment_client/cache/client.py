"""Caching decorator for remote evaluation clients."""

from types import TracebackType

import structlog

from experiment_client.cache.keys import derive_cache_key
from experiment_client.cache.models import CachingOptions
from experiment_client.cache.store import CacheStore
from experiment_client.fetch.errors import InvalidSubjectError
from experiment_client.fetch.protocols import RemoteEvaluationClientProtocol
from experiment_client.models import ExperimentUser, FetchOptions, Variant
from experiment_client.observability.logging import get_null_logger


class CachingRemoteEvaluationClient:
    """Caches variant fetches of an inner client.

    Wraps any ``RemoteEvaluationClientProtocol`` behind the same ``fetch``
    signature. Concurrent fetches for the same subject and flag keys share
    one upstream call through the cache store; successful results are
    reused until they expire, failures are never cached.
    """

    def __init__(
        self,
        inner: RemoteEvaluationClientProtocol,
        cache: CacheStore,
        options: CachingOptions | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize the caching client.

        Args:
            inner: Client performing the actual fetch.
            cache: Cache store with single-flight ``get_or_create``.
            options: Caching options; defaults when omitted.
            logger: Bound logger; events are discarded when omitted.

        Raises:
            ValueError: If ``inner`` or ``cache`` is None.
        """
        if inner is None:
            msg = "inner client must not be None"
            raise ValueError(msg)
        if cache is None:
            msg = "cache must not be None"
            raise ValueError(msg)

        self._inner = inner
        self._cache = cache
        self._options = options or CachingOptions()
        self._entry_options = self._options.entry_options()
        self._log = (logger or get_null_logger()).bind(component="cache")

    @property
    def options(self) -> CachingOptions:
        """Caching options in effect."""
        return self._options

    async def fetch(
        self,
        user: ExperimentUser,
        options: FetchOptions | None = None,
    ) -> dict[str, Variant]:
        """Fetch variants for a user, serving repeats from cache.

        Args:
            user: Subject to evaluate.
            options: Optional fetch options.

        Returns:
            Mapping of flag key to assigned variant.

        Raises:
            InvalidSubjectError: If ``user`` is None.
            FetchError: If the upstream fetch fails.
        """
        if user is None:
            raise InvalidSubjectError

        cache_key = derive_cache_key(self._options.cache_key_prefix, user, options)

        async def _fetch_upstream() -> dict[str, Variant]:
            self._log.debug(
                "cache_miss_fetching",
                user_id=user.user_id,
                device_id=user.device_id,
            )
            return await self._inner.fetch(user, options)

        return await self._cache.get_or_create(
            cache_key, _fetch_upstream, self._entry_options
        )

    async def aclose(self) -> None:
        """Close the inner client when it holds resources."""
        close = getattr(self._inner, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "CachingRemoteEvaluationClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
