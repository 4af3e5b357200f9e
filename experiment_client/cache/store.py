"""Two-tier cache store with single-flight value creation.

The local tier lives in process memory and is evicted lazily on read. An
optional secondary tier (typically shared between processes) is consulted
on a local miss before the factory runs. Concurrent misses for one key
share a single factory execution; misses for different keys run
independently.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Protocol, TypeVar

import structlog

from experiment_client.cache.models import CacheEntry, CacheEntryOptions
from experiment_client.fetch.metrics import FetchMetrics
from experiment_client.observability.logging import get_null_logger


T = TypeVar("T")

Clock = Callable[[], float]


class CacheStore(Protocol):
    """Protocol for cache stores used by the caching client.

    Implementations must run ``factory`` at most once concurrently per key.
    """

    async def get_or_create(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        options: CacheEntryOptions | None = None,
    ) -> T:
        """Return the cached value for a key, creating it on a miss.

        Args:
            key: Cache key.
            factory: Coroutine function producing the value on a miss.
            options: Expirations for a newly created value.

        Returns:
            The cached or freshly created value.
        """
        ...

    async def remove(self, key: str) -> None:
        """Remove a key from every tier.

        Args:
            key: Cache key.
        """
        ...


class SecondaryCache(Protocol):
    """Protocol for the secondary (shared) cache tier."""

    async def get(self, key: str) -> Any | None:
        """Get a value, or None when absent or expired."""
        ...

    async def set(self, key: str, value: Any, ttl: timedelta | None) -> None:
        """Store a value with an optional time-to-live."""
        ...

    async def delete(self, key: str) -> None:
        """Delete a value if present."""
        ...


class InMemorySecondaryCache:
    """In-process secondary tier.

    Stands in for a shared cache in tests and single-process deployments.
    """

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_visible(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    async def set(self, key: str, value: Any, ttl: timedelta | None) -> None:
        expires_at = None if ttl is None else self._clock() + ttl.total_seconds()
        self._entries[key] = CacheEntry(
            value=value, expires_at=expires_at, local_expires_at=None
        )

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        # An empty tier is still a configured tier
        return True


@dataclass
class _Flight:
    """An in-progress value creation shared by every waiter on a key."""

    task: "asyncio.Task[Any]"
    waiters: int = field(default=0)


class HybridCacheStore:
    """Cache store with a local tier, optional secondary tier, and
    stampede protection.

    Not thread-safe: all calls must come from one event loop.
    """

    def __init__(
        self,
        secondary: SecondaryCache | None = None,
        *,
        clock: Clock = time.monotonic,
        logger: structlog.stdlib.BoundLogger | None = None,
        metrics: FetchMetrics | None = None,
    ) -> None:
        """Initialize the cache store.

        Args:
            secondary: Optional shared tier consulted on local misses.
            clock: Monotonic clock in seconds.
            logger: Bound logger; events are discarded when omitted.
            metrics: Metrics sink; the shared instance when omitted.
        """
        self._secondary = secondary
        self._clock = clock
        self._local: dict[str, CacheEntry[Any]] = {}
        self._flights: dict[str, _Flight] = {}
        self._metrics = metrics or FetchMetrics.get_instance()
        self._log = (logger or get_null_logger()).bind(component="cache")

    async def get_or_create(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        options: CacheEntryOptions | None = None,
    ) -> T:
        """Return the cached value for a key, creating it on a miss.

        All callers that miss on the same key while a creation is in
        progress await that one creation and receive its value or its
        exception. Failures are never stored. Cancelling a caller detaches
        only that caller; the shared creation is cancelled once no caller
        is waiting for it.

        Args:
            key: Cache key.
            factory: Coroutine function producing the value on a miss.
            options: Expirations for a newly created value.

        Returns:
            The cached or freshly created value.
        """
        entry = self._get_local(key)
        if entry is not None:
            self._metrics.record_cache_hit()
            self._log.debug("cache_hit", key=key)
            value: T = entry.value
            return value

        flight = self._flights.get(key)
        if flight is None:
            self._metrics.record_cache_miss()
            task = asyncio.ensure_future(
                self._create(key, factory, options or CacheEntryOptions())
            )
            flight = _Flight(task=task)
            self._flights[key] = flight
        else:
            self._metrics.record_coalesced()
            self._log.debug("cache_coalesced", key=key, waiters=flight.waiters)

        return await self._join(key, flight)

    async def remove(self, key: str) -> None:
        """Remove a key from every tier.

        An in-progress creation for the key is not interrupted and will
        store its result when it completes.

        Args:
            key: Cache key.
        """
        self._local.pop(key, None)
        if self._secondary is not None:
            await self._secondary.delete(key)
        self._log.debug("cache_removed", key=key)

    def clear_local(self) -> None:
        """Drop every entry of the local tier."""
        self._local.clear()

    def in_flight(self, key: str) -> bool:
        """Check whether a creation is in progress for a key."""
        return key in self._flights

    def __len__(self) -> int:
        return len(self._local)

    def __bool__(self) -> bool:
        # An empty store is still a configured store
        return True

    async def _join(self, key: str, flight: _Flight) -> Any:
        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                # Last waiter left; nobody needs the value any more
                if self._flights.get(key) is flight:
                    del self._flights[key]
                flight.task.cancel()
                self._log.debug("cache_creation_abandoned", key=key)

    async def _create(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        options: CacheEntryOptions,
    ) -> T:
        try:
            if self._secondary is not None:
                shared = await self._secondary.get(key)
                if shared is not None:
                    self._log.debug("cache_secondary_hit", key=key)
                    self._set_local(key, shared, options)
                    value: T = shared
                    return value

            self._log.debug("cache_miss", key=key)
            created = await factory()
            self._set_local(key, created, options)
            if self._secondary is not None:
                await self._secondary.set(key, created, options.expiration)
            return created
        except Exception:
            self._log.debug("cache_creation_failed", key=key)
            raise
        finally:
            # Released before the task completes so later callers start afresh
            self._release(key)

    def _get_local(self, key: str) -> CacheEntry[Any] | None:
        entry = self._local.get(key)
        if entry is None:
            return None
        if not entry.is_visible(self._clock()):
            del self._local[key]
            self._log.debug("cache_expired", key=key)
            return None
        return entry

    def _set_local(self, key: str, value: Any, options: CacheEntryOptions) -> None:
        now = self._clock()
        expiration = options.expiration
        local_expiration = options.effective_local_expiration
        self._local[key] = CacheEntry(
            value=value,
            expires_at=None if expiration is None else now + expiration.total_seconds(),
            local_expires_at=(
                None
                if local_expiration is None
                else now + local_expiration.total_seconds()
            ),
        )

    def _release(self, key: str) -> None:
        flight = self._flights.get(key)
        if flight is not None and flight.task is asyncio.current_task():
            del self._flights[key]
