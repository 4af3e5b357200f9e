"""Integration tests composing the caching client over the HTTP client."""

import asyncio
from datetime import timedelta

import httpx
import pytest

from experiment_client.cache.client import CachingRemoteEvaluationClient
from experiment_client.cache.models import CachingOptions
from experiment_client.cache.store import HybridCacheStore, InMemorySecondaryCache
from experiment_client.fetch.client import RemoteEvaluationClient
from experiment_client.fetch.config import RemoteEvaluationConfig
from experiment_client.fetch.errors import FetchError
from experiment_client.fetch.metrics import FetchMetrics
from experiment_client.fetch.models import RetryPolicy
from experiment_client.models import ExperimentUser, FetchOptions
from tests.helpers.fakes import FakeClock, RecordingSleep


class FlakyService:
    """Mock evaluation service that fails a scripted number of times."""

    def __init__(self, failures: int = 0, failure_status: int = 503) -> None:
        self.failures = failures
        self.failure_status = failure_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.failures > 0:
            self.failures -= 1
            return httpx.Response(self.failure_status)
        user_id = request.url.params.get("user_id", "anonymous")
        return httpx.Response(
            200, json={"flag-a": {"key": "on", "value": f"on-for-{user_id}"}}
        )


def build_pipeline(
    service: FlakyService,
    store: HybridCacheStore | None = None,
    caching_options: CachingOptions | None = None,
) -> CachingRemoteEvaluationClient:
    """Assemble caching client, HTTP client, and mock transport."""
    inner = RemoteEvaluationClient(
        "server-key-5678",
        RemoteEvaluationConfig(retry_policy=RetryPolicy(max_retries=3)),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(service)),
        sleep=RecordingSleep(),
    )
    return CachingRemoteEvaluationClient(
        inner, store if store is not None else HybridCacheStore(), caching_options
    )


class TestCachedFetchPipeline:
    """End-to-end behavior of retries behind the cache."""

    @pytest.mark.asyncio
    async def test_stampede_with_retries_issues_one_logical_fetch(self) -> None:
        """Test that concurrent callers share one retried upstream fetch."""
        service = FlakyService(failures=2)
        user = ExperimentUser(user_id="u1")

        async with build_pipeline(service) as client:
            results = await asyncio.gather(*(client.fetch(user) for _ in range(20)))

        assert len(service.requests) == 3
        assert {r["flag-a"].value for r in results} == {"on-for-u1"}
        metrics = FetchMetrics.get_instance()
        assert metrics.http_retry_total == 2
        assert metrics.cache_coalesced_total == 19

    @pytest.mark.asyncio
    async def test_permanent_failure_not_cached(self) -> None:
        """Test that a 4xx failure is surfaced and the next call retries."""
        service = FlakyService(failures=1, failure_status=403)
        user = ExperimentUser(user_id="u1")

        async with build_pipeline(service) as client:
            with pytest.raises(FetchError) as exc_info:
                await client.fetch(user)
            variants = await client.fetch(user)

        assert exc_info.value.status_code == 403
        assert variants["flag-a"].value == "on-for-u1"
        assert len(service.requests) == 2

    @pytest.mark.asyncio
    async def test_flag_keys_partition_cache(self) -> None:
        """Test that distinct flag key sets are cached separately."""
        service = FlakyService()
        user = ExperimentUser(user_id="u1")

        async with build_pipeline(service) as client:
            await client.fetch(user, FetchOptions(flag_keys=["a"]))
            await client.fetch(user, FetchOptions(flag_keys=["b"]))
            await client.fetch(user, FetchOptions(flag_keys=["a"]))

        assert len(service.requests) == 2

    @pytest.mark.asyncio
    async def test_shared_secondary_tier_across_instances(self) -> None:
        """Test that two processes sharing a secondary tier fetch once."""
        service = FlakyService()
        clock = FakeClock()
        secondary = InMemorySecondaryCache(clock=clock)
        options = CachingOptions(absolute_expiration=timedelta(minutes=1))
        user = ExperimentUser(device_id="d1")

        first = build_pipeline(service, HybridCacheStore(secondary, clock=clock), options)
        second = build_pipeline(
            service, HybridCacheStore(secondary, clock=clock), options
        )
        async with first, second:
            await first.fetch(user)
            await second.fetch(user)
            assert len(service.requests) == 1

            clock.advance(61)
            await second.fetch(user)

        assert len(service.requests) == 2
