"""Exponential backoff retry executor for asynchronous fetch operations."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
import structlog

from experiment_client.fetch.errors import FetchError
from experiment_client.fetch.metrics import FetchMetrics
from experiment_client.fetch.models import FetchErrorClass, RetryPolicy
from experiment_client.observability.logging import get_null_logger


T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


def classify_failure(error: BaseException) -> FetchErrorClass:
    """Classify the raw failure of a single attempt.

    Args:
        error: Exception raised by the attempt.

    Returns:
        The failure class driving the retry decision.
    """
    if isinstance(error, asyncio.CancelledError):
        return FetchErrorClass.CANCELLED

    if isinstance(error, FetchError):
        return error.error_class

    if isinstance(error, TimeoutError | httpx.TimeoutException):
        return FetchErrorClass.TIMEOUT

    if isinstance(error, httpx.TransportError):
        return FetchErrorClass.CONNECTION_ERROR

    return FetchErrorClass.UNKNOWN


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    log: structlog.stdlib.BoundLogger | None = None,
    metrics: FetchMetrics | None = None,
    sleep: SleepFunc = asyncio.sleep,
) -> T:
    """Execute an async operation with exponential backoff.

    The operation is invoked once, then up to ``policy.max_retries`` more
    times while its failures are classified as retryable. The last failure
    is re-raised unchanged. Cancelling the calling task aborts both an
    in-flight attempt and a pending backoff wait.

    Args:
        operation: Zero-argument coroutine function to invoke.
        policy: Retry policy supplying attempt limit and delays.
        log: Bound logger; events are discarded when omitted.
        metrics: Metrics sink for retries and final failures.
        sleep: Awaitable delay function, in seconds.

    Returns:
        The first successful result of the operation.

    Raises:
        Exception: The final failure of the operation.
        asyncio.CancelledError: If the calling task is cancelled.
    """
    log = log or get_null_logger()
    attempt = 0

    while True:
        try:
            return await operation()
        except asyncio.CancelledError:
            log.debug("fetch_cancelled", attempt=attempt)
            raise
        except Exception as e:
            error_class = classify_failure(e)

            if not policy.should_retry(error_class, attempt):
                if metrics is not None:
                    metrics.record_failure(error_class)
                log.error(
                    "fetch_failed",
                    attempts=attempt + 1,
                    error_class=error_class.value,
                    status_code=getattr(e, "status_code", None),
                    error=str(e),
                )
                raise

            delay_ms = policy.get_delay_ms(attempt)
            log.warning(
                "retry_scheduled",
                attempt=attempt + 1,
                max_retries=policy.max_retries,
                delay_ms=delay_ms,
                error_class=error_class.value,
                status_code=getattr(e, "status_code", None),
            )
            if metrics is not None:
                metrics.record_retry()

        await sleep(delay_ms / 1000.0)
        attempt += 1
