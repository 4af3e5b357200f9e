"""HTTP client for the remote evaluation service with retries and a deadline."""

import asyncio
import time
from types import TracebackType

import httpx
import structlog
from pydantic import TypeAdapter

from experiment_client.fetch.config import RemoteEvaluationConfig
from experiment_client.fetch.constants import (
    AUTHORIZATION_HEADER,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    LIBRARY_NAME,
    LIBRARY_VERSION,
    TRACKING_DISABLED,
    TRACKING_HEADER,
    VARDATA_PATH,
)
from experiment_client.fetch.errors import (
    FetchError,
    FetchTimeoutError,
    InvalidSubjectError,
)
from experiment_client.fetch.metrics import FetchMetrics
from experiment_client.fetch.models import FetchErrorClass
from experiment_client.fetch.redact import redact_deployment_key, redact_headers
from experiment_client.fetch.retry import SleepFunc, execute_with_retry
from experiment_client.models import ExperimentUser, FetchOptions, Variant
from experiment_client.observability.logging import get_null_logger


_VARIANTS_ADAPTER = TypeAdapter(dict[str, Variant])

# Error bodies are logged truncated
MAX_LOGGED_BODY_CHARS = 500


class RemoteEvaluationClient:
    """Fetches variant assignments from the remote evaluation service.

    Provides variant fetches with:
    - Exponential backoff retries for transient failures
    - An overall deadline covering every attempt and backoff wait
    - Authorization header redaction in logs
    - Metrics collection
    """

    def __init__(
        self,
        deployment_key: str,
        config: RemoteEvaluationConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
        metrics: FetchMetrics | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the remote evaluation client.

        Args:
            deployment_key: Deployment key sent as the API key.
            config: Client configuration; defaults when omitted.
            http_client: Shared httpx client. When omitted, the client
                creates and owns one.
            logger: Bound logger; events are discarded when omitted.
            metrics: Metrics sink; the shared instance when omitted.
            sleep: Awaitable delay used between retries.

        Raises:
            ValueError: If the deployment key is blank.
        """
        if not deployment_key or not deployment_key.strip():
            msg = "Deployment key cannot be null or empty"
            raise ValueError(msg)

        self._config = config or RemoteEvaluationConfig()
        self._deployment_key = deployment_key
        self._url = f"{self._config.get_server_url()}{VARDATA_PATH}"
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=self._config.fetch_timeout_seconds,
        )
        self._metrics = metrics or FetchMetrics.get_instance()
        self._sleep = sleep
        self._log = (logger or get_null_logger()).bind(
            component="fetch",
            server_url=self._config.get_server_url(),
            deployment_key=redact_deployment_key(deployment_key),
        )

    @property
    def config(self) -> RemoteEvaluationConfig:
        """Configuration in effect for this client."""
        return self._config

    async def fetch(
        self,
        user: ExperimentUser,
        options: FetchOptions | None = None,
    ) -> dict[str, Variant]:
        """Fetch variants for a user.

        Args:
            user: Subject to evaluate.
            options: Optional fetch options.

        Returns:
            Mapping of flag key to assigned variant.

        Raises:
            InvalidSubjectError: If ``user`` is None.
            FetchError: If the fetch fails after retries.
            FetchTimeoutError: If the fetch deadline elapses.
        """
        if user is None:
            raise InvalidSubjectError

        if user.library is None:
            user = user.model_copy(
                update={"library": f"{LIBRARY_NAME}/{LIBRARY_VERSION}"}
            )

        params = self._build_query_params(user, options)
        headers = self._build_headers(options)
        log = self._log.bind(user_id=user.user_id, device_id=user.device_id)
        log.debug("fetch_started", headers=redact_headers(headers))

        start_time_ns = time.perf_counter_ns()
        try:
            async with asyncio.timeout(self._config.fetch_timeout_seconds):
                variants = await execute_with_retry(
                    lambda: self._fetch_once(params, headers, log),
                    self._config.retry_policy,
                    log=log,
                    metrics=self._metrics,
                    sleep=self._sleep,
                )
        except FetchError:
            raise
        except TimeoutError as e:
            self._metrics.record_failure(FetchErrorClass.TIMEOUT)
            log.error("fetch_timed_out", timeout_ms=self._config.fetch_timeout_ms)
            msg = f"Request timed out after {self._config.fetch_timeout_ms}ms"
            raise FetchTimeoutError(msg) from e

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        log.debug(
            "fetch_complete",
            variant_count=len(variants),
            duration_ms=round(duration_ms, 2),
        )
        return variants

    async def _fetch_once(
        self,
        params: dict[str, str],
        headers: dict[str, str],
        log: structlog.stdlib.BoundLogger,
    ) -> dict[str, Variant]:
        """Execute a single HTTP request.

        Args:
            params: Query parameters.
            headers: Request headers.
            log: Bound logger.

        Returns:
            Decoded variants.

        Raises:
            FetchError: If the response is not 2xx or cannot be decoded,
                or the transport fails.
            FetchTimeoutError: If the transport times out.
        """
        start_time_ns = time.perf_counter_ns()
        try:
            response = await self._http.get(self._url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            msg = f"Request timed out: {e}"
            raise FetchTimeoutError(msg) from e
        except httpx.TransportError as e:
            msg = f"Connection failed: {e}"
            raise FetchError(msg) from e

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        self._metrics.record_request(response.status_code, duration_ms)

        if not HTTP_STATUS_OK_MIN <= response.status_code < HTTP_STATUS_OK_MAX:
            log.warning(
                "fetch_http_error",
                status_code=response.status_code,
                body=response.text[:MAX_LOGGED_BODY_CHARS],
            )
            msg = f"Request failed with status {response.status_code}"
            raise FetchError(msg, status_code=response.status_code)

        try:
            payload = response.json()
            return _VARIANTS_ADAPTER.validate_python(payload or {})
        except ValueError as e:
            msg = f"Malformed variant payload: {e}"
            raise FetchError(msg, status_code=response.status_code) from e

    def _build_query_params(
        self,
        user: ExperimentUser,
        options: FetchOptions | None,
    ) -> dict[str, str]:
        """Build query parameters for the vardata request.

        Args:
            user: Subject to evaluate.
            options: Optional fetch options.

        Returns:
            Query parameters; httpx handles encoding.
        """
        params: dict[str, str] = {}

        if user.user_id:
            params["user_id"] = user.user_id
        if user.device_id:
            params["device_id"] = user.device_id
        if options is not None and options.flag_keys:
            params["flag_keys"] = ",".join(options.flag_keys)

        params["context"] = user.to_context_json()
        return params

    def _build_headers(self, options: FetchOptions | None) -> dict[str, str]:
        """Build request headers.

        Args:
            options: Optional fetch options.

        Returns:
            Headers with authorization and, when requested, tracking opt-out.
        """
        headers = {AUTHORIZATION_HEADER: f"Api-Key {self._deployment_key}"}
        if options is not None and options.tracking_disabled:
            headers[TRACKING_HEADER] = TRACKING_DISABLED
        return headers

    async def aclose(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_http_client:
            await self._http.aclose()

    async def __aenter__(self) -> "RemoteEvaluationClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
