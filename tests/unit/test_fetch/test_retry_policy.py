"""Unit tests for retry policy decisions and backoff delays."""

import pytest
from pydantic import ValidationError

from experiment_client.fetch.models import FetchErrorClass, RetryPolicy


class TestRetryPolicy:
    """Tests for RetryPolicy model."""

    def test_default_values(self) -> None:
        """Test default retry policy values."""
        policy = RetryPolicy()

        assert policy.max_retries == 8
        assert policy.min_delay_ms == 500
        assert policy.max_delay_ms == 10000
        assert policy.backoff_scalar == 1.5

    def test_custom_values(self) -> None:
        """Test custom retry policy values."""
        policy = RetryPolicy(
            max_retries=5,
            min_delay_ms=100,
            max_delay_ms=60000,
            backoff_scalar=2.0,
        )

        assert policy.max_retries == 5
        assert policy.min_delay_ms == 100
        assert policy.max_delay_ms == 60000
        assert policy.backoff_scalar == 2.0

    def test_min_delay_above_max_rejected(self) -> None:
        """Test that min_delay_ms may not exceed max_delay_ms."""
        with pytest.raises(ValidationError, match="must not exceed"):
            RetryPolicy(min_delay_ms=5000, max_delay_ms=1000)

    def test_scalar_must_exceed_one(self) -> None:
        """Test that a non-growing backoff scalar is rejected."""
        with pytest.raises(ValidationError):
            RetryPolicy(backoff_scalar=1.0)

    def test_negative_retries_rejected(self) -> None:
        """Test that max_retries cannot be negative."""
        with pytest.raises(ValidationError):
            RetryPolicy(max_retries=-1)

    def test_large_values_accepted(self) -> None:
        """Test that large retry counts and scalars are valid policies."""
        policy = RetryPolicy(backoff_scalar=20.0, max_retries=200)

        assert policy.max_retries == 200
        assert policy.get_delay_ms(500) == policy.max_delay_ms

    def test_policy_immutable(self) -> None:
        """Test that policy is immutable (frozen)."""
        policy = RetryPolicy()

        with pytest.raises(ValidationError):
            policy.max_retries = 2  # type: ignore[misc]


class TestShouldRetry:
    """Tests for retry decision logic."""

    @pytest.fixture
    def policy(self) -> RetryPolicy:
        """Create a standard retry policy."""
        return RetryPolicy(max_retries=3)

    @pytest.mark.parametrize(
        "error_class",
        [
            FetchErrorClass.CONNECTION_ERROR,
            FetchErrorClass.HTTP_5XX,
            FetchErrorClass.RATE_LIMITED,
        ],
    )
    def test_retryable_classes(
        self, policy: RetryPolicy, error_class: FetchErrorClass
    ) -> None:
        """Test that transient failures are retried until max is reached."""
        assert policy.should_retry(error_class, attempt=0) is True
        assert policy.should_retry(error_class, attempt=2) is True
        assert policy.should_retry(error_class, attempt=3) is False

    @pytest.mark.parametrize(
        "error_class",
        [
            FetchErrorClass.HTTP_4XX,
            FetchErrorClass.TIMEOUT,
            FetchErrorClass.CANCELLED,
            FetchErrorClass.UNKNOWN,
        ],
    )
    def test_non_retryable_classes(
        self, policy: RetryPolicy, error_class: FetchErrorClass
    ) -> None:
        """Test that permanent failures are never retried."""
        assert policy.should_retry(error_class, attempt=0) is False

    def test_zero_max_retries(self) -> None:
        """Test policy with zero max retries."""
        policy = RetryPolicy(max_retries=0)

        assert policy.should_retry(FetchErrorClass.HTTP_5XX, attempt=0) is False


class TestGetDelayMs:
    """Tests for retry delay calculation."""

    def test_first_delay_is_min_delay(self) -> None:
        """Test that attempt 0 waits exactly the minimum delay."""
        policy = RetryPolicy(min_delay_ms=500, backoff_scalar=1.5)

        assert policy.get_delay_ms(0) == 500

    def test_exponential_backoff_truncates(self) -> None:
        """Test growth by the scalar with integer truncation."""
        policy = RetryPolicy(
            min_delay_ms=500, max_delay_ms=10000, backoff_scalar=1.5
        )

        assert policy.get_delay_ms(1) == 750
        assert policy.get_delay_ms(2) == 1125
        assert policy.get_delay_ms(3) == 1687  # 1687.5 truncated

    def test_max_delay_cap(self) -> None:
        """Test that delay is capped at max_delay_ms."""
        policy = RetryPolicy(min_delay_ms=1000, max_delay_ms=5000, backoff_scalar=2.0)

        assert policy.get_delay_ms(1) == 2000
        assert policy.get_delay_ms(2) == 4000
        assert policy.get_delay_ms(3) == 5000  # Capped at max
        assert policy.get_delay_ms(20) == 5000

    def test_huge_attempt_does_not_overflow(self) -> None:
        """Test that very large attempts return the cap instead of overflowing."""
        policy = RetryPolicy(min_delay_ms=500, max_delay_ms=10000, backoff_scalar=10.0)

        assert policy.get_delay_ms(10_000) == 10000

    def test_monotonic_non_decreasing(self) -> None:
        """Test that delays never shrink as attempts grow."""
        policy = RetryPolicy(min_delay_ms=100, max_delay_ms=7000, backoff_scalar=1.3)

        delays = [policy.get_delay_ms(attempt) for attempt in range(40)]

        assert delays == sorted(delays)
        assert delays[-1] == 7000

    def test_equal_min_and_max(self) -> None:
        """Test a flat backoff when min and max coincide."""
        policy = RetryPolicy(min_delay_ms=2000, max_delay_ms=2000)

        assert [policy.get_delay_ms(a) for a in range(4)] == [2000] * 4

    def test_zero_min_delay(self) -> None:
        """Test that a zero minimum delay never waits."""
        policy = RetryPolicy(min_delay_ms=0, max_delay_ms=1000)

        assert policy.get_delay_ms(5) == 0

    def test_negative_attempt_rejected(self) -> None:
        """Test that negative attempts are rejected."""
        with pytest.raises(ValueError, match="non-negative"):
            RetryPolicy().get_delay_ms(-1)


class TestFetchErrorClass:
    """Tests for FetchErrorClass enum."""

    def test_all_error_classes_exist(self) -> None:
        """Test that all expected error classes exist."""
        expected = [
            "CONNECTION_ERROR",
            "HTTP_5XX",
            "RATE_LIMITED",
            "HTTP_4XX",
            "TIMEOUT",
            "CANCELLED",
            "UNKNOWN",
        ]

        for name in expected:
            assert FetchErrorClass[name].value == name

    def test_is_retryable(self) -> None:
        """Test the retryable flag on each class."""
        assert FetchErrorClass.CONNECTION_ERROR.is_retryable is True
        assert FetchErrorClass.HTTP_5XX.is_retryable is True
        assert FetchErrorClass.RATE_LIMITED.is_retryable is True
        assert FetchErrorClass.HTTP_4XX.is_retryable is False
        assert FetchErrorClass.TIMEOUT.is_retryable is False
