"""Error types for the remote evaluation fetch layer.

Every failure raised by a single fetch attempt carries enough information
(an HTTP status code, or none for pure transport failures) for the retry
executor to classify it.
"""

from experiment_client.fetch.constants import (
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_CLIENT_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
)
from experiment_client.fetch.models import FetchErrorClass


def classify_status_code(status_code: int | None) -> FetchErrorClass:
    """Classify an HTTP status code (or its absence) as a failure class.

    Args:
        status_code: HTTP status code, or None for transport failures.

    Returns:
        The failure class for the status.
    """
    if status_code is None:
        return FetchErrorClass.CONNECTION_ERROR

    if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
        return FetchErrorClass.RATE_LIMITED

    if HTTP_STATUS_SERVER_ERROR_MIN <= status_code < HTTP_STATUS_SERVER_ERROR_MAX:
        return FetchErrorClass.HTTP_5XX

    if HTTP_STATUS_BAD_REQUEST <= status_code < HTTP_STATUS_CLIENT_ERROR_MAX:
        return FetchErrorClass.HTTP_4XX

    return FetchErrorClass.UNKNOWN


class FetchError(Exception):
    """Failure of a variant fetch.

    The error class is derived from the status code once, at construction,
    and never changes afterwards.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize the fetch error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code if a response was received.
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self._error_class = self._classify()

    def _classify(self) -> FetchErrorClass:
        return classify_status_code(self.status_code)

    @property
    def error_class(self) -> FetchErrorClass:
        """Classification of this failure."""
        return self._error_class

    @property
    def is_retryable(self) -> bool:
        """Whether the failure is transient and worth retrying."""
        return self._error_class.is_retryable

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error_class": self._error_class.value,
            "message": self.message,
            "status_code": self.status_code,
        }


class FetchTimeoutError(FetchError, TimeoutError):
    """Raised when a fetch exceeds its deadline."""

    def _classify(self) -> FetchErrorClass:
        return FetchErrorClass.TIMEOUT


class InvalidSubjectError(ValueError):
    """Raised when a fetch is requested without a subject."""

    def __init__(self, message: str = "user must not be None") -> None:
        super().__init__(message)
