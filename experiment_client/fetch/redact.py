"""Header redaction utilities for logging."""

from collections.abc import Mapping


# Headers that must never appear in logs
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "x-api-key",
        "proxy-authorization",
    }
)

REDACTED_VALUE = "[REDACTED]"


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Redact sensitive headers for logging.

    The deployment key travels in the Authorization header, so it is
    always replaced with [REDACTED].

    Args:
        headers: Original headers.

    Returns:
        New dictionary with sensitive values redacted.
    """
    return {
        key: REDACTED_VALUE if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def redact_deployment_key(deployment_key: str) -> str:
    """Mask a deployment key, keeping only its last four characters."""
    if len(deployment_key) <= 4:
        return REDACTED_VALUE
    return f"...{deployment_key[-4:]}"
