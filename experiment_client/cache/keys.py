"""Cache key derivation for variant fetches."""

from experiment_client.models import ExperimentUser, FetchOptions


KEY_SEPARATOR = ":"
FLAG_KEY_SEPARATOR = ","

USER_ID_TAG = "u"
DEVICE_ID_TAG = "d"
FLAG_KEYS_TAG = "f"

# Percent-encoding of the characters that delimit key tokens; "%" first
_ESCAPES = (("%", "%25"), (KEY_SEPARATOR, "%3A"), (FLAG_KEY_SEPARATOR, "%2C"))


def escape_token(value: str) -> str:
    """Escape separator characters inside a single key token.

    Args:
        value: Raw identifier or flag key.

    Returns:
        The value with ``%``, ``:`` and ``,`` percent-encoded.
    """
    for raw, escaped in _ESCAPES:
        value = value.replace(raw, escaped)
    return value


def derive_cache_key(
    prefix: str,
    user: ExperimentUser,
    options: FetchOptions | None = None,
) -> str:
    """Derive a canonical cache key for a fetch.

    Tokens are appended in a fixed order: prefix, user id, device id, and
    the sorted flag keys. Absent identity fields are skipped, and an empty
    flag key list is treated the same as no list. Separator characters
    inside identifiers and flag keys are escaped, so distinct requests
    never share a key.

    Args:
        prefix: Configured cache key prefix.
        user: Subject being evaluated.
        options: Optional fetch options carrying flag keys.

    Returns:
        Key such as ``prefix:u:<user>:d:<device>:f:<a,b>``.
    """
    parts = [prefix]

    if user.user_id:
        parts.append(f"{USER_ID_TAG}{KEY_SEPARATOR}{escape_token(user.user_id)}")

    if user.device_id:
        parts.append(f"{DEVICE_ID_TAG}{KEY_SEPARATOR}{escape_token(user.device_id)}")

    if options is not None and options.flag_keys:
        flag_keys = FLAG_KEY_SEPARATOR.join(
            escape_token(flag_key) for flag_key in sorted(options.flag_keys)
        )
        parts.append(f"{FLAG_KEYS_TAG}{KEY_SEPARATOR}{flag_keys}")

    return KEY_SEPARATOR.join(parts)
