"""
Record identifiers and timestamps.
"""

import secrets
import string
import time
from datetime import datetime, timezone

_ALPHABET = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """
    Build an id from the current time in milliseconds and a random base-36 suffix.

    Ids are unique with high probability only; nothing checks existing keys.
    """
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
