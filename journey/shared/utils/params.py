"""Parsing of request parameters shared by the service handlers.

Every parser raises ValueError with a client-facing message, which handlers
turn into a 400 response.
"""
from datetime import datetime, timezone
from typing import Any, Optional


def parse_int(value: Any, name: str, default: Optional[int] = None) -> int:
    """Integer from a query string or JSON value.

    Booleans are rejected even though they are ints in Python.

    Raises:
        ValueError: If the value is missing (and no default) or not an integer
    """
    if value is None or value == "":
        if default is None:
            raise ValueError(f"{name} is required")
        return default

    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)

    try:
        return int(str(value).strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def parse_datetime(value: Any, name: str) -> datetime:
    """Naive UTC datetime from an ISO-8601 string ("Z" suffix accepted).

    Raises:
        ValueError: If the value is missing, not a string or not ISO-8601
    """
    if value is None or value == "":
        raise ValueError(f"{name} is required")
    if not isinstance(value, str):
        raise ValueError(f"{name} must be an ISO-8601 timestamp string, got {value!r}")

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"{name} must be an ISO-8601 timestamp, got {value!r}") from None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
