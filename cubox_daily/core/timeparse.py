"""Timestamp parsing for Cubox card times."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import re

from .errors import InvalidTimestamp

# Cubox sends "2024-12-06T10:10:53:787+08:00" (colon before milliseconds).
_COLON_MILLIS_RE = re.compile(r"(T\d{2}:\d{2}:\d{2}):(\d{1,6})")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)


def parse_instant(value: str) -> int:
    """Parse a timestamp string into epoch milliseconds.

    Args:
        value: ISO 8601 timestamp, optionally with a trailing "Z" or the
            Cubox colon-separated millisecond field

    Returns:
        Milliseconds since the Unix epoch

    Raises:
        InvalidTimestamp: If the value is empty or cannot be parsed
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidTimestamp(f"Invalid Cubox date: {value!r}")

    raw = value.strip()
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"
    raw = _COLON_MILLIS_RE.sub(r"\1.\2", raw, count=1)
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise InvalidTimestamp(f"Invalid Cubox date: {value!r}") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (parsed - _EPOCH) // _MILLISECOND


def now_instant() -> int:
    """Current time in epoch milliseconds."""
    return (datetime.now(timezone.utc) - _EPOCH) // _MILLISECOND
