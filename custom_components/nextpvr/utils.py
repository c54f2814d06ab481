"""
Small helpers shared by the API modules.

No HA imports: conversions between backend wire values and Python types,
plus the debug-logging switch.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

# Listing timestamps above this are milliseconds rather than seconds
_MILLISECONDS_THRESHOLD = 100_000_000_000


def debug_information(logger: logging.Logger, enabled: bool, msg: str, *args: Any) -> None:
    """Log verbose diagnostics at INFO when debug logging is switched on, else DEBUG."""
    logger.log(logging.INFO if enabled else logging.DEBUG, msg, *args)


def from_unix(value: Any) -> datetime | None:
    """Convert a Unix timestamp (seconds or milliseconds) to an aware UTC datetime."""
    if value is None or value == "":
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if seconds > _MILLISECONDS_THRESHOLD:
        seconds /= 1000
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def to_unix(value: datetime) -> int:
    """Convert a datetime to whole Unix seconds; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def parse_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_date(value: Any) -> date | None:
    """Parse an ISO date (optionally with a time part)."""
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
