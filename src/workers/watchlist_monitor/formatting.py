"""
Time / number formatters used in alert titles, messages and metadata.

Timestamp normalization rule: a numeric value below the Unix millisecond
epoch for 2000-01-01 is in seconds, anything else is already milliseconds.
"""

from __future__ import annotations

import math
import time
from datetime import datetime, timezone

YEAR_2000_MS = 946_684_800_000

_MINUTE_MS = 60_000
_HOUR_MS = 3_600_000
_DAY_MS = 86_400_000


def normalize_timestamp_ms(value: object) -> int | None:
    """
    Convert an upstream timestamp into epoch milliseconds.

    Accepts epoch seconds or milliseconds (int, float or numeric string),
    ISO-8601 strings and datetimes. Returns None when the value is
    missing or cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)

    if isinstance(value, (int, float)):
        return _from_epoch(value)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return _from_epoch(float(text))
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return normalize_timestamp_ms(parsed)

    return None


def _from_epoch(value: float) -> int | None:
    if not math.isfinite(value):
        return None
    if value < YEAR_2000_MS:
        return int(value * 1000)
    return int(value)


def format_time_ago(timestamp: object, now_ms: int | None = None) -> str:
    """Human-readable age like "5 mins", "3 days" or "1 year"."""
    then = normalize_timestamp_ms(timestamp) if timestamp else None
    if not then:
        return "recently"

    if now_ms is None:
        now_ms = int(time.time() * 1000)

    diff_ms = now_ms - then
    mins = diff_ms // _MINUTE_MS
    hours = diff_ms // _HOUR_MS
    days = diff_ms // _DAY_MS
    months = days // 30
    years = days // 365

    if mins < 1:
        return "just now"
    if mins < 60:
        return _plural(mins, "min")
    if hours < 24:
        return _plural(hours, "hr")
    if days < 30:
        return _plural(days, "day")
    if months < 12:
        return _plural(months, "month")
    return _plural(years, "year")


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_number(value: float | int) -> str:
    """Group thousands with commas (1234567 -> "1,234,567")."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int):
        return f"{value:,}"
    return f"{value:,.2f}".rstrip("0").rstrip(".")
