"""
Timestamp helpers.
Everything stored is naive UTC; provider values arrive in several shapes.
"""
from datetime import datetime, timezone
from typing import Any, Optional


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse ISO strings, epoch seconds / milliseconds and datetimes.
    Returns None for empty or unparseable values.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, (int, float)):
        # Values past 1e10 are milliseconds
        seconds = value / 1000 if value > 1e10 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_naive_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def isoformat_utc(value: Optional[datetime] = None) -> str:
    """ISO-8601 string with a Z suffix for a naive UTC datetime (default now)."""
    value = value or datetime.utcnow()
    return to_naive_utc(value).isoformat(timespec="milliseconds") + "Z"
