"""Date/time helpers for the canonical timezone (fixed UTC+3)"""
from datetime import datetime, timezone, timedelta
from typing import Union

# Fixed offset, no daylight saving
CANONICAL_TZ = timezone(timedelta(hours=3))


def now_canonical() -> datetime:
    """
    Current time in the canonical timezone

    Returns:
        datetime: timezone-aware datetime with a +03:00 offset
    """
    return datetime.now(timezone.utc).astimezone(CANONICAL_TZ)


def canonical_iso(dt: datetime = None) -> str:
    """
    ISO-8601 string in the canonical timezone

    Args:
        dt: datetime to format (naive values are treated as canonical time).
            Defaults to now.

    Returns:
        str: "2025-10-14T10:30:00.123456+03:00" style string
    """
    if dt is None:
        dt = now_canonical()
    return to_canonical(dt).isoformat()


def to_canonical(value: Union[str, datetime]) -> datetime:
    """
    Convert an ISO string or datetime to an aware canonical datetime

    Date-only strings (YYYY-MM-DD) are interpreted as midnight canonical time.
    A trailing "Z" is accepted as UTC.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        dt = value

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=CANONICAL_TZ)

    return dt.astimezone(CANONICAL_TZ)
