"""Date manipulation utilities"""

from datetime import date, datetime, time, timezone
from typing import Any, Optional


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the store; None when absent or unreadable"""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    # PostgREST emits a trailing Z on some columns
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def within_window(moment: Optional[datetime], start: Optional[date], end: Optional[date]) -> bool:
    """Inclusive date window check; undated records only pass an open window"""
    if start is None and end is None:
        return True
    if moment is None:
        return False
    if start is not None and moment < datetime.combine(start, time.min, tzinfo=timezone.utc):
        return False
    if end is not None and moment > datetime.combine(end, time.max, tzinfo=timezone.utc):
        return False
    return True
