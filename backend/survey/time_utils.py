"""
IRVE Survey - Time Helpers

Timestamps are stored as naive UTC datetimes so that SQLite and PostgreSQL
compare them the same way.
"""
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(dt: Optional[datetime]) -> Optional[str]:
    """Format a stored naive-UTC datetime as an ISO string with a Z suffix."""
    if dt is None:
        return None
    return dt.isoformat() + "Z"
