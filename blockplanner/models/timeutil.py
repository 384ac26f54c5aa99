"""Instant helpers shared by the models, engine and database layers.

Domain objects carry timezone-aware UTC datetimes. The database stores naive UTC
(matching `datetime.utcnow()` column defaults), so values are converted at the ORM
boundary with `to_db_time` / `from_db_time`.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return `dt` as an aware UTC datetime (naive values are taken to be UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_db_time(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    return ensure_utc(dt).replace(tzinfo=None)


def from_db_time(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    return ensure_utc(dt)


def isoformat_utc(dt: datetime) -> str:
    """Serialize an instant as ISO-8601 with a `Z` suffix."""
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")
