from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
