"""Time helpers shared by the repository and the scheduler.

All timestamps are persisted as naive UTC values (SQLite drops tzinfo), so
aware inputs are normalised here once instead of at every call site.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert ``value`` to naive UTC; naive inputs are assumed to be UTC."""

    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
