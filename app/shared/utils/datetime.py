"""
UTC datetime utilities for consistent timezone handling.

Every timestamp stored on a task (due_at, warn_at, claimed_at, ...) is
timezone-aware UTC. Use these helpers instead of datetime.now().
"""

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """Return the current UTC datetime with timezone info."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure a datetime is UTC-aware.

    - If None, returns None
    - If naive, assumes UTC and attaches timezone
    - If aware, converts to UTC

    Use at repository/persistence boundaries to normalize datetimes.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def add_ms(dt: datetime, ms: int) -> datetime:
    """Return dt shifted by a (possibly negative) number of milliseconds."""
    return dt + timedelta(milliseconds=ms)


def diff_ms(later: datetime, earlier: datetime) -> int:
    """Whole milliseconds from earlier to later (negative if later is before)."""
    delta = ensure_utc(later) - ensure_utc(earlier)
    return (delta.days * 86_400_000) + (delta.seconds * 1000) + (delta.microseconds // 1000)


def isoformat_utc(dt: datetime | None) -> str | None:
    """ISO-8601 string for a UTC datetime, or None. Used for JSON payloads."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
