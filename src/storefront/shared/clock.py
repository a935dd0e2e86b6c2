"""Time helpers shared by validity windows (discounts, tax jurisdictions)."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalise a datetime to aware UTC.

    SQL providers hand back naive datetimes; they are stored in UTC, so a
    naive value is interpreted as UTC rather than local time.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def within_window(starts_at: datetime | None, ends_at: datetime | None, now: datetime | None = None) -> bool:
    """True when ``starts_at <= now < ends_at``; an open end never expires."""
    now = as_utc(now) or utc_now()
    starts_at = as_utc(starts_at)
    ends_at = as_utc(ends_at)
    if starts_at is not None and now < starts_at:
        return False
    if ends_at is not None and now >= ends_at:
        return False
    return True
