"""Instant helpers for scheduling: UTC normalization and local-midnight due times."""

from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(value) -> datetime:
    """Parse an ISO-8601 string (a trailing 'Z' is accepted) into aware UTC."""
    if isinstance(value, datetime):
        return to_utc(value)
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return to_utc(datetime.fromisoformat(text))


def add_minutes(now: datetime, minutes: float) -> datetime:
    return to_utc(now) + timedelta(minutes=minutes)


def local_midnight(now: datetime, days_from_today: int, tz: Optional[tzinfo] = None) -> datetime:
    """
    Midnight at the start of the local calendar day `days_from_today` after now.

    `tz` selects the local zone; without it the system local zone is used.
    DST is resolved for the target day, not for today. Returned as aware UTC.
    """
    now = to_utc(now)
    if tz is not None:
        target = now.astimezone(tz).date() + timedelta(days=days_from_today)
        return to_utc(datetime.combine(target, time.min, tzinfo=tz))
    target = now.astimezone().date() + timedelta(days=days_from_today)
    # naive local midnight; astimezone() attaches the offset in effect that day
    return to_utc(datetime.combine(target, time.min).astimezone())
