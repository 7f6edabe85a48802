from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_utc() -> datetime:
    """Current UTC time as a naive datetime (all stored timestamps are naive UTC).

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return to_utc_naive(value).date()
    return value


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) UTC window covering one calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def whole_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)
