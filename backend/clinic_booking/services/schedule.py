from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable
from zoneinfo import ZoneInfo


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive values; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Return the UTC instants for local midnight of ``day`` and of the next day."""
    start_local = datetime.combine(day, time.min, tzinfo=tz)
    end_local = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)


def appointment_instant(day: date, tz: ZoneInfo) -> datetime:
    start, _ = day_bounds(day, tz)
    return start


def local_day(value: datetime, tz: ZoneInfo) -> date:
    return as_utc(value).astimezone(tz).date()


def today_in(tz: ZoneInfo, now: datetime | None = None) -> date:
    now = now or datetime.now(timezone.utc)
    return as_utc(now).astimezone(tz).date()


def is_open_weekday(day: date, closed_weekdays: Iterable[int]) -> bool:
    return day.weekday() not in set(closed_weekdays)


def is_bookable_day(day: date, today: date, closed_weekdays: Iterable[int]) -> bool:
    return day >= today and is_open_weekday(day, closed_weekdays)


def next_open_day(start: date, today: date, closed_weekdays: Iterable[int]) -> date:
    closed = set(closed_weekdays)
    if len(closed) >= 7:
        raise ValueError("Every weekday is closed")
    candidate = max(start, today)
    while candidate.weekday() in closed:
        candidate += timedelta(days=1)
    return candidate


def month_days(year: int, month: int) -> list[date]:
    _, count = calendar.monthrange(year, month)
    return [date(year, month, day) for day in range(1, count + 1)]
