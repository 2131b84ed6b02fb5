"""Calendar-day normalization.

Every "is this in the future?" decision in the engine compares calendar days,
never raw timestamps. A transaction stamped ``2024-03-05T23:30:00-08:00`` is a
March 5th transaction no matter which zone the process runs in, so aware
datetimes keep the year/month/day they were written with unless an explicit
zone is requested.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo

CalendarDay = date


class DayOrder(Enum):
    """Result of comparing two calendar days."""

    BEFORE = -1
    SAME = 0
    AFTER = 1


def to_calendar_day(value: date | datetime | str, tz: tzinfo | str | None = None) -> CalendarDay:
    """Strip time-of-day from ``value`` and return the calendar day it falls on.

    Args:
        value: A ``date``, ``datetime`` or ISO-8601 string (``YYYY-MM-DD`` or a
            full timestamp).
        tz: Optional zone to view aware datetimes in before taking the day.
            When omitted, the components are used exactly as written.

    Raises:
        ValueError: If ``value`` is not a recognizable date.
    """
    if isinstance(value, datetime):
        if tz is not None and value.tzinfo is not None:
            value = value.astimezone(_as_zone(tz))
        return date(value.year, value.month, value.day)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty date string")
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_calendar_day(datetime.fromisoformat(text), tz)
    raise ValueError(f"Unrecognized date value: {value!r}")


def compare_calendar_days(a: date | datetime | str, b: date | datetime | str) -> DayOrder:
    """Compare two values at day granularity."""
    day_a, day_b = to_calendar_day(a), to_calendar_day(b)
    if day_a < day_b:
        return DayOrder.BEFORE
    if day_a > day_b:
        return DayOrder.AFTER
    return DayOrder.SAME


def is_on_or_before(value: date | datetime | str, cutoff: date | datetime | str) -> bool:
    return compare_calendar_days(value, cutoff) is not DayOrder.AFTER


def today(tz: tzinfo | str | None = None) -> CalendarDay:
    """The current calendar day, in ``tz`` when given, else the host's local zone."""
    if tz is None:
        return datetime.now().date()
    return datetime.now(_as_zone(tz)).date()


def day_range(start: CalendarDay, end: CalendarDay) -> list[CalendarDay]:
    """Every calendar day from ``start`` to ``end`` inclusive, ascending."""
    span = (end - start).days
    return [start + timedelta(days=offset) for offset in range(span + 1)]


def _as_zone(tz: tzinfo | str) -> tzinfo:
    return ZoneInfo(tz) if isinstance(tz, str) else tz
