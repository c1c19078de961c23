"""Week window calculations.

A week window is the half-open interval ``[monday, monday + 7 days)``.
All arithmetic is on calendar dates; aware datetimes are first converted to
the configured local timezone so "which Monday" is decided locally.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta

import pytz

from ..core.time import parse_date

__all__ = [
    "DAYS_PER_WEEK",
    "WEEKDAY_LABELS",
    "WeekWindow",
    "day_index",
    "days_of",
    "format_week_range",
    "local_date_of",
    "monday_of",
    "shift_week",
    "week_number",
    "week_window",
]

DAYS_PER_WEEK = 7
WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def local_date_of(value: date | datetime | str, timezone_str: str = "UTC") -> date:
    """Reduce a date-like value to a local calendar date.

    Parameters
    ----------
    value
        ``date``, naive or aware ``datetime``, or ISO string
    timezone_str
        Timezone used for aware datetimes and ISO timestamps with an offset
        (naive ones are taken as local)

    Returns
    -------
    date
        Calendar date at local midnight granularity
    """
    if isinstance(value, str):
        text = value.strip()
        # A timestamp names a moment, so its offset counts
        if len(text) > 10:
            try:
                value = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                pass
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        tz = pytz.timezone(timezone_str)
        return value.astimezone(tz).date()
    return parse_date(value)


def monday_of(value: date | datetime | str, timezone_str: str = "UTC") -> date:
    """Get the Monday on or before ``value``.

    Parameters
    ----------
    value
        Any date in the week
    timezone_str
        Timezone for aware datetimes

    Returns
    -------
    date
        Week start; always a Monday, never after ``value`` and less than
        seven days before it
    """
    local_date = local_date_of(value, timezone_str)
    return local_date - timedelta(days=local_date.weekday())


def shift_week(week_start: date, delta_weeks: int) -> date:
    """Move a week start by ``delta_weeks`` whole weeks (negative = back).

    Exact and reversible: ``shift_week(shift_week(w, n), -n) == w``.
    """
    return week_start + timedelta(days=DAYS_PER_WEEK * delta_weeks)


@dataclass(frozen=True)
class WeekWindow:
    """Half-open 7-day window starting on ``start``.

    Iterating yields the seven dates Monday-first; the window can be
    iterated any number of times.
    """

    start: date

    @property
    def end_exclusive(self) -> date:
        return self.start + timedelta(days=DAYS_PER_WEEK)

    @property
    def last_day(self) -> date:
        return self.start + timedelta(days=DAYS_PER_WEEK - 1)

    def __iter__(self) -> Iterator[date]:
        for offset in range(DAYS_PER_WEEK):
            yield self.start + timedelta(days=offset)

    def __len__(self) -> int:
        return DAYS_PER_WEEK

    def __contains__(self, item: object) -> bool:
        if isinstance(item, datetime):
            item = item.date()
        if not isinstance(item, date):
            return False
        return self.start <= item < self.end_exclusive


def week_window(value: date | datetime | str, timezone_str: str = "UTC") -> WeekWindow:
    """Window of the week containing ``value``."""
    return WeekWindow(monday_of(value, timezone_str))


def days_of(week_start: date) -> WeekWindow:
    """Lazy, restartable sequence of the 7 dates of the window, Monday-first."""
    return WeekWindow(week_start)


def day_index(week_start: date, day: date) -> int | None:
    """Position of ``day`` in the window (0 = Monday), or None if outside."""
    offset = (day - week_start).days
    if 0 <= offset < DAYS_PER_WEEK:
        return offset
    return None


def format_week_range(week_start: date) -> str:
    """Human-readable range, e.g. ``"Jan 1 - Jan 7, 2024"``."""
    end = week_start + timedelta(days=DAYS_PER_WEEK - 1)
    return f"{week_start:%b} {week_start.day} - {end:%b} {end.day}, {end.year}"


def week_number(week_start: date) -> int:
    """Week of the year shown under the range, counted from January 1.

    Week 1 is the Sunday-started week holding January 1. In 2024 the
    Monday 2024-01-01 is week 1 and 2024-01-08 is week 2.
    """
    jan_first = date(week_start.year, 1, 1)
    days = (week_start - jan_first).days
    # Sunday-based weekday of January 1
    jan_first_offset = (jan_first.weekday() + 1) % 7
    return math.ceil((days + jan_first_offset + 1) / DAYS_PER_WEEK)
