"""Date and timezone helpers.

Timecard entries have day granularity: every value entering the weekly view
is reduced to a ``datetime.date``. Timezones only matter when a caller hands
in an aware ``datetime`` or asks for "today".
"""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

__all__ = [
    "format_date_iso",
    "get_current_date",
    "get_current_time",
    "parse_date",
    "resolve_timezone",
]


def resolve_timezone(tz: ZoneInfo | str | None = None) -> ZoneInfo:
    """Return a ``ZoneInfo`` for a name, an existing zone, or UTC.

    Raises
    ------
    ValueError
        If the timezone name is unknown
    """
    if isinstance(tz, ZoneInfo):
        return tz
    if tz is None:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Invalid timezone: {tz}") from exc


def get_current_time(tz: ZoneInfo | str | None = None) -> datetime:
    """Get current time in the given timezone (UTC by default)."""
    return datetime.now(resolve_timezone(tz))


def get_current_date(tz: ZoneInfo | str | None = None) -> date:
    """Get today's calendar date as seen in ``tz``."""
    return get_current_time(tz).date()


def parse_date(value: date | datetime | str | None) -> date:
    """Parse a calendar date.

    Supports:
    - ``date`` / ``datetime`` objects (time-of-day dropped)
    - ``YYYY-MM-DD``
    - ISO 8601 timestamps: ``2024-01-01T00:00:00.000Z``. The date part is
      taken as written, which matches how the API stores entries
      (midnight UTC).

    Raises
    ------
    ValueError
        If the value is empty or cannot be parsed
    TypeError
        If the value has an unsupported type
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        raise ValueError("Date value is missing")
    if not isinstance(value, str):
        raise TypeError(f"Unsupported date type: {type(value).__name__}")

    text = value.strip()
    if not text:
        raise ValueError("Date value is empty")

    # Timestamp: only the calendar part is significant
    if len(text) > 10 and text[10] == "T":
        text = text[:10]

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise ValueError(f"Cannot parse date: {value}") from exc


def format_date_iso(value: date) -> str:
    """Format as ``YYYY-MM-DD`` (the API's ``startDate`` format)."""
    return value.isoformat()
