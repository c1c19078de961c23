"""Weekly rollups: week windows, per-employee aggregation and stats."""

from .aggregator import (
    ALL_EMPLOYEES,
    PartialFetchError,
    RawWeek,
    SummaryAggregator,
    WeeklySummary,
    normalize_filter,
    pivot_week,
)
from .stats import EMPTY_STATS, AggregateStats, compute_stats, format_hours
from .time_windows import (
    DAYS_PER_WEEK,
    WEEKDAY_LABELS,
    WeekWindow,
    day_index,
    days_of,
    format_week_range,
    local_date_of,
    monday_of,
    shift_week,
    week_number,
    week_window,
)

__all__ = [
    # Time windows
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
    # Aggregation
    "ALL_EMPLOYEES",
    "PartialFetchError",
    "RawWeek",
    "SummaryAggregator",
    "WeeklySummary",
    "normalize_filter",
    "pivot_week",
    # Stats
    "AggregateStats",
    "EMPTY_STATS",
    "compute_stats",
    "format_hours",
]
