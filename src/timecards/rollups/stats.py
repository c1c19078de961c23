"""Cross-employee statistics for the weekly matrix.

Computed from the same summaries that are displayed, so the numbers always
agree with the table.

Average policy: ``avg_hours`` divides by every *included* employee (all rows
shown), not only the ones with hours. It is 0.0 when nobody logged hours.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .time_windows import DAYS_PER_WEEK

if TYPE_CHECKING:
    from .aggregator import WeeklySummary

__all__ = [
    "AggregateStats",
    "EMPTY_STATS",
    "compute_stats",
    "format_hours",
]


@dataclass(frozen=True)
class AggregateStats:
    """Statistics over the displayed summaries.

    Attributes
    ----------
    total_hours : float
        Sum of every row total
    active_count : int
        Rows with at least one non-zero day
    included_count : int
        Rows displayed
    avg_hours : float
        ``total_hours / included_count`` when ``active_count > 0``, else 0.0
    day_totals : tuple[float, ...]
        Column totals, Monday..Sunday
    """

    total_hours: float
    active_count: int
    included_count: int
    avg_hours: float
    day_totals: tuple[float, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_hours": self.total_hours,
            "active_count": self.active_count,
            "included_count": self.included_count,
            "avg_hours": self.avg_hours,
            "day_totals": list(self.day_totals),
        }


EMPTY_STATS = AggregateStats(
    total_hours=0.0,
    active_count=0,
    included_count=0,
    avg_hours=0.0,
    day_totals=(0.0,) * DAYS_PER_WEEK,
)


def compute_stats(summaries: Sequence[WeeklySummary]) -> AggregateStats:
    """Derive statistics from a (possibly empty) list of summaries."""
    if not summaries:
        return EMPTY_STATS

    total_hours = sum(s.total for s in summaries)
    active_count = sum(1 for s in summaries if s.total > 0)
    included_count = len(summaries)
    avg_hours = total_hours / included_count if active_count > 0 else 0.0

    day_totals = tuple(sum(s.daily_hours[i] for s in summaries) for i in range(DAYS_PER_WEEK))

    return AggregateStats(
        total_hours=total_hours,
        active_count=active_count,
        included_count=included_count,
        avg_hours=avg_hours,
        day_totals=day_totals,
    )


def format_hours(value: float) -> str:
    """Display rounding: one decimal place."""
    return f"{round(value, 1):.1f}"
