"""Weekly timecard aggregation.

Pivot raw entries of one week window into a dense employee x day matrix:
one ``WeeklySummary`` per roster employee, seven day slots Monday..Sunday,
and a total that is always the sum of the slots.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

from ..adapters.api.adapter import TransportError
from ..core.time import format_date_iso
from ..core.validation import DEFAULT_MAX_ENTRY_HOURS, validate_entry
from ..observability.loguru_config import get_logger, timing_context
from .time_windows import DAYS_PER_WEEK, WeekWindow, day_index

if TYPE_CHECKING:
    from ..adapters.api.adapter import TimecardService
    from ..core.models import Employee, TimeCardEntry

__all__ = [
    "ALL_EMPLOYEES",
    "PartialFetchError",
    "RawWeek",
    "SummaryAggregator",
    "WeeklySummary",
    "normalize_filter",
    "pivot_week",
]

ALL_EMPLOYEES = "all"

log = get_logger("aggregator")


@dataclass(frozen=True)
class WeeklySummary:
    """One employee's row in the weekly matrix.

    Attributes
    ----------
    employee : Employee
        Roster record
    week_start : date
        Monday of the window
    daily_hours : tuple[float, ...]
        Seven slots, Monday..Sunday, zero where nothing was logged
    """

    employee: Employee
    week_start: date
    daily_hours: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.daily_hours) != DAYS_PER_WEEK:
            raise ValueError(f"daily_hours must have {DAYS_PER_WEEK} slots, got {len(self.daily_hours)}")

    @property
    def total(self) -> float:
        """Sum of the seven day slots."""
        return sum(self.daily_hours)

    @property
    def is_active(self) -> bool:
        """Whether any hours were logged this week."""
        return self.total > 0

    def hours_on(self, day: date) -> float:
        """Hours for a calendar day of this window (0.0 outside it)."""
        index = day_index(self.week_start, day)
        return self.daily_hours[index] if index is not None else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee": self.employee.to_dict(),
            "week_start": format_date_iso(self.week_start),
            "daily_hours": list(self.daily_hours),
            "total": self.total,
        }


@dataclass
class RawWeek:
    """Raw data of one window as fetched from the service.

    ``roster`` or ``entries`` is None when that fetch has not succeeded yet.
    ``entries_filter`` is set when entries were filtered server-side.
    """

    week_start: date
    roster: list[Employee] | None = None
    entries: list[TimeCardEntry] | None = None
    entries_filter: str | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return self.roster is not None and self.entries is not None

    def covers(self, week_start: date, employee_filter: str | None) -> bool:
        """Whether this data can answer a request for ``week_start``/``employee_filter``."""
        if self.week_start != week_start:
            return False
        return self.entries_filter is None or self.entries_filter == normalize_filter(employee_filter)


class PartialFetchError(TransportError):
    """One or both fetches of a window failed.

    ``partial`` holds whatever did succeed so a retry only repeats the failed
    half.
    """

    def __init__(self, message: str, partial: RawWeek) -> None:
        super().__init__(message)
        self.partial = partial


def normalize_filter(employee_filter: str | None) -> str | None:
    """Map "all"/empty to None; anything else is an employee id."""
    if employee_filter is None:
        return None
    employee_filter = str(employee_filter).strip()
    if not employee_filter or employee_filter.lower() == ALL_EMPLOYEES:
        return None
    return employee_filter


def pivot_week(
    week_start: date,
    roster: list[Employee],
    entries: list[TimeCardEntry],
    employee_filter: str | None = None,
    *,
    max_entry_hours: float = DEFAULT_MAX_ENTRY_HOURS,
) -> list[WeeklySummary]:
    """Pivot entries into per-employee weekly rows.

    Steps:
    1. Drop invalid entries (bad date, negative or oversized hours)
    2. Drop entries outside the window or for employees not on the roster
    3. Sum same-day entries of one employee into one slot
    4. Emit one row per active roster employee, in roster order,
       restricted to ``employee_filter`` when given

    Parameters
    ----------
    week_start
        Monday of the window
    roster
        Employees in display order
    entries
        Raw entries (any order, duplicates allowed)
    employee_filter
        Employee id, or None/"all" for everyone
    max_entry_hours
        Upper bound for a single entry

    Returns
    -------
    list[WeeklySummary]
        Rows in roster order
    """
    window = WeekWindow(week_start)
    wanted = normalize_filter(employee_filter)

    included = [e for e in roster if e.is_active and (wanted is None or e.id == wanted)]
    known_ids = {e.id for e in roster if e.is_active}

    slots: dict[str, list[float]] = defaultdict(lambda: [0.0] * DAYS_PER_WEEK)

    for entry in entries:
        result = validate_entry(entry, max_hours=max_entry_hours)
        if not result:
            log.warning(
                "Excluding invalid entry",
                entry_id=entry.id,
                employee_id=entry.employee_id,
                errors=result.errors,
            )
            continue

        if entry.work_date not in window:
            log.debug(
                "Excluding entry outside window",
                entry_id=entry.id,
                work_date=format_date_iso(entry.work_date),
                week_start=format_date_iso(week_start),
            )
            continue

        if entry.employee_id not in known_ids:
            log.warning("Excluding entry for employee not on roster", entry_id=entry.id, employee_id=entry.employee_id)
            continue

        if wanted is not None and entry.employee_id != wanted:
            continue

        index = (entry.work_date - week_start).days
        slots[entry.employee_id][index] += float(entry.hours)

    return [
        WeeklySummary(
            employee=employee,
            week_start=week_start,
            daily_hours=tuple(slots[employee.id]) if employee.id in slots else (0.0,) * DAYS_PER_WEEK,
        )
        for employee in included
    ]


class SummaryAggregator:
    """Fetches a window's roster and entries and pivots them.

    Stateless between calls: resident data lives with the caller and is
    handed back in through ``resident`` so partial failures can be retried.
    """

    def __init__(
        self,
        service: TimecardService,
        *,
        max_entry_hours: float = DEFAULT_MAX_ENTRY_HOURS,
        server_side_filter: bool = False,
    ) -> None:
        """Initialize aggregator.

        Parameters
        ----------
        service
            Timecard read service
        max_entry_hours
            Upper bound for a single entry
        server_side_filter
            Pass the employee filter to the service instead of fetching
            the whole window
        """
        self.service = service
        self.max_entry_hours = max_entry_hours
        self.server_side_filter = server_side_filter

    async def fetch(
        self,
        week_start: date,
        employee_filter: str | None = None,
        *,
        resident: RawWeek | None = None,
    ) -> RawWeek:
        """Fetch roster and entries for a window.

        Parts already present in ``resident`` (same window and filter scope)
        are reused; missing parts are fetched concurrently.

        Raises
        ------
        PartialFetchError
            If either fetch failed; ``partial`` keeps the successful half
        """
        wanted = normalize_filter(employee_filter)
        entries_filter = wanted if self.server_side_filter else None

        raw = RawWeek(week_start=week_start, entries_filter=entries_filter)
        if resident is not None and resident.week_start == week_start:
            raw.roster = resident.roster
            if resident.entries_filter == entries_filter:
                raw.entries = resident.entries

        jobs: dict[str, Any] = {}
        if raw.roster is None:
            jobs["roster"] = self.service.get_employee_roster()
        if raw.entries is None:
            jobs["entries"] = self.service.get_weekly_entries(
                format_date_iso(week_start),
                employee_id=entries_filter,
            )

        if not jobs:
            return raw

        with timing_context("fetch_week", component="aggregator", week=format_date_iso(week_start), parts=list(jobs)):
            results = await asyncio.gather(*jobs.values(), return_exceptions=True)

        first_error: TransportError | None = None
        for part, result in zip(jobs, results):
            if isinstance(result, TransportError):
                raw.errors[part] = str(result)
                first_error = first_error or result
                log.warning(f"Failed to fetch {part}", week=format_date_iso(week_start), error=str(result))
            elif isinstance(result, BaseException):
                raise result
            elif part == "roster":
                raw.roster = list(result)
            else:
                raw.entries = list(result)

        if first_error is not None:
            failed = ", ".join(sorted(raw.errors))
            raise PartialFetchError(f"Could not load {failed} for week of {week_start}: {first_error}", raw) from first_error

        return raw

    def aggregate(self, raw: RawWeek, employee_filter: str | None = None) -> list[WeeklySummary]:
        """Pivot fully fetched data.

        Raises
        ------
        ValueError
            If ``raw`` is missing its roster or entries
        """
        if not raw.complete:
            raise ValueError(f"Week of {raw.week_start} is not fully fetched")

        with timing_context("pivot_week", component="aggregator", week=format_date_iso(raw.week_start)) as ctx:
            summaries = pivot_week(
                raw.week_start,
                raw.roster or [],
                raw.entries or [],
                employee_filter,
                max_entry_hours=self.max_entry_hours,
            )
            ctx["employees"] = len(summaries)

        return summaries

    async def summarize(self, week_start: date, employee_filter: str | None = None) -> list[WeeklySummary]:
        """Fetch and pivot one window in a single call."""
        raw = await self.fetch(week_start, employee_filter)
        return self.aggregate(raw, employee_filter)
