"""View state controller for the employer weekly timecard view.

Holds the current window and employee filter, drives the aggregator, and
applies results strictly in request order: every aggregation carries a
generation number and a result whose generation is no longer current is
dropped on arrival.

All state is mutated on the event loop thread; the controller is not
thread-safe and does not need to be.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from ..adapters.api.adapter import TransportError
from ..core.time import format_date_iso, get_current_date
from ..core.validation import DEFAULT_MAX_ENTRY_HOURS
from ..observability.loguru_config import get_logger, timing_context
from ..rollups.aggregator import ALL_EMPLOYEES, RawWeek, SummaryAggregator, WeeklySummary, normalize_filter
from ..rollups.stats import EMPTY_STATS, AggregateStats, compute_stats
from ..rollups.time_windows import WeekWindow, monday_of, shift_week
from .feed_listener import ChangeFeedListener, ConnectionState

if TYPE_CHECKING:
    from types import TracebackType

    from ..adapters.api.adapter import TimecardService
    from ..config.settings import Settings
    from ..core.events import ChangeEvent, ChangeFeed

__all__ = [
    "WeekView",
    "WeekViewController",
]


@dataclass(frozen=True)
class WeekView:
    """Read-only snapshot of the dashboard state.

    ``summaries`` are the last successfully aggregated rows; after a failed
    fetch they may belong to an earlier window, which
    ``summaries_week_start`` tells apart from ``week_start``.
    """

    week_start: date
    week_end_exclusive: date
    days: tuple[date, ...]
    employee_filter: str
    summaries: tuple[WeeklySummary, ...]
    summaries_week_start: date | None
    stats: AggregateStats
    loading: bool
    error: str | None
    connection_state: ConnectionState
    generation: int

    @property
    def is_current(self) -> bool:
        """Whether the visible rows belong to the selected window."""
        return self.summaries_week_start == self.week_start

    def to_dict(self) -> dict[str, Any]:
        return {
            "week_start": format_date_iso(self.week_start),
            "week_end_exclusive": format_date_iso(self.week_end_exclusive),
            "days": [format_date_iso(d) for d in self.days],
            "employee_filter": self.employee_filter,
            "summaries": [s.to_dict() for s in self.summaries],
            "summaries_week_start": format_date_iso(self.summaries_week_start) if self.summaries_week_start else None,
            "stats": self.stats.to_dict(),
            "loading": self.loading,
            "error": self.error,
            "connection_state": self.connection_state.value,
        }


class WeekViewController:
    """Coordinates week navigation, filtering, feed events and aggregation.

    Operations that change what is displayed return the ``asyncio.Task``
    running the new aggregation; callers may await it or ignore it.
    They must be called from inside a running event loop.

    Example:
        >>> async with WeekViewController(service, feed, reference_date="2024-01-03") as view:
        ...     await view.wait_idle()
        ...     view.navigate_week(-1)
    """

    def __init__(
        self,
        service: TimecardService,
        feed: ChangeFeed | None = None,
        *,
        reference_date: date | datetime | str | None = None,
        employee_filter: str | None = None,
        timezone_str: str = "UTC",
        max_entry_hours: float = DEFAULT_MAX_ENTRY_HOURS,
        server_side_filter: bool = False,
    ) -> None:
        """Initialize controller.

        Parameters
        ----------
        service
            Timecard read service
        feed
            Change feed; live refresh is disabled when None
        reference_date
            Any date of the initial week (default: today in ``timezone_str``)
        employee_filter
            Initial filter: employee id, or None/"all"
        timezone_str
            Local timezone used to pick Mondays
        max_entry_hours
            Upper bound for a single entry
        server_side_filter
            Let the service filter entries by employee
        """
        self.timezone_str = timezone_str
        self._aggregator = SummaryAggregator(
            service,
            max_entry_hours=max_entry_hours,
            server_side_filter=server_side_filter,
        )
        self._listener = (
            ChangeFeedListener(feed, self.on_feed_event, on_state_change=self._on_connection_state)
            if feed is not None
            else None
        )
        self._log = get_logger("dashboard")

        reference = reference_date if reference_date is not None else get_current_date(timezone_str)
        self._week_start = monday_of(reference, timezone_str)
        self._employee_filter = normalize_filter(employee_filter)

        self._summaries: tuple[WeeklySummary, ...] = ()
        self._summaries_week_start: date | None = None
        self._stats = EMPTY_STATS
        self._loading = False
        self._error: str | None = None
        self._connection_state = ConnectionState.DISCONNECTED

        self._generation = 0
        self._resident: RawWeek | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._active = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        service: TimecardService,
        feed: ChangeFeed | None = None,
        **kwargs: Any,
    ) -> WeekViewController:
        """Build a controller with timezone and validation limits from settings."""
        kwargs.setdefault("timezone_str", settings.timezone)
        kwargs.setdefault("max_entry_hours", settings.max_entry_hours)
        kwargs.setdefault("server_side_filter", settings.server_side_filter)
        return cls(service, feed, **kwargs)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def week_start(self) -> date:
        return self._week_start

    @property
    def employee_filter(self) -> str | None:
        return self._employee_filter

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def listener(self) -> ChangeFeedListener | None:
        return self._listener

    @property
    def view(self) -> WeekView:
        """Snapshot of the current state."""
        window = WeekWindow(self._week_start)
        return WeekView(
            week_start=window.start,
            week_end_exclusive=window.end_exclusive,
            days=tuple(window),
            employee_filter=self._employee_filter or ALL_EMPLOYEES,
            summaries=self._summaries,
            summaries_week_start=self._summaries_week_start,
            stats=self._stats,
            loading=self._loading,
            error=self._error,
            connection_state=self._connection_state,
            generation=self._generation,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def activate(self) -> asyncio.Task[None]:
        """Subscribe to the change feed and load the initial window."""
        self._active = True
        if self._listener is not None:
            await self._listener.acquire()
        return self._start_aggregation(reason="activate")

    async def deactivate(self) -> None:
        """Release the subscription and abandon in-flight aggregations."""
        self._active = False
        # Anything still running belongs to a torn-down view
        self._generation += 1
        self._loading = False
        try:
            if self._listener is not None:
                await self._listener.release()
        finally:
            pending = list(self._tasks)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    async def __aenter__(self) -> WeekViewController:
        await self.activate()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.deactivate()

    async def reconnect(self) -> bool:
        """Re-subscribe after the feed dropped. Returns True when connected."""
        if self._listener is None:
            return False
        return await self._listener.acquire()

    async def wait_idle(self) -> None:
        """Wait until no aggregation is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def set_week(self, value: date | datetime | str) -> asyncio.Task[None]:
        """Show the week containing ``value``."""
        self._week_start = monday_of(value, self.timezone_str)
        return self._start_aggregation(reason="set_week")

    def navigate_week(self, delta: int) -> asyncio.Task[None]:
        """Move ``delta`` weeks forward (negative = back)."""
        self._week_start = shift_week(self._week_start, delta)
        return self._start_aggregation(reason="navigate_week")

    def set_employee_filter(self, employee_filter: str | None) -> asyncio.Task[None]:
        """Restrict rows to one employee id, or None/"all" for everyone.

        Re-pivots resident data when the current window is fully loaded and
        nothing newer is in flight; otherwise fetches.
        """
        self._employee_filter = normalize_filter(employee_filter)

        resident = self._resident
        if (
            not self._loading
            and resident is not None
            and resident.complete
            and resident.covers(self._week_start, self._employee_filter)
        ):
            return self._start_aggregation(reason="set_employee_filter", resident=resident)
        return self._start_aggregation(reason="set_employee_filter")

    def on_feed_event(self, event: ChangeEvent | None = None) -> asyncio.Task[None]:
        """Re-aggregate the current window/filter, whatever the event touched."""
        return self._start_aggregation(
            reason="feed_event",
            correlation_id=event.correlation_id if event is not None else None,
        )

    def retry(self) -> asyncio.Task[None]:
        """Retry the current window after a failure.

        Only the part that failed is fetched again. Also re-subscribes when
        the feed is disconnected.
        """
        if self._active and self._listener is not None and not self._listener.connected:
            self._spawn(self._listener.acquire())

        resident = self._resident
        if resident is not None and resident.week_start != self._week_start:
            resident = None
        return self._start_aggregation(reason="retry", resident=resident)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start_aggregation(
        self,
        *,
        reason: str,
        resident: RawWeek | None = None,
        correlation_id: str | None = None,
    ) -> asyncio.Task[None]:
        self._generation += 1
        self._loading = True

        self._log.debug(
            "Aggregation requested",
            reason=reason,
            generation=self._generation,
            week=format_date_iso(self._week_start),
            employee_filter=self._employee_filter or ALL_EMPLOYEES,
            correlation_id=correlation_id,
        )

        return self._spawn(
            self._aggregate(self._generation, self._week_start, self._employee_filter, resident)
        )

    def _spawn(self, coro: Any) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _aggregate(
        self,
        generation: int,
        week_start: date,
        employee_filter: str | None,
        resident: RawWeek | None,
    ) -> None:
        week = format_date_iso(week_start)

        with timing_context("aggregate_week", component="dashboard", week=week, generation=generation):
            try:
                raw = await self._aggregator.fetch(week_start, employee_filter, resident=resident)
                summaries = self._aggregator.aggregate(raw, employee_filter)
            except TransportError as exc:
                if generation != self._generation:
                    self._log.debug("Discarding stale failure", generation=generation, current=self._generation)
                    return

                partial = getattr(exc, "partial", None)
                if partial is not None:
                    self._resident = partial
                self._error = str(exc)
                self._loading = False
                self._log.warning("Weekly summary unavailable", week=week, error=str(exc))
                return
            except Exception as exc:
                if generation != self._generation:
                    self._log.debug("Discarding stale failure", generation=generation, current=self._generation)
                    return

                self._resident = None
                self._error = f"Unexpected error loading week of {week}: {exc}"
                self._loading = False
                self._log.exception("Weekly summary aggregation failed", week=week, generation=generation)
                return

        if generation != self._generation:
            self._log.debug("Discarding stale result", generation=generation, current=self._generation, week=week)
            return

        self._resident = raw
        self._summaries = tuple(summaries)
        self._summaries_week_start = week_start
        self._stats = compute_stats(self._summaries)
        self._error = None
        self._loading = False

        self._log.info(
            "Weekly summary updated",
            week=week,
            generation=generation,
            employees=len(self._summaries),
            total_hours=self._stats.total_hours,
        )

    def _on_connection_state(self, state: ConnectionState) -> None:
        self._connection_state = state
