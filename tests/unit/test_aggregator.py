"""Tests for the weekly summary aggregator."""

from datetime import date

import pytest

from timecards.adapters.api.adapter import TransportError
from timecards.core.models import Employee, TimeCardEntry
from timecards.rollups.aggregator import (
    PartialFetchError,
    RawWeek,
    SummaryAggregator,
    WeeklySummary,
    normalize_filter,
    pivot_week,
)
from timecards.rollups.stats import compute_stats

WEEK = date(2024, 1, 1)


class TestPivotWeek:
    def test_scenario_duplicates_are_summed(self, alice, bob, scenario_entries):
        summaries = pivot_week(WEEK, [alice, bob], scenario_entries)

        assert [s.employee.id for s in summaries] == ["alice", "bob"]

        alice_row, bob_row = summaries
        assert alice_row.daily_hours == (12.0, 0.0, 2.0, 0.0, 0.0, 0.0, 0.0)
        assert alice_row.total == 14.0
        assert bob_row.daily_hours[4] == 6.0
        assert bob_row.total == 6.0

        stats = compute_stats(summaries)
        assert stats.total_hours == 20.0
        assert stats.active_count == 2

    def test_total_always_equals_sum_of_days(self, alice, bob, scenario_entries):
        for summary in pivot_week(WEEK, [alice, bob], scenario_entries):
            assert summary.total == sum(summary.daily_hours)
            assert len(summary.daily_hours) == 7

    def test_roster_order_is_kept(self, alice, bob, scenario_entries):
        summaries = pivot_week(WEEK, [bob, alice], scenario_entries)

        assert [s.employee.id for s in summaries] == ["bob", "alice"]

    def test_employee_without_entries_gets_zero_row(self, alice, bob):
        summaries = pivot_week(WEEK, [alice, bob], [])

        assert all(s.daily_hours == (0.0,) * 7 for s in summaries)
        assert all(s.total == 0 for s in summaries)

    def test_filter_by_employee(self, alice, bob, scenario_entries):
        summaries = pivot_week(WEEK, [alice, bob], scenario_entries, "bob")

        assert [s.employee.id for s in summaries] == ["bob"]
        assert summaries[0].total == 6.0

    @pytest.mark.parametrize("employee_filter", [None, "all", "ALL", ""])
    def test_filter_all_returns_full_roster(self, alice, bob, scenario_entries, employee_filter):
        summaries = pivot_week(WEEK, [alice, bob], scenario_entries, employee_filter)

        assert [s.employee.id for s in summaries] == ["alice", "bob"]

    def test_filter_unknown_employee_is_empty(self, alice, bob, scenario_entries):
        assert pivot_week(WEEK, [alice, bob], scenario_entries, "carol") == []

    def test_invalid_entries_are_excluded(self, alice):
        entries = [
            TimeCardEntry("ok", "alice", date(2024, 1, 2), 3.0),
            TimeCardEntry("neg", "alice", date(2024, 1, 2), -5.0),
            TimeCardEntry("big", "alice", date(2024, 1, 2), 30.0),
            TimeCardEntry("nan", "alice", date(2024, 1, 2), float("nan")),
        ]

        (summary,) = pivot_week(WEEK, [alice], entries)

        assert summary.daily_hours[1] == 3.0
        assert summary.total == 3.0

    def test_max_entry_hours_is_configurable(self, alice):
        entries = [TimeCardEntry("t1", "alice", date(2024, 1, 2), 10.0)]

        (summary,) = pivot_week(WEEK, [alice], entries, max_entry_hours=8)

        assert summary.total == 0.0

    def test_entries_outside_window_are_excluded(self, alice):
        entries = [
            TimeCardEntry("before", "alice", date(2023, 12, 31), 5.0),
            TimeCardEntry("sunday", "alice", date(2024, 1, 7), 1.0),
            TimeCardEntry("after", "alice", date(2024, 1, 8), 5.0),
        ]

        (summary,) = pivot_week(WEEK, [alice], entries)

        assert summary.daily_hours == (0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 1.0)

    def test_unknown_and_inactive_employees_are_excluded(self, alice):
        former = Employee(id="former", name="Former", is_active=False)
        entries = [
            TimeCardEntry("t1", "alice", date(2024, 1, 1), 1.0),
            TimeCardEntry("t2", "former", date(2024, 1, 1), 8.0),
            TimeCardEntry("t3", "ghost", date(2024, 1, 1), 8.0),
        ]

        summaries = pivot_week(WEEK, [alice, former], entries)

        assert [s.employee.id for s in summaries] == ["alice"]
        assert compute_stats(summaries).total_hours == 1.0


class TestWeeklySummary:
    def test_requires_seven_slots(self, alice):
        with pytest.raises(ValueError, match="7 slots"):
            WeeklySummary(employee=alice, week_start=WEEK, daily_hours=(1.0, 2.0))

    def test_hours_on(self, alice):
        summary = WeeklySummary(alice, WEEK, (1.0, 2.0, 3.0, 0.0, 0.0, 0.0, 0.5))

        assert summary.hours_on(date(2024, 1, 2)) == 2.0
        assert summary.hours_on(date(2024, 1, 7)) == 0.5
        assert summary.hours_on(date(2024, 1, 8)) == 0.0
        assert summary.is_active

    def test_to_dict(self, alice):
        data = WeeklySummary(alice, WEEK, (8.0,) + (0.0,) * 6).to_dict()

        assert data["week_start"] == "2024-01-01"
        assert data["total"] == 8.0
        assert data["employee"]["id"] == "alice"


def test_normalize_filter():
    assert normalize_filter(None) is None
    assert normalize_filter("all") is None
    assert normalize_filter("  ") is None
    assert normalize_filter(" bob ") == "bob"


class TestSummaryAggregator:
    @pytest.mark.asyncio
    async def test_summarize(self, service):
        summaries = await SummaryAggregator(service).summarize(WEEK)

        assert [s.total for s in summaries] == [14.0, 6.0]
        assert service.roster_calls == 1
        assert service.entry_calls == [("2024-01-01", None)]

    @pytest.mark.asyncio
    async def test_client_side_filter_fetches_whole_week(self, service):
        summaries = await SummaryAggregator(service).summarize(WEEK, "alice")

        assert [s.employee.id for s in summaries] == ["alice"]
        assert service.entry_calls == [("2024-01-01", None)]

    @pytest.mark.asyncio
    async def test_server_side_filter_passes_employee(self, service):
        aggregator = SummaryAggregator(service, server_side_filter=True)
        raw = await aggregator.fetch(WEEK, "bob")

        assert service.entry_calls == [("2024-01-01", "bob")]
        assert raw.entries_filter == "bob"
        assert raw.covers(WEEK, "bob")
        assert not raw.covers(WEEK, "alice")
        assert [s.total for s in aggregator.aggregate(raw, "bob")] == [6.0]

    @pytest.mark.asyncio
    async def test_roster_failure_keeps_entries(self, service, transport_error):
        service.roster_error = transport_error
        aggregator = SummaryAggregator(service)

        with pytest.raises(PartialFetchError) as exc_info:
            await aggregator.fetch(WEEK)

        partial = exc_info.value.partial
        assert isinstance(exc_info.value, TransportError)
        assert partial.roster is None
        assert partial.entries is not None and len(partial.entries) == 4
        assert set(partial.errors) == {"roster"}

        # Retry only repeats the failed half
        service.roster_error = None
        raw = await aggregator.fetch(WEEK, resident=partial)

        assert raw.complete
        assert service.roster_calls == 2
        assert len(service.entry_calls) == 1

    @pytest.mark.asyncio
    async def test_entries_failure_keeps_roster(self, service, transport_error):
        service.entries_error = transport_error

        with pytest.raises(PartialFetchError) as exc_info:
            await SummaryAggregator(service).fetch(WEEK)

        assert exc_info.value.partial.roster is not None
        assert exc_info.value.partial.entries is None

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self, service):
        service.entries_error = RuntimeError("bug")

        with pytest.raises(RuntimeError, match="bug"):
            await SummaryAggregator(service).fetch(WEEK)

    @pytest.mark.asyncio
    async def test_resident_for_other_week_is_ignored(self, service, alice):
        resident = RawWeek(week_start=date(2023, 12, 25), roster=[alice], entries=[])

        raw = await SummaryAggregator(service).fetch(WEEK, resident=resident)

        assert service.roster_calls == 1
        assert len(raw.roster) == 2

    def test_aggregate_requires_complete_data(self, service):
        with pytest.raises(ValueError, match="not fully fetched"):
            SummaryAggregator(service).aggregate(RawWeek(week_start=WEEK))
