"""End-to-end weekly view against the in-memory store and its change feed."""

from datetime import date

import pytest

from timecards.adapters.api.adapter import TransportError
from timecards.adapters.memory.store import InMemoryTimecardStore
from timecards.core.events import InProcessChangeFeed
from timecards.core.models import Employee
from timecards.dashboard.controller import WeekViewController
from timecards.dashboard.feed_listener import ConnectionState


@pytest.fixture
def feed():
    return InProcessChangeFeed()


@pytest.fixture
def store(feed):
    store = InMemoryTimecardStore(feed)
    store.add_employee(Employee(id="alice", name="Alice"))
    store.add_employee(Employee(id="bob", name="Bob"))
    store.submit_hours("alice", "2024-01-01", 8)
    store.submit_hours("alice", "2024-01-01", 4, allow_duplicates=True)
    store.submit_hours("alice", "2024-01-03", 2)
    store.submit_hours("bob", "2024-01-05", 6)
    return store


def rows(controller):
    return {s.employee.id: s.daily_hours for s in controller.view.summaries}


@pytest.mark.asyncio
async def test_live_updates_follow_store_mutations(store, feed):
    async with WeekViewController(store, feed, reference_date="2024-01-04") as controller:
        await controller.wait_idle()

        assert rows(controller)["alice"][0] == 12.0
        assert controller.view.stats.total_hours == 20.0

        # New hours show up without any explicit refresh
        store.submit_hours("bob", "2024-01-06", 3)
        await controller.wait_idle()
        assert rows(controller)["bob"][5] == 3.0
        assert controller.view.stats.total_hours == 23.0

        # Outside the window: triggers a refresh but changes nothing
        store.submit_hours("bob", "2024-01-08", 5)
        await controller.wait_idle()
        assert controller.view.stats.total_hours == 23.0

        entry = next(e for e in store.entries() if e.employee_id == "alice" and e.work_date == date(2024, 1, 3))
        store.delete_entry(entry.id)
        await controller.wait_idle()
        assert rows(controller)["alice"][2] == 0.0

        store.deactivate_employee("bob")
        await controller.wait_idle()
        assert list(rows(controller)) == ["alice"]
        assert controller.view.stats.total_hours == 12.0

        for summary in controller.view.summaries:
            assert summary.total == sum(summary.daily_hours)


@pytest.mark.asyncio
async def test_burst_of_events_settles_on_latest_data(store, feed):
    store.latency = 0.01

    async with WeekViewController(store, feed, reference_date="2024-01-01") as controller:
        await controller.wait_idle()
        calls_before = store.calls["entries"]

        for day in range(1, 6):
            store.submit_hours("bob", date(2024, 1, day), 1)
        await controller.wait_idle()

        assert store.calls["entries"] == calls_before + 5
        assert sum(rows(controller)["bob"]) == 5.0
        assert controller.view.loading is False


@pytest.mark.asyncio
async def test_outage_and_recovery(store, feed):
    async with WeekViewController(store, feed, reference_date="2024-01-01") as controller:
        await controller.wait_idle()

        store.roster_error = TransportError("database unavailable")
        feed.close(ConnectionError("socket reset"))
        feed.set_available(False)

        await controller.navigate_week(-1)
        view = controller.view
        assert view.error is not None
        assert view.connection_state is ConnectionState.DISCONNECTED
        assert view.summaries_week_start == date(2024, 1, 1)

        store.roster_error = None
        feed.set_available(True)
        controller.retry()
        await controller.wait_idle()

        view = controller.view
        assert view.error is None
        assert view.week_start == date(2023, 12, 25)
        assert view.summaries_week_start == date(2023, 12, 25)
        assert view.connection_state is ConnectionState.CONNECTED
        assert feed.subscription_count() == 1

    assert feed.subscription_count() == 0
