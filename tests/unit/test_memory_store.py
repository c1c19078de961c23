"""Tests for the in-memory timecard store."""

from datetime import date

import pytest
import pytest_asyncio

from timecards.adapters.api.adapter import TransportError
from timecards.adapters.memory.store import InMemoryTimecardStore, create_demo_store
from timecards.core.events import ALL_RESOURCES, ChangeKind, Resource
from timecards.core.models import Employee, TimeCardEntry
from timecards.core.validation import ValidationError


@pytest.fixture
def store():
    store = InMemoryTimecardStore()
    store.add_employee(Employee(id="e1", name="Alice"))
    store.add_employee(Employee(id="e2", name="Bob"))
    return store


@pytest_asyncio.fixture
async def events(store):
    received = []
    await store.feed.subscribe(ALL_RESOURCES, received.append)
    return received


class TestMutations:
    def test_submit_hours_upserts_same_day(self, store):
        first = store.submit_hours("e1", "2024-01-08", 8)
        second = store.submit_hours("e1", date(2024, 1, 8), 6, notes="fixed")

        assert second.id == first.id
        assert [e.hours for e in store.entries()] == [6]

    def test_submit_hours_allows_duplicates(self, store):
        store.submit_hours("e1", "2024-01-08", 8)
        store.submit_hours("e1", "2024-01-08", 4, allow_duplicates=True)

        assert sorted(e.hours for e in store.entries()) == [4, 8]

    @pytest.mark.parametrize("hours", [-1, 25, float("nan")])
    def test_submit_hours_validates(self, store, hours):
        with pytest.raises(ValidationError):
            store.submit_hours("e1", "2024-01-08", hours)

        assert store.entries() == []

    def test_submit_hours_unknown_employee(self, store):
        with pytest.raises(KeyError):
            store.submit_hours("nobody", "2024-01-08", 8)

    def test_put_entry_skips_validation(self, store):
        store.put_entry(TimeCardEntry("bad", "e1", date(2024, 1, 8), -3.0))

        assert store.entries()[0].hours == -3.0

    def test_deactivate_employee(self, store):
        updated = store.deactivate_employee("e2")

        assert updated.is_active is False
        with pytest.raises(KeyError):
            store.deactivate_employee("ghost")

    def test_delete_entry(self, store):
        entry = store.submit_hours("e1", "2024-01-08", 8)

        assert store.delete_entry(entry.id) is True
        assert store.delete_entry(entry.id) is False
        assert store.entries() == []


class TestChangeEvents:
    @pytest.mark.asyncio
    async def test_every_mutation_is_published(self, store, events):
        entry = store.submit_hours("e1", "2024-01-08", 8)
        store.submit_hours("e1", "2024-01-08", 7)
        store.delete_entry(entry.id)
        store.add_employee(Employee(id="e3", name="Carol"))
        store.deactivate_employee("e3")

        assert [(e.resource, e.kind) for e in events] == [
            (Resource.ENTRY, ChangeKind.INSERT),
            (Resource.ENTRY, ChangeKind.UPDATE),
            (Resource.ENTRY, ChangeKind.DELETE),
            (Resource.ROSTER, ChangeKind.INSERT),
            (Resource.ROSTER, ChangeKind.UPDATE),
        ]


class TestReads:
    @pytest.mark.asyncio
    async def test_weekly_entries_window(self, store):
        store.submit_hours("e1", "2024-01-07", 1)
        store.submit_hours("e1", "2024-01-08", 2)
        store.submit_hours("e2", "2024-01-14", 3)
        store.submit_hours("e2", "2024-01-15", 4)

        entries = await store.get_weekly_entries("2024-01-08")

        assert sorted(e.hours for e in entries) == [2, 3]
        assert store.calls["entries"] == 1

    @pytest.mark.asyncio
    async def test_weekly_entries_filter(self, store):
        store.submit_hours("e1", "2024-01-08", 2)
        store.submit_hours("e2", "2024-01-09", 3)

        entries = await store.get_weekly_entries("2024-01-08", employee_id="e2")

        assert [e.employee_id for e in entries] == ["e2"]

    @pytest.mark.asyncio
    async def test_roster_includes_inactive_in_order(self, store):
        store.deactivate_employee("e1")

        roster = await store.get_employee_roster()

        assert [(e.id, e.is_active) for e in roster] == [("e1", False), ("e2", True)]

    @pytest.mark.asyncio
    async def test_injected_failures(self, store):
        store.roster_error = TransportError("roster down")
        store.entries_error = TransportError("entries down")

        with pytest.raises(TransportError, match="roster down"):
            await store.get_employee_roster()
        with pytest.raises(TransportError, match="entries down"):
            await store.get_weekly_entries("2024-01-08")


@pytest.mark.asyncio
async def test_demo_store_has_a_week_of_hours():
    store = create_demo_store(date(2024, 1, 8))

    roster = await store.get_employee_roster()
    entries = await store.get_weekly_entries("2024-01-08")

    assert len(roster) == 3
    assert sum(e.hours for e in entries) == pytest.approx(51.5)
    assert await store.get_weekly_entries("2024-01-15") == []
