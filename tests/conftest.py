"""Shared fixtures for timecard tests."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from timecards.adapters.api.adapter import TransportError
from timecards.core.models import Employee, TimeCardEntry


class GatedTimecardService:
    """Scripted ``TimecardService`` whose reads can be held open per week."""

    def __init__(self, roster: list[Employee], entries: list[TimeCardEntry]) -> None:
        self.roster = list(roster)
        self.entries = list(entries)
        self.roster_error: Exception | None = None
        self.entries_error: Exception | None = None
        self.gates: dict[str, asyncio.Event] = {}
        self.roster_calls = 0
        self.entry_calls: list[tuple[str, str | None]] = []

    def hold(self, week_start_iso: str) -> asyncio.Event:
        """Block entry reads for a week until the returned event is set."""
        gate = asyncio.Event()
        self.gates[week_start_iso] = gate
        return gate

    async def get_employee_roster(self) -> list[Employee]:
        self.roster_calls += 1
        await asyncio.sleep(0)
        if self.roster_error is not None:
            raise self.roster_error
        return list(self.roster)

    async def get_weekly_entries(self, week_start_iso: str, *, employee_id: str | None = None) -> list[TimeCardEntry]:
        self.entry_calls.append((week_start_iso, employee_id))
        gate = self.gates.get(week_start_iso)
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        if self.entries_error is not None:
            raise self.entries_error

        start = date.fromisoformat(week_start_iso)
        return [
            e
            for e in self.entries
            if 0 <= (e.work_date - start).days < 7 and (employee_id is None or e.employee_id == employee_id)
        ]


@pytest.fixture
def alice():
    return Employee(id="alice", name="Alice", designation="Engineer")


@pytest.fixture
def bob():
    return Employee(id="bob", name="Bob", designation="Designer")


@pytest.fixture
def scenario_entries():
    """Week of 2024-01-01: Alice 8h + 4h Monday, 2h Wednesday; Bob 6h Friday."""
    return [
        TimeCardEntry("t1", "alice", date(2024, 1, 1), 8.0),
        TimeCardEntry("t2", "alice", date(2024, 1, 1), 4.0),
        TimeCardEntry("t3", "alice", date(2024, 1, 3), 2.0),
        TimeCardEntry("t4", "bob", date(2024, 1, 5), 6.0),
    ]


@pytest.fixture
def service(alice, bob, scenario_entries):
    return GatedTimecardService([alice, bob], scenario_entries)


@pytest.fixture
def transport_error():
    return TransportError("connection refused")
