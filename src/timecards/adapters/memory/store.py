"""In-memory timecard backend.

Implements the ``TimecardService`` read contract and publishes a change
notification on its feed for every mutation. Used by the ``--demo`` CLI mode
and by tests; failures and latency can be injected per read.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any

from ...core.events import ChangeEvent, ChangeKind, InProcessChangeFeed, Resource
from ...core.models import Employee, TimeCardEntry
from ...core.time import format_date_iso, parse_date
from ...core.validation import DEFAULT_MAX_ENTRY_HOURS, validate_entry
from ...observability.loguru_config import get_logger
from ..api.adapter import TransportError

__all__ = [
    "InMemoryTimecardStore",
    "create_demo_store",
]


class InMemoryTimecardStore:
    """Roster and entries kept in process memory.

    Example:
        >>> store = InMemoryTimecardStore()
        >>> store.add_employee(Employee(id="e1", name="Alice"))
        >>> store.submit_hours("e1", "2024-01-08", 8)
    """

    def __init__(
        self,
        feed: InProcessChangeFeed | None = None,
        *,
        latency: float = 0.0,
        max_entry_hours: float = DEFAULT_MAX_ENTRY_HOURS,
    ) -> None:
        """Initialize store.

        Parameters
        ----------
        feed
            Feed to publish mutations on (a new one when None)
        latency
            Seconds every read sleeps before answering
        max_entry_hours
            Upper bound enforced by ``submit_hours``
        """
        self.feed = feed or InProcessChangeFeed()
        self.latency = latency
        self.max_entry_hours = max_entry_hours

        # Injected failures, raised by every read until cleared
        self.roster_error: Exception | None = None
        self.entries_error: Exception | None = None

        self.calls: Counter[str] = Counter()
        self._employees: dict[str, Employee] = {}
        self._entries: dict[str, TimeCardEntry] = {}
        self._log = get_logger("store")

    # ------------------------------------------------------------------
    # TimecardService
    # ------------------------------------------------------------------

    async def get_employee_roster(self) -> list[Employee]:
        """Return every employee in insertion order, deactivated ones included."""
        self.calls["roster"] += 1
        await self._simulate(self.roster_error)
        return list(self._employees.values())

    async def get_weekly_entries(
        self,
        week_start_iso: str,
        *,
        employee_id: str | None = None,
    ) -> list[TimeCardEntry]:
        """Return entries dated in ``[week_start, week_start + 7 days)``."""
        self.calls["entries"] += 1
        await self._simulate(self.entries_error)

        start = parse_date(week_start_iso)
        end = start + timedelta(days=7)
        return [
            entry
            for entry in self._entries.values()
            if start <= entry.work_date < end and (employee_id is None or entry.employee_id == employee_id)
        ]

    async def _simulate(self, error: Exception | None) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        if error is not None:
            raise error

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_employee(self, employee: Employee) -> Employee:
        """Add or replace a roster record."""
        kind = ChangeKind.UPDATE if employee.id in self._employees else ChangeKind.INSERT
        self._employees[employee.id] = employee
        self._publish(kind, Resource.ROSTER, employee.to_dict())
        return employee

    def deactivate_employee(self, employee_id: str) -> Employee:
        """Mark an employee inactive. Their entries stay in the store.

        Raises
        ------
        KeyError
            If the employee is unknown
        """
        current = self._employees[employee_id]
        updated = Employee(
            id=current.id,
            name=current.name,
            designation=current.designation,
            department=current.department,
            email=current.email,
            is_active=False,
        )
        self._employees[employee_id] = updated
        self._publish(ChangeKind.UPDATE, Resource.ROSTER, updated.to_dict())
        return updated

    def submit_hours(
        self,
        employee_id: str,
        day: date | datetime | str,
        hours: float,
        *,
        notes: str = "",
        allow_duplicates: bool = False,
    ) -> TimeCardEntry:
        """Log hours for one employee and day.

        Replaces the employee's existing entry for that day unless
        ``allow_duplicates`` is set, in which case a second entry is added.

        Raises
        ------
        ValidationError
            If hours are negative, non-finite or above the limit
        KeyError
            If the employee is unknown
        """
        if employee_id not in self._employees:
            raise KeyError(employee_id)

        work_date = parse_date(day)
        existing = None if allow_duplicates else self._find_entry(employee_id, work_date)
        entry = TimeCardEntry(
            id=existing.id if existing else str(uuid.uuid4()),
            employee_id=employee_id,
            work_date=work_date,
            hours=hours,
            notes=notes,
        )
        validate_entry(entry, max_hours=self.max_entry_hours).raise_for_errors(f"entry {entry.id}")

        return self.put_entry(entry)

    def put_entry(self, entry: TimeCardEntry) -> TimeCardEntry:
        """Store an entry as-is, without validation."""
        kind = ChangeKind.UPDATE if entry.id in self._entries else ChangeKind.INSERT
        self._entries[entry.id] = entry
        self._publish(kind, Resource.ENTRY, entry.to_dict())
        return entry

    def delete_entry(self, entry_id: str) -> bool:
        """Remove an entry. Returns False if it did not exist."""
        entry = self._entries.pop(entry_id, None)
        if entry is None:
            return False
        self._publish(ChangeKind.DELETE, Resource.ENTRY, {"id": entry_id})
        return True

    def entries(self) -> list[TimeCardEntry]:
        """All stored entries."""
        return list(self._entries.values())

    def _find_entry(self, employee_id: str, work_date: date) -> TimeCardEntry | None:
        for entry in self._entries.values():
            if entry.employee_id == employee_id and entry.work_date == work_date:
                return entry
        return None

    def _publish(self, kind: ChangeKind, resource: Resource, payload: dict[str, Any]) -> None:
        delivered = self.feed.publish(ChangeEvent(kind=kind, resource=resource, payload=payload))
        self._log.debug(f"{resource.value}.{kind.value}", delivered=delivered)


def create_demo_store(week_start: date, feed: InProcessChangeFeed | None = None) -> InMemoryTimecardStore:
    """Store pre-filled with a small team and one week of hours."""
    store = InMemoryTimecardStore(feed)

    team = [
        Employee(id="emp-1", name="Alice Moreau", designation="Engineer", email="alice@example.com"),
        Employee(id="emp-2", name="Bob Lindqvist", designation="Designer", email="bob@example.com"),
        Employee(id="emp-3", name="Chen Wei", designation="Support", email="chen@example.com"),
    ]
    for employee in team:
        store.add_employee(employee)

    hours = {
        "emp-1": [8, 7.5, 8, 8, 6, 0, 0],
        "emp-2": [0, 4, 4, 0, 6, 0, 0],
    }
    for employee_id, daily in hours.items():
        for offset, value in enumerate(daily):
            if value:
                store.submit_hours(employee_id, week_start + timedelta(days=offset), value)

    get_logger("store").debug("Demo store ready", week=format_date_iso(week_start), employees=len(team))
    return store
