"""Timecard service protocol and base types.

Defines the read interface the weekly view consumes:
- get_employee_roster(): employees visible to the employer
- get_weekly_entries(): raw entries of one week window
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ...core.models import Employee, TimeCardEntry

__all__ = [
    "TimecardService",
    "TransportError",
    "TransportTimeoutError",
]


class TransportError(Exception):
    """Base exception for failed roster/entry reads. Recoverable."""

    pass


class TransportTimeoutError(TransportError):
    """Raised when a request times out."""

    pass


class TimecardService(Protocol):
    """Read side of the timecard backend."""

    async def get_employee_roster(self) -> list[Employee]:
        """Return the roster in display order.

        Raises
        ------
        TransportError
            On network or storage failure
        """
        ...

    async def get_weekly_entries(
        self,
        week_start_iso: str,
        *,
        employee_id: str | None = None,
    ) -> list[TimeCardEntry]:
        """Return every entry dated inside the week starting ``week_start_iso``.

        ``employee_id`` is a pass-through hint; implementations that cannot
        filter server-side return all entries and the caller filters.

        Raises
        ------
        TransportError
            On network or storage failure
        """
        ...
