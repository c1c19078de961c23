"""HTTP timecard service.

Reads the roster and weekly entries from the timecard REST API:

- ``GET /timecards/employer/employees``
- ``GET /timecards/employer/weekly-summary?startDate=YYYY-MM-DD``
"""

from __future__ import annotations

from typing import Any

import httpx

from ...core.models import Employee, TimeCardEntry
from ...core.validation import ValidationError
from ...observability.loguru_config import get_logger, timing_context
from .adapter import TransportError, TransportTimeoutError

__all__ = ["HttpTimecardService", "create_http_service"]

log = get_logger("api")


class HttpTimecardService:
    """Timecard API client.

    Each call opens its own ``httpx.AsyncClient``; the view issues a handful
    of reads per navigation so connection reuse is not worth the lifecycle.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize HTTP service.

        Parameters
        ----------
        base_url
            API root, e.g. ``http://localhost:5001/api``
        token
            Bearer token for the employer account
        timeout
            Per-request timeout in seconds
        transport
            Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    def _make_headers(self) -> dict[str, str]:
        """Create request headers."""
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"

        try:
            with timing_context("http_get", component="api", path=path):
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.get(url, headers=self._make_headers(), params=params)
        except httpx.TimeoutException as e:
            raise TransportTimeoutError(f"Timecard API request timed out after {self.timeout}s: {path}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Timecard API HTTP error: {e}") from e

        if response.status_code >= 400:
            error_msg = response.text
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                error_msg = body.get("message", error_msg)
            raise TransportError(f"Timecard API error ({response.status_code}): {error_msg}")

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"Timecard API returned invalid JSON for {path}") from e

        if not isinstance(data, dict):
            raise TransportError(f"Timecard API returned unexpected payload for {path}")
        return data

    async def get_employee_roster(self) -> list[Employee]:
        """Fetch active employees, in the server's (name) order."""
        data = await self._get_json("/timecards/employer/employees")

        roster: list[Employee] = []
        records = data.get("employees") or []
        if not isinstance(records, list):
            raise TransportError("Timecard API returned unexpected roster payload")

        for record in records:
            if not isinstance(record, dict):
                log.warning("Skipping non-object roster record", record_type=type(record).__name__)
                continue
            try:
                roster.append(Employee.from_api(record))
            except ValidationError as exc:
                log.warning("Skipping malformed roster record", error=str(exc), errors=exc.errors)

        log.debug("Roster fetched", count=len(roster))
        return roster

    async def get_weekly_entries(
        self,
        week_start_iso: str,
        *,
        employee_id: str | None = None,
    ) -> list[TimeCardEntry]:
        """Fetch the weekly summary and flatten it to entries.

        The server's rounded ``totalHours`` is ignored; totals are always
        recomputed from the entries.
        """
        params = {"startDate": week_start_iso}
        if employee_id:
            params["employeeId"] = employee_id

        data = await self._get_json("/timecards/employer/weekly-summary", params=params)
        return parse_weekly_summary(data)


def parse_weekly_summary(data: dict[str, Any]) -> list[TimeCardEntry]:
    """Flatten a ``weekly-summary`` payload into entries.

    Malformed groups and entries are logged and skipped.

    Raises
    ------
    TransportError
        If ``summary`` is not a list
    """
    entries: list[TimeCardEntry] = []

    groups = data.get("summary") or []
    if not isinstance(groups, list):
        raise TransportError("Timecard API returned unexpected weekly summary payload")

    for group in groups:
        if not isinstance(group, dict):
            log.warning("Skipping non-object summary group", group_type=type(group).__name__)
            continue

        employee = group.get("employee") or {}
        if isinstance(employee, str):
            employee = {"id": employee}
        elif not isinstance(employee, dict):
            employee = {}
        employee_id = employee.get("id") or employee.get("_id")
        if not employee_id:
            log.warning("Skipping summary group without employee id")
            continue

        records = group.get("entries") or []
        if not isinstance(records, list):
            log.warning("Skipping summary group with malformed entries", employee_id=str(employee_id))
            continue

        for index, record in enumerate(records):
            if not isinstance(record, dict):
                log.warning(
                    "Excluding non-object entry",
                    employee_id=str(employee_id),
                    record_type=type(record).__name__,
                )
                continue

            payload = dict(record)
            payload.setdefault("_id", f"{employee_id}:{payload.get('date')}:{index}")
            try:
                entries.append(TimeCardEntry.from_api(payload, employee_id=str(employee_id)))
            except ValidationError as exc:
                log.warning(
                    "Excluding malformed entry",
                    employee_id=str(employee_id),
                    error=str(exc),
                    errors=exc.errors,
                )

    return entries


def create_http_service(settings: Any, *, transport: httpx.AsyncBaseTransport | None = None) -> HttpTimecardService:
    """Build the HTTP service from ``Settings``."""
    return HttpTimecardService(
        settings.require_api_url(),
        token=settings.api_token,
        timeout=settings.request_timeout,
        transport=transport,
    )
