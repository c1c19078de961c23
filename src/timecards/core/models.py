"""Timecard domain records.

Employees and time card entries are owned by the backing store; the weekly
view only reads them. Both map from the REST payloads of the timecard API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from .time import parse_date
from .validation import ValidationError

__all__ = [
    "Employee",
    "TimeCardEntry",
]

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


def _parse_flag(value: Any, *, default: bool) -> bool:
    """Read a JSON flag that may arrive as a bool, number or string."""
    if value is None:
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if not text:
            return default
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise ValidationError(f"Malformed flag value: {value!r}", errors=[f"not a boolean: {value!r}"])
    return bool(value)


@dataclass(frozen=True)
class Employee:
    """Roster record.

    Attributes
    ----------
    id : str
        Unique employee identifier
    name : str
        Display name
    designation : str | None
        Job title
    department : str | None
        Department name
    email : str | None
        Contact address
    is_active : bool
        False once the employee has been deactivated by an admin
    """

    id: str
    name: str
    designation: str | None = None
    department: str | None = None
    email: str | None = None
    is_active: bool = True

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Employee:
        """Build from an API record (accepts ``id`` or Mongo-style ``_id``)."""
        employee_id = data.get("id") or data.get("_id")
        if not employee_id:
            raise ValidationError("Employee record without id", errors=["missing id"])

        return cls(
            id=str(employee_id),
            name=data.get("name") or str(employee_id),
            designation=data.get("designation") or None,
            department=data.get("department") or None,
            email=data.get("email") or None,
            is_active=_parse_flag(data.get("isActive"), default=True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "designation": self.designation,
            "department": self.department,
            "email": self.email,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class TimeCardEntry:
    """Hours one employee logged for one calendar day.

    Only the day matters; time-of-day carried by the source is discarded
    when the entry is parsed.
    """

    id: str
    employee_id: str
    work_date: date
    hours: float
    notes: str = ""
    category: str | None = None
    is_locked: bool = False
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_api(cls, data: dict[str, Any], *, employee_id: str | None = None) -> TimeCardEntry:
        """Build from an API record.

        Parameters
        ----------
        data
            Entry payload (``date``, ``hoursWorked``, optional ``_id``/``notes``)
        employee_id
            Owning employee when the payload is nested under an employee

        Raises
        ------
        ValidationError
            If the date or hours cannot be parsed
        """
        owner = employee_id or data.get("employeeId")
        if isinstance(owner, dict):
            owner = owner.get("id") or owner.get("_id")
        if not owner:
            raise ValidationError("Entry without employee reference", errors=["missing employeeId"])

        raw_date = data.get("date")
        try:
            work_date = parse_date(raw_date)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed entry date: {raw_date!r}", errors=[str(exc)]) from exc

        raw_hours = data.get("hoursWorked", data.get("hours"))
        try:
            hours = float(raw_hours)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed hours value: {raw_hours!r}", errors=[str(exc)]) from exc

        entry_id = data.get("id") or data.get("_id") or f"{owner}:{work_date.isoformat()}"

        return cls(
            id=str(entry_id),
            employee_id=str(owner),
            work_date=work_date,
            hours=hours,
            notes=data.get("notes") or "",
            category=data.get("category") or data.get("task") or None,
            is_locked=_parse_flag(data.get("isLocked"), default=False),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "date": self.work_date.isoformat(),
            "hours": self.hours,
            "notes": self.notes,
            "category": self.category,
            "is_locked": self.is_locked,
        }
