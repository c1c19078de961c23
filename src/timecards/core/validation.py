"""Validation of upstream timecard data.

Invalid entries never reach the weekly matrix: callers log the errors and
drop the entry instead of aborting the whole aggregation.
"""

from __future__ import annotations

import math
from datetime import date
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import TimeCardEntry

__all__ = [
    "DEFAULT_MAX_ENTRY_HOURS",
    "ValidationError",
    "ValidationResult",
    "validate_entry",
]

# One entry never covers more than a calendar day
DEFAULT_MAX_ENTRY_HOURS = 24.0


class ValidationError(Exception):
    """Raised when upstream data is malformed (bad date, negative hours)."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class ValidationResult:
    """Result of entry validation."""

    def __init__(self, valid: bool, errors: list[str] | None = None) -> None:
        self.valid = valid
        self.errors = errors or []

    def __bool__(self) -> bool:
        return self.valid

    def __str__(self) -> str:
        if self.valid:
            return "Valid"
        return f"Invalid: {'; '.join(self.errors)}"

    def add_error(self, error: str) -> None:
        """Add validation error."""
        self.errors.append(error)
        self.valid = False

    def raise_for_errors(self, subject: str) -> None:
        """Raise ``ValidationError`` if any error was collected."""
        if not self.valid:
            raise ValidationError(f"{subject}: {'; '.join(self.errors)}", errors=list(self.errors))


def validate_entry(
    entry: TimeCardEntry,
    *,
    max_hours: float = DEFAULT_MAX_ENTRY_HOURS,
) -> ValidationResult:
    """Validate a single entry before it is pivoted.

    Checks:
    1. Employee reference is present
    2. Date is a calendar date
    3. Hours are a finite, non-negative number not above ``max_hours``

    Parameters
    ----------
    entry
        Entry to check
    max_hours
        Upper bound for one entry

    Returns
    -------
    ValidationResult
        Result with collected errors
    """
    result = ValidationResult(valid=True)

    if not entry.employee_id:
        result.add_error("Missing employee reference")

    if not isinstance(entry.work_date, date):
        result.add_error(f"Malformed date: {entry.work_date!r}")

    hours = entry.hours
    if not isinstance(hours, (int, float)) or isinstance(hours, bool) or math.isnan(hours) or math.isinf(hours):
        result.add_error(f"Hours must be a finite number, got {hours!r}")
    elif hours < 0:
        result.add_error(f"Hours cannot be negative, got {hours}")
    elif hours > max_hours:
        result.add_error(f"Hours cannot exceed {max_hours:g} per entry, got {hours}")

    return result
