"""Core records, validation and change-feed primitives."""

from .events import (
    ALL_RESOURCES,
    ChangeEvent,
    ChangeFeed,
    ChangeKind,
    InProcessChangeFeed,
    Resource,
    SubscriptionError,
    SubscriptionHandle,
    create_change_feed,
)
from .models import Employee, TimeCardEntry
from .time import format_date_iso, get_current_date, get_current_time, parse_date, resolve_timezone
from .validation import DEFAULT_MAX_ENTRY_HOURS, ValidationError, ValidationResult, validate_entry

__all__ = [
    # Records
    "Employee",
    "TimeCardEntry",
    # Change feed
    "ALL_RESOURCES",
    "ChangeEvent",
    "ChangeFeed",
    "ChangeKind",
    "InProcessChangeFeed",
    "Resource",
    "SubscriptionError",
    "SubscriptionHandle",
    "create_change_feed",
    # Time
    "format_date_iso",
    "get_current_date",
    "get_current_time",
    "parse_date",
    "resolve_timezone",
    # Validation
    "DEFAULT_MAX_ENTRY_HOURS",
    "ValidationError",
    "ValidationResult",
    "validate_entry",
]
