"""Timecard service adapters."""

from .adapter import TimecardService, TransportError, TransportTimeoutError
from .http_adapter import HttpTimecardService, create_http_service, parse_weekly_summary

__all__ = [
    "HttpTimecardService",
    "TimecardService",
    "TransportError",
    "TransportTimeoutError",
    "create_http_service",
    "parse_weekly_summary",
]
