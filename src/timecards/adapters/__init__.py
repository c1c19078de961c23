"""Timecard backends: HTTP API client and in-memory store."""
