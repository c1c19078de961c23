"""In-memory timecard backend."""

from .store import InMemoryTimecardStore, create_demo_store

__all__ = ["InMemoryTimecardStore", "create_demo_store"]
