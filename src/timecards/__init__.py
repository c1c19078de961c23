"""Employer weekly timecard view."""

__version__ = "0.1.0"
