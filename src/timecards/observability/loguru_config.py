"""Loguru configuration with timing support.

This module provides centralized loguru configuration with:
- Coloured console output
- Optional structured JSON log files with component tags
- A context manager for timing fetch and aggregation cycles
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = [
    "COMPONENTS",
    "configure_loguru",
    "get_logger",
    "timing_context",
]

COMPONENTS = ("aggregator", "feed", "dashboard", "api", "store", "cli")


def configure_loguru(
    *,
    log_dir: Path | None = None,
    level: str = "INFO",
    rotation: str = "50 MB",
    retention: str = "10 days",
    enable_console: bool = True,
    enable_timing_logs: bool = True,
) -> None:
    """Configure loguru sinks.

    Parameters
    ----------
    log_dir
        Directory for JSONL log files; no file sinks when None
    level
        Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    rotation
        Log rotation policy (e.g., "50 MB", "1 day")
    retention
        Log retention policy (e.g., "10 days")
    enable_console
        Enable stderr output
    enable_timing_logs
        Enable separate timing log file (requires ``log_dir``)

    Example
    -------
    >>> configure_loguru(log_dir=Path("logs"), level="DEBUG")
    """
    # Remove default handler
    logger.remove()

    if enable_console:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<level>{message}</level>",
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / "timecards.jsonl",
            format="{message}",
            level=level,
            rotation=rotation,
            retention=retention,
            serialize=True,
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )

        if enable_timing_logs:
            logger.add(
                log_dir / "timing.jsonl",
                format="{message}",
                level="DEBUG",
                rotation=rotation,
                retention=retention,
                serialize=True,
                enqueue=True,
                filter=lambda record: record["extra"].get("timing", False),
            )

    # Console format reads extra[component]; give unbound records a default
    logger.configure(extra={"component": "timecards"})

    logger.bind(component="cli").debug("Loguru configured", log_dir=str(log_dir) if log_dir else None, level=level)


def get_logger(component: str = "timecards") -> Any:
    """Get logger instance bound to a component.

    Parameters
    ----------
    component
        Component name (aggregator, feed, dashboard, api, store, cli)

    Returns
    -------
    Logger
        Loguru logger bound to component
    """
    return logger.bind(component=component)


@contextmanager
def timing_context(
    operation: str,
    *,
    component: str = "timecards",
    **metadata: Any,
) -> Generator[dict[str, Any], None, None]:
    """Time an operation and log START/END records.

    Parameters
    ----------
    operation
        Name of the operation being timed
    component
        Component name for filtering logs
    **metadata
        Additional metadata to log

    Yields
    ------
    dict
        Context dictionary that can be updated with additional data

    Example
    -------
    >>> with timing_context("aggregate_week", component="aggregator", week="2024-01-01") as ctx:
    ...     summaries = pivot(...)
    ...     ctx["employees"] = len(summaries)
    """
    start_time = time.perf_counter()
    context: dict[str, Any] = {}
    bound = logger.bind(component=component, timing=True, operation=operation)

    bound.debug(f"START: {operation}", phase="start", **metadata)

    try:
        yield context
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        bound.debug(
            f"END: {operation}",
            phase="end",
            duration_ms=duration_ms,
            **{**metadata, **context},
        )
