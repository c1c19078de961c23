"""Common CLI utilities: stable exit codes and JSON output."""

from __future__ import annotations

import json
from enum import IntEnum
from typing import Any

import click

from ..adapters.api.adapter import TransportError
from ..config.settings import ConfigError
from ..core.validation import ValidationError

__all__ = [
    "ExitCode",
    "emit",
    "exit_code_for",
]


class ExitCode(IntEnum):
    """Stable exit codes for CLI commands."""

    SUCCESS = 0  # Successful execution
    VALIDATION_ERROR = 2  # Bad argument or record
    TRANSPORT_ERROR = 5  # Roster/entry fetch failed
    CONFIG_ERROR = 6  # Configuration error
    UNKNOWN_ERROR = 7  # Unknown/unexpected error


def exit_code_for(exc: Exception) -> ExitCode:
    """Map an exception to its exit code."""
    if isinstance(exc, ConfigError):
        return ExitCode.CONFIG_ERROR
    if isinstance(exc, TransportError):
        return ExitCode.TRANSPORT_ERROR
    if isinstance(exc, (ValidationError, ValueError)):
        return ExitCode.VALIDATION_ERROR
    return ExitCode.UNKNOWN_ERROR


def emit(
    json_output: bool,
    data: Any = None,
    *,
    error: str | None = None,
    meta: dict[str, Any] | None = None,
) -> None:
    """Print a result, as a JSON envelope or as plain text.

    In JSON mode only the envelope goes to stdout; logs stay on stderr.
    """
    if json_output:
        result: dict[str, Any] = {"status": "error" if error else "success"}
        if error:
            result["error"] = error
        else:
            result["data"] = data
        if meta:
            result["meta"] = meta
        click.echo(json.dumps(result, ensure_ascii=False, indent=2))
        return

    if error:
        click.echo(f"❌ {error}", err=True)
    elif data is not None:
        click.echo(data)
