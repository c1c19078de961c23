#!/usr/bin/env python3
"""Main CLI module for the timecard weekly view."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from ..config.settings import generate_example_env
from .timecards_week import cli as week_cli

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
EPILOG = """
Examples:
  timecards week                        # Current week, all employees
  timecards week --offset -1            # Previous week
  timecards week --date 2024-01-10      # Week containing a given day
  timecards week --employee emp-1       # One employee
  timecards week --demo --json          # Sample data as JSON
  timecards env-example --output .env   # Write an example .env
""".strip()


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="Timecards - employer weekly timecard view",
    epilog=EPILOG,
)
def cli() -> None:
    """Root CLI command."""


@cli.command("env-example")
@click.option("--output", type=click.Path(path_type=Path), default=None, help="Write to this file")
def env_example(output: Path | None) -> int:
    """Print an example .env with every setting."""
    content = generate_example_env(output)
    if output is None:
        click.echo(content)
    else:
        click.echo(f"✅ Wrote {output}")
    return 0


cli.add_command(week_cli, "week")


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    try:
        normalized_args = list(args) if args is not None else None
        result = cli.main(args=normalized_args, standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.exceptions.Abort:
        return 1
    return int(result) if isinstance(result, int) else 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
