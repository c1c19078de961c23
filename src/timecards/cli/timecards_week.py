"""CLI command showing the employer weekly timecard matrix."""

from __future__ import annotations

import asyncio
from datetime import date
from pathlib import Path

import click

from ..adapters.api.http_adapter import create_http_service
from ..adapters.memory.store import create_demo_store
from ..config.settings import ConfigError, Settings
from ..core.events import InProcessChangeFeed
from ..core.time import get_current_date, parse_date
from ..dashboard.controller import WeekView, WeekViewController
from ..observability.loguru_config import configure_loguru, get_logger
from ..rollups.stats import format_hours
from ..rollups.time_windows import WEEKDAY_LABELS, format_week_range, monday_of, week_number
from .cli_common import ExitCode, emit, exit_code_for

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

NAME_WIDTH = 24
CELL_WIDTH = 7

log = get_logger("cli")


@click.command(
    context_settings=CONTEXT_SETTINGS,
    help="Show hours per employee and day for one week",
)
@click.option("--date", "date_str", type=str, help="Any day of the week to show (YYYY-MM-DD, default: today)")
@click.option("--offset", type=int, default=0, show_default=True, help="Weeks to move from --date (negative = back)")
@click.option("--employee", "employee_id", type=str, default=None, help='Employee id, or "all"')
@click.option("--json", "json_output", is_flag=True, help="Output as JSON (machine-readable)")
@click.option("--demo", is_flag=True, help="Use built-in sample data instead of the API")
@click.option("--env-file", type=click.Path(path_type=Path), default=None, help="Path to .env file")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(
    date_str: str | None,
    offset: int,
    employee_id: str | None,
    json_output: bool,
    demo: bool,
    env_file: Path | None,
    verbose: bool,
) -> int:
    """Show the weekly timecard matrix."""
    try:
        settings = Settings.from_env(env_file)
        configure_loguru(
            log_dir=settings.log_dir,
            level="DEBUG" if verbose else settings.log_level,
            enable_console=verbose or not json_output,
        )

        reference = parse_date(date_str) if date_str else get_current_date(settings.timezone)
        view = asyncio.run(load_week(settings, reference, offset=offset, employee_id=employee_id, demo=demo))
    except (ConfigError, ValueError) as exc:
        emit(json_output, error=str(exc))
        return int(exit_code_for(exc))

    if view.error:
        emit(json_output, error=view.error, meta={"week_start": view.week_start.isoformat()})
        return int(ExitCode.TRANSPORT_ERROR)

    if json_output:
        emit(True, view.to_dict())
    else:
        emit(False, render_week(view))
    return int(ExitCode.SUCCESS)


async def load_week(
    settings: Settings,
    reference: date,
    *,
    offset: int = 0,
    employee_id: str | None = None,
    demo: bool = False,
) -> WeekView:
    """Run one controller cycle and return the settled view.

    Raises
    ------
    ConfigError
        If HTTP mode is used without an API URL
    """
    if demo:
        feed = InProcessChangeFeed()
        service = create_demo_store(monday_of(reference, settings.timezone), feed)
        controller = WeekViewController.from_settings(
            settings, service, feed, reference_date=reference, employee_filter=employee_id
        )
    else:
        controller = WeekViewController.from_settings(
            settings,
            create_http_service(settings),
            reference_date=reference,
            employee_filter=employee_id,
        )

    async with controller:
        if offset:
            controller.navigate_week(offset)
        await controller.wait_idle()
        view = controller.view

    log.debug("Week loaded", week=view.week_start.isoformat(), rows=len(view.summaries), demo=demo)
    return view


def render_week(view: WeekView) -> str:
    """Format a settled view as a plain-text table."""
    lines = [f"📅 Week of {format_week_range(view.week_start)} (week {week_number(view.week_start)})", ""]

    header = "Employee".ljust(NAME_WIDTH)
    for label, day in zip(WEEKDAY_LABELS, view.days):
        header += f"{label} {day.day:>2}".rjust(CELL_WIDTH)
    header += "Total".rjust(CELL_WIDTH + 1)
    lines.append(header)
    lines.append("-" * len(header))

    if not view.summaries:
        lines.append("No employees to show")
    for summary in view.summaries:
        name = summary.employee.name
        if summary.employee.designation:
            name = f"{name} ({summary.employee.designation})"
        row = name[: NAME_WIDTH - 1].ljust(NAME_WIDTH)
        row += "".join(format_hours(h).rjust(CELL_WIDTH) for h in summary.daily_hours)
        row += format_hours(summary.total).rjust(CELL_WIDTH + 1)
        lines.append(row)

    lines.append("-" * len(header))
    footer = "Total".ljust(NAME_WIDTH)
    footer += "".join(format_hours(h).rjust(CELL_WIDTH) for h in view.stats.day_totals)
    footer += format_hours(view.stats.total_hours).rjust(CELL_WIDTH + 1)
    lines.append(footer)

    lines.append("")
    lines.append(f"Total hours:      {format_hours(view.stats.total_hours)}")
    lines.append(f"Active employees: {view.stats.active_count} of {view.stats.included_count}")
    lines.append(f"Average hours:    {format_hours(view.stats.avg_hours)}")
    return "\n".join(lines)
