"""
Main CLI entry point for hours.

Running `hours` without a subcommand opens the interactive UI; the
subcommands print reports and manage tracking from scripts.
"""

import json
from pathlib import Path
from typing import Optional, Tuple

import typer
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from ..core.time_tracker import (
    AlreadyTrackingError,
    NoTaskActiveError,
    TaskNotFoundError,
    TimeTracker,
    TimeTrackingError,
)
from ..db.models import TaskStatus, TaskStatusError, parse_task_status
from ..reports.records import run_records_pager
from ..reports.renderers import ReportStyle, render_log, render_report, render_stats
from ..tui.app import run_tui
from ..utils.config import get_config_manager
from ..utils.dates import PERIOD_ALL, DateRange, PeriodError, get_date_range_from_period
from ..utils.formatting import humanize_active_duration, pluralize
from ..utils.logs import setup_logging

ACTIVE_TASK_PLACEHOLDER = "{{task}}"
ACTIVE_TIME_PLACEHOLDER = "{{time}}"

# Create the main typer app
app = typer.Typer(
    name="hours",
    help="hours: a no-frills time tracker for the terminal",
    add_completion=False,
)

# Initialize console for rich output
console = Console()

# Global tracker instance
tracker: Optional[TimeTracker] = None
db_path_override: Optional[Path] = None

INTERACTIVE_HELP = "Page through windows of records interactively"
PLAIN_HELP = "Output plain text without colors"
TASK_STATUS_HELP = "Only consider tasks with this status: any, active or inactive"


def get_tracker() -> TimeTracker:
    """Get or initialize the global time tracker instance."""
    global tracker
    if tracker is None:
        config = get_config_manager()
        db_path = db_path_override or config.get_db_path()
        tracker = TimeTracker(db_path.parent, db_path=db_path)
    return tracker


def _task_status(value: str) -> TaskStatus:
    try:
        return parse_task_status(value)
    except TaskStatusError as e:
        raise typer.BadParameter(str(e), param_hint="'--task-status'")


def _resolve_period(
    period: str, interactive: bool, num_days_upper_bound: Optional[int] = None
) -> Tuple[str, DateRange]:
    """Turn a period argument into a date range; interactive views cover full weeks."""
    try:
        date_range = get_date_range_from_period(
            period,
            get_tracker().now(),
            full_week=interactive,
            num_days_upper_bound=num_days_upper_bound,
        )
    except PeriodError as e:
        raise typer.BadParameter(str(e), param_hint="'PERIOD'")
    return period, date_range


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


@app.command()
def report(
    period: str = typer.Argument("3d", help="today, yest, 3d, week, a date (2024/06/08) or a range"),
    agg: bool = typer.Option(False, "--agg", "-a", help="Show one cell per task per day"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help=INTERACTIVE_HELP),
    plain: bool = typer.Option(False, "--plain", "-p", help=PLAIN_HELP),
    task_status: str = typer.Option("any", "--task-status", "-s", help=TASK_STATUS_HELP),
) -> None:
    """
    Output a report of time spent on tasks per day.

    If a task log continues past midnight it is reported on the day it ends.
    """
    status = _task_status(task_status)
    config = get_config_manager()
    _, date_range = _resolve_period(period, interactive, config.get_report_num_days_threshold())
    style = ReportStyle.from_colors(config.get("colors", {}), plain=plain)

    try:
        time_tracker = get_tracker()

        def build(dr: DateRange) -> Table:
            return render_report(time_tracker, dr, status, agg=agg, style=style)

        if interactive:
            run_records_pager(build, date_range, period, time_tracker.time_provider, plain)
        else:
            console.print(build(date_range))

    except TimeTrackingError as e:
        _fail(f"Couldn't generate report: {e}")


@app.command()
def log(
    period: str = typer.Argument("today", help="today, yest, 3d, week, a date (2024/06/08) or a range"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help=INTERACTIVE_HELP),
    plain: bool = typer.Option(False, "--plain", "-p", help=PLAIN_HELP),
    task_status: str = typer.Option("any", "--task-status", "-s", help=TASK_STATUS_HELP),
) -> None:
    """
    Output task log entries.

    If a task log continues past midnight it appears in the log for the day it ends.
    """
    status = _task_status(task_status)
    _, date_range = _resolve_period(period, interactive)
    if interactive and date_range.num_days > 1:
        _fail("interactive mode is not applicable when the period spans more than a day")

    config = get_config_manager()
    style = ReportStyle.from_colors(config.get("colors", {}), plain=plain)

    try:
        time_tracker = get_tracker()

        def build(dr: DateRange) -> Table:
            return render_log(time_tracker, dr, status, style=style)

        if interactive:
            run_records_pager(build, date_range, period, time_tracker.time_provider, plain)
        else:
            console.print(build(date_range))

    except TimeTrackingError as e:
        _fail(f"Couldn't fetch task log: {e}")


@app.command()
def stats(
    period: str = typer.Argument("3d", help="today, yest, 3d, week, this-month, a date, a range or all"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help=INTERACTIVE_HELP),
    plain: bool = typer.Option(False, "--plain", "-p", help=PLAIN_HELP),
    task_status: str = typer.Option("any", "--task-status", "-s", help=TASK_STATUS_HELP),
) -> None:
    """Output statistics for tracked time."""
    status = _task_status(task_status)
    date_range: Optional[DateRange] = None
    if period == PERIOD_ALL:
        if interactive:
            _fail("interactive mode is not applicable when period is 'all'")
    else:
        _, date_range = _resolve_period(period, interactive)

    config = get_config_manager()
    style = ReportStyle.from_colors(config.get("colors", {}), plain=plain)

    try:
        time_tracker = get_tracker()

        if interactive and date_range is not None:

            def build(dr: DateRange) -> Table:
                return render_stats(time_tracker, dr, status, style=style)

            run_records_pager(build, date_range, period, time_tracker.time_provider, plain)
        else:
            console.print(render_stats(time_tracker, date_range, status, style=style))

    except TimeTrackingError as e:
        _fail(f"Couldn't generate stats: {e}")


@app.command()
def active(
    template: Optional[str] = typer.Option(
        None,
        "--template",
        "-t",
        help="Output template; {{task}} is the task summary, {{time}} the time spent so far",
    ),
) -> None:
    """
    Show the task being tracked right now.

    Prints nothing when no task is being tracked.
    """
    try:
        time_tracker = get_tracker()
        details = time_tracker.fetch_active_task_details()
    except TimeTrackingError as e:
        _fail(f"Couldn't fetch the active task: {e}")
        return

    if details.is_none or details.current_log_begin_ts is None:
        return

    template = template if template is not None else get_config_manager().get_active_template()
    secs = int((time_tracker.now() - details.current_log_begin_ts).total_seconds())
    output = template.replace(ACTIVE_TASK_PLACEHOLDER, details.task_summary, 1)
    output = output.replace(ACTIVE_TIME_PLACEHOLDER, humanize_active_duration(secs), 1)
    typer.echo(output, nl=False)


@app.command()
def start(
    task_id: int = typer.Argument(..., help="ID of the task to track"),
) -> None:
    """Start tracking time for a task."""
    try:
        task = get_tracker().start_tracking_now(task_id)
        console.print(f'Started tracking "{task.summary}"', highlight=False)

    except AlreadyTrackingError:
        _fail("A task is already being tracked; stop it first")
    except TaskNotFoundError:
        _fail(f"Task with id {task_id} not found")
    except TimeTrackingError as e:
        _fail(f"Error starting task: {e}")


@app.command()
def stop(
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print the ID of the stopped task"),
) -> None:
    """Stop tracking the task being tracked."""
    try:
        finished = get_tracker().stop_tracking_now()

    except NoTaskActiveError:
        _fail("No task is being tracked right now")
        return
    except TimeTrackingError as e:
        _fail(f"Error stopping task: {e}")
        return

    if quiet:
        typer.echo(str(finished.task_id), nl=False)
    else:
        console.print(
            f'Stopped tracking "{finished.task_summary}" (id: {finished.task_id})',
            highlight=False,
        )


@app.command()
def archive(
    days: Optional[int] = typer.Option(
        None, "--days", help="Archive tasks with no activity in this many days", min=1
    ),
) -> None:
    """Deactivate tasks that have seen no activity recently."""
    days = days if days is not None else get_config_manager().get_stale_task_days()
    try:
        count = get_tracker().archive_tasks_idle_for(days)
        console.print(f"[green]✓[/green] Archived {count} {pluralize(count, 'task')}")

    except TimeTrackingError as e:
        _fail(f"Error archiving tasks: {e}")


@app.command()
def config(
    key: Optional[str] = typer.Argument(None, help="Configuration key to get/set"),
    value: Optional[str] = typer.Argument(None, help="Value to set (omit to get current value)"),
    list_all: bool = typer.Option(False, "--list", "-l", help="List all configuration"),
    reset: bool = typer.Option(False, "--reset", help="Reset to default configuration"),
) -> None:
    """Manage hours configuration."""
    config_manager = get_config_manager()

    if reset:
        if Confirm.ask("Reset all configuration to defaults?"):
            config_manager.reset_to_defaults()
            console.print("[green]✓[/green] Configuration reset to defaults")
        return

    if list_all:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="white")
        for setting, val in sorted(config_manager.all().items()):
            table.add_row(setting, json.dumps(val) if isinstance(val, dict) else str(val))
        console.print(table)
        return

    if key is None:
        console.print("Use --list to see all configuration or provide a key to get/set")
        return

    if value is None:
        current_value = config_manager.get(key)
        if current_value is None:
            _fail(f"Configuration key '{key}' not found")
        console.print(f"[cyan]{key}[/cyan] = [white]{current_value}[/white]")
        return

    # Values are JSON when they parse as JSON, plain strings otherwise
    try:
        parsed_value = json.loads(value)
    except json.JSONDecodeError:
        parsed_value = value

    config_manager.set(key, parsed_value)
    console.print(f"[green]✓[/green] Set [cyan]{key}[/cyan] = [white]{parsed_value}[/white]")


@app.command()
def version() -> None:
    """Show hours version information."""
    from .. import __version__

    console.print(f"hours version {__version__}")


def version_callback(value: bool) -> None:
    """Version callback that prints version and exits."""
    if value:
        version()
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    dbpath: Optional[Path] = typer.Option(
        None, "--dbpath", "-d", help="Location of the database file"
    ),
    debug: bool = typer.Option(False, "--debug", help="Write debug logs to the log file"),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    hours: a no-frills time tracker for the terminal.

    Run without a command to open the interactive task list.
    """
    global db_path_override
    config_manager = get_config_manager()
    setup_logging(config_manager.get_log_file(), debug)

    if dbpath is not None:
        db_path_override = dbpath.expanduser()

    if ctx.invoked_subcommand is None:
        try:
            run_tui(get_tracker(), config_manager)
        except TimeTrackingError as e:
            _fail(f"Couldn't start hours: {e}")


if __name__ == "__main__":
    app()
