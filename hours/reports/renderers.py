"""
Tables for the report, log and stats commands.

Each renderer fetches what it needs through the TimeTracker and returns a
rich Table; callers either print it or hand it to the records pager.
"""

import zlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence

from rich import box
from rich.console import RenderableType
from rich.table import Table
from rich.text import Text

from ..core.time_tracker import TimeTracker
from ..db.models import TaskStatus
from ..utils.dates import DATE_FORMAT, TIME_FORMAT, DateRange
from ..utils.formatting import format_timestamp, humanize_duration, right_pad_trim

REPORT_TIME_CHARS_BUDGET = 6
REPORT_PER_DAY_LIMIT = 100
LOG_SUMMARY_BUDGET = 20
LOG_COMMENT_BUDGET = 40
STATS_SUMMARY_BUDGET = 30

# Colors picked for task summaries in reports; a summary always gets the same one
SUMMARY_PALETTE = [
    "#d3869b",
    "#b5e48c",
    "#90e0ef",
    "#ca7df9",
    "#ada7ff",
    "#bbd0ff",
    "#48cae4",
    "#8187dc",
    "#ffb4a2",
    "#b8bb26",
    "#ffc6ff",
    "#4895ef",
    "#83a598",
    "#fabd2f",
]


class ReportEntry(Protocol):
    """What a report grid cell needs: both log entries and aggregates have it."""

    task_summary: str
    secs_spent: int


@dataclass
class ReportStyle:
    """Styles for report output; plain output ignores all of them."""

    plain: bool = False
    header: str = "bold cyan"
    footer: str = "bold"
    dim: str = "dim"
    _summary_styles: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_colors(cls, colors: Dict[str, str], plain: bool = False) -> "ReportStyle":
        return cls(
            plain=plain,
            header=colors.get("header", "bold cyan"),
            footer=colors.get("footer", "bold"),
            dim=colors.get("dim", "dim"),
        )

    def summary_style(self, summary: str) -> str:
        """A stable color for a task summary."""
        if self.plain:
            return ""
        if summary not in self._summary_styles:
            index = zlib.crc32(summary.encode("utf-8")) % len(SUMMARY_PALETTE)
            self._summary_styles[summary] = SUMMARY_PALETTE[index]
        return self._summary_styles[summary]

    def styled(self, value: str, style: str) -> Text:
        return Text(value) if self.plain else Text(value, style=style)

    def new_table(self, show_footer: bool = False) -> Table:
        return Table(
            box=box.ASCII if self.plain else box.ROUNDED,
            show_footer=show_footer,
            header_style="" if self.plain else self.header,
            footer_style="" if self.plain else self.footer,
            show_lines=False,
        )


def report_summary_budget(num_days: int) -> int:
    """Width of the summary part of a report cell; wider grids get less."""
    if num_days == 7:
        return 8
    elif num_days == 6:
        return 10
    elif num_days == 5:
        return 14
    return 16


def _empty_cell(summary_budget: int) -> str:
    return f"{right_pad_trim('', summary_budget, False)}  {right_pad_trim('', REPORT_TIME_CHARS_BUDGET, False)}"


def render_report(
    tracker: TimeTracker,
    date_range: DateRange,
    task_status: TaskStatus = TaskStatus.ANY,
    agg: bool = False,
    style: Optional[ReportStyle] = None,
) -> Table:
    """
    Build the per-day report grid.

    Args:
        tracker: Source of the entries
        date_range: Days to show, one column each
        task_status: Which tasks' entries to include
        agg: Whether to show one cell per task per day instead of one per entry
        style: Output styles; plain ASCII when None

    Returns:
        Table with a header per day and a footer with per-day totals
    """
    style = style or ReportStyle(plain=True)
    num_days = date_range.num_days
    summary_budget = report_summary_budget(num_days)

    bounds = date_range.day_starts()
    days = bounds[:-1]
    per_day: List[Sequence[ReportEntry]] = []
    for day, next_day in zip(days, bounds[1:]):
        if agg:
            entries: Sequence[ReportEntry] = tracker.fetch_report_between(
                day, next_day, task_status, REPORT_PER_DAY_LIMIT
            )
        else:
            entries = tracker.fetch_log_entries_between(
                day, next_day, task_status, REPORT_PER_DAY_LIMIT
            )
        per_day.append(entries)

    totals = [sum(entry.secs_spent for entry in entries) for entries in per_day]

    table = style.new_table(show_footer=True)
    for day, total in zip(days, totals):
        table.add_column(
            format_timestamp(day, DATE_FORMAT),
            footer=humanize_duration(total) if total else " ",
            justify="left",
            no_wrap=True,
        )

    num_rows = max((len(entries) for entries in per_day), default=0) or 1
    for row_index in range(num_rows):
        row: List[RenderableType] = []
        for entries in per_day:
            if row_index >= len(entries):
                row.append(_empty_cell(summary_budget))
                continue

            entry = entries[row_index]
            cell_style = style.summary_style(entry.task_summary)
            row.append(
                style.styled(
                    f"{right_pad_trim(entry.task_summary, summary_budget, False)}  "
                    f"{right_pad_trim(humanize_duration(entry.secs_spent), REPORT_TIME_CHARS_BUDGET, False)}",
                    cell_style,
                )
            )
        table.add_row(*row)

    return table


def render_log(
    tracker: TimeTracker,
    date_range: DateRange,
    task_status: TaskStatus = TaskStatus.ANY,
    style: Optional[ReportStyle] = None,
) -> Table:
    """Build the table of closed entries that ended within the range."""
    style = style or ReportStyle(plain=True)
    entries = tracker.fetch_log_entries_between(date_range.start, date_range.end, task_status)

    table = style.new_table(show_footer=True)
    total = sum(entry.secs_spent for entry in entries)
    table.add_column("Task", footer="Total", no_wrap=True)
    table.add_column("Comment", no_wrap=True)
    table.add_column("Duration", no_wrap=True)
    table.add_column("TimeSpent", footer=humanize_duration(total) if total else " ", no_wrap=True)

    if not entries:
        table.add_row(" ", " ", " ", " ")
        return table

    for entry in entries:
        entry_style = style.summary_style(entry.task_summary)
        end = format_timestamp(entry.end_ts, TIME_FORMAT) if entry.end_ts else "-"
        table.add_row(
            style.styled(right_pad_trim(entry.task_summary, LOG_SUMMARY_BUDGET), entry_style),
            style.styled(right_pad_trim(entry.list_title(), LOG_COMMENT_BUDGET), entry_style),
            style.styled(f"{format_timestamp(entry.begin_ts, TIME_FORMAT)} ... {end}", entry_style),
            style.styled(humanize_duration(entry.secs_spent), entry_style),
        )

    return table


def render_stats(
    tracker: TimeTracker,
    date_range: Optional[DateRange],
    task_status: TaskStatus = TaskStatus.ANY,
    style: Optional[ReportStyle] = None,
) -> Table:
    """
    Build the per-task totals table.

    Args:
        date_range: Window to aggregate over; every entry when None
    """
    style = style or ReportStyle(plain=True)
    if date_range is None:
        stats = tracker.fetch_stats(task_status)
    else:
        stats = tracker.fetch_stats_between(date_range.start, date_range.end, task_status)

    total = sum(entry.secs_spent for entry in stats)
    table = style.new_table(show_footer=True)
    table.add_column("Task", footer="Total", no_wrap=True)
    table.add_column("#LogEntries", footer=str(sum(e.num_entries for e in stats)), no_wrap=True)
    table.add_column("TimeSpent", footer=humanize_duration(total) if total else " ", no_wrap=True)

    if not stats:
        table.add_row(" ", " ", " ")
        return table

    for entry in stats:
        entry_style = style.summary_style(entry.task_summary)
        table.add_row(
            style.styled(right_pad_trim(entry.task_summary, STATS_SUMMARY_BUDGET), entry_style),
            style.styled(str(entry.num_entries), entry_style),
            style.styled(humanize_duration(entry.secs_spent), entry_style),
        )

    return table

