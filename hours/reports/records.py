"""
Interactive pager for report, log and stats output.

Shows one window of records at a time and lets the user move the window
backwards and forwards in time.
"""

import logging
from typing import Callable, Optional

from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Static

from ..core.time_tracker import TimeTrackingError
from ..utils.dates import DATE_FORMAT, DateRange, TimeProvider, current_date_range, shift_date_range
from ..utils.formatting import format_timestamp

logger = logging.getLogger(__name__)

RecordsBuilder = Callable[[DateRange], Table]

PAGER_HELP = """
 go backwards:      h or <-
 go forwards:       l or ->
 go to today:       ctrl+t
 press ctrl+c/q to quit
"""


def describe_range(date_range: DateRange) -> str:
    if date_range.num_days > 1:
        return (
            f" range:             {format_timestamp(date_range.start, DATE_FORMAT)}"
            f"...{format_timestamp(date_range.last_day, DATE_FORMAT)}"
        )
    return f" date:              {format_timestamp(date_range.start, DATE_FORMAT)}"


class RecordsApp(App):
    """Pager over consecutive windows of records."""

    ENABLE_COMMAND_PALETTE = False

    BINDINGS = [
        Binding("q", "quit", "Quit", show=False),
        Binding("escape", "quit", "Quit", show=False),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
        Binding("h", "backwards", "Back", show=False),
        Binding("left", "backwards", "Back", show=False),
        Binding("l", "forwards", "Forward", show=False),
        Binding("right", "forwards", "Forward", show=False),
        Binding("ctrl+t", "today", "Today", show=False),
    ]

    def __init__(
        self,
        build: RecordsBuilder,
        date_range: DateRange,
        period: str,
        time_provider: TimeProvider,
        plain: bool = False,
    ):
        super().__init__()
        self.build = build
        self.date_range = date_range
        self.period = period
        self.time_provider = time_provider
        self.plain = plain
        self.busy = False
        self.error: Optional[Exception] = None
        self.records_view = Static(id="records")

    def compose(self) -> ComposeResult:
        yield self.records_view

    def on_mount(self) -> None:
        self.load(self.date_range)

    def action_backwards(self) -> None:
        if not self.busy:
            self.load(shift_date_range(self.date_range, self.period, forward=False))

    def action_forwards(self) -> None:
        if not self.busy:
            self.load(shift_date_range(self.date_range, self.period, forward=True))

    def action_today(self) -> None:
        if not self.busy:
            self.load(current_date_range(self.date_range, self.period, self.time_provider.now()))

    def load(self, date_range: DateRange) -> None:
        self.busy = True
        self._fetch(date_range)

    @work(thread=True, exclusive=True)
    def _fetch(self, date_range: DateRange) -> None:
        try:
            table = self.build(date_range)
        except TimeTrackingError as e:
            logger.error("Couldn't fetch records: %s", e)
            self.call_from_thread(self._fail, e)
            return
        self.call_from_thread(self._show, date_range, table)

    def _fail(self, error: Exception) -> None:
        self.error = error
        self.exit()

    def _show(self, date_range: DateRange, table: Table) -> None:
        self.date_range = date_range
        self.busy = False
        self.records_view.update(self.render_page(table))

    def render_page(self, table: Table) -> RenderableType:
        range_style = "" if self.plain else "bold yellow"
        help_style = "" if self.plain else "dim"
        return Group(
            table,
            Text(""),
            Text(describe_range(self.date_range), style=range_style),
            Text(PAGER_HELP, style=help_style),
        )


def run_records_pager(
    build: RecordsBuilder,
    date_range: DateRange,
    period: str,
    time_provider: TimeProvider,
    plain: bool = False,
) -> None:
    """
    Page through records until the user quits.

    Raises:
        TimeTrackingError: If fetching a window of records failed
    """
    app = RecordsApp(build, date_range, period, time_provider, plain)
    app.run()
    if app.error is not None:
        raise app.error
