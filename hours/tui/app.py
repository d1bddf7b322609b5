"""
Textual application that drives the interactive UI.

The app translates terminal events into messages, runs the reducer and
executes the returned commands in worker threads so the database never
blocks the event loop.
"""

import logging
from typing import Iterable

from textual import events
from textual.app import App, ComposeResult
from textual.widgets import Static

from ..core.time_tracker import TimeTracker
from ..utils.config import ConfigManager
from .commands import Command
from .messages import KeyPressed, Msg, Tick, WindowResized
from .state import Model
from .update import initial_commands, update
from .view import render

logger = logging.getLogger(__name__)

TICK_INTERVAL_SECS = 1.0

# textual key names that differ from the ones the reducer understands
KEY_ALIASES = {
    "escape": "esc",
    "space": " ",
}


def normalize_key(event: events.Key) -> str:
    """Map a textual key event onto the reducer's key names."""
    if event.key in KEY_ALIASES:
        return KEY_ALIASES[event.key]
    if event.is_printable and event.character and len(event.character) == 1:
        return event.character
    return event.key


class HoursApp(App):
    """Full-screen time tracker."""

    TITLE = "hours"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        padding: 0 1;
    }

    #main {
        height: 1fr;
    }
    """

    def __init__(self, tracker: TimeTracker, config: ConfigManager):
        super().__init__()
        self.tracker = tracker
        self.model = Model(
            time_provider=tracker.time_provider,
            min_log_duration_secs=config.get_min_log_duration_secs(),
            stale_task_days=config.get_stale_task_days(),
            task_log_list_limit=config.get_task_log_list_limit(),
        )
        self.main_view = Static(id="main")

    def compose(self) -> ComposeResult:
        yield self.main_view

    def on_mount(self) -> None:
        self.feed(WindowResized(self.size.width, self.size.height))
        self._run_commands(initial_commands(self.model))
        self.set_interval(TICK_INTERVAL_SECS, self._on_tick)

    def on_resize(self, event: events.Resize) -> None:
        self.feed(WindowResized(event.size.width, event.size.height))

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()
        self.feed(KeyPressed(normalize_key(event)))

    def _on_tick(self) -> None:
        self.feed(Tick())

    def feed(self, msg: Msg) -> None:
        """Reduce a message, redraw and start any resulting commands."""
        self.model, cmds = update(self.model, msg)
        if self.model.quitting:
            self.exit()
            return
        self._redraw()
        self._run_commands(cmds)

    def _redraw(self) -> None:
        self.main_view.update(render(self.model))

    def _run_commands(self, cmds: Iterable[Command]) -> None:
        for cmd in cmds:
            self.run_worker(
                lambda cmd=cmd: self._execute(cmd),
                thread=True,
                group="commands",
            )

    def _execute(self, cmd: Command) -> None:
        logger.debug("Running %s", cmd)
        msg = cmd.execute(self.tracker)
        self.call_from_thread(self.feed, msg)


def run_tui(tracker: TimeTracker, config: ConfigManager) -> None:
    """Run the interactive UI until the user quits."""
    HoursApp(tracker, config).run()
