"""
Rendering for the interactive UI.

Every function here reads a Model and returns a rich renderable; nothing
mutates state.
"""

from typing import List

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..db.models import Task
from ..utils.formatting import humanize_active_duration, right_pad_trim
from .state import (
    MIN_HEIGHT_NEEDED,
    MIN_WIDTH_NEEDED,
    FormField,
    ItemList,
    MessageKind,
    Model,
    TaskInputContext,
    View,
)

# rows taken by the title, status line and borders
LIST_CHROME_ROWS = 8

HELP_TEXT = """\
General
  1 / 2 / 3          Switch to the tasks, task log or inactive tasks view
  tab / shift+tab    Cycle views; cycle fields inside forms
  ctrl+r             Reload the current view
  ?                  Show this help
  q / esc            Go back or quit
  ctrl+c             Quit immediately

Tasks
  a                  Add a task
  u                  Update the selected task's summary
  s                  Start tracking, or open the finish form while tracking
  S                  Switch tracking to the selected task
  f                  Finish tracking right now
  ctrl+s             Edit the open entry, or add a manual entry
  ctrl+x             Discard the open entry
  ctrl+t             Go to the task being tracked
  ctrl+d             Deactivate the selected task
  A                  Archive tasks with no recent activity

Task log
  d                  Show details of the selected entry
  u / ctrl+s         Edit the selected entry
  m                  Move the selected entry to another task
  ctrl+d             Delete the selected entry

Inactive tasks
  ctrl+d             Reactivate the selected task

Forms
  enter / ctrl+s     Save (enter adds a new line in the comment field)
  esc                Cancel
  k / j              Move the focused time back/forward by a minute
  K / J              Move the focused time back/forward by five minutes
  h / l              Move the focused time back/forward by a day
"""


def _visible_window(items: ItemList, height: int) -> range:
    rows = max(1, (height - LIST_CHROME_ROWS) // 2) if height else len(items.items) or 1
    start = max(0, min(items.index - rows // 2, len(items.items) - rows))
    return range(start, min(len(items.items), start + rows))


def render_list(model: Model, items: ItemList) -> RenderableType:
    """Render a list of tasks or log entries with its cursor."""
    now = model.now()
    width = max(model.width - 6, 40)

    if not items.items:
        return Panel(Text("No items", style="dim"), title=items.title, title_align="left")

    lines: List[Text] = []
    for i in _visible_window(items, model.height):
        item = items.items[i]
        tracking = (
            isinstance(item, Task)
            and model.tracking_active
            and item.id == model.active_task_id
        )
        selected = i == items.index
        marker = "│ " if selected else "  "
        title_style = "bold magenta" if selected else "bold"
        desc_style = "magenta" if selected else "dim"

        lines.append(
            Text(marker, style="magenta")
            + Text(right_pad_trim(item.list_title(tracking), width), style=title_style)
        )
        lines.append(
            Text(marker, style="magenta")
            + Text(right_pad_trim(item.list_description(now), width), style=desc_style)
        )

    title = f"{items.title} ({len(items.items)})"
    return Panel(Group(*lines), title=title, title_align="left")


def _render_field(label: str, value: str, focused: bool) -> Table:
    table = Table.grid(padding=(0, 1))
    table.add_column(width=10)
    table.add_column()
    cursor = "▏" if focused else ""
    style = "bold cyan" if focused else ""
    table.add_row(Text(label, style="bold"), Text(value + cursor, style=style))
    return table


def render_task_input(model: Model) -> RenderableType:
    title = "Add task" if model.task_input_context == TaskInputContext.CREATE else "Update task"
    return Panel(
        Group(
            _render_field("Summary", model.task_input, True),
            Text(""),
            Text("Press enter to save, esc to go back", style="dim"),
        ),
        title=title,
        title_align="left",
    )


def render_tl_form(model: Model) -> RenderableType:
    """Render one of the task log forms."""
    view = model.active_view
    if view == View.EDIT_ACTIVE_TL:
        title = "Edit the entry being tracked"
    elif view == View.FINISH_ACTIVE_TL:
        title = "Finish tracking"
    elif view == View.MANUAL_TL_ENTRY:
        title = "Add a task log entry"
    else:
        title = "Edit task log entry"

    task = model.find_task(model.active_task_id)
    if view == View.MANUAL_TL_ENTRY:
        task = model.active_tasks.selected()
    elif view == View.EDIT_SAVED_TL:
        entry = model.task_logs.selected()
        task = model.find_task(entry.task_id) if entry is not None else None

    parts: List[RenderableType] = []
    if task is not None:
        parts.append(Text(task.summary, style="bold yellow"))
        parts.append(Text(""))

    parts.append(_render_field("Begin", model.tl_inputs[FormField.BEGIN_TS],
                               model.focused_field == FormField.BEGIN_TS))
    if view != View.EDIT_ACTIVE_TL:
        parts.append(_render_field("End", model.tl_inputs[FormField.END_TS],
                                   model.focused_field == FormField.END_TS))
    parts.append(_render_field("Comment", model.tl_inputs[FormField.COMMENT],
                               model.focused_field == FormField.COMMENT))
    parts.append(Text(""))
    parts.append(
        Text(
            "enter/ctrl+s: save  esc: cancel  tab: next field  "
            "k/j, K/J, h/l: shift time",
            style="dim",
        )
    )
    return Panel(Group(*parts), title=title, title_align="left")


def render_tl_details(model: Model) -> RenderableType:
    return Panel(
        Text(model.tl_details),
        title="Task log details (h/l: previous/next)",
        title_align="left",
    )


def render_help(model: Model) -> RenderableType:
    return Panel(Text(HELP_TEXT), title="Help", title_align="left")


def render_insufficient_dimensions(model: Model) -> RenderableType:
    return Text(
        f"Terminal size too small:\n"
        f"  Width = {model.width} Height = {model.height}\n\n"
        f"Minimum dimensions needed:\n"
        f"  Width = {MIN_WIDTH_NEEDED} Height = {MIN_HEIGHT_NEEDED}\n\n"
        f"Press q/<ctrl+c> to exit",
        style="yellow",
    )


def render_status_line(model: Model) -> Text:
    """Header line: tracking state plus the transient status message."""
    line = Text("hours", style="bold black on cyan")

    if model.tracking_active:
        task = model.find_task(model.active_task_id)
        summary = task.summary if task is not None else "task"
        secs = 0
        if model.active_tl_begin_ts is not None:
            secs = int((model.now() - model.active_tl_begin_ts).total_seconds())
        line += Text("  ")
        line += Text(
            f"tracking: {right_pad_trim(summary, 40, dots=True).rstrip()} "
            f"({humanize_active_duration(secs)})",
            style="bold yellow",
        )

    if model.message.value:
        style = "red" if model.message.kind == MessageKind.ERROR else "green"
        line += Text("  ")
        line += Text(model.message.value, style=style)

    return line


def render(model: Model) -> RenderableType:
    """Render the whole screen for the active view."""
    view = model.active_view
    if view == View.INSUFFICIENT_DIMENSIONS:
        return render_insufficient_dimensions(model)

    if view == View.TASK_LIST:
        body = render_list(model, model.active_tasks)
    elif view == View.TASK_LOG:
        body = render_list(model, model.task_logs)
    elif view == View.INACTIVE_TASK_LIST:
        body = render_list(model, model.inactive_tasks)
    elif view == View.MOVE_TASK_LOG:
        body = render_list(model, model.target_tasks)
    elif view == View.TASK_LOG_DETAILS:
        body = render_tl_details(model)
    elif view == View.TASK_INPUT:
        body = render_task_input(model)
    elif view == View.HELP:
        body = render_help(model)
    else:
        body = render_tl_form(model)

    return Group(render_status_line(model), Text(""), body)
