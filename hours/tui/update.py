"""
Reducer for the interactive UI.

update() takes the current Model and one message, mutates the model and
returns the commands to run next. It never performs IO; everything that
touches the database is expressed as a Command from commands.py.
"""

import logging
from datetime import timedelta
from typing import Callable, Dict, List, Optional, Tuple, Type

from ..db.models import NO_ACTIVE_TASK_ID
from ..utils.dates import TIME_FORMAT
from ..utils.formatting import format_timestamp, humanize_duration
from ..utils.time_validation import (
    DurationTooShortError,
    ShiftDirection,
    ShiftGranularity,
    TimeValidationError,
    get_shifted_time,
    parse_task_log_times,
    parse_timestamp,
    truncate_to_second,
    validate_begin_not_in_future,
    validate_task_log_duration,
)
from .commands import (
    ArchiveStaleTasks,
    Command,
    CreateTask,
    DeleteActiveTL,
    DeleteTL,
    EditSavedTL,
    FetchActiveTask,
    FetchTaskLogs,
    FetchTasks,
    FinishTracking,
    InsertManualTL,
    MoveTaskLog,
    QuickSwitch,
    RefreshTask,
    StartTracking,
    UpdateActiveTL,
    UpdateTask,
    UpdateTaskActiveStatus,
)
from .messages import (
    ActiveTaskFetched,
    ActiveTLDeleted,
    ActiveTLSwitched,
    ActiveTLUpdated,
    KeyPressed,
    ManualTLInserted,
    Msg,
    SavedTLEdited,
    StaleTasksArchived,
    TaskActiveStatusUpdated,
    TaskCreated,
    TaskLogMoved,
    TaskRepUpdated,
    TasksFetched,
    TaskUpdated,
    Tick,
    TLDeleted,
    TLsFetched,
    TrackingToggled,
    WindowResized,
)
from .state import (
    FORM_VIEWS,
    MIN_HEIGHT_NEEDED,
    MIN_WIDTH_NEEDED,
    TL_FORM_VIEWS,
    FormField,
    ItemList,
    Model,
    StatusMessage,
    TaskInputContext,
    TaskLogSaveType,
    TrackingChange,
    View,
)

logger = logging.getLogger(__name__)

GENERIC_ERROR_MSG = "Something went wrong"
SUGGEST_RELOAD_MSG = "Something went wrong, please restart hours and try again"
NOTHING_TRACKED_MSG = "Nothing is being tracked right now"
COULDNT_SELECT_TASK_MSG = "Couldn't select a task"
DURATION_TOO_SHORT_MSG = (
    "Task log duration is too short to save; press <ctrl+x> if you want to discard it"
)
CANNOT_DEACTIVATE_TRACKED_MSG = (
    "Cannot deactivate a task being tracked; stop tracking and try again."
)
NO_MOVE_TARGETS_MSG = "No other active tasks to move this log to"
EMPTY_SUMMARY_MSG = "Task summary cannot be empty"

TIME_SHIFT_KEYS = {
    "k": (ShiftDirection.BACKWARD, ShiftGranularity.MINUTE),
    "j": (ShiftDirection.FORWARD, ShiftGranularity.MINUTE),
    "K": (ShiftDirection.BACKWARD, ShiftGranularity.FIVE_MINUTES),
    "J": (ShiftDirection.FORWARD, ShiftGranularity.FIVE_MINUTES),
    "h": (ShiftDirection.BACKWARD, ShiftGranularity.DAY),
    "l": (ShiftDirection.FORWARD, ShiftGranularity.DAY),
}

Handler = Callable[[Model, Msg], List[Command]]


def update(model: Model, msg: Msg) -> Tuple[Model, List[Command]]:
    """
    Reduce one message into the model.

    Args:
        model: State to update in place
        msg: Input event or command result

    Returns:
        Tuple of (model, commands to run)
    """
    if isinstance(msg, KeyPressed):
        if msg.key == "ctrl+c":
            model.quitting = True
            return model, []
        if model.active_view == View.INSUFFICIENT_DIMENSIONS:
            if msg.key in ("q", "esc"):
                model.quitting = True
            return model, []

    if isinstance(msg, (KeyPressed, Tick)) and model.active_view != View.INSUFFICIENT_DIMENSIONS:
        model.message.tick()

    handler = HANDLERS.get(type(msg))
    if handler is None:
        logger.warning("No handler for message %s", type(msg).__name__)
        return model, []

    return model, handler(model, msg)


# Helpers


def _error(model: Model, text: str) -> None:
    model.message = StatusMessage.error(text)


def _info(model: Model, text: str) -> None:
    model.message = StatusMessage.info(text)


def _comment_from_input(model: Model) -> Optional[str]:
    comment = model.tl_inputs[FormField.COMMENT].strip()
    return comment or None


def _current_list(model: Model) -> Optional[ItemList]:
    if model.active_view == View.TASK_LIST:
        return model.active_tasks
    if model.active_view in (View.TASK_LOG, View.TASK_LOG_DETAILS):
        return model.task_logs
    if model.active_view == View.INACTIVE_TASK_LIST:
        return model.inactive_tasks
    if model.active_view == View.MOVE_TASK_LOG:
        return model.target_tasks
    return None


def _fetch_task_logs(model: Model, focus_tl_id: Optional[int] = None) -> FetchTaskLogs:
    return FetchTaskLogs(limit=model.task_log_list_limit, focus_tl_id=focus_tl_id)


def _clear_tracking(model: Model) -> None:
    model.last_tracking_change = TrackingChange.FINISHED
    model.tracking_active = False
    model.active_task_id = NO_ACTIVE_TASK_ID
    model.active_tl_id = None
    model.active_tl_comment = None


# Requests that open forms or views


def _request_create_task(model: Model) -> None:
    model.task_input = ""
    model.task_input_context = TaskInputContext.CREATE
    model.active_view = View.TASK_INPUT


def _request_update_task(model: Model) -> None:
    task = model.active_tasks.selected()
    if task is None:
        _error(model, GENERIC_ERROR_MSG)
        return

    model.task_input = task.summary
    model.task_input_context = TaskInputContext.UPDATE
    model.active_view = View.TASK_INPUT


def _request_edit_active_tl(model: Model) -> None:
    model.clear_tl_inputs()
    if model.active_tl_begin_ts is not None:
        model.tl_inputs[FormField.BEGIN_TS] = format_timestamp(model.active_tl_begin_ts, TIME_FORMAT)
    model.tl_inputs[FormField.COMMENT] = model.active_tl_comment or ""
    model.focused_field = FormField.BEGIN_TS
    model.active_view = View.EDIT_ACTIVE_TL


def _request_manual_tl(model: Model) -> None:
    model.clear_tl_inputs()
    now_str = format_timestamp(model.now(), TIME_FORMAT)
    model.tl_inputs[FormField.BEGIN_TS] = now_str
    model.tl_inputs[FormField.END_TS] = now_str
    model.tl_save_type = TaskLogSaveType.INSERT
    model.focused_field = FormField.BEGIN_TS
    model.active_view = View.MANUAL_TL_ENTRY


def _request_stop_tracking(model: Model) -> None:
    """Open the finish form prefilled with the open entry's details."""
    model.clear_tl_inputs()
    model.active_tl_end_ts = model.now()
    if model.active_tl_begin_ts is not None:
        model.tl_inputs[FormField.BEGIN_TS] = format_timestamp(model.active_tl_begin_ts, TIME_FORMAT)
    model.tl_inputs[FormField.END_TS] = format_timestamp(model.active_tl_end_ts, TIME_FORMAT)
    model.tl_inputs[FormField.COMMENT] = model.active_tl_comment or ""
    model.focused_field = FormField.COMMENT
    model.active_view = View.FINISH_ACTIVE_TL


def _request_edit_saved_tl(model: Model) -> None:
    entry = model.task_logs.selected()
    if entry is None:
        return
    if entry.end_ts is None:
        _error(model, GENERIC_ERROR_MSG)
        return

    model.clear_tl_inputs()
    model.tl_inputs[FormField.BEGIN_TS] = format_timestamp(entry.begin_ts, TIME_FORMAT)
    model.tl_inputs[FormField.END_TS] = format_timestamp(entry.end_ts, TIME_FORMAT)
    model.tl_inputs[FormField.COMMENT] = entry.get_comment()
    model.tl_save_type = TaskLogSaveType.UPDATE
    model.focused_field = FormField.BEGIN_TS
    model.active_view = View.EDIT_SAVED_TL


def _request_tl_details(model: Model) -> None:
    entry = model.task_logs.selected()
    if entry is None:
        return

    task = model.find_task(entry.task_id)
    summary = task.summary if task is not None else entry.task_summary
    end = format_timestamp(entry.end_ts, TIME_FORMAT) if entry.end_ts else "-"
    model.tl_details = (
        f"Task: {summary}\n"
        f"{format_timestamp(entry.begin_ts, TIME_FORMAT)} → {end} "
        f"({humanize_duration(entry.secs_spent)})\n"
        f"---\n"
        f"{entry.get_comment()}\n"
    )
    model.active_view = View.TASK_LOG_DETAILS


def _request_move_tl(model: Model) -> None:
    entry = model.task_logs.selected()
    if entry is None:
        _error(model, GENERIC_ERROR_MSG)
        return

    targets = [task for task in model.active_tasks.items if task.id != entry.task_id]
    if not targets:
        _error(model, NO_MOVE_TARGETS_MSG)
        return

    model.move_tl_id = entry.id
    model.move_old_task_id = entry.task_id
    model.move_secs_spent = entry.secs_spent
    model.target_tasks.set_items(targets)
    model.target_tasks.select(0)
    model.active_view = View.MOVE_TASK_LOG


def _go_to_active_task(model: Model) -> None:
    if model.active_view != View.TASK_LIST:
        return
    if not model.tracking_active:
        _error(model, NOTHING_TRACKED_MSG)
        return
    if not model.active_tasks.select_id(model.active_task_id):
        _error(model, GENERIC_ERROR_MSG)


# Commands built from the current state


def _cmd_start_tracking(model: Model) -> Optional[Command]:
    task = model.active_tasks.selected()
    if task is None:
        _error(model, GENERIC_ERROR_MSG)
        return None

    model.active_tl_begin_ts = truncate_to_second(model.now())
    return StartTracking(task.id, model.active_tl_begin_ts)


def _cmd_quick_switch(model: Model) -> Optional[Command]:
    task = model.active_tasks.selected()
    if task is None:
        _error(model, GENERIC_ERROR_MSG)
        return None

    if task.id == model.active_task_id:
        return None

    if not model.tracking_active:
        model.active_tl_begin_ts = truncate_to_second(model.now())
        return StartTracking(task.id, model.active_tl_begin_ts)

    return QuickSwitch(task.id, truncate_to_second(model.now()))


def _cmd_finish_now(model: Model) -> Optional[Command]:
    """Finish the open entry at the current time without opening the form."""
    if model.active_tl_id is None or model.active_tl_begin_ts is None:
        _error(model, GENERIC_ERROR_MSG)
        return None

    now = truncate_to_second(model.now())
    try:
        validate_task_log_duration(model.active_tl_begin_ts, now, model.min_log_duration_secs)
    except DurationTooShortError:
        _info(model, DURATION_TOO_SHORT_MSG)
        return None
    except TimeValidationError as e:
        _error(model, f"Error: {e}")
        return None

    model.active_tl_end_ts = now
    return FinishTracking(
        model.active_tl_id,
        model.active_task_id,
        model.active_tl_begin_ts,
        now,
        model.active_tl_comment,
    )


def _cmd_deactivate_task(model: Model) -> Optional[Command]:
    task = model.active_tasks.selected()
    if task is None:
        _error(model, COULDNT_SELECT_TASK_MSG)
        return None

    if model.tracking_active and task.id == model.active_task_id:
        _error(model, CANNOT_DEACTIVATE_TRACKED_MSG)
        return None

    return UpdateTaskActiveStatus(task.id, False)


def _cmd_activate_task(model: Model) -> Optional[Command]:
    task = model.inactive_tasks.selected()
    if task is None:
        _error(model, GENERIC_ERROR_MSG)
        return None
    return UpdateTaskActiveStatus(task.id, True)


def _cmd_delete_tl(model: Model) -> Optional[Command]:
    entry = model.task_logs.selected()
    if entry is None:
        _error(model, "Couldn't delete task log entry")
        return None
    return DeleteTL(entry)


def _cmd_reload(model: Model) -> Optional[Command]:
    if model.active_view == View.TASK_LIST:
        return FetchTasks(active=True)
    if model.active_view == View.TASK_LOG:
        model.task_logs.select(0)
        return _fetch_task_logs(model)
    if model.active_view == View.INACTIVE_TASK_LIST:
        model.inactive_tasks.select(0)
        return FetchTasks(active=False)
    return None


# Form submission


def _submit_task_input(model: Model) -> Optional[Command]:
    summary = model.task_input.strip()
    if not summary:
        _error(model, EMPTY_SUMMARY_MSG)
        return None

    cmd: Optional[Command] = None
    if model.task_input_context == TaskInputContext.CREATE:
        cmd = CreateTask(summary)
    else:
        task = model.active_tasks.selected()
        if task is None:
            _error(model, GENERIC_ERROR_MSG)
            return None
        cmd = UpdateTask(task.id, summary)

    model.task_input = ""
    model.active_view = View.TASK_LIST
    return cmd


def _submit_edit_active_tl(model: Model) -> Optional[Command]:
    try:
        begin_ts = parse_timestamp(model.tl_inputs[FormField.BEGIN_TS], field="begin time")
        validate_begin_not_in_future(begin_ts, model.now())
    except TimeValidationError as e:
        model.message = StatusMessage.quick_error(str(e))
        return None

    model.active_view = View.TASK_LIST
    return UpdateActiveTL(begin_ts, _comment_from_input(model))


def _submit_finish_active_tl(model: Model) -> Optional[Command]:
    try:
        begin_ts, end_ts = parse_task_log_times(
            model.tl_inputs[FormField.BEGIN_TS],
            model.tl_inputs[FormField.END_TS],
            model.min_log_duration_secs,
        )
    except TimeValidationError as e:
        _error(model, str(e))
        return None

    if model.active_tl_id is None:
        _error(model, GENERIC_ERROR_MSG)
        return None

    model.active_tl_begin_ts = begin_ts
    model.active_tl_end_ts = end_ts
    model.active_view = View.TASK_LIST
    return FinishTracking(
        model.active_tl_id,
        model.active_task_id,
        begin_ts,
        end_ts,
        _comment_from_input(model),
    )


def _submit_saved_tl(model: Model) -> Optional[Command]:
    """Insert a manual entry or save edits to a closed one."""
    try:
        begin_ts, end_ts = parse_task_log_times(
            model.tl_inputs[FormField.BEGIN_TS],
            model.tl_inputs[FormField.END_TS],
            model.min_log_duration_secs,
        )
    except TimeValidationError as e:
        _error(model, str(e))
        return None

    comment = _comment_from_input(model)
    model.tl_inputs[FormField.COMMENT] = ""

    if model.tl_save_type == TaskLogSaveType.INSERT:
        model.active_view = View.TASK_LIST
        task = model.active_tasks.selected()
        if task is None:
            _error(model, GENERIC_ERROR_MSG)
            return None
        return InsertManualTL(task.id, begin_ts, end_ts, comment)

    model.active_view = View.TASK_LOG
    entry = model.task_logs.selected()
    if entry is None:
        _error(model, GENERIC_ERROR_MSG)
        return None
    return EditSavedTL(entry.id, entry.task_id, begin_ts, end_ts, comment)


def _submit_move_target(model: Model) -> Optional[Command]:
    task = model.target_tasks.selected()
    if task is None or model.move_tl_id is None or model.move_old_task_id is None:
        _error(model, GENERIC_ERROR_MSG)
        return None
    return MoveTaskLog(model.move_tl_id, model.move_old_task_id, task.id, model.move_secs_spent)


def _submit_form(model: Model) -> Optional[Command]:
    view = model.active_view
    if view == View.TASK_INPUT:
        return _submit_task_input(model)
    elif view == View.EDIT_ACTIVE_TL:
        return _submit_edit_active_tl(model)
    elif view == View.FINISH_ACTIVE_TL:
        return _submit_finish_active_tl(model)
    elif view in (View.MANUAL_TL_ENTRY, View.EDIT_SAVED_TL):
        return _submit_saved_tl(model)
    elif view == View.MOVE_TASK_LOG:
        return _submit_move_target(model)
    return None


def _cancel_form(model: Model) -> None:
    view = model.active_view
    if view == View.TASK_INPUT:
        model.task_input = ""
        model.active_view = View.TASK_LIST
    elif view == View.EDIT_ACTIVE_TL:
        model.tl_inputs[FormField.BEGIN_TS] = ""
        model.active_view = View.TASK_LIST
    elif view == View.FINISH_ACTIVE_TL:
        model.tl_inputs[FormField.COMMENT] = ""
        model.active_view = View.TASK_LIST
    elif view == View.MANUAL_TL_ENTRY:
        model.active_view = View.TASK_LIST
    elif view in (View.EDIT_SAVED_TL, View.MOVE_TASK_LOG):
        model.active_view = View.TASK_LOG


def _form_fields(view: View) -> List[FormField]:
    if view == View.EDIT_ACTIVE_TL:
        return [FormField.BEGIN_TS, FormField.COMMENT]
    return [FormField.BEGIN_TS, FormField.END_TS, FormField.COMMENT]


def _cycle_focus(model: Model, step: int) -> None:
    fields = _form_fields(model.active_view)
    if model.focused_field not in fields:
        model.focused_field = fields[0]
        return
    index = fields.index(model.focused_field)
    model.focused_field = fields[(index + step) % len(fields)]


def _shift_time(model: Model, key: str) -> None:
    field = model.focused_field
    if field not in (FormField.BEGIN_TS, FormField.END_TS):
        return

    try:
        ts = parse_timestamp(model.tl_inputs[field])
    except TimeValidationError:
        return

    direction, granularity = TIME_SHIFT_KEYS[key]
    model.tl_inputs[field] = format_timestamp(get_shifted_time(ts, direction, granularity), TIME_FORMAT)


def _edit_text(value: str, key: str) -> str:
    if key == "backspace":
        return value[:-1]
    if len(key) == 1:
        return value + key
    return value


def _handle_form_key(model: Model, key: str) -> List[Command]:
    view = model.active_view

    if key in ("enter", "ctrl+s"):
        if key == "enter" and view in TL_FORM_VIEWS and model.focused_field == FormField.COMMENT:
            model.tl_inputs[FormField.COMMENT] += "\n"
            return []
        if key == "ctrl+s" and view == View.MOVE_TASK_LOG:
            return []
        cmd = _submit_form(model)
        return [cmd] if cmd is not None else []

    if key == "esc":
        _cancel_form(model)
        return []

    if view == View.MOVE_TASK_LOG:
        if key in ("up", "k"):
            model.target_tasks.cursor_up()
        elif key in ("down", "j"):
            model.target_tasks.cursor_down()
        elif key == "q":
            model.active_view = View.TASK_LOG
        return []

    if view == View.TASK_INPUT:
        model.task_input = _edit_text(model.task_input, key)
        return []

    # task log forms
    if key == "tab":
        _cycle_focus(model, 1)
    elif key == "shift+tab":
        _cycle_focus(model, -1)
    elif key in TIME_SHIFT_KEYS and model.focused_field != FormField.COMMENT:
        _shift_time(model, key)
    else:
        field = model.focused_field
        model.tl_inputs[field] = _edit_text(model.tl_inputs[field], key)
    return []


def _go_back_or_quit(model: Model) -> None:
    view = model.active_view
    if view == View.TASK_LIST:
        model.quitting = True
    elif view in (View.TASK_LOG_DETAILS, View.INACTIVE_TASK_LIST):
        model.active_view = View.TASK_LOG
    elif view == View.TASK_LOG:
        model.active_view = View.TASK_LIST
    elif view == View.HELP:
        model.active_view = model.last_view


def _handle_list_key(model: Model, key: str) -> List[Command]:
    view = model.active_view
    cmd: Optional[Command] = None

    if key in ("q", "esc"):
        _go_back_or_quit(model)
    elif key == "1":
        model.active_view = View.TASK_LIST
    elif key == "2":
        model.active_view = View.TASK_LOG
    elif key == "3":
        model.active_view = View.INACTIVE_TASK_LIST
    elif key == "tab":
        if view == View.TASK_LIST:
            model.active_view = View.TASK_LOG
        elif view == View.TASK_LOG:
            model.active_view = View.INACTIVE_TASK_LIST
        elif view == View.INACTIVE_TASK_LIST:
            model.active_view = View.TASK_LIST
    elif key == "shift+tab":
        if view == View.TASK_LIST:
            model.active_view = View.INACTIVE_TASK_LIST
        elif view == View.TASK_LOG:
            model.active_view = View.TASK_LIST
        elif view == View.INACTIVE_TASK_LIST:
            model.active_view = View.TASK_LOG
    elif key in ("up", "k", "down", "j"):
        items = _current_list(model)
        if items is not None and view != View.TASK_LOG_DETAILS:
            if key in ("up", "k"):
                items.cursor_up()
            else:
                items.cursor_down()
    elif key in ("h", "l"):
        if view == View.TASK_LOG_DETAILS:
            if key == "h":
                model.task_logs.cursor_up()
            else:
                model.task_logs.cursor_down()
            _request_tl_details(model)
    elif key == "ctrl+r":
        cmd = _cmd_reload(model)
    elif key == "ctrl+t":
        _go_to_active_task(model)
    elif key == "f":
        if view == View.TASK_LIST:
            if not model.tracking_active:
                _error(model, NOTHING_TRACKED_MSG)
            else:
                cmd = _cmd_finish_now(model)
    elif key == "ctrl+s":
        if view == View.TASK_LIST:
            if model.tracking_active:
                _request_edit_active_tl(model)
            else:
                _request_manual_tl(model)
        elif view == View.TASK_LOG:
            _request_edit_saved_tl(model)
    elif key == "u":
        if view == View.TASK_LIST:
            _request_update_task(model)
        elif view == View.TASK_LOG:
            _request_edit_saved_tl(model)
    elif key == "ctrl+d":
        if view == View.TASK_LIST:
            cmd = _cmd_deactivate_task(model)
        elif view == View.TASK_LOG:
            cmd = _cmd_delete_tl(model)
        elif view == View.INACTIVE_TASK_LIST:
            cmd = _cmd_activate_task(model)
    elif key == "ctrl+x":
        if view == View.TASK_LIST and model.tracking_active:
            cmd = DeleteActiveTL()
    elif key == "s":
        if view == View.TASK_LIST:
            if model.last_tracking_change == TrackingChange.FINISHED:
                cmd = _cmd_start_tracking(model)
            else:
                _request_stop_tracking(model)
    elif key == "S":
        if view == View.TASK_LIST:
            cmd = _cmd_quick_switch(model)
    elif key == "a":
        if view == View.TASK_LIST:
            _request_create_task(model)
    elif key == "d":
        if view == View.TASK_LOG:
            _request_tl_details(model)
    elif key == "m":
        if view == View.TASK_LOG:
            _request_move_tl(model)
    elif key == "A":
        if view == View.TASK_LIST:
            cmd = ArchiveStaleTasks(model.now() - timedelta(days=model.stale_task_days))
    elif key == "?":
        if view != View.HELP:
            model.last_view = view
            model.active_view = View.HELP

    return [cmd] if cmd is not None else []


# Message handlers


def _on_key(model: Model, msg: KeyPressed) -> List[Command]:
    if model.active_view in FORM_VIEWS:
        return _handle_form_key(model, msg.key)
    return _handle_list_key(model, msg.key)


def _on_resize(model: Model, msg: WindowResized) -> List[Command]:
    model.width = msg.width
    model.height = msg.height

    if msg.width < MIN_WIDTH_NEEDED or msg.height < MIN_HEIGHT_NEEDED:
        if model.active_view != View.INSUFFICIENT_DIMENSIONS:
            model.last_view_before_insufficient_dims = model.active_view
            model.active_view = View.INSUFFICIENT_DIMENSIONS
        return []

    if model.active_view == View.INSUFFICIENT_DIMENSIONS:
        model.active_view = model.last_view_before_insufficient_dims
    return []


def _on_tick(model: Model, msg: Tick) -> List[Command]:
    return []


def _on_tasks_fetched(model: Model, msg: TasksFetched) -> List[Command]:
    if msg.error is not None:
        _error(model, f"Error fetching tasks: {msg.error}")
        return []

    if msg.active:
        model.active_tasks.set_items(msg.tasks)
        model.tasks_fetched = True
        return [FetchActiveTask()]

    model.inactive_tasks.set_items(msg.tasks)
    return []


def _on_task_created(model: Model, msg: TaskCreated) -> List[Command]:
    if msg.error is not None:
        _error(model, f"Error creating task: {msg.error}")
        return []
    return [FetchTasks(active=True)]


def _on_task_updated(model: Model, msg: TaskUpdated) -> List[Command]:
    if msg.error is not None:
        _error(model, f"Error updating task: {msg.error}")
        return []

    task = model.task_map.get(msg.task_id)
    if task is not None:
        model.active_tasks.replace(task.model_copy(update={"summary": msg.summary}))
    return []


def _on_task_rep_updated(model: Model, msg: TaskRepUpdated) -> List[Command]:
    if msg.error is not None:
        _error(model, f"Error updating task status: {msg.error}")
        return []

    if msg.task is not None:
        if not model.active_tasks.replace(msg.task):
            model.inactive_tasks.replace(msg.task)
    return []


def _on_active_task_fetched(model: Model, msg: ActiveTaskFetched) -> List[Command]:
    if msg.error is not None:
        _error(model, str(msg.error))
        return []

    details = msg.details
    if details.is_none:
        model.last_tracking_change = TrackingChange.FINISHED
        return []

    model.last_tracking_change = TrackingChange.STARTED
    model.active_task_id = details.task_id
    model.active_tl_id = details.current_log_id
    model.active_tl_begin_ts = details.current_log_begin_ts
    model.active_tl_comment = details.current_log_comment
    model.active_tasks.select_id(details.task_id)
    model.tracking_active = True
    return []


def _on_tracking_toggled(model: Model, msg: TrackingToggled) -> List[Command]:
    if msg.error is not None:
        _error(model, str(msg.error))
        model.tracking_active = False
        return []

    if msg.finished:
        _clear_tracking(model)
        return [RefreshTask(msg.task_id), _fetch_task_logs(model)]

    if msg.task_id not in model.task_map:
        _error(model, GENERIC_ERROR_MSG)
        return []

    model.last_tracking_change = TrackingChange.STARTED
    model.tracking_active = True
    model.active_task_id = msg.task_id
    model.active_tl_id = msg.tl_id
    if msg.begin_ts is not None:
        model.active_tl_begin_ts = msg.begin_ts
    return []


def _on_active_tl_updated(model: Model, msg: ActiveTLUpdated) -> List[Command]:
    if msg.error is not None:
        _error(model, str(msg.error))
        return []

    model.active_tl_begin_ts = msg.begin_ts
    model.active_tl_comment = msg.comment
    return []


def _on_active_tl_switched(model: Model, msg: ActiveTLSwitched) -> List[Command]:
    if msg.error is not None:
        _error(model, str(msg.error))
        return []

    tasks = model.task_map
    if msg.last_active_task_id not in tasks or msg.current_active_task_id not in tasks:
        _error(model, SUGGEST_RELOAD_MSG)
        return []

    model.active_tl_comment = None
    model.active_task_id = msg.current_active_task_id
    model.active_tl_id = msg.tl_id
    model.active_tl_begin_ts = msg.switch_ts
    return [RefreshTask(msg.last_active_task_id), _fetch_task_logs(model)]


def _on_manual_tl_inserted(model: Model, msg: ManualTLInserted) -> List[Command]:
    if msg.error is not None:
        _error(model, str(msg.error))
        return []

    cmds: List[Command] = []
    if msg.task_id in model.task_map:
        cmds.append(RefreshTask(msg.task_id))
    cmds.append(_fetch_task_logs(model))
    return cmds


def _on_saved_tl_edited(model: Model, msg: SavedTLEdited) -> List[Command]:
    if msg.error is not None:
        _error(model, str(msg.error))
        return []

    cmds: List[Command] = []
    if model.find_task(msg.task_id) is not None:
        cmds.append(RefreshTask(msg.task_id))
    cmds.append(_fetch_task_logs(model, focus_tl_id=msg.tl_id))
    return cmds


def _on_tls_fetched(model: Model, msg: TLsFetched) -> List[Command]:
    if msg.error is not None:
        _error(model, str(msg.error))
        return []

    model.task_logs.set_items(msg.entries)
    if msg.focus_tl_id is None or not model.task_logs.select_id(msg.focus_tl_id):
        model.task_logs.select(0)
    return []


def _on_tl_deleted(model: Model, msg: TLDeleted) -> List[Command]:
    if msg.error is not None:
        _error(model, f"Error deleting entry: {msg.error}")
        return []

    cmds: List[Command] = []
    if model.find_task(msg.entry.task_id) is not None:
        cmds.append(RefreshTask(msg.entry.task_id))
    cmds.append(_fetch_task_logs(model))
    return cmds


def _on_active_tl_deleted(model: Model, msg: ActiveTLDeleted) -> List[Command]:
    if msg.error is not None:
        _error(model, f"Error deleting active log entry: {msg.error}")
        return []

    if model.active_task_id not in model.task_map:
        _error(model, GENERIC_ERROR_MSG)
        return []

    _clear_tracking(model)
    return []


def _on_task_log_moved(model: Model, msg: TaskLogMoved) -> List[Command]:
    cmds: List[Command] = []
    if msg.error is not None:
        _error(model, f"Error moving task log: {msg.error}")
    else:
        cmds = [_fetch_task_logs(model), FetchTasks(active=True)]

    model.active_view = View.TASK_LOG
    return cmds


def _on_task_active_status_updated(model: Model, msg: TaskActiveStatusUpdated) -> List[Command]:
    if msg.error is not None:
        _error(model, f"Error updating task's active status: {msg.error}")
        return []
    return [FetchTasks(active=True), FetchTasks(active=False)]


def _on_stale_tasks_archived(model: Model, msg: StaleTasksArchived) -> List[Command]:
    if msg.error is not None:
        _error(model, f"Error archiving tasks: {msg.error}")
        return []

    _info(model, f"Archived {msg.count} tasks")
    return [FetchTasks(active=True), FetchTasks(active=False)]


HANDLERS: Dict[Type, Handler] = {
    KeyPressed: _on_key,
    WindowResized: _on_resize,
    Tick: _on_tick,
    TasksFetched: _on_tasks_fetched,
    TaskCreated: _on_task_created,
    TaskUpdated: _on_task_updated,
    TaskRepUpdated: _on_task_rep_updated,
    ActiveTaskFetched: _on_active_task_fetched,
    TrackingToggled: _on_tracking_toggled,
    ActiveTLUpdated: _on_active_tl_updated,
    ActiveTLSwitched: _on_active_tl_switched,
    ManualTLInserted: _on_manual_tl_inserted,
    SavedTLEdited: _on_saved_tl_edited,
    TLsFetched: _on_tls_fetched,
    TLDeleted: _on_tl_deleted,
    ActiveTLDeleted: _on_active_tl_deleted,
    TaskLogMoved: _on_task_log_moved,
    TaskActiveStatusUpdated: _on_task_active_status_updated,
    StaleTasksArchived: _on_stale_tasks_archived,
}


def initial_commands(model: Model) -> List[Command]:
    """Commands that load everything the UI shows on startup."""
    return [
        FetchTasks(active=True),
        _fetch_task_logs(model),
        FetchTasks(active=False),
    ]
