"""
State of the interactive UI.

The reducer in update.py is the only code that changes a Model; everything
here is plain data plus small helpers for list selection and form fields.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Generic, List, Optional, Protocol, TypeVar

from ..db.models import NO_ACTIVE_TASK_ID, Task, TaskLogEntry
from ..utils.dates import TimeProvider

MIN_WIDTH_NEEDED = 96
MIN_HEIGHT_NEEDED = 30

ERROR_MESSAGE_FRAMES = 4
INFO_MESSAGE_FRAMES = 3
QUICK_MESSAGE_FRAMES = 2


class View(Enum):
    TASK_LIST = "task-list"
    TASK_LOG = "task-log"
    TASK_LOG_DETAILS = "task-log-details"
    INACTIVE_TASK_LIST = "inactive-task-list"
    TASK_INPUT = "task-input"
    EDIT_ACTIVE_TL = "edit-active-tl"
    FINISH_ACTIVE_TL = "finish-active-tl"
    MANUAL_TL_ENTRY = "manual-tl-entry"
    EDIT_SAVED_TL = "edit-saved-tl"
    MOVE_TASK_LOG = "move-task-log"
    HELP = "help"
    INSUFFICIENT_DIMENSIONS = "insufficient-dimensions"


TL_FORM_VIEWS = (
    View.EDIT_ACTIVE_TL,
    View.FINISH_ACTIVE_TL,
    View.MANUAL_TL_ENTRY,
    View.EDIT_SAVED_TL,
)

FORM_VIEWS = (View.TASK_INPUT, View.MOVE_TASK_LOG) + TL_FORM_VIEWS


class FormField(Enum):
    BEGIN_TS = "begin"
    END_TS = "end"
    COMMENT = "comment"


class TaskInputContext(Enum):
    CREATE = "create"
    UPDATE = "update"


class TaskLogSaveType(Enum):
    INSERT = "insert"
    UPDATE = "update"


class TrackingChange(Enum):
    STARTED = "started"
    FINISHED = "finished"


class MessageKind(Enum):
    INFO = "info"
    ERROR = "error"


class ListItem(Protocol):
    """Anything a list view can show: tasks and task log entries."""

    @property
    def item_id(self) -> int: ...

    def list_title(self, tracking: bool = False) -> str: ...

    def list_description(self, now: datetime) -> str: ...


@dataclass
class StatusMessage:
    """A transient message shown in the footer for a few frames."""

    value: str = ""
    kind: MessageKind = MessageKind.INFO
    frames_left: int = 0

    @classmethod
    def info(cls, value: str) -> "StatusMessage":
        return cls(value, MessageKind.INFO, INFO_MESSAGE_FRAMES)

    @classmethod
    def error(cls, value: str) -> "StatusMessage":
        return cls(value, MessageKind.ERROR, ERROR_MESSAGE_FRAMES)

    @classmethod
    def quick_error(cls, value: str) -> "StatusMessage":
        return cls(value, MessageKind.ERROR, QUICK_MESSAGE_FRAMES)

    def tick(self) -> None:
        if self.frames_left > 0:
            self.frames_left -= 1
        if self.frames_left == 0:
            self.value = ""


T = TypeVar("T", bound=ListItem)


@dataclass
class ItemList(Generic[T]):
    """A list of items with a cursor."""

    title: str
    items: List[T] = field(default_factory=list)
    index: int = 0

    def selected(self) -> Optional[T]:
        if not self.items:
            return None
        return self.items[self.index]

    def set_items(self, items: List[T]) -> None:
        self.items = list(items)
        self.index = min(self.index, max(len(self.items) - 1, 0))

    def select(self, index: int) -> None:
        if self.items:
            self.index = max(0, min(index, len(self.items) - 1))

    def select_id(self, item_id: int) -> bool:
        for i, item in enumerate(self.items):
            if item.item_id == item_id:
                self.index = i
                return True
        return False

    def cursor_up(self) -> None:
        self.select(self.index - 1)

    def cursor_down(self) -> None:
        self.select(self.index + 1)

    def replace(self, item: T) -> bool:
        """Swap in a fresh copy of an item with the same ID."""
        for i, existing in enumerate(self.items):
            if existing.item_id == item.item_id:
                self.items[i] = item
                return True
        return False


@dataclass
class Model:
    """Everything the interactive UI knows."""

    time_provider: TimeProvider
    min_log_duration_secs: int = 60
    stale_task_days: int = 14
    task_log_list_limit: int = 50

    active_view: View = View.TASK_LIST
    last_view: View = View.TASK_LIST
    last_view_before_insufficient_dims: View = View.TASK_LIST
    width: int = 0
    height: int = 0

    active_tasks: ItemList[Task] = field(default_factory=lambda: ItemList("Tasks"))
    inactive_tasks: ItemList[Task] = field(default_factory=lambda: ItemList("Inactive Tasks"))
    task_logs: ItemList[TaskLogEntry] = field(default_factory=lambda: ItemList("Task Logs"))
    target_tasks: ItemList[Task] = field(
        default_factory=lambda: ItemList("Choose a task to move the log entry to")
    )
    tasks_fetched: bool = False

    tracking_active: bool = False
    last_tracking_change: TrackingChange = TrackingChange.FINISHED
    active_task_id: int = NO_ACTIVE_TASK_ID
    active_tl_id: Optional[int] = None
    active_tl_begin_ts: Optional[datetime] = None
    active_tl_end_ts: Optional[datetime] = None
    active_tl_comment: Optional[str] = None

    task_input: str = ""
    task_input_context: TaskInputContext = TaskInputContext.CREATE

    tl_inputs: Dict[FormField, str] = field(
        default_factory=lambda: {f: "" for f in FormField}
    )
    focused_field: FormField = FormField.BEGIN_TS
    tl_save_type: TaskLogSaveType = TaskLogSaveType.INSERT

    move_tl_id: Optional[int] = None
    move_old_task_id: Optional[int] = None
    move_secs_spent: int = 0

    tl_details: str = ""
    message: StatusMessage = field(default_factory=StatusMessage)
    quitting: bool = False

    def now(self) -> datetime:
        return self.time_provider.now()

    @property
    def task_map(self) -> Dict[int, Task]:
        return {task.id: task for task in self.active_tasks.items}

    def find_task(self, task_id: int) -> Optional[Task]:
        """Look a task up in both the active and inactive lists."""
        for task in self.active_tasks.items + self.inactive_tasks.items:
            if task.id == task_id:
                return task
        return None

    def clear_tl_inputs(self) -> None:
        for f in FormField:
            self.tl_inputs[f] = ""
