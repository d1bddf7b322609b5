"""
Messages fed to the interactive UI's reducer.

Input events (keys, resizes, ticks) come from the terminal; the rest are the
results of commands run against the time tracker. A result message carries
the exception the command raised in `error` instead of propagating it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union

from ..db.models import ActiveTaskDetails, Task, TaskLogEntry


@dataclass(frozen=True)
class KeyPressed:
    key: str


@dataclass(frozen=True)
class WindowResized:
    width: int
    height: int


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class TasksFetched:
    tasks: List[Task] = field(default_factory=list)
    active: bool = True
    error: Optional[Exception] = None


@dataclass(frozen=True)
class TaskCreated:
    error: Optional[Exception] = None


@dataclass(frozen=True)
class TaskUpdated:
    task_id: int
    summary: str
    error: Optional[Exception] = None


@dataclass(frozen=True)
class TaskRepUpdated:
    task: Optional[Task] = None
    error: Optional[Exception] = None


@dataclass(frozen=True)
class ActiveTaskFetched:
    details: ActiveTaskDetails = field(default_factory=ActiveTaskDetails)
    error: Optional[Exception] = None


@dataclass(frozen=True)
class TrackingToggled:
    task_id: int
    finished: bool
    tl_id: Optional[int] = None
    begin_ts: Optional[datetime] = None
    error: Optional[Exception] = None


@dataclass(frozen=True)
class ActiveTLUpdated:
    begin_ts: datetime
    comment: Optional[str] = None
    error: Optional[Exception] = None


@dataclass(frozen=True)
class ActiveTLSwitched:
    last_active_task_id: int
    current_active_task_id: int
    tl_id: Optional[int] = None
    switch_ts: Optional[datetime] = None
    error: Optional[Exception] = None


@dataclass(frozen=True)
class ManualTLInserted:
    task_id: int
    error: Optional[Exception] = None


@dataclass(frozen=True)
class SavedTLEdited:
    tl_id: int
    task_id: int
    error: Optional[Exception] = None


@dataclass(frozen=True)
class TLsFetched:
    entries: List[TaskLogEntry] = field(default_factory=list)
    focus_tl_id: Optional[int] = None
    error: Optional[Exception] = None


@dataclass(frozen=True)
class TLDeleted:
    entry: TaskLogEntry
    error: Optional[Exception] = None


@dataclass(frozen=True)
class ActiveTLDeleted:
    task_id: Optional[int] = None
    error: Optional[Exception] = None


@dataclass(frozen=True)
class TaskLogMoved:
    tl_id: int
    old_task_id: int
    new_task_id: int
    error: Optional[Exception] = None


@dataclass(frozen=True)
class TaskActiveStatusUpdated:
    task_id: int
    active: bool
    error: Optional[Exception] = None


@dataclass(frozen=True)
class StaleTasksArchived:
    count: int = 0
    error: Optional[Exception] = None


Msg = Union[
    KeyPressed,
    WindowResized,
    Tick,
    TasksFetched,
    TaskCreated,
    TaskUpdated,
    TaskRepUpdated,
    ActiveTaskFetched,
    TrackingToggled,
    ActiveTLUpdated,
    ActiveTLSwitched,
    ManualTLInserted,
    SavedTLEdited,
    TLsFetched,
    TLDeleted,
    ActiveTLDeleted,
    TaskLogMoved,
    TaskActiveStatusUpdated,
    StaleTasksArchived,
]
