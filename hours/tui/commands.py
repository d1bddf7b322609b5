"""
Side effects requested by the interactive UI's reducer.

The reducer never touches the database. It returns commands; the app runs
each one off the UI thread and feeds the resulting message back in.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.time_tracker import TimeTracker, TimeTrackingError
from ..db.models import TaskLogEntry
from .messages import (
    ActiveTaskFetched,
    ActiveTLDeleted,
    ActiveTLSwitched,
    ActiveTLUpdated,
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
    TLDeleted,
    TLsFetched,
    TrackingToggled,
)

logger = logging.getLogger(__name__)


class Command:
    """
    Base class for reducer commands.

    Subclasses implement run() and failed(). execute() never raises; any
    failure comes back as the command's message with its error set.
    """

    def execute(self, tracker: TimeTracker) -> Msg:
        try:
            return self.run(tracker)
        except TimeTrackingError as e:
            logger.error("%s failed: %s", type(self).__name__, e)
            return self.failed(e)
        except Exception as e:
            logger.exception("%s failed unexpectedly", type(self).__name__)
            return self.failed(e)

    def run(self, tracker: TimeTracker) -> Msg:
        raise NotImplementedError

    def failed(self, error: Exception) -> Msg:
        raise NotImplementedError


@dataclass(frozen=True)
class FetchTasks(Command):
    active: bool = True

    def run(self, tracker: TimeTracker) -> Msg:
        return TasksFetched(tracker.fetch_tasks(self.active), self.active)

    def failed(self, error: Exception) -> Msg:
        return TasksFetched(active=self.active, error=error)


@dataclass(frozen=True)
class FetchActiveTask(Command):
    def run(self, tracker: TimeTracker) -> Msg:
        return ActiveTaskFetched(tracker.fetch_active_task_details())

    def failed(self, error: Exception) -> Msg:
        return ActiveTaskFetched(error=error)


@dataclass(frozen=True)
class FetchTaskLogs(Command):
    limit: int = 50
    focus_tl_id: Optional[int] = None

    def run(self, tracker: TimeTracker) -> Msg:
        entries = tracker.fetch_log_entries(ascending=False, limit=self.limit)
        return TLsFetched(entries, self.focus_tl_id)

    def failed(self, error: Exception) -> Msg:
        return TLsFetched(error=error)


@dataclass(frozen=True)
class CreateTask(Command):
    summary: str

    def run(self, tracker: TimeTracker) -> Msg:
        tracker.create_task(self.summary)
        return TaskCreated()

    def failed(self, error: Exception) -> Msg:
        return TaskCreated(error=error)


@dataclass(frozen=True)
class UpdateTask(Command):
    task_id: int
    summary: str

    def run(self, tracker: TimeTracker) -> Msg:
        tracker.update_task_summary(self.task_id, self.summary)
        return TaskUpdated(self.task_id, self.summary)

    def failed(self, error: Exception) -> Msg:
        return TaskUpdated(self.task_id, self.summary, error=error)


@dataclass(frozen=True)
class UpdateTaskActiveStatus(Command):
    task_id: int
    active: bool

    def run(self, tracker: TimeTracker) -> Msg:
        tracker.set_task_active(self.task_id, self.active)
        return TaskActiveStatusUpdated(self.task_id, self.active)

    def failed(self, error: Exception) -> Msg:
        return TaskActiveStatusUpdated(self.task_id, self.active, error=error)


@dataclass(frozen=True)
class ArchiveStaleTasks(Command):
    cutoff: datetime

    def run(self, tracker: TimeTracker) -> Msg:
        return StaleTasksArchived(tracker.archive_stale_tasks(self.cutoff))

    def failed(self, error: Exception) -> Msg:
        return StaleTasksArchived(error=error)


@dataclass(frozen=True)
class StartTracking(Command):
    task_id: int
    begin_ts: datetime

    def run(self, tracker: TimeTracker) -> Msg:
        tl_id = tracker.start_tracking(self.task_id, self.begin_ts)
        return TrackingToggled(self.task_id, False, tl_id, self.begin_ts)

    def failed(self, error: Exception) -> Msg:
        return TrackingToggled(self.task_id, False, error=error)


@dataclass(frozen=True)
class FinishTracking(Command):
    tl_id: int
    task_id: int
    begin_ts: datetime
    end_ts: datetime
    comment: Optional[str] = None

    def run(self, tracker: TimeTracker) -> Msg:
        tracker.finish_tracking(self.tl_id, self.task_id, self.begin_ts, self.end_ts, self.comment)
        return TrackingToggled(self.task_id, True, self.tl_id)

    def failed(self, error: Exception) -> Msg:
        return TrackingToggled(self.task_id, True, self.tl_id, error=error)


@dataclass(frozen=True)
class UpdateActiveTL(Command):
    begin_ts: datetime
    comment: Optional[str] = None

    def run(self, tracker: TimeTracker) -> Msg:
        tracker.edit_open_entry(self.begin_ts, self.comment)
        return ActiveTLUpdated(self.begin_ts, self.comment)

    def failed(self, error: Exception) -> Msg:
        return ActiveTLUpdated(self.begin_ts, self.comment, error=error)


@dataclass(frozen=True)
class QuickSwitch(Command):
    task_id: int
    switch_ts: datetime

    def run(self, tracker: TimeTracker) -> Msg:
        result = tracker.quick_switch(self.task_id, self.switch_ts)
        return ActiveTLSwitched(
            result.last_active_task_id,
            result.current_active_task_id,
            result.tl_id,
            result.switch_ts,
        )

    def failed(self, error: Exception) -> Msg:
        return ActiveTLSwitched(-1, self.task_id, error=error)


@dataclass(frozen=True)
class InsertManualTL(Command):
    task_id: int
    begin_ts: datetime
    end_ts: datetime
    comment: Optional[str] = None

    def run(self, tracker: TimeTracker) -> Msg:
        tracker.insert_manual_entry(self.task_id, self.begin_ts, self.end_ts, self.comment)
        return ManualTLInserted(self.task_id)

    def failed(self, error: Exception) -> Msg:
        return ManualTLInserted(self.task_id, error=error)


@dataclass(frozen=True)
class EditSavedTL(Command):
    tl_id: int
    task_id: int
    begin_ts: datetime
    end_ts: datetime
    comment: Optional[str] = None

    def run(self, tracker: TimeTracker) -> Msg:
        tracker.edit_closed_entry(self.tl_id, self.begin_ts, self.end_ts, self.comment)
        return SavedTLEdited(self.tl_id, self.task_id)

    def failed(self, error: Exception) -> Msg:
        return SavedTLEdited(self.tl_id, self.task_id, error=error)


@dataclass(frozen=True)
class DeleteTL(Command):
    entry: TaskLogEntry

    def run(self, tracker: TimeTracker) -> Msg:
        tracker.delete_closed_entry(self.entry)
        return TLDeleted(self.entry)

    def failed(self, error: Exception) -> Msg:
        return TLDeleted(self.entry, error=error)


@dataclass(frozen=True)
class DeleteActiveTL(Command):
    def run(self, tracker: TimeTracker) -> Msg:
        return ActiveTLDeleted(tracker.delete_open_entry())

    def failed(self, error: Exception) -> Msg:
        return ActiveTLDeleted(error=error)


@dataclass(frozen=True)
class MoveTaskLog(Command):
    tl_id: int
    old_task_id: int
    new_task_id: int
    secs_spent: int

    def run(self, tracker: TimeTracker) -> Msg:
        tracker.move_entry(self.tl_id, self.old_task_id, self.new_task_id, self.secs_spent)
        return TaskLogMoved(self.tl_id, self.old_task_id, self.new_task_id)

    def failed(self, error: Exception) -> Msg:
        return TaskLogMoved(self.tl_id, self.old_task_id, self.new_task_id, error=error)


@dataclass(frozen=True)
class RefreshTask(Command):
    """Re-read a single task so its list entry shows fresh totals."""

    task_id: int

    def run(self, tracker: TimeTracker) -> Msg:
        return TaskRepUpdated(tracker.get_task(self.task_id))

    def failed(self, error: Exception) -> Msg:
        return TaskRepUpdated(error=error)
