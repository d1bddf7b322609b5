"""
Core time tracking functionality for hours.

This module contains the main TimeTracker class that wires the database,
the repositories and the time provider together. Both the interactive UI and
the CLI subcommands go through it.
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from ..db.exceptions import (
    AlreadyTrackingError,
    NoTaskActiveError,
    NotFoundError,
    StorageError,
    TaskLogNotFoundError,
    TaskNotFoundError,
    TimeTrackingError,
)
from ..db.models import (
    ActiveTaskDetails,
    Task,
    TaskLogEntry,
    TaskReportEntry,
    TaskStatus,
)
from ..db.repository import (
    FinishedTracking,
    QuickSwitchResult,
    ReportRepository,
    TaskLogRepository,
    TaskRepository,
)
from ..db.schema import DatabaseManager
from ..utils.config import DB_FILE_NAME
from ..utils.dates import RealTimeProvider, TimeProvider
from ..utils.time_validation import truncate_to_second

logger = logging.getLogger(__name__)

__all__ = [
    "TimeTracker",
    "TimeTrackingError",
    "NotFoundError",
    "TaskNotFoundError",
    "TaskLogNotFoundError",
    "AlreadyTrackingError",
    "NoTaskActiveError",
    "StorageError",
]


class TimeTracker:
    """Main time tracking service that coordinates tasks and task log entries."""

    def __init__(
        self,
        data_dir: Path,
        db_path: Optional[Path] = None,
        time_provider: Optional[TimeProvider] = None,
    ):
        """
        Initialize TimeTracker with the given data directory.

        Args:
            data_dir: Directory where the database and other data files are stored
            db_path: Explicit database file; defaults to hours.db inside data_dir
            time_provider: Source of "now"; the system clock when None
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.time_provider = time_provider or RealTimeProvider()

        # Initialize database
        self.db_path = Path(db_path) if db_path else self.data_dir / DB_FILE_NAME
        self.db_manager = DatabaseManager(self.db_path)
        self.db_manager.initialize_database()

        # Initialize repositories
        self.task_repo = TaskRepository(self.db_manager, self.time_provider)
        self.log_repo = TaskLogRepository(self.db_manager, self.time_provider)
        self.report_repo = ReportRepository(self.db_manager)

        logger.debug("Using database %s", self.db_path)

    def now(self) -> datetime:
        return self.time_provider.now()

    # Tasks

    def create_task(self, summary: str) -> Task:
        """
        Create a new task.

        Args:
            summary: Summary of the task; stored as given

        Returns:
            The created task
        """
        task = self.task_repo.create_task(summary)
        logger.info("Created task %d", task.id)
        return task

    def get_task(self, task_id: int) -> Task:
        return self.task_repo.get_task(task_id)

    def update_task_summary(self, task_id: int, summary: str) -> None:
        self.task_repo.update_task_summary(task_id, summary)

    def set_task_active(self, task_id: int, active: bool) -> None:
        self.task_repo.set_task_active(task_id, active)
        logger.info("Task %d %s", task_id, "activated" if active else "deactivated")

    def archive_stale_tasks(self, cutoff: datetime) -> int:
        """
        Deactivate tasks with no activity after cutoff.

        Returns:
            Number of tasks archived
        """
        count = self.task_repo.archive_stale_tasks(cutoff)
        logger.info("Archived %d stale tasks", count)
        return count

    def archive_tasks_idle_for(self, days: int) -> int:
        """Deactivate tasks with no activity in the last `days` days."""
        return self.archive_stale_tasks(self.now() - timedelta(days=days))

    def fetch_tasks(self, active: bool = True, limit: Optional[int] = None) -> List[Task]:
        return self.task_repo.fetch_tasks(active, limit)

    # Tracking

    def start_tracking(self, task_id: int, begin_ts: datetime) -> int:
        """
        Start tracking time for a task.

        Returns:
            ID of the open entry

        Raises:
            AlreadyTrackingError: If an entry is already open
            TaskNotFoundError: If the task does not exist
        """
        tl_id = self.log_repo.start_tracking(task_id, begin_ts)
        logger.info("Started tracking task %d", task_id)
        return tl_id

    def finish_tracking(
        self,
        tl_id: int,
        task_id: int,
        begin_ts: datetime,
        end_ts: datetime,
        comment: Optional[str],
    ) -> int:
        """
        Finish the open entry.

        Returns:
            Seconds recorded for the entry
        """
        secs = self.log_repo.finish_tracking(tl_id, task_id, begin_ts, end_ts, comment)
        logger.info("Finished tracking task %d (%ds)", task_id, secs)
        return secs

    def edit_open_entry(self, begin_ts: datetime, comment: Optional[str]) -> None:
        self.log_repo.edit_open_entry(begin_ts, comment)

    def quick_switch(self, new_task_id: int, switch_ts: datetime) -> QuickSwitchResult:
        """
        Switch tracking to another task at switch_ts.

        Raises:
            NoTaskActiveError: If nothing is being tracked
        """
        result = self.log_repo.quick_switch(new_task_id, switch_ts)
        logger.info(
            "Switched tracking from task %d to task %d",
            result.last_active_task_id,
            result.current_active_task_id,
        )
        return result

    def delete_open_entry(self) -> Optional[int]:
        return self.log_repo.delete_open_entry()

    def fetch_active_task_details(self) -> ActiveTaskDetails:
        return self.log_repo.fetch_active_task_details()

    def start_tracking_now(self, task_id: int) -> Task:
        """
        Start tracking a task (active or not) from the command line.

        Raises:
            AlreadyTrackingError: If an entry is already open
            TaskNotFoundError: If the task does not exist
        """
        if not self.fetch_active_task_details().is_none:
            raise AlreadyTrackingError()

        task = self.task_repo.get_task(task_id)
        self.start_tracking(task_id, truncate_to_second(self.now()))
        return task

    def stop_tracking_now(self) -> FinishedTracking:
        """
        Finish the open entry at the current time.

        Raises:
            NoTaskActiveError: If nothing is being tracked
        """
        finished = self.log_repo.finish_active_tracking(truncate_to_second(self.now()))
        logger.info("Stopped tracking task %d (%ds)", finished.task_id, finished.secs_spent)
        return finished

    # Task log entries

    def insert_manual_entry(
        self,
        task_id: int,
        begin_ts: datetime,
        end_ts: datetime,
        comment: Optional[str],
    ) -> int:
        return self.log_repo.insert_manual_entry(task_id, begin_ts, end_ts, comment)

    def edit_closed_entry(
        self,
        tl_id: int,
        begin_ts: datetime,
        end_ts: datetime,
        comment: Optional[str],
    ) -> int:
        return self.log_repo.edit_closed_entry(tl_id, begin_ts, end_ts, comment)

    def delete_closed_entry(self, entry: TaskLogEntry) -> None:
        self.log_repo.delete_closed_entry(entry)
        logger.info("Deleted entry %d", entry.id)

    def move_entry(self, tl_id: int, old_task_id: int, new_task_id: int, secs_to_move: int) -> None:
        self.log_repo.move_entry(tl_id, old_task_id, new_task_id, secs_to_move)
        logger.info("Moved entry %d to task %d", tl_id, new_task_id)

    def get_entry(self, tl_id: int) -> TaskLogEntry:
        return self.log_repo.get_entry(tl_id)

    def fetch_log_entries(self, ascending: bool = False, limit: Optional[int] = None) -> List[TaskLogEntry]:
        return self.log_repo.fetch_log_entries(ascending, limit)

    def fetch_log_entries_between(
        self,
        start: datetime,
        end: datetime,
        task_status: TaskStatus = TaskStatus.ANY,
        limit: Optional[int] = None,
    ) -> List[TaskLogEntry]:
        return self.log_repo.fetch_log_entries_between(start, end, task_status, limit)

    # Reports

    def fetch_report_between(
        self,
        start: datetime,
        end: datetime,
        task_status: TaskStatus = TaskStatus.ANY,
        limit: Optional[int] = None,
    ) -> List[TaskReportEntry]:
        return self.report_repo.fetch_report_between(start, end, task_status, limit)

    def fetch_stats_between(
        self,
        start: datetime,
        end: datetime,
        task_status: TaskStatus = TaskStatus.ANY,
        limit: Optional[int] = None,
    ) -> List[TaskReportEntry]:
        return self.report_repo.fetch_stats_between(start, end, task_status, limit)

    def fetch_stats(
        self, task_status: TaskStatus = TaskStatus.ANY, limit: Optional[int] = None
    ) -> List[TaskReportEntry]:
        return self.report_repo.fetch_stats(task_status, limit)
