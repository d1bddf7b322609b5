"""
Database repositories for hours.

This module provides the data access layer for tasks and task log entries.
Every mutation that touches a task log entry adjusts the owning task's
secs_spent inside the same transaction, so a task's total always equals the
sum of its closed entries.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import List, NamedTuple, Optional, Tuple

from ..utils.dates import RealTimeProvider, TimeProvider
from .exceptions import (
    AlreadyTrackingError,
    NoTaskActiveError,
    TaskLogNotFoundError,
    TaskNotFoundError,
)
from .models import (
    ActiveTaskDetails,
    Task,
    TaskLogEntry,
    TaskReportEntry,
    TaskStatus,
)
from .schema import DatabaseManager

logger = logging.getLogger(__name__)

# SQLite treats a negative LIMIT as "no limit"
NO_LIMIT = -1


def to_db_timestamp(ts: datetime) -> str:
    """Serialize a timestamp as UTC ISO text, truncated to whole seconds."""
    if ts.tzinfo is None:
        ts = ts.astimezone()
    return ts.astimezone(timezone.utc).replace(microsecond=0).isoformat()


def from_db_timestamp(value: str) -> datetime:
    """Read a stored timestamp back as local time."""
    return datetime.fromisoformat(value).astimezone()


def secs_between(begin_ts: datetime, end_ts: datetime) -> int:
    """Whole seconds from begin to end, rounded down and never negative."""
    return max(0, int((end_ts - begin_ts).total_seconds()))


def _status_clause(task_status: TaskStatus) -> Tuple[str, tuple]:
    if task_status == TaskStatus.ACTIVE:
        return " AND t.active = ?", (1,)
    if task_status == TaskStatus.INACTIVE:
        return " AND t.active = ?", (0,)
    return "", ()


def _limit(limit: Optional[int]) -> int:
    return NO_LIMIT if limit is None else limit


def _ensure_task_exists(conn: sqlite3.Connection, task_id: int) -> sqlite3.Row:
    row = conn.execute("SELECT id, summary FROM task WHERE id = ?", (task_id,)).fetchone()
    if row is None:
        raise TaskNotFoundError(task_id)
    return row


def _add_secs_to_task(
    conn: sqlite3.Connection, task_id: int, secs: int, updated_at: datetime
) -> None:
    cursor = conn.execute(
        """
        UPDATE task
        SET secs_spent = secs_spent + ?, updated_at = ?
        WHERE id = ?
    """,
        (secs, to_db_timestamp(updated_at), task_id),
    )
    if cursor.rowcount == 0:
        raise TaskNotFoundError(task_id)


class TaskRepository:
    """Repository for managing tasks in the database."""

    def __init__(self, db_manager: DatabaseManager, time_provider: Optional[TimeProvider] = None):
        """Initialize repository with database manager."""
        self.db_manager = db_manager
        self.time_provider = time_provider or RealTimeProvider()

    def create_task(self, summary: str) -> Task:
        """Create a new active task with no time spent.

        The summary is stored as given; callers validate it.
        """
        now = self.time_provider.now()
        with self.db_manager.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO task (summary, secs_spent, active, created_at, updated_at)
                VALUES (?, 0, 1, ?, ?)
            """,
                (summary, to_db_timestamp(now), to_db_timestamp(now)),
            )
            task_id = cursor.lastrowid

        logger.debug("Created task %d", task_id)
        return self.get_task(task_id)

    def get_task(self, task_id: int) -> Task:
        """Get a task by its ID.

        Raises:
            TaskNotFoundError: If no task has this ID
        """
        with self.db_manager.get_connection() as conn:
            row = conn.execute("SELECT * FROM task WHERE id = ?", (task_id,)).fetchone()

        if row is None:
            raise TaskNotFoundError(task_id)
        return self._row_to_task(row)

    def update_task_summary(self, task_id: int, summary: str) -> None:
        """Change a task's summary."""
        with self.db_manager.transaction() as conn:
            cursor = conn.execute(
                "UPDATE task SET summary = ?, updated_at = ? WHERE id = ?",
                (summary, to_db_timestamp(self.time_provider.now()), task_id),
            )
            if cursor.rowcount == 0:
                raise TaskNotFoundError(task_id)

        logger.debug("Updated summary of task %d", task_id)

    def set_task_active(self, task_id: int, active: bool) -> None:
        """Activate or deactivate a task."""
        with self.db_manager.transaction() as conn:
            cursor = conn.execute(
                "UPDATE task SET active = ?, updated_at = ? WHERE id = ?",
                (active, to_db_timestamp(self.time_provider.now()), task_id),
            )
            if cursor.rowcount == 0:
                raise TaskNotFoundError(task_id)

        logger.debug("Set task %d active=%s", task_id, active)

    def archive_stale_tasks(self, cutoff: datetime) -> int:
        """
        Deactivate active tasks that have seen no activity since cutoff.

        A task is kept active if any of its entries begins or ends after the
        cutoff, or if it has an open entry.

        Returns:
            Number of tasks archived
        """
        cutoff_str = to_db_timestamp(cutoff)
        with self.db_manager.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE task
                SET active = 0, updated_at = ?
                WHERE active = 1
                  AND id NOT IN (
                    SELECT DISTINCT task_id FROM task_log
                    WHERE active = 1
                       OR end_ts IS NULL
                       OR begin_ts > ?
                       OR end_ts > ?
                  )
            """,
                (to_db_timestamp(self.time_provider.now()), cutoff_str, cutoff_str),
            )
            count = cursor.rowcount

        logger.debug("Archived %d stale tasks (cutoff %s)", count, cutoff_str)
        return count

    def fetch_tasks(self, active: bool = True, limit: Optional[int] = None) -> List[Task]:
        """Get active or inactive tasks, most recently updated first."""
        with self.db_manager.get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT * FROM task
                WHERE active = ?
                ORDER BY updated_at DESC
                LIMIT ?
            """,
                (active, _limit(limit)),
            )
            rows = cursor.fetchall()

        return [self._row_to_task(row) for row in rows]

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        """Convert a database row to a Task model."""
        return Task(
            id=row["id"],
            summary=row["summary"],
            secs_spent=row["secs_spent"],
            active=bool(row["active"]),
            created_at=from_db_timestamp(row["created_at"]),
            updated_at=from_db_timestamp(row["updated_at"]),
        )


class QuickSwitchResult(NamedTuple):
    """Outcome of switching tracking from one task to another."""

    last_active_task_id: int
    current_active_task_id: int
    tl_id: int
    switch_ts: datetime


class FinishedTracking(NamedTuple):
    """Outcome of finishing the open entry from the command line."""

    task_id: int
    task_summary: str
    tl_id: int
    secs_spent: int


class TaskLogRepository:
    """Repository for managing task log entries in the database."""

    def __init__(self, db_manager: DatabaseManager, time_provider: Optional[TimeProvider] = None):
        """Initialize repository with database manager."""
        self.db_manager = db_manager
        self.time_provider = time_provider or RealTimeProvider()

    def start_tracking(self, task_id: int, begin_ts: datetime) -> int:
        """
        Open a new entry for a task.

        Args:
            task_id: Task to track
            begin_ts: When tracking began

        Returns:
            ID of the new entry

        Raises:
            TaskNotFoundError: If the task does not exist
            AlreadyTrackingError: If another entry is already open
        """
        with self.db_manager.transaction() as conn:
            _ensure_task_exists(conn, task_id)

            open_row = conn.execute("SELECT id FROM task_log WHERE active = 1").fetchone()
            if open_row is not None:
                raise AlreadyTrackingError()

            try:
                cursor = conn.execute(
                    """
                    INSERT INTO task_log (task_id, begin_ts, secs_spent, active)
                    VALUES (?, ?, 0, 1)
                """,
                    (task_id, to_db_timestamp(begin_ts)),
                )
            except sqlite3.IntegrityError as e:
                # another process opened an entry between the check and the insert
                logger.warning("Open entry guard rejected insert: %s", e)
                raise AlreadyTrackingError() from e

            tl_id = cursor.lastrowid
            conn.execute(
                "UPDATE task SET updated_at = ? WHERE id = ?",
                (to_db_timestamp(self.time_provider.now()), task_id),
            )

        logger.debug("Started tracking task %d (entry %d)", task_id, tl_id)
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
        Close the open entry and add its duration to the task.

        Returns:
            Seconds recorded for the entry

        Raises:
            TaskLogNotFoundError: If tl_id is not the open entry of task_id
            TaskNotFoundError: If the task does not exist
        """
        secs = secs_between(begin_ts, end_ts)
        with self.db_manager.transaction() as conn:
            _ensure_task_exists(conn, task_id)
            cursor = conn.execute(
                """
                UPDATE task_log
                SET begin_ts = ?, end_ts = ?, secs_spent = ?, comment = ?, active = 0
                WHERE id = ? AND task_id = ? AND active = 1
            """,
                (
                    to_db_timestamp(begin_ts),
                    to_db_timestamp(end_ts),
                    secs,
                    comment,
                    tl_id,
                    task_id,
                ),
            )
            if cursor.rowcount == 0:
                raise TaskLogNotFoundError(tl_id)

            _add_secs_to_task(conn, task_id, secs, self.time_provider.now())

        logger.debug("Finished entry %d of task %d (%ds)", tl_id, task_id, secs)
        return secs

    def finish_active_tracking(self, end_ts: datetime) -> FinishedTracking:
        """
        Close whatever entry is open, keeping its begin time and comment.

        Raises:
            NoTaskActiveError: If nothing is being tracked
        """
        with self.db_manager.transaction() as conn:
            row = conn.execute(
                """
                SELECT tl.id, tl.task_id, tl.begin_ts, t.summary
                FROM task_log tl JOIN task t ON tl.task_id = t.id
                WHERE tl.active = 1
            """
            ).fetchone()
            if row is None:
                raise NoTaskActiveError()

            secs = secs_between(from_db_timestamp(row["begin_ts"]), end_ts)
            conn.execute(
                """
                UPDATE task_log
                SET end_ts = ?, secs_spent = ?, active = 0
                WHERE id = ?
            """,
                (to_db_timestamp(end_ts), secs, row["id"]),
            )
            _add_secs_to_task(conn, row["task_id"], secs, self.time_provider.now())

        logger.debug("Finished entry %d of task %d (%ds)", row["id"], row["task_id"], secs)
        return FinishedTracking(row["task_id"], row["summary"], row["id"], secs)

    def edit_open_entry(self, begin_ts: datetime, comment: Optional[str]) -> None:
        """
        Change the begin time and comment of the open entry.

        Raises:
            NoTaskActiveError: If nothing is being tracked
        """
        with self.db_manager.transaction() as conn:
            cursor = conn.execute(
                "UPDATE task_log SET begin_ts = ?, comment = ? WHERE active = 1",
                (to_db_timestamp(begin_ts), comment),
            )
            if cursor.rowcount == 0:
                raise NoTaskActiveError()

    def quick_switch(self, new_task_id: int, switch_ts: datetime) -> QuickSwitchResult:
        """
        Close the open entry at switch_ts and open one for another task.

        The closed entry keeps its comment; the new entry has none.

        Raises:
            NoTaskActiveError: If nothing is being tracked
            TaskNotFoundError: If the new task does not exist
        """
        with self.db_manager.transaction() as conn:
            row = conn.execute(
                "SELECT id, task_id, begin_ts FROM task_log WHERE active = 1"
            ).fetchone()
            if row is None:
                raise NoTaskActiveError()

            _ensure_task_exists(conn, new_task_id)

            secs = secs_between(from_db_timestamp(row["begin_ts"]), switch_ts)
            conn.execute(
                """
                UPDATE task_log
                SET end_ts = ?, secs_spent = ?, active = 0
                WHERE id = ?
            """,
                (to_db_timestamp(switch_ts), secs, row["id"]),
            )
            now = self.time_provider.now()
            _add_secs_to_task(conn, row["task_id"], secs, now)

            cursor = conn.execute(
                """
                INSERT INTO task_log (task_id, begin_ts, secs_spent, active)
                VALUES (?, ?, 0, 1)
            """,
                (new_task_id, to_db_timestamp(switch_ts)),
            )
            tl_id = cursor.lastrowid
            conn.execute(
                "UPDATE task SET updated_at = ? WHERE id = ?",
                (to_db_timestamp(now), new_task_id),
            )

        logger.debug("Switched tracking from task %d to task %d", row["task_id"], new_task_id)
        return QuickSwitchResult(row["task_id"], new_task_id, tl_id, switch_ts)

    def insert_manual_entry(
        self,
        task_id: int,
        begin_ts: datetime,
        end_ts: datetime,
        comment: Optional[str],
    ) -> int:
        """
        Insert an already closed entry and add its duration to the task.

        Returns:
            ID of the new entry
        """
        secs = secs_between(begin_ts, end_ts)
        with self.db_manager.transaction() as conn:
            _ensure_task_exists(conn, task_id)
            cursor = conn.execute(
                """
                INSERT INTO task_log (task_id, begin_ts, end_ts, secs_spent, comment, active)
                VALUES (?, ?, ?, ?, ?, 0)
            """,
                (task_id, to_db_timestamp(begin_ts), to_db_timestamp(end_ts), secs, comment),
            )
            tl_id = cursor.lastrowid
            _add_secs_to_task(conn, task_id, secs, self.time_provider.now())

        logger.debug("Inserted entry %d for task %d (%ds)", tl_id, task_id, secs)
        return tl_id

    def edit_closed_entry(
        self,
        tl_id: int,
        begin_ts: datetime,
        end_ts: datetime,
        comment: Optional[str],
    ) -> int:
        """
        Change a closed entry and adjust its task by the difference in duration.

        Returns:
            ID of the task owning the entry

        Raises:
            TaskLogNotFoundError: If no closed entry has this ID
        """
        new_secs = secs_between(begin_ts, end_ts)
        with self.db_manager.transaction() as conn:
            row = conn.execute(
                "SELECT task_id, secs_spent FROM task_log WHERE id = ? AND active = 0",
                (tl_id,),
            ).fetchone()
            if row is None:
                raise TaskLogNotFoundError(tl_id)

            conn.execute(
                """
                UPDATE task_log
                SET begin_ts = ?, end_ts = ?, secs_spent = ?, comment = ?
                WHERE id = ?
            """,
                (to_db_timestamp(begin_ts), to_db_timestamp(end_ts), new_secs, comment, tl_id),
            )
            _add_secs_to_task(
                conn, row["task_id"], new_secs - row["secs_spent"], self.time_provider.now()
            )

        logger.debug("Edited entry %d (%ds -> %ds)", tl_id, row["secs_spent"], new_secs)
        return row["task_id"]

    def delete_closed_entry(self, entry: TaskLogEntry) -> None:
        """
        Delete a closed entry and subtract its stored duration from its task.

        Raises:
            TaskLogNotFoundError: If the entry no longer exists
        """
        with self.db_manager.transaction() as conn:
            row = conn.execute(
                "SELECT task_id, secs_spent FROM task_log WHERE id = ? AND active = 0",
                (entry.id,),
            ).fetchone()
            if row is None:
                raise TaskLogNotFoundError(entry.id)

            conn.execute("DELETE FROM task_log WHERE id = ?", (entry.id,))
            _add_secs_to_task(conn, row["task_id"], -row["secs_spent"], self.time_provider.now())

        logger.debug("Deleted entry %d of task %d", entry.id, row["task_id"])

    def delete_open_entry(self) -> Optional[int]:
        """
        Discard the open entry, if any; task totals are not touched.

        Returns:
            ID of the task whose entry was discarded, or None
        """
        with self.db_manager.transaction() as conn:
            row = conn.execute("SELECT id, task_id FROM task_log WHERE active = 1").fetchone()
            if row is None:
                return None
            conn.execute("DELETE FROM task_log WHERE id = ?", (row["id"],))

        logger.debug("Discarded open entry %d of task %d", row["id"], row["task_id"])
        return row["task_id"]

    def move_entry(
        self, tl_id: int, old_task_id: int, new_task_id: int, secs_to_move: int
    ) -> None:
        """
        Move a closed entry to another task, carrying its duration along.

        Raises:
            TaskLogNotFoundError: If the entry does not exist, or is no longer
                owned by old_task_id with secs_to_move seconds
            TaskNotFoundError: If the new task does not exist
        """
        with self.db_manager.transaction() as conn:
            if old_task_id == new_task_id:
                row = conn.execute(
                    "SELECT id FROM task_log WHERE id = ? AND active = 0", (tl_id,)
                ).fetchone()
                if row is None:
                    raise TaskLogNotFoundError(tl_id)
                return

            _ensure_task_exists(conn, new_task_id)
            cursor = conn.execute(
                """
                UPDATE task_log SET task_id = ?
                WHERE id = ? AND task_id = ? AND secs_spent = ? AND active = 0
            """,
                (new_task_id, tl_id, old_task_id, secs_to_move),
            )
            if cursor.rowcount == 0:
                raise TaskLogNotFoundError(tl_id)

            now = self.time_provider.now()
            _add_secs_to_task(conn, old_task_id, -secs_to_move, now)
            _add_secs_to_task(conn, new_task_id, secs_to_move, now)

        logger.debug("Moved entry %d from task %d to task %d", tl_id, old_task_id, new_task_id)

    def fetch_active_task_details(self) -> ActiveTaskDetails:
        """Get the task being tracked, or the sentinel with task_id -1."""
        with self.db_manager.get_connection() as conn:
            row = conn.execute(
                """
                SELECT t.id AS task_id, t.summary, tl.id AS tl_id, tl.begin_ts, tl.comment
                FROM task_log tl JOIN task t ON tl.task_id = t.id
                WHERE tl.active = 1
            """
            ).fetchone()

        if row is None:
            return ActiveTaskDetails()

        return ActiveTaskDetails(
            task_id=row["task_id"],
            task_summary=row["summary"],
            current_log_id=row["tl_id"],
            current_log_begin_ts=from_db_timestamp(row["begin_ts"]),
            current_log_comment=row["comment"],
        )

    def get_entry(self, tl_id: int) -> TaskLogEntry:
        """Get a single entry by ID.

        Raises:
            TaskLogNotFoundError: If no entry has this ID
        """
        with self.db_manager.get_connection() as conn:
            row = conn.execute(
                """
                SELECT tl.*, t.summary AS task_summary
                FROM task_log tl LEFT JOIN task t ON tl.task_id = t.id
                WHERE tl.id = ?
            """,
                (tl_id,),
            ).fetchone()

        if row is None:
            raise TaskLogNotFoundError(tl_id)
        return self._row_to_entry(row)

    def fetch_log_entries(self, ascending: bool = False, limit: Optional[int] = None) -> List[TaskLogEntry]:
        """Get closed entries ordered by end time."""
        order = "ASC" if ascending else "DESC"
        with self.db_manager.get_connection() as conn:
            cursor = conn.execute(
                f"""
                SELECT tl.*, t.summary AS task_summary
                FROM task_log tl LEFT JOIN task t ON tl.task_id = t.id
                WHERE tl.active = 0
                ORDER BY tl.end_ts {order}, tl.id {order}
                LIMIT ?
            """,
                (_limit(limit),),
            )
            rows = cursor.fetchall()

        return [self._row_to_entry(row) for row in rows]

    def fetch_log_entries_between(
        self,
        start: datetime,
        end: datetime,
        task_status: TaskStatus = TaskStatus.ANY,
        limit: Optional[int] = None,
    ) -> List[TaskLogEntry]:
        """Get closed entries that ended in [start, end), oldest first."""
        status_sql, status_args = _status_clause(task_status)
        with self.db_manager.get_connection() as conn:
            cursor = conn.execute(
                f"""
                SELECT tl.*, t.summary AS task_summary
                FROM task_log tl LEFT JOIN task t ON tl.task_id = t.id
                WHERE tl.active = 0
                  AND tl.end_ts >= ? AND tl.end_ts < ?{status_sql}
                ORDER BY tl.end_ts ASC, tl.id ASC
                LIMIT ?
            """,
                (to_db_timestamp(start), to_db_timestamp(end), *status_args, _limit(limit)),
            )
            rows = cursor.fetchall()

        return [self._row_to_entry(row) for row in rows]

    def _row_to_entry(self, row: sqlite3.Row) -> TaskLogEntry:
        """Convert a database row to a TaskLogEntry model."""
        return TaskLogEntry(
            id=row["id"],
            task_id=row["task_id"],
            task_summary=row["task_summary"] or "",
            begin_ts=from_db_timestamp(row["begin_ts"]),
            end_ts=from_db_timestamp(row["end_ts"]) if row["end_ts"] else None,
            secs_spent=row["secs_spent"],
            comment=row["comment"],
            active=bool(row["active"]),
        )


class ReportRepository:
    """Repository for per-task aggregates over closed entries."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize repository with database manager."""
        self.db_manager = db_manager

    def fetch_report_between(
        self,
        start: datetime,
        end: datetime,
        task_status: TaskStatus = TaskStatus.ANY,
        limit: Optional[int] = None,
    ) -> List[TaskReportEntry]:
        """Per-task totals for entries that ended in [start, end), by task update time."""
        return self._aggregate(start, end, task_status, limit, order_by="t.updated_at ASC")

    def fetch_stats_between(
        self,
        start: datetime,
        end: datetime,
        task_status: TaskStatus = TaskStatus.ANY,
        limit: Optional[int] = None,
    ) -> List[TaskReportEntry]:
        """Per-task totals for entries that ended in [start, end), largest first."""
        return self._aggregate(start, end, task_status, limit, order_by="secs_spent DESC")

    def fetch_stats(
        self, task_status: TaskStatus = TaskStatus.ANY, limit: Optional[int] = None
    ) -> List[TaskReportEntry]:
        """Per-task totals over every closed entry, largest first."""
        return self._aggregate(None, None, task_status, limit, order_by="secs_spent DESC")

    def _aggregate(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        task_status: TaskStatus,
        limit: Optional[int],
        order_by: str,
    ) -> List[TaskReportEntry]:
        status_sql, status_args = _status_clause(task_status)
        window_sql = ""
        window_args: tuple = ()
        if start is not None and end is not None:
            window_sql = " AND tl.end_ts >= ? AND tl.end_ts < ?"
            window_args = (to_db_timestamp(start), to_db_timestamp(end))

        with self.db_manager.get_connection() as conn:
            cursor = conn.execute(
                f"""
                SELECT tl.task_id, t.summary AS task_summary,
                       COUNT(tl.id) AS num_entries, SUM(tl.secs_spent) AS secs_spent
                FROM task_log tl LEFT JOIN task t ON tl.task_id = t.id
                WHERE tl.active = 0{window_sql}{status_sql}
                GROUP BY tl.task_id
                ORDER BY {order_by}, tl.task_id ASC
                LIMIT ?
            """,
                (*window_args, *status_args, _limit(limit)),
            )
            rows = cursor.fetchall()

        return [
            TaskReportEntry(
                task_id=row["task_id"],
                task_summary=row["task_summary"] or "",
                num_entries=row["num_entries"],
                secs_spent=row["secs_spent"] or 0,
            )
            for row in rows
        ]
