"""
Tests for database repositories (hours.db.repository).

This module tests the data access layer: task CRUD, tracking, closed entry
mutations and the bookkeeping that keeps task totals consistent.
"""

from typing import List

import pytest

from conftest import FixedTimeProvider, at
from hours.db.exceptions import (
    AlreadyTrackingError,
    NoTaskActiveError,
    TaskLogNotFoundError,
    TaskNotFoundError,
)
from hours.db.models import Task, TaskStatus
from hours.db.repository import (
    ReportRepository,
    TaskLogRepository,
    TaskRepository,
    from_db_timestamp,
    secs_between,
    to_db_timestamp,
)


def closed_secs_for(log_repo: TaskLogRepository, task_id: int) -> int:
    return sum(e.secs_spent for e in log_repo.fetch_log_entries() if e.task_id == task_id)


def assert_totals_consistent(
    task_repo: TaskRepository, log_repo: TaskLogRepository, tasks: List[Task]
) -> None:
    for task in tasks:
        assert task_repo.get_task(task.id).secs_spent == closed_secs_for(log_repo, task.id)


class TestTimestamps:
    """Test cases for timestamp serialization helpers."""

    def test_to_db_timestamp_is_utc_and_truncated(self) -> None:
        # Arrange
        ts = at(8, 14, 5, 30).replace(microsecond=999999)

        # Act
        value = to_db_timestamp(ts)

        # Assert
        assert value == "2024-06-08T14:05:30+00:00"

    def test_round_trip_keeps_the_instant(self) -> None:
        ts = at(8, 9, 15, 0)
        assert from_db_timestamp(to_db_timestamp(ts)) == ts

    def test_secs_between_rounds_down_and_clamps(self) -> None:
        begin = at(8, 9).replace(microsecond=900000)
        end = at(8, 9, 1).replace(microsecond=100000)

        assert secs_between(begin, end) == 59
        assert secs_between(end, begin) == 0


class TestTaskRepository:
    """Test cases for TaskRepository class."""

    def test_create_task(self, task_repo: TaskRepository) -> None:
        # Act
        task = task_repo.create_task("Write report")

        # Assert
        assert task.id > 0
        assert task.summary == "Write report"
        assert task.secs_spent == 0
        assert task.active is True

    def test_get_task_not_found(self, task_repo: TaskRepository) -> None:
        with pytest.raises(TaskNotFoundError):
            task_repo.get_task(999)

    def test_update_task_summary(
        self, task_repo: TaskRepository, time_provider: FixedTimeProvider
    ) -> None:
        # Arrange
        task = task_repo.create_task("old")
        time_provider.advance(minutes=5)

        # Act
        task_repo.update_task_summary(task.id, "new")

        # Assert
        updated = task_repo.get_task(task.id)
        assert updated.summary == "new"
        assert updated.updated_at > task.updated_at

    def test_update_missing_task(self, task_repo: TaskRepository) -> None:
        with pytest.raises(TaskNotFoundError):
            task_repo.update_task_summary(42, "nope")

    def test_set_task_active(self, task_repo: TaskRepository) -> None:
        # Arrange
        task = task_repo.create_task("task")

        # Act
        task_repo.set_task_active(task.id, False)

        # Assert
        assert task_repo.fetch_tasks(active=True) == []
        assert [t.id for t in task_repo.fetch_tasks(active=False)] == [task.id]

    def test_fetch_tasks_most_recently_updated_first(
        self, task_repo: TaskRepository, time_provider: FixedTimeProvider
    ) -> None:
        # Arrange
        first = task_repo.create_task("first")
        time_provider.advance(minutes=1)
        second = task_repo.create_task("second")
        time_provider.advance(minutes=1)
        task_repo.update_task_summary(first.id, "first, renamed")

        # Act
        tasks = task_repo.fetch_tasks()

        # Assert
        assert [t.id for t in tasks] == [first.id, second.id]

    def test_fetch_tasks_with_limit(self, task_repo: TaskRepository) -> None:
        for i in range(5):
            task_repo.create_task(f"task {i}")

        assert len(task_repo.fetch_tasks(limit=3)) == 3

    def test_archive_stale_tasks(
        self,
        task_repo: TaskRepository,
        log_repo: TaskLogRepository,
        time_provider: FixedTimeProvider,
    ) -> None:
        # Arrange
        time_provider.current = at(1, 9)
        stale = task_repo.create_task("stale")
        recent = task_repo.create_task("recent")
        tracked = task_repo.create_task("tracked")
        log_repo.insert_manual_entry(stale.id, at(1, 9), at(1, 10), None)
        log_repo.insert_manual_entry(recent.id, at(7, 9), at(7, 10), None)
        log_repo.start_tracking(tracked.id, at(1, 11))
        time_provider.current = at(8, 14)
        fresh = task_repo.create_task("no entries")

        # Act
        count = task_repo.archive_stale_tasks(at(5, 0))

        # Assert
        assert count == 2
        assert task_repo.get_task(stale.id).active is False
        assert task_repo.get_task(recent.id).active is True
        assert task_repo.get_task(tracked.id).active is True
        assert task_repo.get_task(fresh.id).active is False

    def test_archive_task_without_entries(self, task_repo: TaskRepository) -> None:
        # Arrange
        task = task_repo.create_task("no logs")

        # Act
        count = task_repo.archive_stale_tasks(at(1, 0))

        # Assert
        assert count == 1
        assert task_repo.get_task(task.id).active is False


class TestTracking:
    """Test cases for starting, finishing and switching tracking."""

    def test_write_report_scenario(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        """Start and stop tracking two hours apart."""
        # Arrange
        task = task_repo.create_task("Write report")
        tl_id = log_repo.start_tracking(task.id, at(8, 9))

        # Act
        secs = log_repo.finish_tracking(tl_id, task.id, at(8, 9), at(8, 11), "draft done")

        # Assert
        assert secs == 7200
        entries = log_repo.fetch_log_entries()
        assert len(entries) == 1
        assert entries[0].secs_spent == 7200
        assert entries[0].comment == "draft done"
        assert entries[0].active is False
        assert task_repo.get_task(task.id).secs_spent == 7200

    def test_start_tracking_while_tracking(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        """Starting a second entry fails and leaves the first untouched."""
        # Arrange
        task_a = task_repo.create_task("A")
        task_b = task_repo.create_task("B")
        tl_id = log_repo.start_tracking(task_a.id, at(8, 9))

        # Act / Assert
        with pytest.raises(AlreadyTrackingError):
            log_repo.start_tracking(task_b.id, at(8, 10))

        details = log_repo.fetch_active_task_details()
        assert details.task_id == task_a.id
        assert details.current_log_id == tl_id
        assert details.current_log_begin_ts == at(8, 9)

    def test_start_tracking_missing_task(self, log_repo: TaskLogRepository) -> None:
        with pytest.raises(TaskNotFoundError):
            log_repo.start_tracking(7, at(8, 9))

    def test_open_entry_not_counted_in_total(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task = task_repo.create_task("task")

        # Act
        log_repo.start_tracking(task.id, at(8, 9))

        # Assert
        assert task_repo.get_task(task.id).secs_spent == 0
        assert log_repo.fetch_log_entries() == []

    def test_finish_tracking_wrong_entry(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        task = task_repo.create_task("task")
        tl_id = log_repo.start_tracking(task.id, at(8, 9))

        with pytest.raises(TaskLogNotFoundError):
            log_repo.finish_tracking(tl_id + 1, task.id, at(8, 9), at(8, 10), None)

    def test_finish_active_tracking(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task = task_repo.create_task("task")
        tl_id = log_repo.start_tracking(task.id, at(8, 9))
        log_repo.edit_open_entry(at(8, 9), "keep me")

        # Act
        finished = log_repo.finish_active_tracking(at(8, 9, 30))

        # Assert
        assert finished.task_id == task.id
        assert finished.task_summary == "task"
        assert finished.tl_id == tl_id
        assert finished.secs_spent == 1800
        assert log_repo.get_entry(tl_id).comment == "keep me"
        assert log_repo.fetch_active_task_details().is_none

    def test_finish_active_tracking_without_open_entry(self, log_repo: TaskLogRepository) -> None:
        with pytest.raises(NoTaskActiveError):
            log_repo.finish_active_tracking(at(8, 9))

    def test_edit_open_entry(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task = task_repo.create_task("task")
        log_repo.start_tracking(task.id, at(8, 9))

        # Act
        log_repo.edit_open_entry(at(8, 8, 45), "started earlier")

        # Assert
        details = log_repo.fetch_active_task_details()
        assert details.current_log_begin_ts == at(8, 8, 45)
        assert details.current_log_comment == "started earlier"

    def test_edit_open_entry_without_open_entry(self, log_repo: TaskLogRepository) -> None:
        with pytest.raises(NoTaskActiveError):
            log_repo.edit_open_entry(at(8, 9), None)

    def test_quick_switch(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task_a = task_repo.create_task("A")
        task_b = task_repo.create_task("B")
        old_tl_id = log_repo.start_tracking(task_a.id, at(8, 9))
        log_repo.edit_open_entry(at(8, 9), "on A")

        # Act
        result = log_repo.quick_switch(task_b.id, at(8, 10))

        # Assert
        assert result.last_active_task_id == task_a.id
        assert result.current_active_task_id == task_b.id
        assert result.switch_ts == at(8, 10)

        closed = log_repo.get_entry(old_tl_id)
        assert closed.end_ts == at(8, 10)
        assert closed.secs_spent == 3600
        assert closed.comment == "on A"

        details = log_repo.fetch_active_task_details()
        assert details.task_id == task_b.id
        assert details.current_log_id == result.tl_id
        assert details.current_log_begin_ts == at(8, 10)
        assert details.current_log_comment is None

        assert task_repo.get_task(task_a.id).secs_spent == 3600
        assert task_repo.get_task(task_b.id).secs_spent == 0

    def test_quick_switch_without_open_entry(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        task = task_repo.create_task("task")

        with pytest.raises(NoTaskActiveError):
            log_repo.quick_switch(task.id, at(8, 10))

    def test_quick_switch_to_missing_task_rolls_back(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task = task_repo.create_task("task")
        tl_id = log_repo.start_tracking(task.id, at(8, 9))

        # Act
        with pytest.raises(TaskNotFoundError):
            log_repo.quick_switch(999, at(8, 10))

        # Assert
        assert log_repo.get_entry(tl_id).is_open
        assert task_repo.get_task(task.id).secs_spent == 0

    def test_delete_open_entry(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task = task_repo.create_task("task")
        tl_id = log_repo.start_tracking(task.id, at(8, 9))

        # Act
        task_id = log_repo.delete_open_entry()

        # Assert
        assert task_id == task.id
        assert log_repo.fetch_active_task_details().is_none
        with pytest.raises(TaskLogNotFoundError):
            log_repo.get_entry(tl_id)
        assert log_repo.delete_open_entry() is None


class TestClosedEntries:
    """Test cases for manual entries, edits, deletes and moves."""

    def test_insert_manual_entry(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task = task_repo.create_task("task")

        # Act
        tl_id = log_repo.insert_manual_entry(task.id, at(8, 9), at(8, 9, 45), "manual")

        # Assert
        entry = log_repo.get_entry(tl_id)
        assert entry.secs_spent == 2700
        assert entry.task_summary == "task"
        assert task_repo.get_task(task.id).secs_spent == 2700

    def test_insert_manual_entry_rounds_duration_down(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task = task_repo.create_task("task")
        begin = at(8, 9).replace(microsecond=900000)
        end = at(8, 9, 1).replace(microsecond=100000)

        # Act
        tl_id = log_repo.insert_manual_entry(task.id, begin, end, None)

        # Assert
        assert log_repo.get_entry(tl_id).secs_spent == 59
        assert task_repo.get_task(task.id).secs_spent == 59

    def test_insert_manual_entry_missing_task(self, log_repo: TaskLogRepository) -> None:
        with pytest.raises(TaskNotFoundError):
            log_repo.insert_manual_entry(3, at(8, 9), at(8, 10), None)

    def test_edit_closed_entry_adjusts_total_by_delta(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        """Moving the begin a minute earlier adds exactly sixty seconds."""
        # Arrange
        task = task_repo.create_task("task")
        log_repo.insert_manual_entry(task.id, at(8, 8), at(8, 9), None)
        tl_id = log_repo.insert_manual_entry(task.id, at(8, 10), at(8, 10, 1), None)
        before = task_repo.get_task(task.id).secs_spent

        # Act
        task_id = log_repo.edit_closed_entry(tl_id, at(8, 9, 59), at(8, 10, 1), "edited")

        # Assert
        assert task_id == task.id
        assert task_repo.get_task(task.id).secs_spent == before + 60
        assert log_repo.get_entry(tl_id).secs_spent == 120
        assert log_repo.get_entry(tl_id).comment == "edited"

    def test_edit_closed_entry_rejects_open_entry(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        task = task_repo.create_task("task")
        tl_id = log_repo.start_tracking(task.id, at(8, 9))

        with pytest.raises(TaskLogNotFoundError):
            log_repo.edit_closed_entry(tl_id, at(8, 9), at(8, 10), None)

    def test_delete_closed_entry(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        """Deleting a half hour entry from a task with 5000s leaves 3200s."""
        # Arrange
        task = task_repo.create_task("task")
        log_repo.insert_manual_entry(task.id, at(8, 8), at(8, 8, 53, 20), None)
        tl_id = log_repo.insert_manual_entry(task.id, at(8, 10), at(8, 10, 30), None)
        assert task_repo.get_task(task.id).secs_spent == 5000
        entry = log_repo.get_entry(tl_id)

        # Act
        log_repo.delete_closed_entry(entry)

        # Assert
        assert task_repo.get_task(task.id).secs_spent == 3200
        assert tl_id not in [e.id for e in log_repo.fetch_log_entries()]
        with pytest.raises(TaskLogNotFoundError):
            log_repo.get_entry(tl_id)

    def test_delete_missing_entry(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task = task_repo.create_task("task")
        entry = log_repo.get_entry(log_repo.insert_manual_entry(task.id, at(8, 8), at(8, 9), None))
        log_repo.delete_closed_entry(entry)

        # Act / Assert
        with pytest.raises(TaskLogNotFoundError):
            log_repo.delete_closed_entry(entry)
        assert task_repo.get_task(task.id).secs_spent == 0

    def test_move_entry(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        """Moving an hour long entry carries the hour to the new task."""
        # Arrange
        task_a = task_repo.create_task("A")
        task_b = task_repo.create_task("B")
        tl_id = log_repo.insert_manual_entry(task_a.id, at(8, 9), at(8, 10), None)

        # Act
        log_repo.move_entry(tl_id, task_a.id, task_b.id, 3600)

        # Assert
        assert task_repo.get_task(task_a.id).secs_spent == 0
        assert task_repo.get_task(task_b.id).secs_spent == 3600
        assert log_repo.get_entry(tl_id).task_id == task_b.id

    def test_move_entry_with_stale_details(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task_a = task_repo.create_task("A")
        task_b = task_repo.create_task("B")
        tl_id = log_repo.insert_manual_entry(task_a.id, at(8, 9), at(8, 10), None)

        # Act / Assert
        with pytest.raises(TaskLogNotFoundError):
            log_repo.move_entry(tl_id, task_a.id, task_b.id, 1800)
        with pytest.raises(TaskLogNotFoundError):
            log_repo.move_entry(tl_id, task_b.id, task_a.id, 3600)

        assert task_repo.get_task(task_a.id).secs_spent == 3600
        assert task_repo.get_task(task_b.id).secs_spent == 0

    def test_move_entry_to_same_task_changes_nothing(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task_a = task_repo.create_task("A")
        task_b = task_repo.create_task("B")
        tl_id = log_repo.insert_manual_entry(task_a.id, at(8, 9), at(8, 10), "notes")
        log_repo.insert_manual_entry(task_b.id, at(8, 10), at(8, 10, 30), None)
        before = log_repo.get_entry(tl_id)

        # Act
        log_repo.move_entry(tl_id, task_a.id, task_a.id, 3600)

        # Assert
        assert task_repo.get_task(task_a.id).secs_spent == 3600
        assert task_repo.get_task(task_b.id).secs_spent == 1800
        assert log_repo.get_entry(tl_id) == before

    def test_move_missing_entry_to_same_task(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        task = task_repo.create_task("A")

        with pytest.raises(TaskLogNotFoundError):
            log_repo.move_entry(404, task.id, task.id, 3600)
        assert task_repo.get_task(task.id).secs_spent == 0

    def test_move_entry_to_missing_task(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        task = task_repo.create_task("A")
        tl_id = log_repo.insert_manual_entry(task.id, at(8, 9), at(8, 10), None)

        with pytest.raises(TaskNotFoundError):
            log_repo.move_entry(tl_id, task.id, 999, 3600)
        assert task_repo.get_task(task.id).secs_spent == 3600

    def test_totals_stay_consistent_over_mixed_operations(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task_a = task_repo.create_task("A")
        task_b = task_repo.create_task("B")
        tasks = [task_a, task_b]

        # Act / Assert
        tl_1 = log_repo.insert_manual_entry(task_a.id, at(7, 9), at(7, 10), None)
        assert_totals_consistent(task_repo, log_repo, tasks)

        tl_2 = log_repo.start_tracking(task_b.id, at(7, 11))
        log_repo.finish_tracking(tl_2, task_b.id, at(7, 11), at(7, 11, 20), None)
        assert_totals_consistent(task_repo, log_repo, tasks)

        log_repo.edit_closed_entry(tl_1, at(7, 8, 30), at(7, 10), "longer")
        assert_totals_consistent(task_repo, log_repo, tasks)

        log_repo.move_entry(tl_1, task_a.id, task_b.id, 5400)
        assert_totals_consistent(task_repo, log_repo, tasks)

        log_repo.delete_closed_entry(log_repo.get_entry(tl_2))
        assert_totals_consistent(task_repo, log_repo, tasks)

        log_repo.start_tracking(task_a.id, at(8, 9))
        log_repo.quick_switch(task_b.id, at(8, 9, 10))
        log_repo.finish_active_tracking(at(8, 9, 40))
        assert_totals_consistent(task_repo, log_repo, tasks)


class TestQueries:
    """Test cases for windowed fetches and aggregates."""

    def test_fetch_log_entries_between_uses_end_time(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        """An entry that runs past midnight belongs to the day it ends."""
        # Arrange
        task = task_repo.create_task("task")
        overnight = log_repo.insert_manual_entry(task.id, at(7, 23), at(8, 1), None)
        log_repo.insert_manual_entry(task.id, at(7, 9), at(7, 10), None)
        at_midnight = log_repo.insert_manual_entry(task.id, at(8, 22), at(9, 0), None)

        # Act
        entries = log_repo.fetch_log_entries_between(at(8, 0), at(9, 0))

        # Assert
        assert [e.id for e in entries] == [overnight]
        assert at_midnight not in [e.id for e in entries]

    def test_fetch_log_entries_between_filters_by_status(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        active = task_repo.create_task("active")
        inactive = task_repo.create_task("inactive")
        log_repo.insert_manual_entry(active.id, at(8, 9), at(8, 10), None)
        log_repo.insert_manual_entry(inactive.id, at(8, 10), at(8, 11), None)
        task_repo.set_task_active(inactive.id, False)

        # Act
        only_active = log_repo.fetch_log_entries_between(at(8, 0), at(9, 0), TaskStatus.ACTIVE)
        only_inactive = log_repo.fetch_log_entries_between(at(8, 0), at(9, 0), TaskStatus.INACTIVE)
        everything = log_repo.fetch_log_entries_between(at(8, 0), at(9, 0))

        # Assert
        assert [e.task_id for e in only_active] == [active.id]
        assert [e.task_id for e in only_inactive] == [inactive.id]
        assert len(everything) == 2

    def test_fetch_log_entries_ordering_and_limit(
        self, task_repo: TaskRepository, log_repo: TaskLogRepository
    ) -> None:
        # Arrange
        task = task_repo.create_task("task")
        first = log_repo.insert_manual_entry(task.id, at(8, 8), at(8, 9), None)
        second = log_repo.insert_manual_entry(task.id, at(8, 9), at(8, 10), None)
        third = log_repo.insert_manual_entry(task.id, at(8, 10), at(8, 11), None)

        # Act / Assert
        assert [e.id for e in log_repo.fetch_log_entries()] == [third, second, first]
        assert [e.id for e in log_repo.fetch_log_entries(ascending=True, limit=2)] == [first, second]

    def test_report_and_stats(
        self,
        task_repo: TaskRepository,
        log_repo: TaskLogRepository,
        report_repo: ReportRepository,
    ) -> None:
        # Arrange
        small = task_repo.create_task("small")
        big = task_repo.create_task("big")
        log_repo.insert_manual_entry(small.id, at(8, 8), at(8, 8, 30), None)
        log_repo.insert_manual_entry(big.id, at(8, 9), at(8, 10), None)
        log_repo.insert_manual_entry(big.id, at(8, 10), at(8, 11), None)
        log_repo.insert_manual_entry(big.id, at(6, 10), at(6, 11), None)

        # Act
        stats = report_repo.fetch_stats_between(at(8, 0), at(9, 0))
        all_stats = report_repo.fetch_stats()

        # Assert
        assert [(s.task_summary, s.num_entries, s.secs_spent) for s in stats] == [
            ("big", 2, 7200),
            ("small", 1, 1800),
        ]
        assert [(s.task_summary, s.secs_spent) for s in all_stats] == [
            ("big", 10800),
            ("small", 1800),
        ]
        assert {r.task_id for r in report_repo.fetch_report_between(at(8, 0), at(9, 0))} == {
            small.id,
            big.id,
        }
