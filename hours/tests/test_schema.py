"""
Tests for the database schema and migrations (hours.db.schema).
"""

import sqlite3
from pathlib import Path

import pytest

from hours.db.exceptions import StorageError
from hours.db.schema import (
    CREATE_MIGRATION_LOG_TABLE,
    CREATE_TASK_LOG_TABLE,
    CREATE_TASK_TABLE,
    SCHEMA_VERSION,
    SINGLE_ACTIVE_TRIGGER_MESSAGE,
    DatabaseManager,
)


def insert_task(conn: sqlite3.Connection) -> int:
    cursor = conn.execute(
        "INSERT INTO task (summary, created_at, updated_at) VALUES (?, ?, ?)",
        ("task", "2024-06-08T10:00:00+00:00", "2024-06-08T10:00:00+00:00"),
    )
    return cursor.lastrowid


class TestDatabaseManager:
    """Test cases for DatabaseManager class."""

    def test_initialize_creates_tables(self, db_manager: DatabaseManager) -> None:
        # Act
        with db_manager.get_connection() as conn:
            names = {
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }

        # Assert
        assert {"task", "task_log", "migration_log"} <= names

    def test_initialize_records_every_version(self, db_manager: DatabaseManager) -> None:
        assert db_manager.get_applied_versions() == list(range(1, SCHEMA_VERSION + 1))

    def test_initialize_is_idempotent(self, db_manager: DatabaseManager) -> None:
        # Act
        db_manager.initialize_database()

        # Assert
        assert db_manager.get_applied_versions() == list(range(1, SCHEMA_VERSION + 1))

    def test_migrates_version_one_database(self, test_db_path: Path) -> None:
        """A database created before the open entry guards gets them on open."""
        # Arrange
        conn = sqlite3.connect(str(test_db_path))
        conn.execute(CREATE_MIGRATION_LOG_TABLE)
        conn.execute(CREATE_TASK_TABLE)
        conn.execute(CREATE_TASK_LOG_TABLE)
        conn.execute(
            "INSERT INTO migration_log (version, created_at) VALUES (1, '2024-01-01T00:00:00+00:00')"
        )
        conn.commit()
        conn.close()

        # Act
        manager = DatabaseManager(test_db_path)
        manager.initialize_database()

        # Assert
        assert manager.get_applied_versions() == [1, 2]
        with manager.get_connection() as conn:
            triggers = [
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'trigger'")
            ]
        assert "prevent_duplicate_active_insert" in triggers

    def test_newer_schema_is_rejected(self, test_db_path: Path) -> None:
        # Arrange
        manager = DatabaseManager(test_db_path)
        manager.initialize_database()
        with manager.transaction() as conn:
            conn.execute(
                "INSERT INTO migration_log (version, created_at) VALUES (?, ?)",
                (SCHEMA_VERSION + 1, "2030-01-01T00:00:00+00:00"),
            )

        # Act / Assert
        with pytest.raises(StorageError):
            manager.initialize_database()

    def test_sqlite_errors_become_storage_errors(self, db_manager: DatabaseManager) -> None:
        with pytest.raises(StorageError):
            with db_manager.get_connection() as conn:
                conn.execute("SELECT * FROM no_such_table")

    def test_transaction_rolls_back_on_error(self, db_manager: DatabaseManager) -> None:
        # Act
        with pytest.raises(RuntimeError):
            with db_manager.transaction() as conn:
                insert_task(conn)
                raise RuntimeError("boom")

        # Assert
        with db_manager.get_connection() as conn:
            assert conn.execute("SELECT COUNT(*) FROM task").fetchone()[0] == 0


class TestSingleOpenEntryGuards:
    """The storage layer refuses a second open entry on its own."""

    def test_trigger_rejects_second_open_entry(self, db_manager: DatabaseManager) -> None:
        # Arrange
        with db_manager.transaction() as conn:
            task_id = insert_task(conn)
            conn.execute(
                "INSERT INTO task_log (task_id, begin_ts, active) VALUES (?, ?, 1)",
                (task_id, "2024-06-08T10:00:00+00:00"),
            )

        # Act / Assert
        with pytest.raises(StorageError, match=SINGLE_ACTIVE_TRIGGER_MESSAGE):
            with db_manager.transaction() as conn:
                conn.execute(
                    "INSERT INTO task_log (task_id, begin_ts, active) VALUES (?, ?, 1)",
                    (task_id, "2024-06-08T11:00:00+00:00"),
                )

    def test_unique_index_rejects_update_to_open(self, db_manager: DatabaseManager) -> None:
        # Arrange
        with db_manager.transaction() as conn:
            task_id = insert_task(conn)
            conn.execute(
                "INSERT INTO task_log (task_id, begin_ts, active) VALUES (?, ?, 1)",
                (task_id, "2024-06-08T10:00:00+00:00"),
            )
            cursor = conn.execute(
                """
                INSERT INTO task_log (task_id, begin_ts, end_ts, secs_spent, active)
                VALUES (?, ?, ?, 60, 0)
            """,
                (task_id, "2024-06-08T08:00:00+00:00", "2024-06-08T08:01:00+00:00"),
            )
            closed_id = cursor.lastrowid

        # Act / Assert
        with pytest.raises(StorageError):
            with db_manager.transaction() as conn:
                conn.execute("UPDATE task_log SET active = 1 WHERE id = ?", (closed_id,))

    def test_closed_entries_are_unrestricted(self, db_manager: DatabaseManager) -> None:
        # Arrange / Act
        with db_manager.transaction() as conn:
            task_id = insert_task(conn)
            for hour in (8, 9, 10):
                conn.execute(
                    """
                    INSERT INTO task_log (task_id, begin_ts, end_ts, secs_spent, active)
                    VALUES (?, ?, ?, 60, 0)
                """,
                    (
                        task_id,
                        f"2024-06-08T{hour:02d}:00:00+00:00",
                        f"2024-06-08T{hour:02d}:01:00+00:00",
                    ),
                )

        # Assert
        with db_manager.get_connection() as conn:
            assert conn.execute("SELECT COUNT(*) FROM task_log").fetchone()[0] == 3
