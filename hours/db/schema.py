"""
Database schema definition for hours.

This module contains the SQL schema and migration logic for the SQLite database.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator, List, Optional

from .exceptions import StorageError

logger = logging.getLogger(__name__)

# Database schema version
SCHEMA_VERSION = 2

# SQL for creating tables
CREATE_TASK_TABLE = """
CREATE TABLE IF NOT EXISTS task (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    summary TEXT NOT NULL,
    secs_spent INTEGER NOT NULL DEFAULT 0,
    active BOOLEAN NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,  -- ISO format datetime (UTC)
    updated_at TEXT NOT NULL  -- ISO format datetime (UTC)
);
"""

CREATE_TASK_LOG_TABLE = """
CREATE TABLE IF NOT EXISTS task_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id INTEGER NOT NULL,
    begin_ts TEXT NOT NULL,  -- ISO format datetime (UTC)
    end_ts TEXT,  -- NULL while the entry is open
    secs_spent INTEGER NOT NULL DEFAULT 0,
    comment TEXT,
    active BOOLEAN NOT NULL DEFAULT 0,
    FOREIGN KEY (task_id) REFERENCES task(id)
);
"""

CREATE_MIGRATION_LOG_TABLE = """
CREATE TABLE IF NOT EXISTS migration_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    version INTEGER NOT NULL,
    created_at TEXT NOT NULL
);
"""

# Indexes for better query performance
CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_task_active ON task(active);",
    "CREATE INDEX IF NOT EXISTS idx_task_log_task_id ON task_log(task_id);",
    "CREATE INDEX IF NOT EXISTS idx_task_log_end_ts ON task_log(end_ts);",
]

# Guards for the single open entry; the trigger gives a readable error and the
# partial unique index also covers updates and writers that skip the trigger.
SINGLE_ACTIVE_TRIGGER_MESSAGE = "Only one row with active=1 is allowed"

CREATE_SINGLE_ACTIVE_GUARDS = [
    f"""
    CREATE TRIGGER IF NOT EXISTS prevent_duplicate_active_insert
    BEFORE INSERT ON task_log
    WHEN NEW.active = 1
    BEGIN
        SELECT CASE
            WHEN EXISTS (SELECT 1 FROM task_log WHERE active = 1)
            THEN RAISE(ABORT, '{SINGLE_ACTIVE_TRIGGER_MESSAGE}')
        END;
    END;
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_task_log_single_active
    ON task_log(active) WHERE active = 1;
    """,
]

# Statements applied when upgrading to a given version
MIGRATIONS = {
    2: CREATE_SINGLE_ACTIVE_GUARDS,
}


class DatabaseManager:
    """Manages database connections and schema operations."""

    def __init__(self, db_path: Path):
        """Initialize database manager with the given database path."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup.

        Any sqlite3 error raised while the connection is in use is logged and
        re-raised as a StorageError.
        """
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            logger.error("Could not open database %s: %s", self.db_path, e)
            raise StorageError(f"couldn't open database: {e}") from e

        try:
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            logger.error("Database error on %s: %s", self.db_path, e)
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run a block inside a single write transaction.

        The transaction is opened with BEGIN IMMEDIATE so the write lock is
        taken up front; it is committed when the block exits normally and
        rolled back on any exception.
        """
        with self.get_connection() as conn:
            conn.isolation_level = None
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")

    def initialize_database(self) -> None:
        """Initialize the database with the current schema."""
        with self.transaction() as conn:
            # Create migration log first
            conn.execute(CREATE_MIGRATION_LOG_TABLE)

            current_version = self._get_schema_version(conn)

            if current_version is None:
                # Fresh database
                self._create_tables(conn)
                self._set_schema_version(conn, 1)
                current_version = 1

            if current_version < SCHEMA_VERSION:
                self._migrate_database(conn, current_version, SCHEMA_VERSION)
            elif current_version > SCHEMA_VERSION:
                raise StorageError(
                    f"database schema version {current_version} is newer than "
                    f"the supported version {SCHEMA_VERSION}; upgrade hours"
                )

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        """Create the version 1 tables."""
        conn.execute(CREATE_TASK_TABLE)
        conn.execute(CREATE_TASK_LOG_TABLE)

        for index_sql in CREATE_INDEXES:
            conn.execute(index_sql)

    def _get_schema_version(self, conn: sqlite3.Connection) -> Optional[int]:
        """Get the current schema version."""
        cursor = conn.execute("SELECT MAX(version) FROM migration_log")
        result = cursor.fetchone()
        return result[0] if result and result[0] is not None else None

    def _set_schema_version(self, conn: sqlite3.Connection, version: int) -> None:
        """Record a schema version in the migration log."""
        conn.execute(
            "INSERT INTO migration_log (version, created_at) VALUES (?, ?)",
            (version, datetime.now(timezone.utc).isoformat(timespec="seconds")),
        )

    def _migrate_database(
        self, conn: sqlite3.Connection, from_version: int, to_version: int
    ) -> None:
        """Migrate database from one version to another, one step at a time."""
        for version in range(from_version + 1, to_version + 1):
            logger.info("Migrating database %s to version %d", self.db_path, version)
            for statement in MIGRATIONS[version]:
                conn.execute(statement)
            self._set_schema_version(conn, version)

    def get_applied_versions(self) -> List[int]:
        """Get every schema version recorded in the migration log, oldest first."""
        with self.get_connection() as conn:
            cursor = conn.execute("SELECT version FROM migration_log ORDER BY id ASC")
            return [row["version"] for row in cursor.fetchall()]
