"""
Pytest configuration and fixtures for hours tests.

This module provides shared fixtures and configuration for all test modules.
"""

import io
import tempfile
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest
from rich.console import Console, RenderableType

from hours.core.time_tracker import TimeTracker
from hours.db.repository import ReportRepository, TaskLogRepository, TaskRepository
from hours.db.schema import DatabaseManager
from hours.utils.config import ConfigManager

# Local time is pinned to UTC so day boundaries don't depend on the host
TEST_TZ = timezone.utc


class FixedTimeProvider:
    """Time provider whose "now" is set by the test."""

    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: int) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def utc_local_time(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Run every test with the local timezone set to UTC."""
    monkeypatch.setenv("TZ", "UTC")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def test_db_path(temp_dir: Path) -> Path:
    """Provide a test database path."""
    return temp_dir / "test_hours.db"


@pytest.fixture
def time_provider() -> FixedTimeProvider:
    """Provide a clock fixed at 2024/06/08 (a Saturday) 14:00."""
    return FixedTimeProvider(datetime(2024, 6, 8, 14, 0, 0, tzinfo=TEST_TZ))


@pytest.fixture
def db_manager(test_db_path: Path) -> DatabaseManager:
    """Provide a test database manager."""
    manager = DatabaseManager(test_db_path)
    manager.initialize_database()
    return manager


@pytest.fixture
def task_repo(db_manager: DatabaseManager, time_provider: FixedTimeProvider) -> TaskRepository:
    return TaskRepository(db_manager, time_provider)


@pytest.fixture
def log_repo(db_manager: DatabaseManager, time_provider: FixedTimeProvider) -> TaskLogRepository:
    return TaskLogRepository(db_manager, time_provider)


@pytest.fixture
def report_repo(db_manager: DatabaseManager) -> ReportRepository:
    return ReportRepository(db_manager)


@pytest.fixture
def tracker(temp_dir: Path, time_provider: FixedTimeProvider) -> TimeTracker:
    """Provide a time tracker backed by a temporary database."""
    return TimeTracker(temp_dir, time_provider=time_provider)


@pytest.fixture
def config_manager(temp_dir: Path) -> ConfigManager:
    """Provide a configuration manager rooted in the temporary directory."""
    return ConfigManager(config_dir=temp_dir / "config", data_dir=temp_dir / "data")


def at(day: int, hour: int, minute: int = 0, second: int = 0) -> datetime:
    """A timestamp in June 2024 in the test zone."""
    return datetime(2024, 6, day, hour, minute, second, tzinfo=TEST_TZ)


def render_to_string(renderable: RenderableType, plain: bool = True, width: int = 200) -> str:
    """Render to text the way it would appear on a terminal."""
    buf = io.StringIO()
    console = Console(
        file=buf,
        width=width,
        color_system=None if plain else "truecolor",
        force_terminal=not plain,
        highlight=False,
    )
    console.print(renderable)
    return buf.getvalue()
