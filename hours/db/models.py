"""
Database models for hours.

This module defines the Pydantic models for tasks, task log entries and the
values derived from them for reports.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.formatting import format_timestamp, humanize_duration

NO_ACTIVE_TASK_ID = -1

TRACKING_INDICATOR = "⏲ "


class TaskStatusError(ValueError):
    """Raised when a task status filter value is not recognised."""

    pass


class TaskStatus(str, Enum):
    """Filter applied to tasks in log, report and stats queries."""

    ANY = "any"
    ACTIVE = "active"
    INACTIVE = "inactive"


VALID_TASK_STATUS_VALUES = [status.value for status in TaskStatus]


def parse_task_status(value: str) -> TaskStatus:
    """Parse a task status filter value.

    Raises:
        TaskStatusError: If the value is not one of any/active/inactive
    """
    try:
        return TaskStatus(value)
    except ValueError:
        raise TaskStatusError(
            f"incorrect value provided for task status: {value!r}; "
            f"possible values: {', '.join(VALID_TASK_STATUS_VALUES)}"
        ) from None


class Task(BaseModel):
    """Model for a task that time is tracked against."""

    id: int = Field(..., description="Identifier assigned by storage")
    summary: str = Field(..., description="Free text summary")
    secs_spent: int = Field(
        default=0, ge=0, description="Total seconds over all closed log entries"
    )
    active: bool = Field(default=True, description="Whether the task is active")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)

    @property
    def item_id(self) -> int:
        return self.id

    def list_title(self, tracking: bool = False) -> str:
        """Title shown in task lists, marked when the task is being tracked."""
        if tracking:
            return f"{TRACKING_INDICATOR}{self.summary}"
        return self.summary

    def list_description(self, now: datetime) -> str:
        """Description shown under the title in task lists."""
        ago = humanize_duration(int((now - self.updated_at).total_seconds()))
        spent = humanize_duration(self.secs_spent) if self.secs_spent else "no time"
        return f"last updated: {ago} ago; {spent} spent"


class TaskLogEntry(BaseModel):
    """Model for a single task log entry (open or closed)."""

    id: int
    task_id: int
    task_summary: str = ""
    begin_ts: datetime
    end_ts: Optional[datetime] = Field(
        None, description="End of the entry (None while being tracked)"
    )
    secs_spent: int = Field(default=0, ge=0)
    comment: Optional[str] = None
    active: bool = False

    model_config = ConfigDict(frozen=True)

    @field_validator("comment")
    @classmethod
    def normalize_comment(cls, v: Optional[str]) -> Optional[str]:
        """Store blank comments as None."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def item_id(self) -> int:
        return self.id

    @property
    def is_open(self) -> bool:
        return self.end_ts is None

    def get_comment(self) -> str:
        return self.comment or ""

    def list_title(self, tracking: bool = False) -> str:
        if self.comment:
            return self.comment.splitlines()[0]
        return "(no comment)"

    def list_description(self, now: datetime) -> str:
        if self.end_ts is None:
            return f"{self.task_summary}; started {format_timestamp(self.begin_ts, '%a, %H:%M')}"
        ago = humanize_duration(int((now - self.end_ts).total_seconds()))
        span = (
            f"{format_timestamp(self.begin_ts, '%a, %H:%M')} → "
            f"{format_timestamp(self.end_ts, '%H:%M')}"
        )
        return (
            f"{self.task_summary}; {span} ({humanize_duration(self.secs_spent)}), "
            f"{ago} ago"
        )


class ActiveTaskDetails(BaseModel):
    """The task currently being tracked, or the empty sentinel."""

    task_id: int = NO_ACTIVE_TASK_ID
    task_summary: str = ""
    current_log_id: Optional[int] = None
    current_log_begin_ts: Optional[datetime] = None
    current_log_comment: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_none(self) -> bool:
        return self.task_id == NO_ACTIVE_TASK_ID


class TaskReportEntry(BaseModel):
    """Per-task aggregate of closed log entries over a window."""

    task_id: int
    task_summary: str
    num_entries: int = Field(default=0, ge=0)
    secs_spent: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)
