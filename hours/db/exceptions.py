"""
Exceptions raised by the hours persistence layer.

Every failure surfaced by the repositories is one of these types, so callers
never need to catch raw sqlite3 errors.
"""


class TimeTrackingError(Exception):
    """Base exception for time tracking operations."""

    pass


class NotFoundError(TimeTrackingError):
    """Raised when a requested row does not exist."""

    pass


class TaskNotFoundError(NotFoundError):
    """Raised when a task cannot be found."""

    def __init__(self, task_id: int):
        super().__init__(f"task with id {task_id} not found")
        self.task_id = task_id


class TaskLogNotFoundError(NotFoundError):
    """Raised when a task log entry cannot be found."""

    def __init__(self, tl_id: int):
        super().__init__(f"task log entry with id {tl_id} not found")
        self.tl_id = tl_id


class AlreadyTrackingError(TimeTrackingError):
    """Raised when starting to track while another entry is open."""

    def __init__(self, message: str = "a task is already being tracked"):
        super().__init__(message)


class NoTaskActiveError(TimeTrackingError):
    """Raised when an operation needs an open entry and there is none."""

    def __init__(self, message: str = "no task is being actively tracked"):
        super().__init__(message)


class StorageError(TimeTrackingError):
    """Raised when the database itself fails (I/O, schema, locking)."""

    pass
