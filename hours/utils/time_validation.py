"""
Time validation utilities for task log entries.

This module parses the timestamps typed into forms, validates entry durations
and shifts timestamps for the form's keyboard shortcuts.
"""

from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Optional, Tuple

from .dates import TIME_FORMAT

DEFAULT_MIN_LOG_DURATION_SECS = 60


class TimeValidationError(ValueError):
    """Exception raised for time validation errors."""

    pass


class TimestampParseError(TimeValidationError):
    """Raised when a timestamp string does not match the expected format."""

    pass


class EndBeforeBeginError(TimeValidationError):
    """Raised when an entry would end before it begins."""

    def __init__(self) -> None:
        super().__init__("end time is before begin time")


class DurationTooShortError(TimeValidationError):
    """Raised when an entry is shorter than the minimum loggable duration."""

    def __init__(self, min_secs: int):
        super().__init__(f"task log duration is too short; it needs to be at least {min_secs}s")
        self.min_secs = min_secs


class BeginInFutureError(TimeValidationError):
    """Raised when a begin timestamp lies after the current time."""

    def __init__(self) -> None:
        super().__init__("Begin timestamp cannot be in the future")


class ShiftDirection(Enum):
    FORWARD = 1
    BACKWARD = -1


class ShiftGranularity(Enum):
    MINUTE = timedelta(minutes=1)
    FIVE_MINUTES = timedelta(minutes=5)
    DAY = timedelta(days=1)


def parse_timestamp(value: str, tz: Optional[tzinfo] = None, field: str = "time") -> datetime:
    """
    Parse a timestamp typed into a form.

    Args:
        value: Text in the "%Y/%m/%d %H:%M" format
        tz: Timezone to attach; local time when None
        field: Name of the field, used in the error message

    Raises:
        TimestampParseError: If the value does not match the format
    """
    try:
        parsed = datetime.strptime(value.strip(), TIME_FORMAT)
    except ValueError:
        raise TimestampParseError(
            f"{field} is invalid; expected format is like 2024/06/08 14:05"
        ) from None

    if tz is not None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone()


def validate_task_log_duration(
    begin_ts: datetime,
    end_ts: datetime,
    min_secs: int = DEFAULT_MIN_LOG_DURATION_SECS,
) -> None:
    """
    Validate the duration of a closed task log entry.

    Raises:
        EndBeforeBeginError: If end_ts is before begin_ts
        DurationTooShortError: If the entry is shorter than min_secs
    """
    if end_ts < begin_ts:
        raise EndBeforeBeginError()

    if (end_ts - begin_ts).total_seconds() < min_secs:
        raise DurationTooShortError(min_secs)


def validate_begin_not_in_future(begin_ts: datetime, now: datetime) -> None:
    """Raise BeginInFutureError if begin_ts is after now."""
    if begin_ts > now:
        raise BeginInFutureError()


def parse_task_log_times(
    begin_str: str,
    end_str: str,
    min_secs: int = DEFAULT_MIN_LOG_DURATION_SECS,
    tz: Optional[tzinfo] = None,
) -> Tuple[datetime, datetime]:
    """
    Parse and validate the begin/end timestamps of a task log form.

    Returns:
        Tuple of (begin_ts, end_ts)

    Raises:
        TimeValidationError: If either timestamp is malformed or the
            duration is not valid
    """
    begin_ts = parse_timestamp(begin_str, tz, field="begin time")
    end_ts = parse_timestamp(end_str, tz, field="end time")
    validate_task_log_duration(begin_ts, end_ts, min_secs)
    return begin_ts, end_ts


def get_shifted_time(
    ts: datetime, direction: ShiftDirection, granularity: ShiftGranularity
) -> datetime:
    """Shift a timestamp by a minute, five minutes or a day."""
    return ts + granularity.value * direction.value


def truncate_to_second(ts: datetime) -> datetime:
    return ts.replace(microsecond=0)
