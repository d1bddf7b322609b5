"""
Date helpers for hours.

This module provides the injectable time provider and turns period keywords
("today", "3d", "week", "2024/06/08...today", ...) into date ranges.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Protocol

DATE_FORMAT = "%Y/%m/%d"
TIME_FORMAT = "%Y/%m/%d %H:%M"

PERIOD_TODAY = "today"
PERIOD_YESTERDAY = "yest"
PERIOD_WEEK = "week"
PERIOD_THIS_MONTH = "this-month"
PERIOD_ALL = "all"
RANGE_SEPARATOR = "..."

_NUM_DAYS_PATTERN = re.compile(r"^(\d+)d$")


class PeriodError(ValueError):
    """Raised when a period keyword cannot be turned into a date range."""

    pass


class TimeProvider(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime: ...


class RealTimeProvider:
    """Time provider backed by the system clock (local, timezone aware)."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


@dataclass(frozen=True)
class DateRange:
    """A window of whole days: start inclusive, end exclusive."""

    start: datetime
    end: datetime
    num_days: int

    @property
    def last_day(self) -> datetime:
        """Start of the last day included in the range."""
        return local_midnight(self.end.astimezone().date() - timedelta(days=1))

    def day_starts(self) -> List[datetime]:
        """Midnight of every day in the range, followed by the end of the range."""
        first_day = self.start.astimezone().date()
        return [local_midnight(first_day + timedelta(days=i)) for i in range(self.num_days + 1)]


def local_midnight(day: date) -> datetime:
    """Local midnight starting day, with the UTC offset in effect on that day."""
    return datetime(day.year, day.month, day.day).astimezone()


def start_of_week(day: date) -> date:
    """The Monday of the week containing day."""
    return day - timedelta(days=day.weekday())


def _make_range(first_day: date, num_days: int) -> DateRange:
    return DateRange(
        start=local_midnight(first_day),
        end=local_midnight(first_day + timedelta(days=num_days)),
        num_days=num_days,
    )


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise PeriodError(
            f"date {value!r} is not in the expected format (eg. 2024/06/08)"
        ) from None


def _parse_date_range(period: str, today: date) -> DateRange:
    start_str, end_str = period.split(RANGE_SEPARATOR, 1)
    start = _parse_date(start_str)

    if end_str in ("", PERIOD_TODAY):
        end = today
    else:
        end = _parse_date(end_str)

    if end < start:
        raise PeriodError("end date must be after the start date")

    num_days = (end - start).days + 1
    return _make_range(start, num_days)


def get_date_range_from_period(
    period: str,
    now: datetime,
    full_week: bool = False,
    num_days_upper_bound: Optional[int] = None,
) -> DateRange:
    """
    Get the date range a period keyword refers to.

    Args:
        period: One of today, yest, Nd, week, this-month, a date
            (2024/06/08) or a range (2024/06/08...2024/06/12,
            2024/06/08...today, 2024/06/08...)
        now: The current time; days are counted in local time
        full_week: Whether "week" covers all seven days instead of ending today
        num_days_upper_bound: Maximum number of days the range may span

    Returns:
        The matching DateRange

    Raises:
        PeriodError: If the period is malformed, is "all", or spans too many days
    """
    today = now.astimezone().date()

    if period == PERIOD_TODAY:
        date_range = _make_range(today, 1)
    elif period == PERIOD_YESTERDAY:
        date_range = _make_range(today - timedelta(days=1), 1)
    elif period == PERIOD_WEEK:
        num_days = 7 if full_week else today.weekday() + 1
        date_range = _make_range(start_of_week(today), num_days)
    elif period == PERIOD_THIS_MONTH:
        date_range = _make_range(today.replace(day=1), today.day)
    elif period == PERIOD_ALL:
        raise PeriodError("period 'all' has no date range")
    elif _NUM_DAYS_PATTERN.match(period):
        num_days = int(_NUM_DAYS_PATTERN.match(period).group(1))  # type: ignore[union-attr]
        if num_days < 1:
            raise PeriodError("number of days needs to be at least 1")
        date_range = _make_range(today - timedelta(days=num_days - 1), num_days)
    elif RANGE_SEPARATOR in period:
        date_range = _parse_date_range(period, today)
    else:
        try:
            date_range = _make_range(_parse_date(period), 1)
        except PeriodError:
            raise PeriodError(f"incorrect period provided: {period!r}") from None

    if num_days_upper_bound is not None and date_range.num_days > num_days_upper_bound:
        raise PeriodError(
            "time period is too large; maximum number of days allowed "
            f"(both inclusive): {num_days_upper_bound}"
        )

    return date_range


def shift_date_range(date_range: DateRange, period: str, forward: bool) -> DateRange:
    """
    Move a range one window backwards or forwards.

    Week ranges snap to the Monday of the previous/next week; every other
    range moves by its own length.
    """
    first_day = date_range.start.astimezone().date()
    if period == PERIOD_WEEK:
        first_day = start_of_week(first_day) + timedelta(days=7 if forward else -7)
    else:
        offset = timedelta(days=date_range.num_days)
        first_day = first_day + offset if forward else first_day - offset

    return _make_range(first_day, date_range.num_days)


def current_date_range(date_range: DateRange, period: str, now: datetime) -> DateRange:
    """The range of the same length that contains today."""
    today = now.astimezone().date()
    if period == PERIOD_WEEK:
        return _make_range(start_of_week(today), date_range.num_days)

    return _make_range(today - timedelta(days=date_range.num_days - 1), date_range.num_days)
