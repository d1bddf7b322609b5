"""Utility functions for hours."""

from .dates import DateRange, RealTimeProvider, TimeProvider, get_date_range_from_period
from .formatting import humanize_active_duration, humanize_duration

__all__ = [
    "DateRange",
    "RealTimeProvider",
    "TimeProvider",
    "get_date_range_from_period",
    "humanize_duration",
    "humanize_active_duration",
]
