"""
Utility functions for formatting durations, timestamps and table cells.

Every renderer and the interactive UI format durations through
humanize_duration so there is a single source of truth for the format.
"""

from datetime import datetime
from typing import Optional

from .dates import TIME_FORMAT

ACTIVE_SECS_THRESHOLD = 60
ACTIVE_SECS_THRESHOLD_STR = "<1m"


def humanize_duration(secs: int) -> str:
    """
    Format a number of seconds as a compact duration.

    Args:
        secs: Duration in seconds

    Returns:
        "Ns" below a minute, otherwise hours and minutes with zero parts
        omitted (e.g. "30m", "1h", "1h 10m", "24h 10m")
    """
    if secs < 0:
        secs = 0

    if secs < 60:
        return f"{secs}s"

    hours = secs // 3600
    minutes = (secs % 3600) // 60

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    return " ".join(parts)


def humanize_active_duration(secs: int) -> str:
    """Format the running time of an open entry; short spans show as "<1m"."""
    if secs <= ACTIVE_SECS_THRESHOLD:
        return ACTIVE_SECS_THRESHOLD_STR
    return humanize_duration(secs)


def format_timestamp(ts: datetime, fmt: Optional[str] = None) -> str:
    """Format a timestamp in local time."""
    return ts.astimezone().strftime(fmt or TIME_FORMAT)


def right_pad_trim(text: str, length: int, dots: bool = True) -> str:
    """
    Fit text into a fixed-width cell.

    Args:
        text: The text to fit
        length: Width of the cell
        dots: Whether to mark trimmed text with "..."

    Returns:
        The text padded with spaces, or trimmed to exactly length characters
    """
    if len(text) > length:
        if dots and length > 3:
            return text[: length - 3] + "..."
        return text[:length]
    return text.ljust(length)


def pluralize(count: int, singular: str, plural: Optional[str] = None) -> str:
    """Return the singular or plural form of a word based on count."""
    if count == 1:
        return singular
    return plural if plural is not None else f"{singular}s"
