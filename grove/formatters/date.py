"""Date and time formatting utilities."""

from datetime import datetime, timezone
from typing import Optional

from grove.constants import EPOCH


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_created_time(created_at: datetime, now: Optional[datetime] = None) -> str:
    """
    Format a worktree creation time relative to now.

    Args:
        created_at: Creation time (``EPOCH`` means unknown)
        now: Reference time, defaults to the current UTC time

    Returns:
        "unknown", "N minutes/hours/days/weeks ago", or YYYY-MM-DD for older dates
    """
    if created_at == EPOCH:
        return "unknown"

    now = now or datetime.now(timezone.utc)
    seconds = max(0, int((now - created_at).total_seconds()))
    hours = seconds // 3600

    if hours < 1:
        return f"{_plural(seconds // 60, 'minute')} ago"
    if hours < 24:
        return f"{_plural(hours, 'hour')} ago"
    if hours < 24 * 7:
        return f"{_plural(hours // 24, 'day')} ago"
    if hours < 24 * 30:
        return f"{_plural(hours // (24 * 7), 'week')} ago"
    return created_at.strftime("%Y-%m-%d")


def format_date(created_at: datetime) -> str:
    """Format a date as YYYY-MM-DD."""
    return created_at.strftime("%Y-%m-%d")
