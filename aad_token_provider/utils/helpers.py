"""General utility helper functions."""

from __future__ import annotations

from datetime import timedelta

__all__ = ["format_duration"]


def format_duration(total_seconds: int | float | timedelta | None) -> str:
    """Return a human-friendly Hh Mm Ss string for a duration in seconds.

    Examples:
      65 -> "1m 5s"
      3605 -> "1h 0m 5s" (hours, minutes, seconds)
      59 -> "59s"
    """
    if total_seconds is None:
        return "unknown"
    if isinstance(total_seconds, timedelta):
        total_seconds = total_seconds.total_seconds()
    seconds = int(total_seconds)
    if seconds < 60:
        return f"{seconds}s"
    minutes, sec = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {sec}s"
    hours, minutes = divmod(minutes, 60)
    if hours < 24:
        return f"{hours}h {minutes}m {sec}s"
    days, hours = divmod(hours, 24)
    return f"{days}d {hours}h {minutes}m {sec}s"
