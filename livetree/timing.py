"""Elapsed time formatting."""

from typing import Optional


def format_elapsed(seconds: Optional[float]) -> str:
    """Format an elapsed duration for display next to a task title.

    Args:
        seconds: Duration in seconds, or None.

    Returns:
        Formatted string like "(5s)", "(2m 30s)", "(1h 15m)", or "" if None.

    Example:
        >>> format_elapsed(90.5)
        '(1m 30s)'
        >>> format_elapsed(3665)
        '(1h 1m)'
    """
    if seconds is None or seconds < 0:
        return ""

    whole_seconds = int(seconds)
    if whole_seconds < 60:
        return f"({whole_seconds}s)"

    minutes = whole_seconds // 60
    if minutes < 60:
        return f"({minutes}m {whole_seconds % 60}s)"

    hours = minutes // 60
    return f"({hours}h {minutes % 60}m)"
