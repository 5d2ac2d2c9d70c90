"""
longscribe.utils - Shared utility functions.

Human-readable formatting used by progress labels, logs, and the CLI.
"""

from __future__ import annotations


def format_duration(seconds: float) -> str:
    """Format seconds as HH:MM:SS or MM:SS.

    Args:
        seconds: Duration in seconds (fractions are truncated)

    Returns:
        Formatted string (HH:MM:SS if >= 1 hour, otherwise MM:SS)
    """
    total = int(seconds)
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_size(num_bytes: float) -> str:
    """Format a byte count as B, KB or MB, rounded to two decimals."""
    if num_bytes <= 0:
        return "0 B"
    size = float(num_bytes)
    units = ["B", "KB", "MB"]
    for unit in units:
        if size < 1024 or unit == units[-1]:
            break
        size /= 1024
    value = round(size, 2)
    if value == int(value):
        return f"{int(value)} {unit}"
    return f"{value} {unit}"
