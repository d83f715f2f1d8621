"""Formatting utilities.

Pure functions for presenting durations, percentages and sizes in log lines,
the progress status line and CLI output.
"""


def format_duration(duration_us: int | None) -> str:
    """Format a duration in microseconds as H:MM:SS.

    Args:
        duration_us: Duration in microseconds.

    Returns:
        Formatted string (e.g., "1:42:07") or "unknown" for a missing duration.
    """
    if duration_us is None or duration_us < 0:
        return "unknown"

    total_seconds = duration_us // 1_000_000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


def format_percent(percent: float | None) -> str:
    """Format a progress percentage with one decimal place.

    Args:
        percent: Percentage 0-100, or None when nothing was reported yet.

    Returns:
        Formatted string (e.g., "42.5%") or "--%" if unknown.
    """
    if percent is None:
        return "--%"
    return f"{min(100.0, max(0.0, percent)):.1f}%"


def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes.

    Returns:
        Formatted string (e.g., "4.2 GB", "128 MB", "1.5 KB").
    """
    if size_bytes >= 1024**3:
        return f"{size_bytes / (1024**3):.1f} GB"
    elif size_bytes >= 1024**2:
        return f"{size_bytes / (1024**2):.1f} MB"
    elif size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes} B"
