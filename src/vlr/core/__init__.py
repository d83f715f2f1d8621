"""Core utilities shared across Video Library Renditions.

- process: asyncio process monitoring with error heuristics
- subprocess_utils: synchronous command wrapper for quick probes
- formatting: human-readable durations and sizes
"""

from vlr.core.formatting import format_duration, format_file_size, format_percent
from vlr.core.process import (
    ProcessError,
    looks_like_error,
    run_process,
    strip_formatting,
)
from vlr.core.subprocess_utils import run_command

__all__ = [
    "ProcessError",
    "format_duration",
    "format_file_size",
    "format_percent",
    "looks_like_error",
    "run_command",
    "run_process",
    "strip_formatting",
]
