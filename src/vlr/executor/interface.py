"""Transcoder protocols and tool availability utilities.

The scheduler only sees these protocols. FFmpegTranscoder implements them
for real runs; tests substitute fakes whose processes block until released.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from vlr.domain.models import RenditionSpec

OutputCallback = Callable[[str], None]
"""Receives raw decoded chunks of a transcoder's diagnostic stream."""


class TranscodeHandle(Protocol):
    """A running transcoder process, owned by the scheduler."""

    @property
    def stderr_tail(self) -> str:
        """Last lines of diagnostic output, for error messages."""
        ...

    async def wait(self) -> int:
        """Wait for the process to exit and return its exit code."""
        ...

    def terminate(self) -> None:
        """Ask the process to stop (SIGTERM). No-op once it has exited."""
        ...

    def kill(self) -> None:
        """Force the process to stop (SIGKILL). No-op once it has exited."""
        ...


class Transcoder(Protocol):
    """Spawns one transcoder process per rendition attempt."""

    async def spawn(
        self,
        spec: RenditionSpec,
        temp_output: Path,
        on_output: OutputCallback,
    ) -> TranscodeHandle:
        """Start producing spec at temp_output.

        Raises:
            OSError: If the process cannot be started.
        """
        ...


class ToolNotFoundError(RuntimeError):
    """A required external tool is not installed or not executable."""

    def __init__(self, tool_name: str, hint: str = "") -> None:
        self.tool_name = tool_name
        message = f"Required tool not available: {tool_name}."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)


_INSTALL_HINTS = {
    "ffmpeg": "Install ffmpeg or set VLR_FFMPEG_PATH.",
    "MP4Box": "Install gpac or set VLR_MP4BOX_PATH.",
    "mkvmerge": "Install mkvtoolnix or set VLR_MKVMERGE_PATH.",
}


def require_tool(tool_name: str, configured: Path | None = None) -> Path:
    """Get path to a required tool.

    Args:
        tool_name: Executable name looked up in PATH.
        configured: Explicit path from configuration, preferred when usable.

    Returns:
        Path to the tool executable.

    Raises:
        ToolNotFoundError: If the tool is not available.
    """
    if configured is not None:
        if configured.is_file() and os.access(configured, os.X_OK):
            return configured
        raise ToolNotFoundError(
            tool_name, f"Configured path is not executable: {configured}"
        )

    tool_path = shutil.which(tool_name)
    if tool_path is None:
        raise ToolNotFoundError(tool_name, _INSTALL_HINTS.get(tool_name, ""))
    return Path(tool_path)
