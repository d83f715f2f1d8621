"""FFmpeg transcoder.

Spawns one ffmpeg process per rendition attempt and streams its diagnostic
output, unbuffered, to a callback. Decides nothing about retries: exit codes
go back to the scheduler through FFmpegProcessHandle.wait().
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import re
from collections import deque
from pathlib import Path

from vlr.domain.models import RenditionSpec
from vlr.executor.command import build_ffmpeg_command
from vlr.executor.interface import OutputCallback, require_tool
from vlr.renditions.profile import DEFAULT_PROFILE, RenditionProfile

logger = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"[\r\n]+")


class FFmpegProcessHandle:
    """A running ffmpeg process.

    A background reader drains stderr so the pipe never blocks, forwards each
    decoded chunk to on_output, and keeps the last diagnostic lines for error
    messages. Progress status lines are not kept.
    """

    READ_SIZE = 4096
    TAIL_LINES = 20

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        on_output: OutputCallback,
        name: str = "",
    ) -> None:
        self._process = process
        self._on_output = on_output
        self._name = name
        self._tail: deque[str] = deque(maxlen=self.TAIL_LINES)
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._partial = ""
        self._reader = asyncio.create_task(self._read_stderr())

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def stderr_tail(self) -> str:
        return "\n".join(self._tail)

    async def _read_stderr(self) -> None:
        stream = self._process.stderr
        if stream is None:
            return
        while True:
            chunk = await stream.read(self.READ_SIZE)
            if not chunk:
                break
            self._emit(self._decoder.decode(chunk))
        self._emit(self._decoder.decode(b"", final=True))
        if self._partial:
            self._remember(self._partial)
            self._partial = ""

    def _emit(self, text: str) -> None:
        if not text:
            return
        try:
            self._on_output(text)
        except Exception:
            logger.warning("Output callback failed for %s", self._name, exc_info=True)

        parts = _LINE_SPLIT.split(self._partial + text)
        self._partial = parts.pop()
        for line in parts:
            self._remember(line)

    def _remember(self, line: str) -> None:
        line = line.strip()
        if line and "frame=" not in line and "size=" not in line:
            self._tail.append(line)

    async def wait(self) -> int:
        returncode = await self._process.wait()
        # Cancelling wait() must not cancel the shared reader
        await asyncio.wait({self._reader})
        return returncode

    def terminate(self) -> None:
        if self._process.returncode is None:
            try:
                self._process.terminate()
            except ProcessLookupError:
                pass

    def kill(self) -> None:
        if self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass


class FFmpegTranscoder:
    """Transcoder producing renditions of one source asset with ffmpeg."""

    def __init__(
        self,
        source: Path,
        profile: RenditionProfile | None = None,
        ffmpeg_path: Path | None = None,
    ) -> None:
        """Initialize the transcoder.

        Raises:
            ToolNotFoundError: If ffmpeg is not available.
        """
        self.source = source
        self.profile = profile or DEFAULT_PROFILE
        self.tool_path = require_tool("ffmpeg", ffmpeg_path)

    def build_command(self, spec: RenditionSpec, temp_output: Path) -> list[str]:
        return build_ffmpeg_command(
            self.tool_path, self.source, spec, temp_output, self.profile
        )

    async def spawn(
        self,
        spec: RenditionSpec,
        temp_output: Path,
        on_output: OutputCallback,
    ) -> FFmpegProcessHandle:
        cmd = self.build_command(spec, temp_output)
        logger.debug(
            "Starting ffmpeg for %s: %s",
            spec.name,
            " ".join(cmd),
            extra={"rendition": spec.name, "output": str(temp_output)},
        )
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        return FFmpegProcessHandle(process, on_output, name=spec.name)
