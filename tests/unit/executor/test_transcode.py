"""Tests for the ffmpeg process handle and transcoder."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from vlr.domain.enums import CodecFamily, RenditionKind
from vlr.domain.models import RenditionSpec
from vlr.executor.transcode import FFmpegProcessHandle, FFmpegTranscoder


async def _handle(script: str, on_output) -> FFmpegProcessHandle:
    process = await asyncio.create_subprocess_exec(
        "sh",
        "-c",
        script,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
    )
    return FFmpegProcessHandle(process, on_output, name="test")


class TestFFmpegProcessHandle:
    """Tests for FFmpegProcessHandle with real shell processes."""

    @pytest.mark.asyncio
    async def test_streams_output_and_returns_exit_code(self):
        chunks: list[str] = []
        handle = await _handle(
            "printf 'frame=1 time=00:00:01.00\\r' >&2; echo 'Conversion failed!' >&2; "
            "exit 3",
            chunks.append,
        )

        returncode = await handle.wait()

        assert returncode == 3
        assert "time=00:00:01.00" in "".join(chunks)
        # Status lines are not kept in the tail
        assert handle.stderr_tail == "Conversion failed!"

    @pytest.mark.asyncio
    async def test_tail_keeps_last_lines(self):
        handle = await _handle(
            "i=0; while [ $i -lt 30 ]; do echo line$i >&2; i=$((i+1)); done",
            lambda text: None,
        )

        await handle.wait()

        lines = handle.stderr_tail.splitlines()
        assert len(lines) == FFmpegProcessHandle.TAIL_LINES
        assert lines[-1] == "line29"

    @pytest.mark.asyncio
    async def test_callback_error_does_not_stop_reader(self):
        def broken(text: str) -> None:
            raise ValueError("display gone")

        handle = await _handle("echo 'Error opening input' >&2", broken)

        assert await handle.wait() == 0
        assert handle.stderr_tail == "Error opening input"

    @pytest.mark.asyncio
    async def test_terminate_stops_process(self):
        handle = await _handle("sleep 30", lambda text: None)

        handle.terminate()
        returncode = await asyncio.wait_for(handle.wait(), timeout=5)

        assert returncode != 0
        # Already exited: further signals are no-ops
        handle.terminate()
        handle.kill()


class TestFFmpegTranscoder:
    def test_build_command_targets_temp_output(self, tmp_path: Path):
        with patch(
            "vlr.executor.transcode.require_tool", return_value=Path("/bin/ffmpeg")
        ):
            transcoder = FFmpegTranscoder(tmp_path / "Heat.mkv")
        spec = RenditionSpec(
            name="720p.av1",
            kind=RenditionKind.VIDEO,
            output_path=tmp_path / "Heat.720p.av1.mp4",
            height=720,
            codec=CodecFamily.AV1,
        )
        temp = tmp_path / "Heat.720p.av1.tmp.mp4"

        cmd = transcoder.build_command(spec, temp)

        assert cmd[0] == "/bin/ffmpeg"
        assert cmd[-1] == str(temp)
        assert str(tmp_path / "Heat.mkv") in cmd
