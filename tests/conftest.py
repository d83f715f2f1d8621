"""Shared test fixtures for Video Library Renditions."""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path

import pytest

from vlr.domain.models import RenditionSpec, SourceDescriptor


class FakeHandle:
    """Process handle whose exit is controlled by the test."""

    def __init__(self, name: str, returncode: int, block: bool) -> None:
        self.name = name
        self._returncode = returncode
        self._done = asyncio.Event()
        self.terminated = False
        self.killed = False
        self.finished = False
        if not block:
            self._done.set()

    @property
    def stderr_tail(self) -> str:
        return f"{self.name} failed" if self._returncode else ""

    async def wait(self) -> int:
        await self._done.wait()
        self.finished = True
        return self._returncode

    def release(self, returncode: int | None = None) -> None:
        if returncode is not None:
            self._returncode = returncode
        self._done.set()

    def terminate(self) -> None:
        if not self._done.is_set():
            self.terminated = True
            self._returncode = -15
            self._done.set()

    def kill(self) -> None:
        if not self._done.is_set():
            self.killed = True
            self._returncode = -9
            self._done.set()


class FakeTranscoder:
    """Transcoder double recording every spawn.

    Args:
        returncodes: Exit codes per task name, one per attempt; attempts
            beyond the list succeed.
        output: Diagnostic chunk per task name and attempt, fed to the
            progress callback before the process exits.
        block: Task names whose processes stay running until released.
    """

    def __init__(
        self,
        returncodes: dict[str, list[int]] | None = None,
        output: dict[str, list[str]] | None = None,
        block: set[str] | None = None,
    ) -> None:
        self.returncodes = returncodes or {}
        self.output = output or {}
        self.block = block or set()
        self.spawned: list[str] = []
        self.handles: list[FakeHandle] = []
        self.live_at_spawn: list[int] = []
        self.max_live = 0

    @property
    def live(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.finished]

    def handles_for(self, name: str) -> list[FakeHandle]:
        return [h for h in self.handles if h.name == name]

    async def spawn(
        self,
        spec: RenditionSpec,
        temp_output: Path,
        on_output: Callable[[str], None],
    ) -> FakeHandle:
        attempt = self.spawned.count(spec.name)
        codes = self.returncodes.get(spec.name, [])
        returncode = codes[attempt] if attempt < len(codes) else 0

        self.live_at_spawn.append(len(self.live))
        self.spawned.append(spec.name)
        temp_output.write_bytes(b"partial")

        chunks = self.output.get(spec.name, [])
        if attempt < len(chunks):
            on_output(chunks[attempt])

        handle = FakeHandle(spec.name, returncode, block=spec.name in self.block)
        self.handles.append(handle)
        self.max_live = max(self.max_live, len(self.live))
        return handle


async def settle(rounds: int = 50) -> None:
    """Let scheduled tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_source(
    path: Path,
    width: int = 1920,
    height: int = 1080,
    audio_channels: int = 2,
    duration_us: int = 600_000_000,
    **kwargs,
) -> SourceDescriptor:
    """Build a descriptor with square pixels unless display size is given."""
    kwargs.setdefault("display_width", width)
    kwargs.setdefault("display_height", height)
    return SourceDescriptor(
        path=path,
        width=width,
        height=height,
        duration_us=duration_us,
        audio_channels=audio_channels,
        **kwargs,
    )


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture
def source_path(temp_dir: Path) -> Path:
    """An (empty) source file in its own directory."""
    path = temp_dir / "Heat (1995).mkv"
    path.touch()
    return path


@pytest.fixture
def fake_transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def transcoder_factory():
    """The FakeTranscoder class, for tests that script attempts."""
    return FakeTranscoder


@pytest.fixture
def source_factory():
    """Descriptor builder: source_factory(path, width=..., height=...)."""
    return make_source


@pytest.fixture
def settle_loop():
    """Coroutine function yielding to the event loop until tasks block."""
    return settle
