"""Progress reporting for rendition runs.

Two layers:

- ProgressReporter: the item-level protocol used by the library sweep
  (assets started/completed).
- ProgressAggregator: turns the raw diagnostic streams of concurrently
  running transcoders into one overwritten status line. It also implements
  ProgressReporter, so a sweep and its per-asset tasks share one line.

Everything runs on the event loop thread; no locking is needed.
"""

from __future__ import annotations

import logging
import re
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, TextIO

from vlr.core.formatting import format_percent
from vlr.tools.ffmpeg_progress import parse_progress_line

logger = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"[\r\n]")

# Longest partial line kept per task while waiting for a terminator
MAX_PARTIAL_LINE = 4096


class ProgressReporter(Protocol):
    """Protocol for progress reporting during a library sweep."""

    def on_start(self, total: int) -> None:
        """Initialize progress tracking with total item count."""
        ...

    def on_item_start(self, index: int, message: str = "") -> None:
        """Signal that an item (asset) is starting processing."""
        ...

    def on_item_complete(self, index: int, success: bool, message: str = "") -> None:
        """Signal that an item has completed processing."""
        ...

    def on_progress(self, percent: float, message: str = "") -> None:
        """Update progress percentage of the current item."""
        ...

    def on_complete(self, success: bool = True) -> None:
        """Signal that all processing is complete."""
        ...


@dataclass
class ProgressRecord:
    """Progress of one rendition task during the current run."""

    name: str
    duration_us: int = 0
    percent: float = 0.0
    speed: float | None = None
    errors: int = 0
    redo: bool = False
    running: bool = False
    done: bool = False
    attempt_started: float = 0.0
    partial: str = ""

    def label(self) -> str:
        """Compact display form, e.g. "1080p.av1 42.0% 1.8x !1"."""
        if self.done:
            state = "done"
        elif self.redo and not self.running:
            state = "(redo)"
        else:
            state = format_percent(self.percent)
            if self.speed is not None:
                state = f"{state} {self.speed:.1f}x"
        text = f"{self.name} {state}"
        if self.errors:
            text = f"{text} !{self.errors}"
        return text


class ProgressAggregator:
    """Merge transcoder progress streams into one status line.

    The scheduler calls start_attempt() before spawning, feeds raw output
    chunks through feed(), and reports outcomes with finish(), record_error()
    and mark_redo(). Malformed input is ignored, never raised.

    Example:
        aggregator = ProgressAggregator(enabled=sys.stderr.isatty())
        aggregator.start_attempt("1080p.av1", duration_us=5_400_000_000)
        aggregator.feed("1080p.av1", "frame= 10 time=00:45:00.00 speed=2.0x\\r")
        aggregator.percent("1080p.av1")  # 50.0
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._stream = stream
        self.enabled = enabled
        self._clock = clock
        self._records: dict[str, ProgressRecord] = {}
        self._last_line = ""
        self._drawn_width = 0
        # Sweep-level counters (ProgressReporter protocol)
        self._total_items = 0
        self._completed_items = 0
        self._current_item = ""

    # -- task-level API ------------------------------------------------------

    def start_attempt(self, name: str, duration_us: int = 0) -> None:
        """Reset a task's progress for a new attempt."""
        record = self._records.get(name)
        if record is None:
            record = ProgressRecord(name=name)
            self._records[name] = record
        record.duration_us = duration_us
        record.percent = 0.0
        record.speed = None
        record.running = True
        record.done = False
        record.partial = ""
        record.attempt_started = self._clock()
        self._render()

    def feed(self, name: str, chunk: str) -> None:
        """Consume a raw chunk of a task's diagnostic stream.

        Chunks may split lines anywhere; incomplete trailing text is kept
        until its terminator arrives.
        """
        record = self._records.get(name)
        if record is None or not chunk:
            return

        lines = _LINE_SPLIT.split(record.partial + chunk)
        record.partial = lines.pop()[-MAX_PARTIAL_LINE:]

        changed = False
        for line in lines:
            changed = self._apply(record, line) or changed
        if changed:
            self._render()

    def _apply(self, record: ProgressRecord, line: str) -> bool:
        progress = parse_progress_line(line)
        if progress is None:
            return False

        percent = progress.get_percent(record.duration_us)
        if percent is None:
            return False
        # Streams may deliver stale lines late; progress never moves back
        if percent > record.percent:
            record.percent = percent

        if progress.speed is not None:
            record.speed = progress.speed
        elif record.duration_us > 0:
            elapsed = self._clock() - record.attempt_started
            if elapsed > 0:
                media_seconds = record.percent / 100 * record.duration_us / 1_000_000
                record.speed = media_seconds / elapsed
        return True

    def finish(self, name: str, success: bool) -> None:
        """Record the end of a task's attempt."""
        record = self._records.get(name)
        if record is None:
            return
        self.flush(name)
        record.running = False
        if success:
            record.percent = 100.0
            record.done = True
            record.redo = False
        self._render()

    def flush(self, name: str) -> None:
        """Parse text left without a terminator once the stream has ended."""
        record = self._records.get(name)
        if record is None or not record.partial:
            return
        partial, record.partial = record.partial, ""
        if self._apply(record, partial):
            self._render()

    def mark_redo(self, name: str) -> None:
        """Show a task as waiting in the serial redo queue."""
        record = self._records.get(name)
        if record is None:
            return
        record.redo = True
        record.running = False
        self._render()

    def record_error(self, name: str) -> None:
        """Count a failed attempt for display."""
        record = self._records.get(name)
        if record is None:
            record = ProgressRecord(name=name)
            self._records[name] = record
        record.errors += 1
        self._render()

    def percent(self, name: str) -> float:
        """Last percent reported for a task in its current attempt."""
        record = self._records.get(name)
        return record.percent if record is not None else 0.0

    def record(self, name: str) -> ProgressRecord | None:
        return self._records.get(name)

    def reset(self) -> None:
        """Forget all task records, keeping sweep counters."""
        self._records.clear()
        self._render()

    # -- rendering -----------------------------------------------------------

    def render_line(self) -> str:
        """Build the composite status line."""
        parts: list[str] = []
        if self._total_items > 1:
            parts.append(f"[{self._completed_items}/{self._total_items}]")
        if self._current_item:
            parts.append(self._current_item)
        labels = [r.label() for r in self._records.values() if not r.done]
        done = sum(1 for r in self._records.values() if r.done)
        if self._records:
            parts.append(f"{done}/{len(self._records)} done")
        if labels:
            parts.append(" | ".join(labels))
        return " ".join(parts)

    def _render(self) -> None:
        if not self.enabled:
            return
        line = self.render_line()
        if line == self._last_line:
            return
        self._last_line = line
        padding = " " * max(0, self._drawn_width - len(line))
        stream = self._stream or sys.stderr
        stream.write(f"\r{line}{padding}")
        stream.flush()
        self._drawn_width = len(line)

    def close(self) -> None:
        """End the status line so later output starts on a fresh line."""
        if self.enabled and self._drawn_width:
            stream = self._stream or sys.stderr
            stream.write("\n")
            stream.flush()
        self._drawn_width = 0
        self._last_line = ""

    # -- ProgressReporter protocol -------------------------------------------

    def on_start(self, total: int) -> None:
        self._total_items = total
        self._completed_items = 0
        self._render()

    def on_item_start(self, index: int, message: str = "") -> None:
        self._current_item = message
        self.reset()

    def on_item_complete(self, index: int, success: bool, message: str = "") -> None:
        self._completed_items += 1
        self._current_item = ""
        self.reset()

    def on_progress(self, percent: float, message: str = "") -> None:
        # Task records carry the percentages
        pass

    def on_complete(self, success: bool = True) -> None:
        self.close()
