"""Task scheduler with tiered retry.

Runs every planned rendition as an external transcoder process, at most
``concurrency`` at a time, from a single asyncio control flow.

Failed attempts are retried in one of two tiers:

- quick retry: back to the front of the pending queue, in parallel with
  everything else. Used while the task has failed early (below
  ``early_failure_percent``) fewer than floor(early ratio x max_tries) times,
  or has any failures below floor(any ratio x max_tries).
- redo: a serial queue that only runs once the parallel pool has drained.
  A redo task that fails again goes back to the redo queue until it has used
  ``max_tries`` attempts, at which point the whole run is aborted.

With the defaults (6 tries) a task that keeps failing early is retried
quickly after attempts 1-3, moves to the redo queue after attempt 4, is
redone once more after attempt 5, and aborts the run after attempt 6.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections import deque
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from vlr.config.models import PipelineConfig
from vlr.domain.enums import TaskState
from vlr.domain.models import RenditionSpec, Task
from vlr.jobs.exceptions import RetryExhaustedError, TranscodeError
from vlr.jobs.progress import ProgressAggregator
from vlr.logging import task_context
from vlr.renditions import naming

if TYPE_CHECKING:
    from vlr.executor.interface import TranscodeHandle, Transcoder

logger = logging.getLogger(__name__)

# Seconds a terminated process gets to exit before it is killed
TERMINATE_GRACE_SECONDS = 5.0


class TaskScheduler:
    """Bounded-concurrency executor for rendition tasks.

    The scheduler exclusively owns every process handle it spawns and is the
    only component that terminates them.

    Attributes:
        max_running: Highest number of simultaneously running tasks seen.
        dispatched: Number of attempts started in the last run.
    """

    def __init__(
        self,
        transcoder: Transcoder,
        config: PipelineConfig | None = None,
        progress: ProgressAggregator | None = None,
        finalize: Callable[[Path, Path], Path] = naming.finalize,
    ) -> None:
        self.transcoder = transcoder
        self.config = config or PipelineConfig()
        self.progress = progress or ProgressAggregator(enabled=False)
        self._finalize = finalize
        self.max_running = 0
        self.dispatched = 0

    @property
    def quick_retry_early_limit(self) -> int:
        return math.floor(self.config.quick_retry_early_ratio * self.config.max_tries)

    @property
    def quick_retry_any_limit(self) -> int:
        return math.floor(self.config.quick_retry_any_ratio * self.config.max_tries)

    async def run(self, specs: Sequence[RenditionSpec]) -> list[Task]:
        """Run every spec to success, or abort.

        Args:
            specs: Renditions in dispatch order.

        Returns:
            The tasks, all SUCCEEDED.

        Raises:
            RetryExhaustedError: If a task used up its retries. In-flight
                processes have been stopped and the other unfinished tasks
                are CANCELLED when this propagates.
        """
        tasks = [Task(spec=spec) for spec in specs]
        pending: deque[Task] = deque(tasks)
        redo: deque[Task] = deque()
        running: dict[asyncio.Task[None], Task] = {}

        self.max_running = 0
        self.dispatched = 0

        try:
            while pending or redo or running:
                while pending and len(running) < self.config.concurrency:
                    self._dispatch(pending.popleft(), running)

                # The redo queue only runs, one task at a time, once the
                # parallel pool has fully drained
                if not running and redo:
                    self._dispatch(redo.popleft(), running)

                done, _ = await asyncio.wait(
                    running.keys(), return_when=asyncio.FIRST_COMPLETED
                )
                for attempt in done:
                    task = running.pop(attempt)
                    error = attempt.exception()
                    if error is None:
                        self._on_success(task)
                    elif isinstance(error, TranscodeError):
                        self._on_failure(task, error, pending, redo)
                    else:
                        raise error
        except BaseException:
            await self._abort(tasks, running)
            raise

        logger.info(
            "All %d rendition(s) succeeded after %d attempt(s)",
            len(tasks),
            sum(task.attempts for task in tasks),
            extra={"max_running": self.max_running},
        )
        return tasks

    def _dispatch(self, task: Task, running: dict[asyncio.Task[None], Task]) -> None:
        task.attempts += 1
        task.transition(TaskState.RUNNING)
        self.progress.start_attempt(task.name, task.spec.duration_us)
        attempt = asyncio.create_task(self._run_attempt(task), name=task.name)
        running[attempt] = task
        self.dispatched += 1
        self.max_running = max(self.max_running, len(running))
        logger.debug(
            "Dispatched %s (attempt %d)",
            task.name,
            task.attempts,
            extra={"running": len(running), "from_redo": task.from_redo},
        )

    async def _run_attempt(self, task: Task) -> None:
        """Run one attempt; rename the output into place on success.

        Raises:
            TranscodeError: If the attempt failed in any retryable way.
        """
        with task_context(task.name):
            spec = task.spec
            temp = naming.temp_path(spec.output_path)
            temp.unlink(missing_ok=True)

            try:
                handle = await self.transcoder.spawn(
                    spec, temp, lambda chunk: self.progress.feed(task.name, chunk)
                )
            except OSError as e:
                raise TranscodeError(task.name, -1, str(e)) from e

            task.handle = handle
            try:
                returncode = await self._wait(task, handle)
            except asyncio.CancelledError:
                await self._stop(handle)
                raise
            finally:
                task.handle = None

            if returncode != 0:
                temp.unlink(missing_ok=True)
                raise TranscodeError(task.name, returncode, handle.stderr_tail)

            try:
                self._finalize(temp, spec.output_path)
            except OSError as e:
                temp.unlink(missing_ok=True)
                raise TranscodeError(
                    task.name, 0, f"output could not be finalized: {e}"
                ) from e

    async def _wait(self, task: Task, handle: TranscodeHandle) -> int:
        timeout = self.config.task_timeout_seconds
        if timeout is None:
            return await handle.wait()
        try:
            return await asyncio.wait_for(handle.wait(), timeout)
        except asyncio.TimeoutError:
            logger.warning("%s timed out after %.0fs, stopping it", task.name, timeout)
            await self._stop(handle)
            raise TranscodeError(
                task.name, -1, f"timed out after {timeout:.0f}s"
            ) from None

    async def _stop(self, handle: TranscodeHandle) -> None:
        """Terminate a process, killing it if it does not exit in time."""
        handle.terminate()
        try:
            await asyncio.wait_for(handle.wait(), TERMINATE_GRACE_SECONDS)
        except asyncio.TimeoutError:
            handle.kill()
            await handle.wait()

    def _on_success(self, task: Task) -> None:
        task.transition(TaskState.SUCCEEDED)
        task.percent = 100.0
        self.progress.finish(task.name, success=True)
        logger.info(
            "Rendition %s finished (attempt %d)",
            task.name,
            task.attempts,
            extra={"artifact": str(task.spec.output_path)},
        )

    def _on_failure(
        self,
        task: Task,
        error: TranscodeError,
        pending: deque[Task],
        redo: deque[Task],
    ) -> None:
        task.last_error = error
        # Finishing flushes any unterminated progress text first
        self.progress.finish(task.name, success=False)
        task.percent = self.progress.percent(task.name)
        task.transition(TaskState.FAILED)
        self.progress.record_error(task.name)

        max_tries = self.config.max_tries
        if task.attempts >= max_tries:
            tier = "abort"
        elif task.from_redo:
            tier = "redo"
        elif self._quick_retry(task):
            tier = "quick"
        else:
            tier = "redo"

        logger.warning(
            "Rendition %s failed on attempt %d/%d at %.1f%%: %s",
            task.name,
            task.attempts,
            max_tries,
            task.percent,
            error,
            extra={"tier": tier, "returncode": error.returncode},
        )

        if tier == "abort":
            raise RetryExhaustedError(task.name, task.attempts, error)
        if tier == "quick":
            task.transition(TaskState.PENDING)
            pending.appendleft(task)
        else:
            task.transition(TaskState.REDO_PENDING)
            task.from_redo = True
            redo.append(task)
            self.progress.mark_redo(task.name)

    def _quick_retry(self, task: Task) -> bool:
        early = (
            task.percent < self.config.early_failure_percent
            and task.attempts < self.quick_retry_early_limit
        )
        return early or task.attempts < self.quick_retry_any_limit

    async def _abort(
        self, tasks: list[Task], running: dict[asyncio.Task[None], Task]
    ) -> None:
        """Stop in-flight processes and cancel all unfinished work."""
        if running:
            logger.warning("Aborting %d running rendition(s)", len(running))
        for attempt in running:
            attempt.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)
        for attempt, task in running.items():
            # Attempts that completed in the same wake-up already renamed
            # their output into place
            if not attempt.cancelled() and attempt.exception() is None:
                self._on_success(task)
        running.clear()

        for task in tasks:
            if task.state in (TaskState.SUCCEEDED, TaskState.FAILED):
                continue
            task.transition(TaskState.CANCELLED)
            self.progress.finish(task.name, success=False)
