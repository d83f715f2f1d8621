"""Custom exceptions for the rendition pipeline.

Transient task failures are absorbed by the scheduler and never escape it.
Everything deriving from PipelineError is fatal for the asset being processed;
callers log it and move on to the next asset.
"""


class PipelineError(Exception):
    """Base exception for fatal pipeline failures."""


class TranscodeError(Exception):
    """A single transcoding attempt failed.

    This is a transient failure: the scheduler decides whether to retry.

    Attributes:
        task_name: Name of the rendition task.
        returncode: Exit code of the transcoder, -1 for spawn errors or timeouts.
        stderr_tail: Last lines of the transcoder's diagnostic output.
    """

    def __init__(self, task_name: str, returncode: int, stderr_tail: str = "") -> None:
        self.task_name = task_name
        self.returncode = returncode
        self.stderr_tail = stderr_tail
        message = f"Transcode {task_name} exited with code {returncode}"
        if stderr_tail:
            message = f"{message}: {stderr_tail.strip()}"
        super().__init__(message)


class RetryExhaustedError(PipelineError):
    """A task used its whole retry budget; the pipeline was aborted.

    Attributes:
        task_name: Name of the task that exhausted its retries.
        attempts: Number of attempts made.
        cause: The failure of the final attempt.
    """

    def __init__(
        self, task_name: str, attempts: int, cause: BaseException | None = None
    ) -> None:
        self.task_name = task_name
        self.attempts = attempts
        self.cause = cause
        message = f"Rendition {task_name} failed after {attempts} attempts"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class ManifestError(PipelineError):
    """The adaptive manifest could not be assembled.

    Attributes:
        output: Captured multiplexer output, if any.
        report_path: Where the error report was written, if it was.
    """

    def __init__(self, message: str, output: str = "") -> None:
        self.output = output
        self.report_path = None
        super().__init__(message)


class OutputDirectoryBusyError(Exception):
    """The output directory carries a busy marker from another run.

    Not a pipeline failure: the pipeline declines work for the asset.
    """

    def __init__(self, directory, marker) -> None:
        self.directory = directory
        self.marker = marker
        super().__init__(f"Output directory is busy: {directory}")
