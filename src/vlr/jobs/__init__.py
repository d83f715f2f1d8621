"""Rendition jobs: scheduling, progress aggregation and failure types."""

from vlr.jobs.exceptions import (
    ManifestError,
    OutputDirectoryBusyError,
    PipelineError,
    RetryExhaustedError,
    TranscodeError,
)
from vlr.jobs.progress import (
    ProgressAggregator,
    ProgressRecord,
    ProgressReporter,
)
from vlr.jobs.scheduler import TaskScheduler

__all__ = [
    # Exceptions
    "ManifestError",
    "OutputDirectoryBusyError",
    "PipelineError",
    "RetryExhaustedError",
    "TranscodeError",
    # Progress
    "ProgressAggregator",
    "ProgressRecord",
    "ProgressReporter",
    # Scheduling
    "TaskScheduler",
]
