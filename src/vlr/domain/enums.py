"""Domain enums for Video Library Renditions.

This module contains enums shared by the planner, scheduler and pipeline.
"""

from enum import Enum


class Classification(Enum):
    """Classification of a source asset within the library.

    The classification caps the highest rendition the planner will produce.
    """

    MOVIE = "movie"  # Feature film, eligible for every rendition
    TV = "tv"  # Episode of a series, capped below the top rendition
    EXTRA = "extra"  # Bonus material, capped at a low resolution


class CodecFamily(Enum):
    """Video codec family of a rendition."""

    AV1 = "av1"
    HEVC = "hevc"
    H264 = "h264"

    @property
    def rank(self) -> int:
        """Relative quality rank used for equivalent-or-better checks."""
        return _CODEC_RANK[self]


_CODEC_RANK: dict[CodecFamily, int] = {
    CodecFamily.H264: 0,
    CodecFamily.HEVC: 1,
    CodecFamily.AV1: 2,
}


class RenditionKind(Enum):
    """What a rendition carries."""

    VIDEO = "video"  # Video elementary stream (optionally with muxed audio)
    AUDIO = "audio"  # Audio-only elementary stream for the manifest
    SAMPLE = "sample"  # Short time-windowed preview clip


class TaskState(Enum):
    """Lifecycle state of a scheduled rendition task.

    Transitions:
    - PENDING -> RUNNING
    - RUNNING -> SUCCEEDED | FAILED | CANCELLED
    - FAILED -> PENDING | REDO_PENDING | CANCELLED
    - REDO_PENDING -> RUNNING | CANCELLED
    - PENDING -> CANCELLED
    """

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REDO_PENDING = "redo_pending"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Return True if no further transition is allowed."""
        return self in (TaskState.SUCCEEDED, TaskState.CANCELLED)


class PipelineOutcome(Enum):
    """Outcome of a pipeline run for one asset."""

    COMPLETED = "completed"
    NOTHING_TO_DO = "nothing_to_do"  # Every artifact already present
    SKIPPED_BUSY = "skipped_busy"  # Another run holds the busy marker
    SKIPPED_INELIGIBLE = "skipped_ineligible"  # E.g. stereoscopic geometry
    FAILED = "failed"  # Fatal error; only recorded by library sweeps
