"""Domain models for Video Library Renditions.

These models describe a source asset, the renditions planned for it and the
runtime tasks the scheduler drives. They are independent of any external tool.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path
from typing import TYPE_CHECKING, Any

from vlr.domain.enums import (
    Classification,
    CodecFamily,
    PipelineOutcome,
    RenditionKind,
    TaskState,
)

if TYPE_CHECKING:
    from vlr.executor.interface import TranscodeHandle


class InvalidTransitionError(Exception):
    """Raised when a task is moved along an edge the state machine forbids."""

    def __init__(self, task_name: str, current: TaskState, target: TaskState):
        self.task_name = task_name
        self.current = current
        self.target = target
        super().__init__(
            f"Task {task_name}: invalid transition {current.value} -> {target.value}"
        )


_ALLOWED_TRANSITIONS: dict[TaskState, frozenset[TaskState]] = {
    TaskState.PENDING: frozenset({TaskState.RUNNING, TaskState.CANCELLED}),
    TaskState.RUNNING: frozenset(
        {TaskState.SUCCEEDED, TaskState.FAILED, TaskState.CANCELLED}
    ),
    TaskState.FAILED: frozenset(
        {TaskState.PENDING, TaskState.REDO_PENDING, TaskState.CANCELLED}
    ),
    TaskState.REDO_PENDING: frozenset({TaskState.RUNNING, TaskState.CANCELLED}),
    TaskState.SUCCEEDED: frozenset(),
    TaskState.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class ArtifactKey:
    """Identity of a produced video rendition on disk."""

    height: int
    codec: CodecFamily
    large: bool


@dataclass(frozen=True)
class ArtifactPresence:
    """Which artifacts already exist, under their final names, for an asset."""

    renditions: frozenset[ArtifactKey] = frozenset()
    has_audio: bool = False
    has_manifest: bool = False
    has_sample: bool = False

    def has_equivalent_or_better(
        self, height: int, codec: CodecFamily, large: bool
    ) -> bool:
        """Return True if an artifact at least as good as the candidate exists."""
        return any(
            key.height == height and key.large == large and key.codec.rank >= codec.rank
            for key in self.renditions
        )

    @property
    def large_heights(self) -> frozenset[int]:
        """Heights of the large renditions already present."""
        return frozenset(key.height for key in self.renditions if key.large)


@dataclass(frozen=True)
class SourceDescriptor:
    """Immutable snapshot of a source asset, produced once per pipeline run."""

    path: Path
    width: int  # Pixel width, 0 when the asset has no video track
    height: int  # Pixel height, 0 when the asset has no video track
    display_width: int
    display_height: int
    duration_us: int
    audio_channels: int  # Channels of the primary audio track, 0 for none
    audio_index: int = 0  # Position of the primary track among audio tracks
    classification: Classification = Classification.MOVIE
    stereoscopic: bool = False
    crop: tuple[int, int, int, int] | None = None  # (w, h, x, y)
    presence: ArtifactPresence = field(default_factory=ArtifactPresence)

    @property
    def stem(self) -> str:
        """Base name used for every derived artifact."""
        return self.path.stem

    @property
    def has_video(self) -> bool:
        return self.width > 0 and self.height > 0

    @property
    def has_audio(self) -> bool:
        return self.audio_channels > 0

    @property
    def duration_seconds(self) -> float:
        return self.duration_us / 1_000_000

    @property
    def display_aspect(self) -> Fraction | None:
        """Display aspect ratio, falling back to the pixel aspect."""
        if self.display_width > 0 and self.display_height > 0:
            return Fraction(self.display_width, self.display_height)
        if self.has_video:
            return Fraction(self.width, self.height)
        return None

    @property
    def is_anamorphic(self) -> bool:
        """True when pixels are not square (display aspect != pixel aspect)."""
        if not self.has_video or self.display_width <= 0 or self.display_height <= 0:
            return False
        return self.display_width * self.height != self.width * self.display_height


@dataclass(frozen=True)
class Transform:
    """Asset-specific picture and timing adjustments for one rendition."""

    crop: tuple[int, int, int, int] | None = None
    square_pixel_width: int | None = None  # Anamorphic correction target width
    window: tuple[float, float] | None = None  # (start_seconds, length_seconds)

    @property
    def is_identity(self) -> bool:
        return self.crop is None and self.square_pixel_width is None and not self.window


@dataclass(frozen=True)
class RenditionSpec:
    """One target output of the pipeline."""

    name: str
    kind: RenditionKind
    output_path: Path
    height: int = 0
    codec: CodecFamily | None = None
    small: bool = False
    with_audio: bool = False
    audio_channels: int = 0
    audio_index: int = 0  # Which source audio track to encode
    source_duration_us: int = 0
    transform: Transform = field(default_factory=Transform)

    @property
    def large(self) -> bool:
        """Large renditions are the manifest's video adaptation entries."""
        return self.kind == RenditionKind.VIDEO and not self.small

    @property
    def duration_us(self) -> int:
        """Media duration this rendition covers, used to convert time to percent."""
        if self.transform.window is not None:
            return int(self.transform.window[1] * 1_000_000)
        return self.source_duration_us


@dataclass
class Task:
    """A rendition bound to runtime state while the scheduler drives it."""

    spec: RenditionSpec
    state: TaskState = TaskState.PENDING
    attempts: int = 0
    percent: float = 0.0
    from_redo: bool = False
    last_error: BaseException | None = None
    handle: TranscodeHandle | None = field(default=None, repr=False)

    @property
    def name(self) -> str:
        return self.spec.name

    def transition(self, target: TaskState) -> None:
        """Move to a new state, enforcing the task state machine.

        Raises:
            InvalidTransitionError: If the edge is not allowed (including any
                transition out of a terminal state).
        """
        if target not in _ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.name, self.state, target)
        self.state = target


@dataclass
class PlanResult:
    """Output of the rendition planner."""

    renditions: list[RenditionSpec] = field(default_factory=list)
    audio: RenditionSpec | None = None
    needs_manifest: bool = False
    manifest_path: Path | None = None
    skip_reason: str | None = None

    @property
    def needs_audio(self) -> bool:
        return self.audio is not None

    @property
    def eligible(self) -> bool:
        return self.skip_reason is None

    @property
    def specs(self) -> list[RenditionSpec]:
        """Every rendition to schedule, audio stream last."""
        if self.audio is None:
            return list(self.renditions)
        return [*self.renditions, self.audio]

    @property
    def is_empty(self) -> bool:
        return not self.specs and not self.needs_manifest


@dataclass
class PipelineResult:
    """Result of one pipeline run for one asset."""

    source: Path
    outcome: PipelineOutcome
    tasks: list[Task] = field(default_factory=list)
    manifest_path: Path | None = None
    artifacts: list[Path] = field(default_factory=list)
    message: str | None = None

    @property
    def total_attempts(self) -> int:
        return sum(task.attempts for task in self.tasks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": str(self.source),
            "outcome": self.outcome.value,
            "manifest": str(self.manifest_path) if self.manifest_path else None,
            "artifacts": [str(p) for p in self.artifacts],
            "total_attempts": self.total_attempts,
            "message": self.message,
        }
