"""Domain models and enums for Video Library Renditions.

Usage:
    from vlr.domain import SourceDescriptor, RenditionSpec, Task
    from vlr.domain import Classification, TaskState
"""

from .enums import (
    Classification,
    CodecFamily,
    PipelineOutcome,
    RenditionKind,
    TaskState,
)
from .models import (
    ArtifactKey,
    ArtifactPresence,
    InvalidTransitionError,
    PipelineResult,
    PlanResult,
    RenditionSpec,
    SourceDescriptor,
    Task,
    Transform,
)

__all__ = [
    # Enums
    "Classification",
    "CodecFamily",
    "PipelineOutcome",
    "RenditionKind",
    "TaskState",
    # Models
    "ArtifactKey",
    "ArtifactPresence",
    "InvalidTransitionError",
    "PipelineResult",
    "PlanResult",
    "RenditionSpec",
    "SourceDescriptor",
    "Task",
    "Transform",
]
