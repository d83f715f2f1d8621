"""MediaIntrospector interface for building source descriptors."""

from pathlib import Path
from typing import Protocol

from vlr.domain.enums import Classification
from vlr.domain.models import SourceDescriptor


class MediaIntrospectionError(Exception):
    """Raised when media introspection fails."""


class MediaIntrospector(Protocol):
    """Protocol for media introspection implementations."""

    def get_descriptor(
        self, path: Path, classification: Classification | None = None
    ) -> SourceDescriptor:
        """Describe a source asset.

        Args:
            path: Path to the video file.
            classification: Overrides the classification derived from the path.

        Raises:
            MediaIntrospectionError: If the file cannot be introspected.
        """
        ...
