"""Configuration data models.

This module defines dataclasses for VLR configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path

from vlr.domain.enums import Classification

# Retry-tier thresholds. These were tuned empirically; keep them as named
# values instead of deriving new ones.
DEFAULT_MAX_TRIES = 6
DEFAULT_CONCURRENCY = 6
EARLY_FAILURE_PERCENT = 10.0
QUICK_RETRY_EARLY_RATIO = 0.75
QUICK_RETRY_ANY_RATIO = 0.5

# A candidate may exceed the source resolution by this fraction before it
# counts as an upscale.
UPSCALE_TOLERANCE = 0.10


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. If not specified, tools are looked up in PATH.
    """

    ffmpeg: Path | None = None
    mp4box: Path | None = None
    mkvmerge: Path | None = None


@dataclass
class PipelineConfig:
    """Configuration for the task scheduler."""

    max_tries: int = DEFAULT_MAX_TRIES
    """Attempts allowed per rendition before the pipeline aborts."""

    concurrency: int = DEFAULT_CONCURRENCY
    """Maximum transcoder processes running in parallel."""

    early_failure_percent: float = EARLY_FAILURE_PERCENT
    """Failures below this progress count as early failures."""

    quick_retry_early_ratio: float = QUICK_RETRY_EARLY_RATIO
    """Early failures retry in parallel while attempts < floor(ratio * max_tries)."""

    quick_retry_any_ratio: float = QUICK_RETRY_ANY_RATIO
    """Any failure retries in parallel while attempts < floor(ratio * max_tries)."""

    task_timeout_seconds: float | None = None
    """Wall-clock limit per transcoder attempt. None waits indefinitely."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_tries < 1:
            raise ValueError(f"max_tries must be at least 1, got {self.max_tries}")
        if self.concurrency < 1:
            raise ValueError(
                f"concurrency must be at least 1, got {self.concurrency}"
            )
        if not 0.0 <= self.early_failure_percent <= 100.0:
            raise ValueError(
                f"early_failure_percent must be between 0 and 100, "
                f"got {self.early_failure_percent}"
            )
        for name in ("quick_retry_early_ratio", "quick_retry_any_ratio"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0.0 and 1.0, got {value}")
        if self.task_timeout_seconds is not None and self.task_timeout_seconds <= 0:
            raise ValueError(
                f"task_timeout_seconds must be positive, "
                f"got {self.task_timeout_seconds}"
            )


@dataclass
class SampleConfig:
    """Configuration for the optional preview clip."""

    enabled: bool = False
    start_fraction: float = 0.25
    """Where the clip starts, as a fraction of the asset duration."""

    length_seconds: float = 60.0
    height: int = 480

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not 0.0 <= self.start_fraction < 1.0:
            raise ValueError(
                f"start_fraction must be in [0.0, 1.0), got {self.start_fraction}"
            )
        if self.length_seconds <= 0:
            raise ValueError(
                f"length_seconds must be positive, got {self.length_seconds}"
            )
        if self.height <= 0:
            raise ValueError(f"height must be positive, got {self.height}")


def _default_caps() -> dict[Classification, int]:
    return {
        Classification.MOVIE: 2160,
        Classification.TV: 1080,
        Classification.EXTRA: 480,
    }


@dataclass
class RenditionConfig:
    """Configuration for the rendition planner."""

    max_height: dict[Classification, int] = field(default_factory=_default_caps)
    """Highest rendition allowed per classification."""

    upscale_tolerance: float = UPSCALE_TOLERANCE

    profile: Path | None = None
    """YAML rendition profile replacing the built-in candidate table."""

    sample: SampleConfig = field(default_factory=SampleConfig)

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.upscale_tolerance < 0:
            raise ValueError(
                f"upscale_tolerance must be non-negative, got {self.upscale_tolerance}"
            )
        for classification, height in self.max_height.items():
            if height <= 0:
                raise ValueError(
                    f"max_height for {classification.value} must be positive, "
                    f"got {height}"
                )


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class VLRConfig:
    """Main configuration container for VLR.

    Aggregates all configuration sections.
    """

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    renditions: RenditionConfig = field(default_factory=RenditionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def get_tool_path(self, tool_name: str) -> Path | None:
        """Get configured path for a tool.

        Args:
            tool_name: Name of the tool (ffmpeg, mp4box, mkvmerge).

        Returns:
            Configured path or None if not configured.
        """
        return getattr(self.tools, tool_name.lower(), None)
