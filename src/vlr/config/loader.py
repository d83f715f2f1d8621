"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to get_config)
2. Environment variables (VLR_*)
3. Config file (~/.vlr/config.toml)
4. Default values

Environment variables:
- VLR_CONFIG_PATH: Path to config file (overrides default location)
- VLR_FFMPEG_PATH: Path to ffmpeg executable
- VLR_MP4BOX_PATH: Path to MP4Box executable
- VLR_MKVMERGE_PATH: Path to mkvmerge executable
- VLR_MAX_TRIES: Attempts per rendition before aborting (default 6)
- VLR_CONCURRENCY: Parallel transcoder processes (default 6)
- VLR_TASK_TIMEOUT: Seconds per transcoder attempt (default: no limit)
- VLR_PROFILE_PATH: YAML rendition profile
- VLR_SAMPLE_ENABLED: Also render a preview clip
- VLR_LOG_LEVEL / VLR_LOG_FILE / VLR_LOG_FORMAT: Logging overrides
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from vlr.config.env import EnvReader
from vlr.config.models import (
    LoggingConfig,
    PipelineConfig,
    RenditionConfig,
    SampleConfig,
    ToolPathsConfig,
    VLRConfig,
)
from vlr.domain.enums import Classification

logger = logging.getLogger(__name__)

# Default config location
DEFAULT_CONFIG_DIR = Path.home() / ".vlr"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"


class ConfigError(Exception):
    """Configuration file could not be read or holds invalid values."""


def get_default_config_path(env_reader: EnvReader | None = None) -> Path:
    """Get the default config file path.

    Can be overridden by VLR_CONFIG_PATH environment variable.
    """
    env = env_reader or EnvReader()
    env_path = env.get_str("VLR_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def load_config_file(
    path: Path | None = None, env_reader: EnvReader | None = None
) -> dict[str, Any]:
    """Load configuration from TOML file.

    Args:
        path: Path to config file. If None, uses default location.
        env_reader: Environment reader used to resolve the default location.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.

    Raises:
        ConfigError: If the file exists but is not valid TOML.
    """
    if path is None:
        path = get_default_config_path(env_reader)

    if not path.exists():
        logger.debug("Config file not found: %s", path)
        return {}

    try:
        with path.open("rb") as f:
            config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    logger.debug("Loaded config from %s", path)
    return config


def _file_path(section: dict[str, Any], key: str) -> Path | None:
    value = section.get(key)
    return Path(value).expanduser() if value else None


def _parse_caps(raw: dict[str, Any]) -> dict[Classification, int]:
    caps = RenditionConfig().max_height
    for key, value in raw.items():
        try:
            classification = Classification(key.lower())
        except ValueError:
            raise ConfigError(
                f"Unknown classification in renditions.max_height: {key!r}"
            ) from None
        caps[classification] = int(value)
    return caps


def get_config(
    config_path: Path | None = None,
    # CLI overrides (highest precedence)
    ffmpeg_path: Path | None = None,
    mp4box_path: Path | None = None,
    mkvmerge_path: Path | None = None,
    concurrency: int | None = None,
    profile_path: Path | None = None,
    env_reader: EnvReader | None = None,
) -> VLRConfig:
    """Get VLR configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides VLR_CONFIG_PATH).
        ffmpeg_path: CLI override for ffmpeg path.
        mp4box_path: CLI override for MP4Box path.
        mkvmerge_path: CLI override for mkvmerge path.
        concurrency: CLI override for parallel transcoder processes.
        profile_path: CLI override for the rendition profile.
        env_reader: Environment source, os.environ by default.

    Returns:
        VLRConfig with merged configuration.

    Raises:
        ConfigError: If the file is unreadable or a value fails validation.
    """
    env = env_reader or EnvReader()
    file_config = load_config_file(config_path, env)

    tools_file = file_config.get("tools", {})
    pipeline_file = file_config.get("pipeline", {})
    renditions_file = file_config.get("renditions", {})
    sample_file = renditions_file.get("sample", {})
    logging_file = file_config.get("logging", {})

    try:
        tools = ToolPathsConfig(
            ffmpeg=(
                ffmpeg_path
                or env.get_path("VLR_FFMPEG_PATH")
                or _file_path(tools_file, "ffmpeg")
            ),
            mp4box=(
                mp4box_path
                or env.get_path("VLR_MP4BOX_PATH")
                or _file_path(tools_file, "mp4box")
            ),
            mkvmerge=(
                mkvmerge_path
                or env.get_path("VLR_MKVMERGE_PATH")
                or _file_path(tools_file, "mkvmerge")
            ),
        )

        defaults = PipelineConfig()
        pipeline = PipelineConfig(
            max_tries=env.get_int(
                "VLR_MAX_TRIES",
                pipeline_file.get("max_tries", defaults.max_tries),
            ),
            concurrency=(
                concurrency
                or env.get_int(
                    "VLR_CONCURRENCY",
                    pipeline_file.get("concurrency", defaults.concurrency),
                )
            ),
            early_failure_percent=pipeline_file.get(
                "early_failure_percent", defaults.early_failure_percent
            ),
            quick_retry_early_ratio=pipeline_file.get(
                "quick_retry_early_ratio", defaults.quick_retry_early_ratio
            ),
            quick_retry_any_ratio=pipeline_file.get(
                "quick_retry_any_ratio", defaults.quick_retry_any_ratio
            ),
            task_timeout_seconds=env.get_float(
                "VLR_TASK_TIMEOUT",
                pipeline_file.get("task_timeout_seconds"),
            ),
        )

        sample_defaults = SampleConfig()
        sample = SampleConfig(
            enabled=env.get_bool(
                "VLR_SAMPLE_ENABLED",
                sample_file.get("enabled", sample_defaults.enabled),
            ),
            start_fraction=sample_file.get(
                "start_fraction", sample_defaults.start_fraction
            ),
            length_seconds=sample_file.get(
                "length_seconds", sample_defaults.length_seconds
            ),
            height=sample_file.get("height", sample_defaults.height),
        )

        renditions = RenditionConfig(
            max_height=_parse_caps(renditions_file.get("max_height", {})),
            upscale_tolerance=renditions_file.get(
                "upscale_tolerance", RenditionConfig().upscale_tolerance
            ),
            profile=(
                profile_path
                or env.get_path("VLR_PROFILE_PATH")
                or _file_path(renditions_file, "profile")
            ),
            sample=sample,
        )

        log_defaults = LoggingConfig()
        logging_config = LoggingConfig(
            level=env.get_str(
                "VLR_LOG_LEVEL", logging_file.get("level", log_defaults.level)
            ),
            file=(
                env.get_path("VLR_LOG_FILE", must_exist=False)
                or _file_path(logging_file, "file")
            ),
            format=env.get_str(
                "VLR_LOG_FORMAT", logging_file.get("format", log_defaults.format)
            ),
            include_stderr=logging_file.get(
                "include_stderr", log_defaults.include_stderr
            ),
            max_bytes=logging_file.get("max_bytes", log_defaults.max_bytes),
            backup_count=logging_file.get(
                "backup_count", log_defaults.backup_count
            ),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    return VLRConfig(
        tools=tools,
        pipeline=pipeline,
        renditions=renditions,
        logging=logging_config,
    )
