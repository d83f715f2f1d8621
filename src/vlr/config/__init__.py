"""Configuration management for Video Library Renditions.

Configuration is loaded with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (VLR_*)
3. Config file (~/.vlr/config.toml)
4. Default values (lowest priority)
"""

from vlr.config.env import EnvReader
from vlr.config.loader import (
    ConfigError,
    get_config,
    get_default_config_path,
    load_config_file,
)
from vlr.config.logging_factory import build_logging_config
from vlr.config.models import (
    LoggingConfig,
    PipelineConfig,
    RenditionConfig,
    SampleConfig,
    ToolPathsConfig,
    VLRConfig,
)

__all__ = [
    # Models
    "LoggingConfig",
    "PipelineConfig",
    "RenditionConfig",
    "SampleConfig",
    "ToolPathsConfig",
    "VLRConfig",
    # Loader
    "ConfigError",
    "get_config",
    "get_default_config_path",
    "load_config_file",
    # Helpers
    "EnvReader",
    "build_logging_config",
]
