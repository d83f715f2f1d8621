"""Tests for configuration dataclass validation."""

from __future__ import annotations

import pytest

from vlr.config.models import (
    LoggingConfig,
    PipelineConfig,
    RenditionConfig,
    SampleConfig,
    VLRConfig,
)
from vlr.domain.enums import Classification


class TestPipelineConfig:
    """Tests for PipelineConfig validation."""

    def test_defaults(self) -> None:
        """Should default to six tries and six parallel processes."""
        config = PipelineConfig()
        assert config.max_tries == 6
        assert config.concurrency == 6
        assert config.early_failure_percent == 10.0
        assert config.task_timeout_seconds is None

    @pytest.mark.parametrize(
        "kwargs,message",
        [
            ({"max_tries": 0}, "max_tries"),
            ({"concurrency": 0}, "concurrency"),
            ({"early_failure_percent": 101.0}, "early_failure_percent"),
            ({"quick_retry_early_ratio": 1.5}, "quick_retry_early_ratio"),
            ({"quick_retry_any_ratio": -0.1}, "quick_retry_any_ratio"),
            ({"task_timeout_seconds": 0}, "task_timeout_seconds"),
        ],
    )
    def test_rejects_invalid_values(self, kwargs: dict, message: str) -> None:
        """Should raise ValueError naming the offending field."""
        with pytest.raises(ValueError, match=message):
            PipelineConfig(**kwargs)


class TestSampleConfig:
    """Tests for SampleConfig validation."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"start_fraction": 1.0},
            {"start_fraction": -0.1},
            {"length_seconds": 0},
            {"height": 0},
        ],
    )
    def test_rejects_invalid_values(self, kwargs: dict) -> None:
        """Should reject out-of-range sample settings."""
        with pytest.raises(ValueError):
            SampleConfig(**kwargs)


class TestRenditionConfig:
    """Tests for RenditionConfig validation."""

    def test_default_caps(self) -> None:
        """Should cap movies at 2160, TV at 1080 and extras at 480."""
        caps = RenditionConfig().max_height
        assert caps == {
            Classification.MOVIE: 2160,
            Classification.TV: 1080,
            Classification.EXTRA: 480,
        }

    def test_caps_are_not_shared(self) -> None:
        """Each instance should own its caps dict."""
        first = RenditionConfig()
        first.max_height[Classification.TV] = 720
        assert RenditionConfig().max_height[Classification.TV] == 1080

    def test_rejects_non_positive_cap(self) -> None:
        """Should reject a cap of zero."""
        with pytest.raises(ValueError, match="tv"):
            RenditionConfig(max_height={Classification.TV: 0})

    def test_rejects_negative_tolerance(self) -> None:
        """Should reject a negative upscale tolerance."""
        with pytest.raises(ValueError, match="upscale_tolerance"):
            RenditionConfig(upscale_tolerance=-0.1)


class TestLoggingConfig:
    """Tests for LoggingConfig validation."""

    def test_accepts_uppercase_level(self) -> None:
        """Should accept level names in any case."""
        assert LoggingConfig(level="DEBUG").level == "DEBUG"

    def test_rejects_unknown_level(self) -> None:
        """Should reject unknown level names."""
        with pytest.raises(ValueError, match="level"):
            LoggingConfig(level="verbose")

    def test_rejects_unknown_format(self) -> None:
        """Should reject unknown formats."""
        with pytest.raises(ValueError, match="format"):
            LoggingConfig(format="xml")


class TestVLRConfig:
    """Tests for the top-level container."""

    def test_get_tool_path_unknown_tool(self) -> None:
        """Should return None for tools without a configured path."""
        assert VLRConfig().get_tool_path("ffprobe") is None
