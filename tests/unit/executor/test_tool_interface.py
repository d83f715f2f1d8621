"""Tests for require_tool()."""

from pathlib import Path
from unittest.mock import patch

import pytest

from vlr.executor.interface import ToolNotFoundError, require_tool


class TestRequireTool:
    def test_found_in_path(self):
        with patch(
            "vlr.executor.interface.shutil.which", return_value="/usr/bin/ffmpeg"
        ):
            assert require_tool("ffmpeg") == Path("/usr/bin/ffmpeg")

    def test_missing_from_path_includes_hint(self):
        with patch("vlr.executor.interface.shutil.which", return_value=None):
            with pytest.raises(ToolNotFoundError) as exc_info:
                require_tool("MP4Box")

        assert exc_info.value.tool_name == "MP4Box"
        assert "VLR_MP4BOX_PATH" in str(exc_info.value)

    def test_configured_executable_is_preferred(self, tmp_path: Path):
        tool = tmp_path / "ffmpeg"
        tool.write_text("#!/bin/sh\n")
        tool.chmod(0o755)

        with patch("vlr.executor.interface.shutil.which") as which:
            assert require_tool("ffmpeg", tool) == tool
        which.assert_not_called()

    def test_configured_non_executable_is_rejected(self, tmp_path: Path):
        tool = tmp_path / "ffmpeg"
        tool.write_text("")
        tool.chmod(0o644)

        with pytest.raises(ToolNotFoundError, match="not executable"):
            require_tool("ffmpeg", tool)

    def test_configured_missing_is_rejected(self, tmp_path: Path):
        with pytest.raises(ToolNotFoundError):
            require_tool("mkvmerge", tmp_path / "mkvmerge")
