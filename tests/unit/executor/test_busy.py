"""Tests for the output directory busy marker."""

import os
from pathlib import Path

import pytest

from vlr.executor.busy import BUSY_MARKER, busy_marker, is_busy
from vlr.jobs.exceptions import OutputDirectoryBusyError


class TestBusyMarker:
    def test_marker_held_for_duration_of_block(self, tmp_path: Path):
        with busy_marker(tmp_path) as marker:
            assert marker == tmp_path / BUSY_MARKER
            assert is_busy(tmp_path)
            assert marker.read_text() == f"{os.getpid()}\n"

        assert not is_busy(tmp_path)

    def test_marker_removed_on_error(self, tmp_path: Path):
        with pytest.raises(RuntimeError):
            with busy_marker(tmp_path):
                raise RuntimeError("transcode aborted")

        assert not is_busy(tmp_path)

    def test_second_holder_is_refused(self, tmp_path: Path):
        with busy_marker(tmp_path):
            with pytest.raises(OutputDirectoryBusyError) as exc_info:
                with busy_marker(tmp_path):
                    pass

            assert exc_info.value.directory == tmp_path
            # The refused attempt must not remove the holder's marker
            assert is_busy(tmp_path)

    def test_stale_marker_blocks(self, tmp_path: Path):
        (tmp_path / BUSY_MARKER).write_text("99999\n")

        with pytest.raises(OutputDirectoryBusyError):
            with busy_marker(tmp_path):
                pass

        assert is_busy(tmp_path)
