"""mkvmerge-based implementation of the MediaIntrospector protocol."""

import json
import subprocess  # nosec B404 - for TimeoutExpired
from pathlib import Path

from vlr.core.subprocess_utils import run_command
from vlr.domain.enums import Classification
from vlr.domain.models import SourceDescriptor
from vlr.executor.interface import require_tool
from vlr.introspector.interface import MediaIntrospectionError
from vlr.introspector.parsers import parse_mkvmerge_output

# mkvmerge exits 1 when it only printed warnings
_MKVMERGE_OK_CODES = frozenset({0, 1})


class MkvmergeIntrospector:
    """Describe Matroska sources with ``mkvmerge -J``."""

    TIMEOUT = 60

    def __init__(self, mkvmerge_path: Path | None = None) -> None:
        """Initialize the introspector.

        Raises:
            ToolNotFoundError: If mkvmerge is not available.
        """
        self.tool_path = require_tool("mkvmerge", mkvmerge_path)

    def get_descriptor(
        self, path: Path, classification: Classification | None = None
    ) -> SourceDescriptor:
        if not path.exists():
            raise MediaIntrospectionError(f"File not found: {path}")

        try:
            stdout, stderr, returncode = run_command(
                [self.tool_path, "-J", path], timeout=self.TIMEOUT
            )
        except subprocess.TimeoutExpired as e:
            raise MediaIntrospectionError(
                f"mkvmerge timed out for {path} after {e.timeout}s"
            ) from e
        except OSError as e:
            raise MediaIntrospectionError(f"Could not run mkvmerge: {e}") from e

        if returncode not in _MKVMERGE_OK_CODES:
            raise MediaIntrospectionError(
                f"mkvmerge failed for {path}: {(stderr or stdout).strip()}"
            )

        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise MediaIntrospectionError(
                f"Invalid mkvmerge output for {path}: {e}"
            ) from e

        return parse_mkvmerge_output(data, path, classification)
