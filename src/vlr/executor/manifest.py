"""Manifest assembly.

Once every required elementary stream exists under its final name, MP4Box
combines them into one DASH manifest. The manifest is written to a temp
name, its BaseURL references are reduced to bare file names, and only then
is it renamed into place. On failure the temp file is removed and an error
report is left beside the asset.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

from vlr.core.process import ProcessError, run_process
from vlr.executor.command import build_mp4box_command
from vlr.executor.interface import ToolNotFoundError, require_tool
from vlr.jobs.exceptions import ManifestError
from vlr.renditions import naming

logger = logging.getLogger(__name__)

_BASE_URL = re.compile(r"(<BaseURL(?:\s[^>]*)?>)(.*?)(</BaseURL>)", re.DOTALL)
_PATH_SEPARATORS = re.compile(r"[/\\]")
# A bare & that does not start a named or numeric entity
_BARE_AMPERSAND = re.compile(r"&(?!(?:[A-Za-z][A-Za-z0-9]*|#\d+|#[xX][0-9A-Fa-f]+);)")
_MARKUP_CHARS = {"<": "&lt;", ">": "&gt;", '"': "&quot;"}


def escape_reference(value: str) -> str:
    """HTML-escape a reference value, leaving existing entities alone."""
    value = _BARE_AMPERSAND.sub("&amp;", value)
    for char, entity in _MARKUP_CHARS.items():
        value = value.replace(char, entity)
    return value


def rewrite_base_urls(manifest_text: str) -> str:
    """Reduce every BaseURL value to its base name, escaped for markup."""

    def _rewrite(match: re.Match[str]) -> str:
        value = _PATH_SEPARATORS.split(match.group(2).strip())[-1]
        return f"{match.group(1)}{escape_reference(value)}{match.group(3)}"

    return _BASE_URL.sub(_rewrite, manifest_text)


def write_error_report(source: Path, message: str, output: str = "") -> Path:
    """Write the manifest error report beside the asset.

    Returns:
        Path of the report.
    """
    report = naming.error_report_path(source)
    timestamp = datetime.now(timezone.utc).isoformat()
    lines = [
        f"Manifest assembly failed for {source.name}",
        f"Time: {timestamp}",
        "",
        message.rstrip(),
    ]
    if output.strip():
        lines.extend(["", "--- multiplexer output ---", output.rstrip()])
    report.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return report


class ManifestAssembler:
    """Combine finished streams into the adaptive manifest with MP4Box."""

    def __init__(self, mp4box_path: Path | None = None) -> None:
        self._configured_path = mp4box_path
        self._tool_path: Path | None = None

    @property
    def tool_path(self) -> Path:
        """Get path to MP4Box, verifying availability.

        Raises:
            ToolNotFoundError: If MP4Box is not available.
        """
        if self._tool_path is None:
            self._tool_path = require_tool("MP4Box", self._configured_path)
        return self._tool_path

    async def assemble(
        self,
        source: Path,
        manifest: Path,
        videos: Sequence[Path],
        audio: Path | None = None,
    ) -> Path:
        """Build the manifest at its final path.

        Args:
            source: Source asset, for the error report location.
            manifest: Final manifest path.
            videos: Large rendition streams, listed in manifest order.
            audio: Separate audio stream, if any.

        Returns:
            The final manifest path.

        Raises:
            ManifestError: On any failure, after writing the error report.
        """
        temp = naming.temp_path(manifest)
        try:
            missing = [p for p in [*videos, audio] if p is not None and not p.is_file()]
            if missing:
                raise ManifestError(
                    "Manifest inputs missing: " + ", ".join(p.name for p in missing)
                )

            temp.unlink(missing_ok=True)
            cmd = build_mp4box_command(self.tool_path, temp, videos, audio)
            logger.info(
                "Assembling manifest %s from %d stream(s)",
                manifest.name,
                len(videos) + (1 if audio is not None else 0),
            )
            try:
                await run_process(cmd, strict_exit=True)
            except ProcessError as e:
                raise ManifestError(
                    f"MP4Box failed (exit {e.code}): {e}", e.output
                ) from e

            if not temp.is_file():
                raise ManifestError(f"MP4Box did not write {temp.name}")

            text = temp.read_text(encoding="utf-8")
            temp.write_text(rewrite_base_urls(text), encoding="utf-8")
            naming.finalize(temp, manifest)
        except ManifestError as e:
            self._fail(source, temp, e)
            raise
        except ToolNotFoundError as e:
            error = ManifestError(str(e))
            self._fail(source, temp, error)
            raise error from e
        except OSError as e:
            error = ManifestError(f"Manifest I/O failed: {e}")
            self._fail(source, temp, error)
            raise error from e

        logger.info("Manifest written: %s", manifest.name)
        return manifest

    def _fail(self, source: Path, temp: Path, error: ManifestError) -> None:
        temp.unlink(missing_ok=True)
        try:
            error.report_path = write_error_report(source, str(error), error.output)
        except OSError as e:
            logger.error("Could not write manifest error report: %s", e)
            return
        logger.error(
            "Manifest assembly failed: %s (report: %s)",
            error,
            error.report_path.name,
        )
