"""Output file-naming contract.

Every artifact derives its name from the asset stem:

    <stem>.<height>p.<codec>.mp4          large rendition
    <stem>.<height>p.<codec>.small.mp4    small rendition
    <stem>.audio.mp4                      audio-only stream
    <stem>.sample.mp4                     preview clip
    <stem>.mpd                            adaptive manifest

While being written, a file carries the ".tmp" marker before its extension
(``Heat.1080p.av1.tmp.mp4``). The marker disappears only through finalize(),
so a directory listing never shows a partial file under its final name.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from vlr.domain.enums import CodecFamily
from vlr.domain.models import ArtifactKey, ArtifactPresence

logger = logging.getLogger(__name__)

TEMP_MARKER = ".tmp"
MANIFEST_SUFFIX = ".mpd"
STREAM_SUFFIX = ".mp4"
AUDIO_NAME = "audio"
SAMPLE_NAME = "sample"

_RENDITION_NAME = re.compile(
    r"^(?P<height>\d+)p\.(?P<codec>av1|hevc|h264)(?P<small>\.small)?$"
)


def rendition_name(height: int, codec: CodecFamily, small: bool = False) -> str:
    """Task name of a video rendition, e.g. "1080p.av1" or "320p.h264.small"."""
    name = f"{height}p.{codec.value}"
    return f"{name}.small" if small else name


def stream_path(output_dir: Path, stem: str, name: str) -> Path:
    """Final path of an elementary stream or clip named by its task name."""
    return output_dir / f"{stem}.{name}{STREAM_SUFFIX}"


def rendition_path(
    output_dir: Path, stem: str, height: int, codec: CodecFamily, small: bool = False
) -> Path:
    return stream_path(output_dir, stem, rendition_name(height, codec, small))


def audio_path(output_dir: Path, stem: str) -> Path:
    return stream_path(output_dir, stem, AUDIO_NAME)


def sample_path(output_dir: Path, stem: str) -> Path:
    return stream_path(output_dir, stem, SAMPLE_NAME)


def manifest_path(output_dir: Path, stem: str) -> Path:
    return output_dir / f"{stem}{MANIFEST_SUFFIX}"


def error_report_path(source: Path) -> Path:
    """Path of the manifest error report, written beside the asset."""
    return source.with_name(f"{source.stem}.manifest-error.txt")


def temp_path(final: Path) -> Path:
    """Temporary name for a final path: marker inserted before the suffix."""
    return final.with_name(f"{final.stem}{TEMP_MARKER}{final.suffix}")


def is_temp_path(path: Path) -> bool:
    return Path(path.stem).suffix == TEMP_MARKER


def finalize(temp: Path, final: Path) -> Path:
    """Atomically move a finished temp file to its final name.

    Raises:
        FileNotFoundError: If the temp file does not exist.
        OSError: If the rename fails.
    """
    os.replace(temp, final)
    logger.debug("Finalized %s", final.name, extra={"artifact": str(final)})
    return final


def _artifact_part(file_name: str, stem: str) -> str | None:
    """Return the part between "<stem>." and the suffix, or None."""
    prefix = f"{stem}."
    if file_name == f"{stem}{MANIFEST_SUFFIX}":
        return ""
    if not file_name.startswith(prefix) or not file_name.endswith(STREAM_SUFFIX):
        return None
    return file_name[len(prefix) : -len(STREAM_SUFFIX)]


def scan_artifacts(output_dir: Path, stem: str) -> ArtifactPresence:
    """Build the presence map for an asset from a directory listing.

    Temp files and files belonging to other assets are ignored.
    """
    if not output_dir.is_dir():
        return ArtifactPresence()

    renditions: set[ArtifactKey] = set()
    has_audio = has_manifest = has_sample = False

    for entry in output_dir.iterdir():
        if not entry.is_file():
            continue
        part = _artifact_part(entry.name, stem)
        if part is None:
            continue
        if part == "":
            has_manifest = True
        elif part == AUDIO_NAME:
            has_audio = True
        elif part == SAMPLE_NAME:
            has_sample = True
        else:
            match = _RENDITION_NAME.match(part)
            if match:
                renditions.add(
                    ArtifactKey(
                        height=int(match.group("height")),
                        codec=CodecFamily(match.group("codec")),
                        large=match.group("small") is None,
                    )
                )

    return ArtifactPresence(
        renditions=frozenset(renditions),
        has_audio=has_audio,
        has_manifest=has_manifest,
        has_sample=has_sample,
    )


def cleanup_temp_files(output_dir: Path, stem: str) -> list[Path]:
    """Delete leftover temp files of an asset.

    Returns:
        Paths that were removed.
    """
    removed: list[Path] = []
    if not output_dir.is_dir():
        return removed

    for entry in output_dir.iterdir():
        if not entry.is_file() or not is_temp_path(entry):
            continue
        final_name = entry.name[: -len(TEMP_MARKER + entry.suffix)] + entry.suffix
        if _artifact_part(final_name, stem) is None:
            continue
        try:
            entry.unlink()
        except FileNotFoundError:
            continue
        removed.append(entry)
        logger.debug("Removed temp file %s", entry.name)

    return removed
