"""Pure parsers turning mkvmerge identification JSON into descriptors."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from vlr.domain.enums import Classification
from vlr.domain.models import SourceDescriptor
from vlr.introspector.interface import MediaIntrospectionError

logger = logging.getLogger(__name__)

EXTRAS_DIRECTORIES = frozenset({"-extras-", "extras"})
_EPISODE = re.compile(r"\bS\d{1,2}\s?E\d{1,3}\b", re.IGNORECASE)


def classify_path(path: Path) -> Classification:
    """Classify an asset from its location and name.

    Files below an "Extras" (or "-Extras-") directory are extras, names with
    an SxxEyy episode code are TV, anything else is a movie.
    """
    for parent in path.parents:
        if parent.name.casefold() in EXTRAS_DIRECTORIES:
            return Classification.EXTRA
    if _EPISODE.search(path.stem):
        return Classification.TV
    return Classification.MOVIE


def parse_dimensions(value: str | None) -> tuple[int, int]:
    """Parse "1920x1080" into (1920, 1080); (0, 0) when missing or malformed."""
    if not value:
        return 0, 0
    width, sep, height = value.partition("x")
    if not sep:
        return 0, 0
    try:
        return int(width), int(height)
    except ValueError:
        logger.warning("Ignoring malformed dimensions: %r", value)
        return 0, 0


def _tracks_of(data: dict[str, Any], track_type: str) -> list[dict[str, Any]]:
    tracks = data.get("tracks") or []
    return [t for t in tracks if isinstance(t, dict) and t.get("type") == track_type]


def _primary_audio(
    tracks: list[dict[str, Any]],
) -> tuple[int, dict[str, Any]] | None:
    """Return the default audio track and its audio-relative index."""
    for index, track in enumerate(tracks):
        if (track.get("properties") or {}).get("default_track"):
            return index, track
    return (0, tracks[0]) if tracks else None


def parse_mkvmerge_output(
    data: dict[str, Any],
    path: Path,
    classification: Classification | None = None,
) -> SourceDescriptor:
    """Build a SourceDescriptor from ``mkvmerge -J`` output.

    The presence map is left empty; the pipeline fills it from the output
    directory.

    Raises:
        MediaIntrospectionError: If the data is not an identification result.
    """
    if not isinstance(data, dict) or "container" not in data:
        raise MediaIntrospectionError(f"Unexpected mkvmerge output for {path}")

    container = data.get("container") or {}
    if container.get("recognized") is False:
        raise MediaIntrospectionError(f"Unrecognized container: {path}")

    properties = container.get("properties") or {}
    duration_ns = properties.get("duration") or 0
    try:
        duration_us = int(duration_ns) // 1000
    except (TypeError, ValueError):
        duration_us = 0

    width = height = display_width = display_height = 0
    stereoscopic = False
    videos = _tracks_of(data, "video")
    if videos:
        video = videos[0].get("properties") or {}
        width, height = parse_dimensions(video.get("pixel_dimensions"))
        display_width, display_height = parse_dimensions(
            video.get("display_dimensions")
        )
        if not display_width or not display_height:
            display_width, display_height = width, height
        stereoscopic = bool(video.get("stereo_mode"))

    audio_channels = audio_index = 0
    primary = _primary_audio(_tracks_of(data, "audio"))
    if primary is not None:
        audio_index, audio = primary
        channels = (audio.get("properties") or {}).get("audio_channels")
        audio_channels = channels if isinstance(channels, int) and channels > 0 else 0

    return SourceDescriptor(
        path=path,
        width=width,
        height=height,
        display_width=display_width,
        display_height=display_height,
        duration_us=duration_us,
        audio_channels=audio_channels,
        audio_index=audio_index,
        classification=classification or classify_path(path),
        stereoscopic=stereoscopic,
    )
