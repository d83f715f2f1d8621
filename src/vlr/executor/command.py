"""Command building for the transcoder and the multiplexer.

build_ffmpeg_command() turns a RenditionSpec into an ffmpeg argument list;
build_mp4box_command() builds the MP4Box call that stitches finished streams
into the adaptive manifest.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from vlr.domain.enums import RenditionKind
from vlr.domain.models import RenditionSpec, Transform
from vlr.renditions.profile import EncoderSettings, RenditionProfile


# Keyframe interval in frames, aligned with the manifest segment length
GOP_SIZE = 96

# Manifest segment and fragment duration in milliseconds
SEGMENT_MS = 4000

# Small renditions and the sample clip are downmixed for compatibility
SMALL_AUDIO_CHANNELS = 2
MAX_AUDIO_CHANNELS = 6


def build_filter_chain(transform: Transform, height: int) -> str:
    """Build the -vf chain: crop, square pixels, then scale to height."""
    filters: list[str] = []
    if transform.crop is not None:
        w, h, x, y = transform.crop
        filters.append(f"crop={w}:{h}:{x}:{y}")
    if transform.square_pixel_width is not None:
        filters.append(f"scale={transform.square_pixel_width}:ih")
        filters.append("setsar=1")
    filters.append(f"scale=-2:{height}")
    return ",".join(filters)


def build_encoder_args(settings: EncoderSettings) -> list[str]:
    """Build FFmpeg video encoder arguments for a codec family."""
    args = ["-c:v", settings.encoder]
    if settings.crf is not None:
        args.extend(["-crf", str(settings.crf)])
    if settings.preset is not None:
        args.extend(["-preset", settings.preset])
    args.extend(settings.extra_args)
    return args


def build_audio_args(channels: int, downmix: bool) -> list[str]:
    """Build AAC audio arguments for the given source channel count."""
    channels = max(1, min(channels, MAX_AUDIO_CHANNELS))
    if downmix:
        channels = min(channels, SMALL_AUDIO_CHANNELS)
    return ["-c:a", "aac", "-ac", str(channels), "-b:a", f"{64 * channels}k"]


def build_ffmpeg_command(
    ffmpeg_path: Path,
    source: Path,
    spec: RenditionSpec,
    output: Path,
    profile: RenditionProfile,
) -> list[str]:
    """Build FFmpeg command for one rendition attempt.

    Args:
        ffmpeg_path: ffmpeg executable.
        source: Source asset.
        spec: Rendition to produce.
        output: Temp output path. The container is always given explicitly.
        profile: Encoder settings per codec family.

    Returns:
        List of command arguments.
    """
    cmd = [str(ffmpeg_path), "-y", "-hide_banner", "-nostdin"]

    window = spec.transform.window
    if window is not None:
        # Input seeking is fast and frame-accurate when transcoding
        cmd.extend(["-ss", f"{window[0]:.3f}"])
    cmd.extend(["-i", str(source)])
    if window is not None:
        cmd.extend(["-t", f"{window[1]:.3f}"])

    if spec.kind == RenditionKind.AUDIO:
        cmd.extend(["-map", f"0:a:{spec.audio_index}", "-vn"])
        cmd.extend(build_audio_args(spec.audio_channels, downmix=False))
    else:
        cmd.extend(["-map", "0:v:0"])
        if spec.with_audio:
            cmd.extend(["-map", f"0:a:{spec.audio_index}"])
        cmd.extend(["-vf", build_filter_chain(spec.transform, spec.height)])
        if spec.codec is not None:
            cmd.extend(build_encoder_args(profile.encoder_for(spec.codec)))
        cmd.extend(["-pix_fmt", "yuv420p"])
        if spec.large:
            cmd.extend(["-g", str(GOP_SIZE), "-keyint_min", str(GOP_SIZE)])
        if spec.with_audio:
            cmd.extend(build_audio_args(spec.audio_channels, downmix=spec.small))
        else:
            cmd.append("-an")

    cmd.extend(["-sn", "-map_metadata", "-1"])
    if spec.small or spec.kind == RenditionKind.AUDIO:
        cmd.extend(["-movflags", "+faststart"])

    # Progress output to stderr
    cmd.extend(["-stats_period", "1"])

    cmd.extend(["-f", "mp4", str(output)])
    return cmd


def build_mp4box_command(
    mp4box_path: Path,
    manifest_output: Path,
    videos: Sequence[Path],
    audio: Path | None = None,
) -> list[str]:
    """Build the MP4Box call producing an on-demand DASH manifest.

    Video adaptation entries come first in the given order, audio last.
    """
    cmd = [
        str(mp4box_path),
        "-dash",
        str(SEGMENT_MS),
        "-frag",
        str(SEGMENT_MS),
        "-rap",
        "-profile",
        "onDemand",
        "-out",
        str(manifest_output),
    ]
    cmd.extend(f"{video}#video" for video in videos)
    if audio is not None:
        cmd.append(f"{audio}#audio")
    return cmd
