"""FFmpeg progress parsing utilities.

Transcoders report progress on their diagnostic stream either as an explicit
percent token ("42%" or "(42/100)") or as ffmpeg's stderr status line:

    frame= 1234 fps= 30 q=28.0 size= 2048kB time=00:01:23.45 bitrate=... speed=2.0x

parse_progress_line() understands both. Lines that carry neither token return
None; nothing here raises on malformed input.
"""

import re
from dataclasses import dataclass


@dataclass
class FFmpegProgress:
    """Parsed transcoder progress."""

    percent: float | None = None
    out_time_us: int | None = None  # Output time in microseconds
    speed: float | None = None  # Media seconds per wall second

    @property
    def out_time_seconds(self) -> float | None:
        """Get output time in seconds."""
        if self.out_time_us is not None:
            return self.out_time_us / 1_000_000
        return None

    def get_percent(self, duration_us: int | None) -> float | None:
        """Resolve a percentage, converting elapsed time when needed.

        Args:
            duration_us: Expected output duration in microseconds.

        Returns:
            Progress percentage (0.0 to 100.0), or None if unknown.
        """
        if self.percent is not None:
            return min(100.0, max(0.0, self.percent))
        if self.out_time_us is None or not duration_us or duration_us <= 0:
            return None
        return min(100.0, (self.out_time_us / duration_us) * 100)


PERCENT_PATTERNS = (
    re.compile(r"\((\d+(?:\.\d+)?)/100\)"),
    re.compile(r"(?<![\w.])(\d+(?:\.\d+)?)\s?%"),
)
TIME_PATTERN = re.compile(r"time=\s*(-?)(\d+):(\d{2}):(\d{2})(?:\.(\d+))?")
SPEED_PATTERN = re.compile(r"speed=\s*(\d+(?:\.\d+)?)x")


def parse_time_token(line: str) -> int | None:
    """Extract a time=HH:MM:SS(.ff) token as microseconds.

    Negative timestamps (emitted before the first frame) clamp to zero.
    """
    match = TIME_PATTERN.search(line)
    if not match:
        return None
    negative, hours, minutes, seconds, fraction = match.groups()
    if negative:
        return 0
    total_us = (int(hours) * 3600 + int(minutes) * 60 + int(seconds)) * 1_000_000
    if fraction:
        # Scale any number of fractional digits to microseconds
        total_us += int(fraction[:6].ljust(6, "0"))
    return total_us


def parse_percent_token(line: str) -> float | None:
    """Extract an explicit percent token, or None."""
    for pattern in PERCENT_PATTERNS:
        match = pattern.search(line)
        if match:
            value = float(match.group(1))
            if 0.0 <= value <= 100.0:
                return value
    return None


def parse_progress_line(line: str) -> FFmpegProgress | None:
    """Parse one line of transcoder diagnostic output.

    Args:
        line: A single line, without its terminator.

    Returns:
        Parsed FFmpegProgress, or None if the line carries no progress.
    """
    if not line:
        return None

    out_time_us = parse_time_token(line)
    # ffmpeg status lines mention "time=" and never a percent, so only look
    # for percent tokens elsewhere
    percent = parse_percent_token(line) if out_time_us is None else None
    if out_time_us is None and percent is None:
        return None

    speed = None
    speed_match = SPEED_PATTERN.search(line)
    if speed_match:
        speed = float(speed_match.group(1))

    return FFmpegProgress(percent=percent, out_time_us=out_time_us, speed=speed)
