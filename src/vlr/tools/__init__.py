"""Parsers for external tool output."""

from vlr.tools.ffmpeg_progress import FFmpegProgress, parse_progress_line

__all__ = ["FFmpegProgress", "parse_progress_line"]
