"""Execution adapters: transcoder, multiplexer and output-directory guard."""

from vlr.executor.busy import BUSY_MARKER, busy_marker, is_busy
from vlr.executor.interface import (
    ToolNotFoundError,
    TranscodeHandle,
    Transcoder,
    require_tool,
)
from vlr.executor.manifest import ManifestAssembler, rewrite_base_urls
from vlr.executor.transcode import FFmpegProcessHandle, FFmpegTranscoder

__all__ = [
    "BUSY_MARKER",
    "FFmpegProcessHandle",
    "FFmpegTranscoder",
    "ManifestAssembler",
    "ToolNotFoundError",
    "TranscodeHandle",
    "Transcoder",
    "busy_marker",
    "is_busy",
    "require_tool",
    "rewrite_base_urls",
]
