"""Busy marker for output directories.

A run holds a marker file in the output directory for its whole duration.
Another run that finds the marker declines the asset instead of racing it.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from vlr.jobs.exceptions import OutputDirectoryBusyError

logger = logging.getLogger(__name__)

BUSY_MARKER = ".vlr-busy"


def marker_path(output_dir: Path) -> Path:
    return output_dir / BUSY_MARKER


def is_busy(output_dir: Path) -> bool:
    return marker_path(output_dir).exists()


@contextmanager
def busy_marker(output_dir: Path) -> Iterator[Path]:
    """Hold the busy marker of an output directory.

    The marker is created atomically (O_CREAT | O_EXCL) and removed on exit,
    whether or not the body raised.

    Yields:
        Path of the marker file.

    Raises:
        OutputDirectoryBusyError: If another run holds the marker.
    """
    marker = marker_path(output_dir)
    try:
        fd = os.open(marker, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError as e:
        raise OutputDirectoryBusyError(output_dir, marker) from e

    try:
        with os.fdopen(fd, "w") as f:
            f.write(f"{os.getpid()}\n")
        logger.debug("Acquired busy marker %s", marker)
        yield marker
    finally:
        marker.unlink(missing_ok=True)
        logger.debug("Released busy marker %s", marker)
