"""Asset context for structured logging.

The asset being rendered, and optionally the rendition task, are kept in
contextvars and injected into every log record by AssetContextFilter.
asyncio tasks copy the context when created, so a rendition coroutine that
enters task_context() tags only its own records.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_asset: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "asset", default=None
)
_asset_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "asset_path", default=None
)
_task: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "task", default=None
)


@contextmanager
def asset_context(
    asset: str, asset_path: Path | str | None = None
) -> Generator[None, None, None]:
    """Tag log records with the asset being processed.

    Args:
        asset: Short asset name, usually the file stem.
        asset_path: Full path to the source file.

    Example:
        with asset_context("Heat (1995)", "/library/Heat (1995).mkv"):
            logger.info("Planning renditions")
    """
    asset_token = _asset.set(asset)
    path_token = _asset_path.set(str(asset_path) if asset_path is not None else None)
    try:
        yield
    finally:
        _asset.reset(asset_token)
        _asset_path.reset(path_token)


@contextmanager
def task_context(task: str) -> Generator[None, None, None]:
    """Tag log records with the rendition task name."""
    token = _task.set(task)
    try:
        yield
    finally:
        _task.reset(token)


def get_asset_context() -> tuple[str | None, str | None, str | None]:
    """Get current context.

    Returns:
        Tuple of (asset, asset_path, task), any may be None.
    """
    return _asset.get(), _asset_path.get(), _task.get()


class AssetContextFilter(logging.Filter):
    """Logging filter that injects asset context into log records.

    Adds asset, asset_path and task attributes for JSON output, and a
    compact asset_tag such as "[Heat (1995):1080p.av1] " for text output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        asset, asset_path, task = get_asset_context()

        record.asset = asset
        record.asset_path = asset_path
        record.task = task

        if asset and task:
            record.asset_tag = f"[{asset}:{task}] "
        elif asset:
            record.asset_tag = f"[{asset}] "
        elif task:
            record.asset_tag = f"[{task}] "
        else:
            record.asset_tag = ""

        return True  # Never filter out records
