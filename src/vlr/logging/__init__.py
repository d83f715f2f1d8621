"""Logging setup for VLR: formatters, handlers and asset context."""

from vlr.logging.config import configure_logging
from vlr.logging.context import (
    AssetContextFilter,
    asset_context,
    get_asset_context,
    task_context,
)
from vlr.logging.handlers import JSONFormatter

__all__ = [
    "AssetContextFilter",
    "JSONFormatter",
    "asset_context",
    "configure_logging",
    "get_asset_context",
    "task_context",
]
