"""Seen-set storage backends."""

from __future__ import annotations

from pathlib import Path

import structlog

from ..config import StorageConfig
from .base import SeenStore
from .json_store import JsonSeenStore
from .sqlite_store import SQLiteSeenStore


def build_seen_store(
    config: StorageConfig,
    base_dir: Path,
    logger: structlog.BoundLogger | None = None,
) -> SeenStore:
    path = config.resolved_path(base_dir)
    if config.backend == "sqlite":
        return SQLiteSeenStore(path, logger=logger)
    return JsonSeenStore(path, logger=logger)


__all__ = ["JsonSeenStore", "SQLiteSeenStore", "SeenStore", "build_seen_store"]
