"""File based mutual exclusion for single-run-at-a-time."""

from __future__ import annotations

import os
import time
from pathlib import Path


class RunLockedError(RuntimeError):
    """Another run holds the lock."""


class RunLock:
    """Context manager creating ``path`` for the duration of a run.

    A lock file older than ``timeout_seconds`` is considered stale and taken
    over.
    """

    def __init__(self, path: Path, timeout_seconds: int = 60 * 60) -> None:
        self.path = path
        self.timeout_seconds = timeout_seconds

    def __enter__(self) -> "RunLock":
        self.path.parent.mkdir(parents=True, exist_ok=True)

        if self.path.exists():
            age = time.time() - self.path.stat().st_mtime
            if age < self.timeout_seconds:
                raise RunLockedError(f"Another run is already in progress (lock exists: {self.path}).")
            self.path.unlink(missing_ok=True)

        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as exc:
            raise RunLockedError(f"Another run is already in progress (lock exists: {self.path}).") from exc
        with os.fdopen(fd, "w", encoding="utf-8") as stream:
            stream.write(str(os.getpid()))
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.path.unlink(missing_ok=True)


__all__ = ["RunLock", "RunLockedError"]
