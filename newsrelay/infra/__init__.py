"""Infra layer utilities."""

from .lock import RunLock, RunLockedError

__all__ = ["RunLock", "RunLockedError"]
