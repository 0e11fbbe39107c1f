"""Seen-set persistence port."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol, runtime_checkable

from ..models import Item, SeenRecord


@runtime_checkable
class SeenStore(Protocol):
    """Records of items already delivered, keyed by item id."""

    def load_all(self) -> list[SeenRecord]:
        ...

    def append_new(self, items: Iterable[Item]) -> int:
        ...

    def prune_older_than(self, cutoff: datetime) -> int:
        ...

    def reset(self) -> None:
        ...

    def close(self) -> None:
        """Release handles held by the backend; later calls reopen as needed."""


__all__ = ["SeenStore"]
