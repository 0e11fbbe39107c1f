"""Recency ordering and truncation."""

from __future__ import annotations

from typing import Iterable, Sequence

from ..models import Item


def rank(items: Iterable[Item]) -> list[Item]:
    """Newest first; ties keep their input order."""

    return sorted(items, key=lambda item: item.published_at, reverse=True)


def limit(items: Sequence[Item], n: int | None) -> list[Item]:
    if n is None:
        return list(items)
    return list(items[: max(0, n)])


__all__ = ["limit", "rank"]
