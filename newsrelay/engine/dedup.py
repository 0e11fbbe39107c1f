"""Exclusion of items already recorded in the seen-set."""

from __future__ import annotations

from typing import Collection, Iterable

from ..models import Item, compute_item_id


def exclude(items: Iterable[Item], seen_ids: Collection[str]) -> list[Item]:
    """Drop items whose id is in ``seen_ids``, keeping input order."""

    return [item for item in items if item.id not in seen_ids]


def unique(items: Iterable[Item]) -> list[Item]:
    """Collapse items sharing an id within a single batch, first wins."""

    seen: set[str] = set()
    result: list[Item] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        result.append(item)
    return result


__all__ = ["compute_item_id", "exclude", "unique"]
