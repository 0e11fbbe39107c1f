"""Keyword relevance predicate over item text."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from ..config import MatchConfig, MatchStrategy
from ..models import Item


class MatchField(str, Enum):
    TITLE = "title"
    DESCRIPTION = "description"
    BODY = "body"


# Searchable text is always assembled in this order
FIELD_ORDER = (MatchField.TITLE, MatchField.DESCRIPTION, MatchField.BODY)


@dataclass(slots=True, frozen=True)
class MatchSpec:
    """Keywords plus how and where to look for them."""

    keywords: tuple[str, ...]
    strategy: MatchStrategy = MatchStrategy.ANY
    case_sensitive: bool = False
    fields: frozenset[MatchField] = field(
        default_factory=lambda: frozenset({MatchField.TITLE, MatchField.DESCRIPTION})
    )

    def __post_init__(self) -> None:
        if not self.keywords:
            raise ValueError("MatchSpec requires at least one keyword")
        if not self.fields:
            raise ValueError("MatchSpec requires at least one field")

    @classmethod
    def from_config(cls, keywords: Iterable[str], config: MatchConfig | None = None) -> "MatchSpec":
        config = config or MatchConfig()
        return cls(
            keywords=tuple(keywords),
            strategy=config.strategy,
            case_sensitive=config.case_sensitive,
            fields=frozenset(MatchField(name) for name in config.fields),
        )


def searchable_text(item: Item, fields: frozenset[MatchField]) -> str:
    parts: list[str] = []
    for name in FIELD_ORDER:
        if name not in fields:
            continue
        value = getattr(item, name.value)
        if value:
            parts.append(value)
    return " ".join(parts)


def matches(item: Item, spec: MatchSpec) -> bool:
    text = searchable_text(item, spec.fields)
    keywords: Iterable[str] = spec.keywords
    if not spec.case_sensitive:
        text = text.casefold()
        keywords = [keyword.casefold() for keyword in spec.keywords]
    hits = (keyword in text for keyword in keywords)
    if spec.strategy is MatchStrategy.ALL:
        return all(hits)
    return any(hits)


def filter_items(items: Iterable[Item], spec: MatchSpec | None) -> list[Item]:
    """Return items satisfying ``spec``; ``None`` means no keyword filtering."""

    if spec is None:
        return list(items)
    return [item for item in items if matches(item, spec)]


__all__ = ["MatchField", "MatchSpec", "MatchStrategy", "filter_items", "matches", "searchable_text"]
