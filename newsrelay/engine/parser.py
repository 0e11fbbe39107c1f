"""Feed document normalisation built on feedparser."""

from __future__ import annotations

import calendar
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable

import feedparser
import structlog
from selectolax.parser import HTMLParser

from ..config import SourceConfig
from ..errors import FailureKind
from ..models import Item, ensure_utc

DATE_FIELDS = ("published", "updated", "created")


class FeedEnvelopeError(ValueError):
    """Raised when a payload is not a readable RSS/Atom document."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _plain_text(value: Any) -> str | None:
    """Strip markup from an HTML fragment and collapse whitespace."""

    text = _text(value)
    if text is None or "<" not in text:
        return text
    tree = HTMLParser(text)
    tree.strip_tags(["script", "style"])
    return _text(" ".join(tree.text(separator=" ", strip=True).split()))


class FeedParser:
    """Turn raw feed bytes into :class:`Item` objects."""

    def __init__(
        self,
        logger: structlog.BoundLogger | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.logger = logger or structlog.get_logger("newsrelay.parser")
        self.clock = clock

    def parse(self, source: SourceConfig, payload: bytes | str) -> list[Item]:
        document = feedparser.parse(payload)
        entries = list(document.get("entries") or [])
        if document.get("bozo") and not entries:
            error = document.get("bozo_exception")
            raise FeedEnvelopeError(f"Unreadable feed from {source.name}: {error}")
        if not entries and not document.get("feed") and not document.get("version"):
            raise FeedEnvelopeError(f"Payload from {source.name} is not an RSS/Atom document")

        items: list[Item] = []
        for index, entry in enumerate(entries):
            item = self.normalise_entry(source, entry, index)
            if item is not None:
                items.append(item)
        return items

    def normalise_entry(self, source: SourceConfig, entry: dict, index: int = 0) -> Item | None:
        title = _text(entry.get("title"))
        url = _text(entry.get("link"))
        if not title or not url:
            self.logger.warning(
                "entry_skipped",
                kind=FailureKind.PARSE_SKIP.value,
                source=source.name,
                index=index,
                reason="missing title" if not title else "missing link",
            )
            return None

        body = self._content(entry)
        description = _plain_text(entry.get("summary")) or body
        return Item.create(
            title=title,
            url=url,
            description=description,
            body=body,
            published_at=self._published_at(source, entry, title),
            source_name=source.name,
        )

    # ------------------------------------------------------------------
    @staticmethod
    def _content(entry: dict) -> str | None:
        blocks = entry.get("content") or []
        values = [_plain_text(block.get("value")) for block in blocks if isinstance(block, dict)]
        joined = "\n".join(value for value in values if value)
        return joined or None

    def _published_at(self, source: SourceConfig, entry: dict, title: str) -> datetime:
        for field in DATE_FIELDS:
            parsed = entry.get(f"{field}_parsed")
            if parsed:
                return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
        for field in DATE_FIELDS:
            raw = _text(entry.get(field))
            if not raw:
                continue
            candidate = self._parse_date_string(raw)
            if candidate is not None:
                return candidate
        self.logger.warning("entry_date_missing", source=source.name, title=title)
        return self.clock()

    @staticmethod
    def _parse_date_string(raw: str) -> datetime | None:
        try:
            return ensure_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
        except ValueError:
            pass
        try:
            return ensure_utc(parsedate_to_datetime(raw))
        except (TypeError, ValueError, IndexError):
            return None


__all__ = ["FeedEnvelopeError", "FeedParser"]
