"""Core item model flowing through the relay pipeline."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


def compute_item_id(url: str, title: str) -> str:
    """Return the content-addressed identity of an item.

    The digest covers ``url`` immediately followed by ``title`` (UTF-8, no
    separator). Persisted seen-sets depend on this exact scheme.
    """

    return hashlib.sha256((url + title).encode("utf-8")).hexdigest()


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(slots=True, frozen=True)
class Item:
    """A normalized feed entry."""

    id: str
    title: str
    url: str
    published_at: datetime
    source_name: str
    description: str | None = None
    body: str | None = None

    @classmethod
    def create(
        cls,
        *,
        title: str,
        url: str,
        published_at: datetime,
        source_name: str,
        description: str | None = None,
        body: str | None = None,
    ) -> "Item":
        return cls(
            id=compute_item_id(url, title),
            title=title,
            url=url,
            published_at=ensure_utc(published_at),
            source_name=source_name,
            description=description,
            body=body,
        )

    def to_record(self) -> dict[str, Any]:
        """Return the persisted identity subset using the on-disk key names."""

        return SeenRecord.from_item(self).to_record()


@dataclass(slots=True, frozen=True)
class SeenRecord:
    """Identity record of an item delivered in an earlier run."""

    id: str
    title: str
    url: str
    published_at: datetime
    source_name: str
    description: str | None = None

    @classmethod
    def from_item(cls, item: Item) -> "SeenRecord":
        return cls(
            id=item.id,
            title=item.title,
            url=item.url,
            published_at=item.published_at,
            source_name=item.source_name,
            description=item.description,
        )

    @classmethod
    def from_record(cls, payload: dict[str, Any]) -> "SeenRecord":
        published = datetime.fromisoformat(str(payload["publishedAt"]).replace("Z", "+00:00"))
        return cls(
            id=str(payload["id"]),
            title=str(payload.get("title", "")),
            url=str(payload.get("url", "")),
            published_at=ensure_utc(published),
            source_name=str(payload.get("sourceName", "")),
            description=payload.get("description") or None,
        )

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {"id": self.id, "title": self.title, "url": self.url}
        if self.description:
            record["description"] = self.description
        record["publishedAt"] = self.published_at.isoformat()
        record["sourceName"] = self.source_name
        return record


__all__ = ["Item", "SeenRecord", "compute_item_id", "ensure_utc"]
