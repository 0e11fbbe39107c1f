"""Seen-set stored as a single JSON document."""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any, Iterable

import structlog

from ..errors import StorageError
from ..models import Item, SeenRecord, ensure_utc


class JsonSeenStore:
    """Persist ``{"items": [...]}`` records at ``path``.

    A missing file is an empty seen-set. A document with the wrong shape is
    logged and treated as empty; unreadable or non-JSON content raises
    :class:`StorageError`.
    """

    def __init__(self, path: Path, logger: structlog.BoundLogger | None = None) -> None:
        self.path = path
        self.logger = logger or structlog.get_logger("newsrelay.storage")
        self._lock = Lock()

    def load_all(self) -> list[SeenRecord]:
        with self._lock:
            return self._read()

    def append_new(self, items: Iterable[Item]) -> int:
        with self._lock:
            records = self._read()
            known = {record.id for record in records}
            added = 0
            for item in items:
                if item.id in known:
                    continue
                records.append(SeenRecord.from_item(item))
                known.add(item.id)
                added += 1
            if added:
                self._write(records)
        self.logger.info("seen_items_appended", added=added, total=len(records))
        return added

    def prune_older_than(self, cutoff: datetime) -> int:
        cutoff = ensure_utc(cutoff)
        with self._lock:
            records = self._read()
            kept = [record for record in records if record.published_at >= cutoff]
            removed = len(records) - len(kept)
            if removed:
                self._write(kept)
        self.logger.info("seen_items_pruned", removed=removed, cutoff=cutoff.isoformat())
        return removed

    def reset(self) -> None:
        with self._lock:
            if self.path.exists():
                self.path.unlink()

    def close(self) -> None:
        # Files are opened per call
        return None

    # ------------------------------------------------------------------
    def _read(self) -> list[SeenRecord]:
        if not self.path.exists():
            return []
        try:
            payload: Any = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(f"Cannot read seen-set {self.path}: {exc}", cause=exc) from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
            self.logger.warning("seen_store_invalid_format", path=str(self.path))
            return []
        records: list[SeenRecord] = []
        for raw in payload["items"]:
            try:
                records.append(SeenRecord.from_record(raw))
            except (KeyError, TypeError, ValueError) as exc:
                self.logger.warning("seen_record_skipped", path=str(self.path), error=str(exc))
        return records

    def _write(self, records: list[SeenRecord]) -> None:
        document = {"items": [record.to_record() for record in records]}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".seen-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as stream:
                json.dump(document, stream, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            raise StorageError(f"Cannot write seen-set {self.path}: {exc}", cause=exc) from exc


__all__ = ["JsonSeenStore"]
