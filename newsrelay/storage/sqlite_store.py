"""Seen-set stored in SQLite."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Iterable

import structlog

from ..errors import StorageError
from ..models import Item, SeenRecord, ensure_utc


class SQLiteSeenStore:
    """Persist seen records in a ``seen_items`` table keyed by item id."""

    def __init__(self, path: Path, logger: structlog.BoundLogger | None = None) -> None:
        self.path = path
        self.logger = logger or structlog.get_logger("newsrelay.storage")
        self._lock = Lock()
        self._conn: sqlite3.Connection | None = None

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            self._ensure_schema(conn)
            self._conn = conn
        return self._conn

    @staticmethod
    def _ensure_schema(conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS seen_items (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                url TEXT NOT NULL,
                description TEXT,
                published_at TEXT NOT NULL,
                source_name TEXT NOT NULL
            )
            """
        )
        conn.commit()

    def load_all(self) -> list[SeenRecord]:
        try:
            with self._lock:
                rows = self._connect().execute(
                    "SELECT id, title, url, description, published_at, source_name FROM seen_items"
                ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot read seen-set {self.path}: {exc}", cause=exc) from exc
        return [
            SeenRecord(
                id=row["id"],
                title=row["title"],
                url=row["url"],
                description=row["description"],
                published_at=ensure_utc(datetime.fromisoformat(row["published_at"])),
                source_name=row["source_name"],
            )
            for row in rows
        ]

    def append_new(self, items: Iterable[Item]) -> int:
        rows = [
            (
                item.id,
                item.title,
                item.url,
                item.description,
                item.published_at.isoformat(),
                item.source_name,
            )
            for item in items
        ]
        try:
            with self._lock:
                conn = self._connect()
                before = conn.total_changes
                conn.executemany(
                    "INSERT OR IGNORE INTO seen_items(id, title, url, description, published_at, source_name) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    rows,
                )
                conn.commit()
                added = conn.total_changes - before
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot write seen-set {self.path}: {exc}", cause=exc) from exc
        self.logger.info("seen_items_appended", added=added)
        return added

    def prune_older_than(self, cutoff: datetime) -> int:
        cutoff = ensure_utc(cutoff)
        try:
            with self._lock:
                conn = self._connect()
                stale = self._stale_ids(conn, cutoff)
                conn.executemany("DELETE FROM seen_items WHERE id = ?", [(item_id,) for item_id in stale])
                conn.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot prune seen-set {self.path}: {exc}", cause=exc) from exc
        self.logger.info("seen_items_pruned", removed=len(stale), cutoff=cutoff.isoformat())
        return len(stale)

    @staticmethod
    def _stale_ids(conn: sqlite3.Connection, cutoff: datetime) -> list[str]:
        # ISO strings with varying precision do not sort lexically; compare parsed values
        rows = conn.execute("SELECT id, published_at FROM seen_items").fetchall()
        return [
            row["id"]
            for row in rows
            if ensure_utc(datetime.fromisoformat(row["published_at"])) < cutoff
        ]

    def reset(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
            if self.path.exists():
                self.path.unlink()

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


__all__ = ["SQLiteSeenStore"]
