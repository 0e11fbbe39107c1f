from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from newsrelay.config import StorageConfig
from newsrelay.errors import FailureKind, StorageError
from newsrelay.storage import JsonSeenStore, SeenStore, SQLiteSeenStore, build_seen_store


@pytest.fixture(params=["json", "sqlite"])
def store(request, tmp_path) -> SeenStore:
    if request.param == "json":
        return JsonSeenStore(tmp_path / "seen.json")
    return SQLiteSeenStore(tmp_path / "seen.db")


def _at(day: int) -> datetime:
    return datetime(2024, 5, day, 12, 0, tzinfo=timezone.utc)


def test_empty_store_loads_nothing(store) -> None:
    assert store.load_all() == []


def test_append_is_idempotent_by_id(store, make_item) -> None:
    a = make_item(title="A", url="https://example.com/a")
    b = make_item(title="B", url="https://example.com/b")

    assert store.append_new([a]) == 1
    assert store.append_new([a, b]) == 1
    assert store.append_new([a, b]) == 0
    assert sorted(record.id for record in store.load_all()) == sorted([a.id, b.id])


def test_prune_removes_records_older_than_cutoff(store, make_item) -> None:
    old = make_item(title="old", published_at=_at(1))
    edge = make_item(title="edge", published_at=_at(10))
    new = make_item(title="new", published_at=_at(20))
    store.append_new([old, edge, new])

    removed = store.prune_older_than(_at(10))

    assert removed == 1
    assert {record.title for record in store.load_all()} == {"edge", "new"}


def test_reset_clears_everything(store, make_item) -> None:
    store.append_new([make_item()])
    store.reset()
    assert store.load_all() == []


def test_json_store_file_shape(tmp_path, make_item) -> None:
    path = tmp_path / "seen.json"
    item = make_item(description=None)
    JsonSeenStore(path).append_new([item])

    document = json.loads(path.read_text(encoding="utf-8"))
    assert document == {
        "items": [
            {
                "id": item.id,
                "title": item.title,
                "url": item.url,
                "publishedAt": item.published_at.isoformat(),
                "sourceName": item.source_name,
            }
        ]
    }


def test_json_store_invalid_shape_is_treated_as_empty(tmp_path) -> None:
    path = tmp_path / "seen.json"
    path.write_text(json.dumps({"unexpected": True}), encoding="utf-8")
    assert JsonSeenStore(path).load_all() == []


def test_json_store_corrupt_file_raises_storage_error(tmp_path) -> None:
    path = tmp_path / "seen.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError) as excinfo:
        JsonSeenStore(path).load_all()
    assert excinfo.value.failure.kind is FailureKind.STORAGE


def test_json_store_skips_malformed_records(tmp_path, make_item) -> None:
    good = make_item()
    path = tmp_path / "seen.json"
    path.write_text(json.dumps({"items": [{"title": "no id"}, good.to_record()]}), encoding="utf-8")
    assert [record.id for record in JsonSeenStore(path).load_all()] == [good.id]


def test_build_seen_store_selects_backend(tmp_path) -> None:
    json_store = build_seen_store(StorageConfig(path="seen.json"), tmp_path)
    sqlite_store = build_seen_store(StorageConfig(backend="sqlite", path="seen.db"), tmp_path)
    assert isinstance(json_store, JsonSeenStore)
    assert json_store.path == (tmp_path / "seen.json").resolve()
    assert isinstance(sqlite_store, SQLiteSeenStore)
    assert isinstance(sqlite_store, SeenStore)


def test_close_keeps_records_and_store_stays_usable(store, make_item) -> None:
    a = make_item(title="A", url="https://example.com/a")
    b = make_item(title="B", url="https://example.com/b")
    store.append_new([a])

    store.close()
    store.close()

    assert [record.id for record in store.load_all()] == [a.id]
    assert store.append_new([b]) == 1
    store.close()


def test_sqlite_close_releases_connection(tmp_path, make_item) -> None:
    sqlite_store = SQLiteSeenStore(tmp_path / "seen.db")
    sqlite_store.append_new([make_item()])
    assert sqlite_store._conn is not None

    sqlite_store.close()

    assert sqlite_store._conn is None
    assert len(sqlite_store.load_all()) == 1
