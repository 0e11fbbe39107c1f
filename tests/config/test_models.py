from __future__ import annotations

from pathlib import Path

import pytest

from newsrelay.config import (
    DeliveryConfig,
    FeedsConfig,
    GlobalConfig,
    MatchConfig,
    RetryConfig,
    ScheduleConfig,
    ScheduleType,
    SourceConfig,
    SourceKind,
    StorageConfig,
)


def test_source_defaults(sample_source_config) -> None:
    source = sample_source_config()
    assert source.kind is SourceKind.RSS
    assert source.enabled is True


@pytest.mark.parametrize("url", ["ftp://example.com/feed", "example.com/feed", "https://"])
def test_source_rejects_non_http_urls(url: str) -> None:
    with pytest.raises(ValueError):
        SourceConfig(name="Bad", url=url)


def test_source_rejects_blank_name() -> None:
    with pytest.raises(ValueError):
        SourceConfig(name="   ", url="https://example.com/feed")


def test_source_kind_must_be_known() -> None:
    with pytest.raises(ValueError):
        SourceConfig(name="X", url="https://example.com/feed", kind="json")


def test_feeds_config_parses_payload() -> None:
    feeds = FeedsConfig.model_validate(
        {
            "sources": [
                {"name": "HN", "url": "https://hnrss.org/frontpage", "kind": "rss"},
                {"name": "Blog", "url": "https://blog.example.com/atom.xml", "kind": "atom", "enabled": False},
            ],
            "keywords": ["rust", "python"],
        }
    )
    assert [source.name for source in feeds.enabled_sources()] == ["HN"]
    assert feeds.sources[1].kind is SourceKind.ATOM
    assert feeds.keywords == ["rust", "python"]


def test_feeds_config_rejects_blank_keywords() -> None:
    with pytest.raises(ValueError):
        FeedsConfig(keywords=["ok", " "])


def test_feeds_config_rejects_duplicate_names() -> None:
    with pytest.raises(ValueError):
        FeedsConfig(
            sources=[
                {"name": "Same", "url": "https://a.example.com/feed"},
                {"name": "Same", "url": "https://b.example.com/feed"},
            ]
        )


def test_global_defaults() -> None:
    config = GlobalConfig()
    assert config.fetch_timeout == 10.0
    assert config.fetch_retry == RetryConfig(max_attempts=3, base_delay=1.0)
    assert config.delivery_retry == RetryConfig(max_attempts=3, base_delay=1.0)
    assert config.storage.retention_days == 30
    assert config.storage.backend == "json"
    assert config.delivery.latin_threshold == 0.6
    assert config.match.fields == ["title", "description"]


def test_global_paths_resolve_relative_to_root(tmp_path: Path) -> None:
    config = GlobalConfig(feeds_path="conf/feeds.yaml", storage=StorageConfig(path="state/seen.json"))
    assert config.resolved_feeds_path(tmp_path) == (tmp_path / "conf" / "feeds.yaml").resolve()
    assert config.storage.resolved_path(tmp_path) == (tmp_path / "state" / "seen.json").resolve()


def test_retry_bounds() -> None:
    with pytest.raises(ValueError):
        RetryConfig(max_attempts=0)
    with pytest.raises(ValueError):
        RetryConfig(base_delay=-1)


def test_delivery_config_validation() -> None:
    assert DeliveryConfig(webhook_url="").webhook_url is None
    with pytest.raises(ValueError):
        DeliveryConfig(webhook_url="not-a-url")
    with pytest.raises(ValueError):
        DeliveryConfig(latin_threshold=1.5)


def test_match_config_requires_fields() -> None:
    with pytest.raises(ValueError):
        MatchConfig(fields=[])
    assert MatchConfig(fields=["body", "body", "title"]).fields == ["body", "title"]


def test_schedule_validation() -> None:
    assert ScheduleConfig().type is ScheduleType.CRON
    with pytest.raises(ValueError):
        ScheduleConfig(type=ScheduleType.CRON, value=5)
    with pytest.raises(ValueError):
        ScheduleConfig(type=ScheduleType.INTERVAL, value="fast")


@pytest.mark.parametrize("value", [0, -3])
def test_max_items_must_be_positive(value: int) -> None:
    with pytest.raises(ValueError):
        GlobalConfig(max_items=value)
    assert GlobalConfig(max_items=1).max_items == 1
    assert GlobalConfig().max_items is None
