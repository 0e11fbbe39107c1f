"""Shared fixtures for the newsrelay test-suite."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from newsrelay.config import ConfigLocator, ConfigRepository, GlobalConfig, SourceConfig, SourceKind
from newsrelay.models import Item

RSS_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>{channel}</title>
    <link>https://example.com</link>
    <description>Test feed</description>
    {items}
  </channel>
</rss>
"""

RSS_ITEM_TEMPLATE = """<item>
      <title>{title}</title>
      <link>{link}</link>
      <description>{description}</description>
      <pubDate>{pub_date}</pubDate>
    </item>"""


def build_rss(entries: Iterable[dict[str, str]], channel: str = "Example") -> bytes:
    items = "\n".join(RSS_ITEM_TEMPLATE.format(**entry) for entry in entries)
    return RSS_TEMPLATE.format(channel=channel, items=items).encode("utf-8")


class RecordingSleep:
    """Drop-in for ``time.sleep`` that only records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def rss_builder() -> Callable[..., bytes]:
    return build_rss


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def sample_global_config(tmp_path: Path) -> GlobalConfig:
    return GlobalConfig(
        feeds_path=tmp_path / "feeds.json",
        storage={"path": tmp_path / "seen_items.json"},
        delivery={"webhook_url": "https://hooks.example.com/relay"},
        fetch_retry={"max_attempts": 2, "base_delay": 0.0},
        delivery_retry={"max_attempts": 2, "base_delay": 0.0},
    )


@pytest.fixture
def sample_source_config() -> Callable[..., SourceConfig]:
    def _builder(**overrides: Any) -> SourceConfig:
        base: dict[str, Any] = {
            "name": "Example",
            "url": "https://example.com/feed.xml",
            "kind": SourceKind.RSS,
            "enabled": True,
        }
        base.update(overrides)
        return SourceConfig(**base)

    return _builder


@pytest.fixture
def make_item() -> Callable[..., Item]:
    def _builder(**overrides: Any) -> Item:
        base: dict[str, Any] = {
            "title": "Tech news",
            "url": "https://example.com/articles/1",
            "description": "Something happened in tech",
            "published_at": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            "source_name": "Example",
        }
        base.update(overrides)
        return Item.create(**base)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("NEWSRELAY_HOME", str(tmp_path))
    for name in (
        "NEWSRELAY_WEBHOOK_URL",
        "NEWSRELAY_RETENTION_DAYS",
        "NEWSRELAY_MAX_RETRIES",
        "NEWSRELAY_RETRY_DELAY",
        "NEWSRELAY_FETCH_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
