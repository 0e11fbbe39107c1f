"""Pydantic models used across the newsrelay configuration flow."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SourceKind(str, Enum):
    """Syndication formats a source may publish."""

    RSS = "rss"
    ATOM = "atom"


class ScheduleType(str, Enum):
    """Scheduler modes for periodic runs."""

    CRON = "cron"
    INTERVAL = "interval"
    ONCE = "once"


class MatchStrategy(str, Enum):
    ANY = "any"
    ALL = "all"


_INTERVAL_UNITS = frozenset({"weeks", "days", "hours", "minutes", "seconds"})


def _require_http_url(value: str, field_name: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"{field_name} must be an absolute http(s) URL: {value!r}")
    return value


class ScheduleConfig(BaseModel):
    """Configuration describing when the relay should run."""

    type: ScheduleType = Field(default=ScheduleType.CRON)
    value: Any = Field(
        default="0 8 * * *",
        description="Cron expression, interval seconds or ISO datetime, depending on type.",
    )

    @model_validator(mode="after")
    def _check_value_shape(self) -> "ScheduleConfig":
        value = self.value
        if self.type is ScheduleType.CRON:
            if not isinstance(value, str) or len(value.split()) != 5:
                raise ValueError(f"cron schedule needs a five-field crontab string, got {value!r}")
        elif self.type is ScheduleType.INTERVAL:
            if isinstance(value, bool) or not isinstance(value, (int, float, dict)):
                raise ValueError(f"interval schedule needs seconds or a dict of units, got {value!r}")
            if isinstance(value, dict) and not set(value) <= _INTERVAL_UNITS:
                raise ValueError(f"interval units must be among {sorted(_INTERVAL_UNITS)}")
            if isinstance(value, (int, float)) and value <= 0:
                raise ValueError("interval seconds must be positive")
        elif value is not None and not isinstance(value, str):
            raise ValueError(f"once schedule needs an ISO datetime string or null, got {value!r}")
        return self


class SourceConfig(BaseModel):
    """A remote feed the relay polls."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    kind: SourceKind = SourceKind.RSS
    enabled: bool = True

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Source name cannot be empty")
        return value

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        return _require_http_url(value.strip(), "Source url")


class FeedsConfig(BaseModel):
    """Contents of the feeds file: sources plus default keywords."""

    sources: list[SourceConfig] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)

    @field_validator("keywords")
    @classmethod
    def _validate_keywords(cls, value: list[str]) -> list[str]:
        for keyword in value:
            if not isinstance(keyword, str) or not keyword.strip():
                raise ValueError("Keywords must be non-empty strings")
        return value

    @model_validator(mode="after")
    def _validate_unique_names(self) -> "FeedsConfig":
        names = [source.name for source in self.sources]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate source names: {', '.join(duplicates)}")
        return self

    def enabled_sources(self) -> list[SourceConfig]:
        return [source for source in self.sources if source.enabled]


class MatchConfig(BaseModel):
    """Keyword matching defaults."""

    strategy: MatchStrategy = MatchStrategy.ANY
    case_sensitive: bool = False
    fields: list[Literal["title", "description", "body"]] = Field(
        default_factory=lambda: ["title", "description"]
    )

    @field_validator("fields")
    @classmethod
    def _validate_fields(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("At least one match field is required")
        return list(dict.fromkeys(value))


class RetryConfig(BaseModel):
    """Attempt count and linear backoff base shared by fetch and delivery."""

    max_attempts: int = 3
    base_delay: float = 1.0

    @model_validator(mode="after")
    def _validate_bounds(self) -> "RetryConfig":
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        return self


class StorageConfig(BaseModel):
    """Where the seen-set lives and how long it is retained."""

    backend: Literal["json", "sqlite"] = "json"
    path: Path = Field(default=Path("data/seen_items.json"))
    retention_days: int = 30

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("retention_days")
    @classmethod
    def _validate_retention(cls, value: int) -> int:
        if value < 1:
            raise ValueError("retention_days must be >= 1")
        return value

    def resolved_path(self, base_dir: Path) -> Path:
        """Return the seen-set path relative to the project root."""

        if not self.path.is_absolute():
            return (base_dir / self.path).resolve()
        return self.path


class DeliveryConfig(BaseModel):
    """Webhook endpoint and message rendering options."""

    webhook_url: str | None = None
    timeout: float = 10.0
    username: str = "Daily News Bot"
    latin_threshold: float = 0.6

    @field_validator("webhook_url")
    @classmethod
    def _validate_webhook(cls, value: str | None) -> str | None:
        if value in (None, ""):
            return None
        return _require_http_url(value.strip(), "webhook_url")

    @field_validator("latin_threshold")
    @classmethod
    def _validate_threshold(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("latin_threshold must be within [0, 1]")
        return value


class GlobalConfig(BaseModel):
    """Global controls shared by every run."""

    feeds_path: Path = Field(default=Path("data/feeds.json"))
    fetch_timeout: float = 10.0
    max_workers: int = 8
    skip_if_empty: bool = False
    max_items: int | None = None
    fetch_retry: RetryConfig = Field(default_factory=RetryConfig)
    delivery_retry: RetryConfig = Field(default_factory=RetryConfig)
    match: MatchConfig = Field(default_factory=MatchConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)

    @field_validator("feeds_path", mode="before")
    @classmethod
    def _coerce_feeds_path(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _validate_limits(self) -> "GlobalConfig":
        if self.fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be > 0")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if self.max_items is not None and self.max_items < 1:
            raise ValueError("max_items must be >= 1 (omit it for no limit)")
        return self

    def resolved_feeds_path(self, base_dir: Path) -> Path:
        if not self.feeds_path.is_absolute():
            return (base_dir / self.feeds_path).resolve()
        return self.feeds_path


__all__ = [
    "DeliveryConfig",
    "FeedsConfig",
    "GlobalConfig",
    "MatchConfig",
    "MatchStrategy",
    "RetryConfig",
    "ScheduleConfig",
    "ScheduleType",
    "SourceConfig",
    "SourceKind",
    "StorageConfig",
]
