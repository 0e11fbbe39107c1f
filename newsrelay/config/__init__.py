"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, apply_env_overrides
from .models import (
    DeliveryConfig,
    FeedsConfig,
    GlobalConfig,
    MatchConfig,
    MatchStrategy,
    RetryConfig,
    ScheduleConfig,
    ScheduleType,
    SourceConfig,
    SourceKind,
    StorageConfig,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
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
    "apply_env_overrides",
]
