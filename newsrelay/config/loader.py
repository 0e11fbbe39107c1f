"""Read and write the YAML/JSON files behind :class:`GlobalConfig` and :class:`FeedsConfig`."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from .models import FeedsConfig, GlobalConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
GLOBAL_CONFIG_FILENAME = "global_config.yaml"
LOCK_FILENAME = "run.lock"
HOME_ENV = "NEWSRELAY_HOME"

# env var -> (dotted config keys, coercion)
ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], Callable[[str], Any]]] = {
    "NEWSRELAY_WEBHOOK_URL": (("delivery.webhook_url",), str),
    "NEWSRELAY_RETENTION_DAYS": (("storage.retention_days",), int),
    "NEWSRELAY_MAX_RETRIES": (("fetch_retry.max_attempts", "delivery_retry.max_attempts"), int),
    "NEWSRELAY_RETRY_DELAY": (("fetch_retry.base_delay", "delivery_retry.base_delay"), float),
    "NEWSRELAY_FETCH_TIMEOUT": (("fetch_timeout",), float),
}

_LOAD_ERRORS = (OSError, ValueError, yaml.YAMLError)


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in (".yaml", ".yml")


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    data = (yaml.safe_load(text) or {}) if _is_yaml(path) else json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"expected a mapping at the top of {path.name}, got {type(data).__name__}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if _is_yaml(path):
        text = yaml.safe_dump(payload, allow_unicode=True, sort_keys=False)
    else:
        text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
    path.write_text(text, encoding="utf-8")


def _set_dotted(tree: dict, dotted: str, value: Any) -> None:
    *parents, leaf = dotted.split(".")
    for key in parents:
        tree = tree.setdefault(key, {})
    tree[leaf] = value


def apply_env_overrides(payload: dict, environ: Mapping[str, str] | None = None) -> dict:
    """Return a copy of ``payload`` with ``NEWSRELAY_*`` overrides applied.

    Empty variables are ignored. A value that cannot be coerced raises
    :class:`ConfigError` naming the variable.
    """

    environ = os.environ if environ is None else environ
    merged = json.loads(json.dumps(payload, default=str))
    for env_name, (targets, coerce) in ENV_OVERRIDES.items():
        raw = environ.get(env_name, "")
        if not raw:
            continue
        try:
            value = coerce(raw)
        except ValueError as exc:
            raise ConfigError(f"Invalid value for {env_name}: {raw!r}", cause=exc) from exc
        for dotted in targets:
            _set_dotted(merged, dotted, value)
    return merged


def _resolve_home(explicit: Path | None) -> Path:
    env_home = os.environ.get(HOME_ENV)
    if env_home:
        return Path(env_home).expanduser().resolve()
    if explicit is not None:
        return Path(explicit).resolve()
    return Path(__file__).resolve().parents[2]


@dataclass(slots=True)
class ConfigLocator:
    """Project home and the ``data/``, ``data/outputs/`` and ``logs/`` directories under it.

    ``NEWSRELAY_HOME`` takes precedence over ``project_root``.
    """

    project_root: Path | None = None
    data_dir: Path = field(init=False)
    outputs_dir: Path = field(init=False)
    logs_dir: Path = field(init=False)

    def __post_init__(self) -> None:
        home = _resolve_home(self.project_root)
        self.project_root = home
        self.data_dir = home / "data"
        self.outputs_dir = self.data_dir / "outputs"
        self.logs_dir = home / "logs"
        for directory in (self.data_dir, self.outputs_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def global_config_path(self) -> Path:
        return self.data_dir / GLOBAL_CONFIG_FILENAME

    def lock_path(self) -> Path:
        return self.data_dir / LOCK_FILENAME


class ConfigRepository:
    """Validated access to the global config and the feeds file."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._global: GlobalConfig | None = None

    # ------------------------------------------------------------------
    def load_global_config(self) -> GlobalConfig:
        """Load (seeding defaults on first use) and apply env overrides.

        Overrides only affect the returned object; the file keeps what was
        written to it.
        """

        if self._global is None:
            path = self.locator.global_config_path()
            try:
                payload = self._read_or_seed(path)
                self._global = GlobalConfig.model_validate(apply_env_overrides(payload))
            except (ValidationError, *_LOAD_ERRORS) as exc:
                raise ConfigError(f"Invalid global configuration {path}: {exc}", cause=exc) from exc
        return self._global

    def save_global_config(self, config: GlobalConfig) -> None:
        _write_file(self.locator.global_config_path(), config.model_dump(mode="json"))
        self._global = config

    @staticmethod
    def _read_or_seed(path: Path) -> dict:
        if path.exists():
            return _read_file(path)
        defaults = GlobalConfig().model_dump(mode="json")
        _write_file(path, defaults)
        return defaults

    # ------------------------------------------------------------------
    def feeds_path(self) -> Path:
        return self.load_global_config().resolved_feeds_path(self.locator.project_root)

    def load_feeds(self, path: Path | None = None) -> FeedsConfig:
        path = path or self.feeds_path()
        if path.suffix.lower() not in CONFIG_EXTENSIONS:
            raise ConfigError(f"Unsupported feeds file extension: {path.suffix or '(none)'}")
        if not path.is_file():
            raise ConfigError(f"Feeds configuration not found: {path}")
        try:
            return FeedsConfig.model_validate(_read_file(path))
        except (ValidationError, *_LOAD_ERRORS) as exc:
            raise ConfigError(f"Invalid feeds configuration {path}: {exc}", cause=exc) from exc


__all__ = ["CONFIG_EXTENSIONS", "ENV_OVERRIDES", "ConfigLocator", "ConfigRepository", "apply_env_overrides"]
