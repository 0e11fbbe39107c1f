"""structlog setup: JSON lines to the console and to rotating files under ``logs/``."""

from __future__ import annotations

import logging.config
import os
from pathlib import Path
from typing import Iterable

import structlog

ROOT_LOGGER = "newsrelay"

# log name -> (file name, minimum level)
LOG_FILES: dict[str, tuple[str, str]] = {
    "newsrelay": ("newsrelay.log", "INFO"),
    "error": ("error.log", "ERROR"),
}

_configured = False


def default_log_dir() -> Path:
    home = os.environ.get("NEWSRELAY_HOME")
    if home:
        return Path(home).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def _file_handler(path: Path, level: str) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "filename": str(path),
        "maxBytes": 5 * 1024 * 1024,
        "backupCount": 3,
        "encoding": "utf-8",
        "formatter": "json",
    }


def _dict_config(level: str, log_dir: Path) -> dict:
    handlers: dict[str, dict] = {
        "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
    }
    for name, (filename, file_level) in LOG_FILES.items():
        handlers[f"{name}_file"] = _file_handler(log_dir / filename, file_level)
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            }
        },
        "handlers": handlers,
        "loggers": {
            ROOT_LOGGER: {"handlers": list(handlers), "level": level, "propagate": False},
        },
    }


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Install handlers once per process and return the ``newsrelay`` logger.

    ``verbose`` lowers the console and root level to DEBUG. The file handlers
    keep their own thresholds from :data:`LOG_FILES`.
    """

    global _configured
    log_dir = log_dir or default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    if not _configured:
        logging.config.dictConfig(_dict_config("DEBUG" if verbose else "INFO", log_dir))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso", utc=True),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        _configured = True
    return structlog.get_logger(ROOT_LOGGER)


def log_path(name: str, log_dir: Path | None = None) -> Path:
    """Resolve a log name (``newsrelay`` or ``error``) to its file."""

    filename = LOG_FILES[name][0] if name in LOG_FILES else f"{name}.log"
    return (log_dir or default_log_dir()) / filename


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if line_count <= 0 or not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="replace") as stream:
        return stream.readlines()[-line_count:]


def available_logs(log_dir: Path | None = None) -> Iterable[Path]:
    directory = log_dir or default_log_dir()
    if not directory.is_dir():
        return []
    return sorted(directory.glob("*.log*"))


__all__ = ["LOG_FILES", "available_logs", "configure_logging", "default_log_dir", "log_path", "tail_log"]
