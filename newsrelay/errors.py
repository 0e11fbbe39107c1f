"""Failure values shared by every pipeline stage."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FailureKind(str, Enum):
    """Closed set of failure categories a run can report."""

    CONFIG = "config"
    FETCH = "fetch"
    PARSE_SKIP = "parse_skip"
    STORAGE = "storage"
    DELIVERY = "delivery"


@dataclass(slots=True, frozen=True)
class Failure:
    """Tagged failure value returned by components instead of raising."""

    kind: FailureKind
    message: str
    source: str | None = None
    cause: BaseException | None = None

    def describe(self) -> str:
        prefix = f"[{self.kind.value}]"
        if self.source:
            prefix = f"{prefix} {self.source}:"
        if self.cause is not None and str(self.cause) not in self.message:
            return f"{prefix} {self.message} ({self.cause})"
        return f"{prefix} {self.message}"


class NewsRelayError(RuntimeError):
    """Exception carrying a :class:`Failure` across a collaborator boundary."""

    kind: FailureKind = FailureKind.CONFIG

    def __init__(self, message: str, *, source: str | None = None, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.failure = Failure(kind=self.kind, message=message, source=source, cause=cause)


class ConfigError(NewsRelayError):
    kind = FailureKind.CONFIG


class StorageError(NewsRelayError):
    kind = FailureKind.STORAGE


__all__ = ["ConfigError", "Failure", "FailureKind", "NewsRelayError", "StorageError"]
