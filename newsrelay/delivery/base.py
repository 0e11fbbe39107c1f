"""Delivery sink Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class SinkError(RuntimeError):
    """A sink rejected or could not transmit a payload."""


class RateLimitedError(SinkError):
    """The sink asked us to back off; ``retry_after`` is in seconds when known."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class BaseSink(ABC):
    """Uniform sink contract so webhook and file outputs are interchangeable."""

    @abstractmethod
    def send(self, payload: dict) -> None:
        """Transmit a single payload or raise."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""

    def __enter__(self) -> "BaseSink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = ["BaseSink", "RateLimitedError", "SinkError"]
