"""Payload delivery with retry and rate-limit aware backoff."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

import httpx
import structlog

from ..errors import Failure, FailureKind
from .base import BaseSink, RateLimitedError, SinkError

DELIVERY_ERRORS = (SinkError, httpx.HTTPError, OSError)


@dataclass(slots=True)
class DeliveryResult:
    attempts: int
    failure: Failure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class DeliveryClient:
    """Send payloads to a sink, retrying transient failures."""

    def __init__(
        self,
        sink: BaseSink,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        logger: structlog.BoundLogger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.sink = sink
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.logger = logger or structlog.get_logger("newsrelay.delivery")
        self._sleep = sleep

    def deliver(
        self,
        payload: dict,
        max_attempts: int | None = None,
        base_delay: float | None = None,
    ) -> DeliveryResult:
        """Send ``payload``; ``max_attempts`` / ``base_delay`` override the client defaults for this call."""

        attempts = max(1, max_attempts) if max_attempts is not None else self.max_attempts
        delay = self.base_delay if base_delay is None else base_delay
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                self.sink.send(payload)
            except RateLimitedError as exc:
                last_error = exc
                wait = exc.retry_after if exc.retry_after is not None else delay * attempt
                self.logger.warning(
                    "delivery_rate_limited",
                    attempt=attempt,
                    max_attempts=attempts,
                    retry_after=wait,
                )
            except DELIVERY_ERRORS as exc:
                last_error = exc
                wait = delay * attempt
                self.logger.warning(
                    "delivery_attempt_failed",
                    attempt=attempt,
                    max_attempts=attempts,
                    error=str(exc),
                )
            else:
                self.logger.info("delivery_succeeded", attempt=attempt)
                return DeliveryResult(attempts=attempt)
            if attempt < attempts:
                self._sleep(wait)

        return DeliveryResult(
            attempts=attempts,
            failure=Failure(
                kind=FailureKind.DELIVERY,
                message=f"Delivery failed after {attempts} attempts: {last_error}",
                cause=last_error,
            ),
        )

    def deliver_notice(self, payload: dict) -> bool:
        """Best-effort delivery that never raises."""

        try:
            result = self.deliver(payload)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("notice_delivery_crashed", error=str(exc))
            return False
        if not result.ok:
            self.logger.error("notice_delivery_failed", error=result.failure.describe())
            return False
        return True

    def close(self) -> None:
        self.sink.close()


__all__ = ["DeliveryClient", "DeliveryResult"]
