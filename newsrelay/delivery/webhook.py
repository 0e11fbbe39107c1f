"""Chat webhook sink over httpx."""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx
import structlog

from .base import BaseSink, RateLimitedError, SinkError


def parse_retry_after(response: httpx.Response) -> float | None:
    """Extract a retry hint in seconds from a 429 response.

    The ``Retry-After`` header wins (delta-seconds or HTTP-date); a JSON body
    ``retry_after`` field is used otherwise.
    """

    header = response.headers.get("Retry-After")
    if header:
        header = header.strip()
        try:
            return max(0.0, float(header))
        except ValueError:
            pass
        try:
            when = parsedate_to_datetime(header)
        except (TypeError, ValueError, IndexError):
            when = None
        if when is not None:
            if when.tzinfo is None:
                when = when.replace(tzinfo=timezone.utc)
            return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("retry_after") is not None:
        try:
            return max(0.0, float(body["retry_after"]))
        except (TypeError, ValueError):
            return None
    return None


class WebhookSink(BaseSink):
    """POST payloads as JSON to a webhook URL."""

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.logger = logger or structlog.get_logger("newsrelay.webhook")
        self._client = client or httpx.Client(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    def send(self, payload: dict) -> None:
        response = self._client.post(self.webhook_url, json=payload)
        if response.status_code == 429:
            retry_after = parse_retry_after(response)
            raise RateLimitedError("Webhook rate limited (HTTP 429)", retry_after=retry_after)
        if response.is_error:
            raise SinkError(f"Webhook responded with HTTP {response.status_code}: {response.text[:200]}")
        self.logger.debug("webhook_sent", status=response.status_code)

    def close(self) -> None:
        self._client.close()


__all__ = ["WebhookSink", "parse_retry_after"]
