"""HTTP retrieval of a single feed with bounded retry."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

import httpx
import structlog

from ..config import SourceConfig
from ..errors import Failure, FailureKind
from ..models import Item
from .parser import FeedEnvelopeError, FeedParser

DEFAULT_HEADERS = {
    "User-Agent": "newsrelay/0.1 (+https://github.com/newsrelay)",
    "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml;q=0.9, */*;q=0.8",
}


@dataclass(slots=True)
class FetchOutcome:
    """Result of fetching one source: items on success, a failure otherwise."""

    source: SourceConfig
    items: list[Item] = field(default_factory=list)
    failure: Failure | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.failure is None


class SourceFetcher:
    """Retrieve and normalise items from one source."""

    def __init__(
        self,
        timeout: float = 10.0,
        parser: FeedParser | None = None,
        logger: structlog.BoundLogger | None = None,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.timeout = timeout
        self.logger = logger or structlog.get_logger("newsrelay.fetcher")
        self.parser = parser or FeedParser(logger=self.logger)
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            headers=DEFAULT_HEADERS,
        )
        self._sleep = sleep

    def close(self) -> None:
        self._client.close()

    def fetch(self, source: SourceConfig, max_attempts: int = 3, base_delay: float = 1.0) -> FetchOutcome:
        max_attempts = max(1, max_attempts)
        last_error: Exception | None = None
        for attempt in range(1, max_attempts + 1):
            try:
                items = self._fetch_once(source)
            except (httpx.HTTPError, FeedEnvelopeError) as exc:
                last_error = exc
                self.logger.warning(
                    "fetch_attempt_failed",
                    source=source.name,
                    url=source.url,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    error=str(exc),
                )
                if attempt < max_attempts:
                    self._sleep(base_delay * attempt)
                continue
            self.logger.info("fetch_succeeded", source=source.name, items=len(items), attempt=attempt)
            return FetchOutcome(source=source, items=items, attempts=attempt)

        failure = Failure(
            kind=FailureKind.FETCH,
            message=f"Fetch failed after {max_attempts} attempts: {source.url}",
            source=source.name,
            cause=last_error,
        )
        self.logger.error("fetch_failed", source=source.name, url=source.url, error=str(last_error))
        return FetchOutcome(source=source, failure=failure, attempts=max_attempts)

    # ------------------------------------------------------------------
    def _fetch_once(self, source: SourceConfig) -> list[Item]:
        response = self._client.get(source.url, timeout=self.timeout)
        response.raise_for_status()
        return self.parser.parse(source, response.content)


__all__ = ["FetchOutcome", "SourceFetcher"]
