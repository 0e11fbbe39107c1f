"""Concurrent fan-out of source fetches joined before returning."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable

import structlog

from ..config import RetryConfig, SourceConfig
from ..errors import Failure, FailureKind
from ..models import Item
from .fetcher import FetchOutcome, SourceFetcher


@dataclass(slots=True)
class FetchBatch:
    """Joined outcomes of one fan-out, in source declaration order."""

    outcomes: list[FetchOutcome] = field(default_factory=list)

    @property
    def items(self) -> list[Item]:
        merged: list[Item] = []
        for outcome in self.outcomes:
            merged.extend(outcome.items)
        return merged

    @property
    def failures(self) -> list[Failure]:
        return [outcome.failure for outcome in self.outcomes if outcome.failure is not None]

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and all(not outcome.ok for outcome in self.outcomes)


class FetchCoordinator:
    """Fetch every enabled source concurrently, tolerating partial failure."""

    def __init__(
        self,
        fetcher: SourceFetcher,
        max_workers: int = 8,
        retry: RetryConfig | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.max_workers = max(1, max_workers)
        self.retry = retry or RetryConfig()
        self.logger = logger or structlog.get_logger("newsrelay.coordinator")

    def close(self) -> None:
        self.fetcher.close()

    def fetch_all(self, sources: Iterable[SourceConfig]) -> list[Item]:
        return self.fetch_batch(sources).items

    def fetch_batch(self, sources: Iterable[SourceConfig]) -> FetchBatch:
        enabled = [source for source in sources if source.enabled]
        if not enabled:
            self.logger.warning("no_enabled_sources")
            return FetchBatch()

        slots: dict[Future, int] = {}
        outcomes: list[FetchOutcome | None] = [None] * len(enabled)
        workers = min(self.max_workers, len(enabled))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="newsrelay-fetch") as executor:
            for index, source in enumerate(enabled):
                future = executor.submit(
                    self.fetcher.fetch,
                    source,
                    self.retry.max_attempts,
                    self.retry.base_delay,
                )
                slots[future] = index
            for future in as_completed(slots):
                index = slots[future]
                source = enabled[index]
                try:
                    outcomes[index] = future.result()
                except Exception as exc:  # noqa: BLE001
                    outcomes[index] = FetchOutcome(
                        source=source,
                        failure=Failure(
                            kind=FailureKind.FETCH,
                            message=f"Unexpected error fetching {source.url}",
                            source=source.name,
                            cause=exc,
                        ),
                    )

        batch = FetchBatch(outcomes=[outcome for outcome in outcomes if outcome is not None])
        for failure in batch.failures:
            self.logger.warning("source_failed", source=failure.source, error=failure.describe())
        self.logger.info(
            "fetch_batch_completed",
            sources=len(enabled),
            failed=len(batch.failures),
            items=len(batch.items),
        )
        return batch


__all__ = ["FetchBatch", "FetchCoordinator"]
