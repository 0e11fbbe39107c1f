"""Run pipeline wiring fetch, filter, dedup, rank, deliver and persist."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Iterable, Sequence

import structlog

from .config import MatchConfig, SourceConfig
from .delivery import DeliveryClient, MessageFormatter
from .engine import FetchCoordinator, MatchSpec, exclude, filter_items, limit, rank, unique
from .errors import Failure, FailureKind, StorageError
from .models import Item
from .storage import SeenStore


class PipelineState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    FILTERING = "filtering"
    DEDUPLICATING = "deduplicating"
    RANKING = "ranking"
    DELIVERING = "delivering"
    PERSISTING = "persisting"
    PRUNING = "pruning"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class RunOptions:
    """Per-run knobs supplied by the caller."""

    skip_if_empty: bool = False
    max_items: int | None = None
    match: MatchConfig = field(default_factory=MatchConfig)
    retention_days: int = 30

    def __post_init__(self) -> None:
        # A zero cap would report new items as "no new items"
        if self.max_items is not None and self.max_items < 1:
            raise ValueError("max_items must be >= 1 or None")
        if self.retention_days < 1:
            raise ValueError("retention_days must be >= 1")


@dataclass(slots=True)
class RunReport:
    """What a run did, and why it stopped if it failed."""

    state: PipelineState = PipelineState.IDLE
    keywords: list[str] = field(default_factory=list)
    fetched: int = 0
    filtered: int = 0
    new: int = 0
    delivered: int = 0
    pruned: int = 0
    sent: bool = False
    persisted: bool = False
    skipped_empty: bool = False
    source_failures: list[Failure] = field(default_factory=list)
    failure: Failure | None = None
    items: list[Item] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.DONE

    def as_summary(self) -> dict[str, int]:
        return {
            "fetched": self.fetched,
            "matched": self.filtered,
            "new": self.new,
            "delivered": self.delivered,
            "pruned": self.pruned,
            "failed_sources": len(self.source_failures),
        }


def merge_keywords(*groups: Iterable[str] | None) -> list[str]:
    """Concatenate keyword groups, dropping blanks and repeats, first occurrence wins."""

    merged: list[str] = []
    for group in groups:
        for keyword in group or ():
            keyword = keyword.strip()
            if keyword and keyword not in merged:
                merged.append(keyword)
    return merged


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Pipeline:
    """Drive one relay run through its state machine."""

    def __init__(
        self,
        coordinator: FetchCoordinator,
        store: SeenStore,
        delivery: DeliveryClient,
        formatter: MessageFormatter,
        logger: structlog.BoundLogger | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.coordinator = coordinator
        self.store = store
        self.delivery = delivery
        self.formatter = formatter
        self.logger = (logger or structlog.get_logger("newsrelay")).bind(component="pipeline")
        self.clock = clock

    def run(
        self,
        sources: Sequence[SourceConfig],
        keywords: Sequence[str],
        options: RunOptions | None = None,
    ) -> RunReport:
        options = options or RunOptions()
        report = RunReport(keywords=merge_keywords(keywords))

        # Fetching
        self._enter(report, PipelineState.FETCHING)
        batch = self.coordinator.fetch_batch(sources)
        report.fetched = len(batch.items)
        report.source_failures = batch.failures
        if batch.all_failed:
            return self._fail(
                report,
                Failure(
                    kind=FailureKind.FETCH,
                    message=f"All {len(batch.outcomes)} enabled sources failed",
                ),
            )

        # Filtering
        self._enter(report, PipelineState.FILTERING)
        spec = MatchSpec.from_config(report.keywords, options.match) if report.keywords else None
        matched = filter_items(batch.items, spec)
        report.filtered = len(matched)

        # Deduplicating
        self._enter(report, PipelineState.DEDUPLICATING)
        try:
            seen_ids = {record.id for record in self.store.load_all()}
        except StorageError as exc:
            return self._fail(report, exc.failure)
        fresh = exclude(unique(matched), seen_ids)
        report.new = len(fresh)

        # Ranking
        self._enter(report, PipelineState.RANKING)
        selected = limit(rank(fresh), options.max_items)
        report.items = selected

        if not selected:
            if options.skip_if_empty:
                report.skipped_empty = True
                self.logger.info("run_empty_skipped")
                return self._enter(report, PipelineState.DONE)
            self._enter(report, PipelineState.DELIVERING)
            result = self.delivery.deliver(self.formatter.format_no_items(report.keywords))
            if not result.ok:
                return self._fail(report, result.failure)
            report.sent = True
        else:
            self._enter(report, PipelineState.DELIVERING)
            result = self.delivery.deliver(self.formatter.format_items(selected, report.keywords))
            if not result.ok:
                return self._fail(report, result.failure)
            report.sent = True
            report.delivered = len(selected)

            self._enter(report, PipelineState.PERSISTING)
            try:
                self.store.append_new(selected)
                report.persisted = True
            except StorageError as exc:
                self.logger.error("persist_failed", error=exc.failure.describe())

        self._enter(report, PipelineState.PRUNING)
        cutoff = self.clock() - timedelta(days=options.retention_days)
        try:
            report.pruned = self.store.prune_older_than(cutoff)
        except StorageError as exc:
            self.logger.error("prune_failed", error=exc.failure.describe())

        self._enter(report, PipelineState.DONE)
        self.logger.info("run_completed", **report.as_summary())
        return report

    def close(self) -> None:
        self.coordinator.close()
        self.delivery.close()

    # ------------------------------------------------------------------
    def _enter(self, report: RunReport, state: PipelineState) -> RunReport:
        report.state = state
        self.logger.debug("pipeline_state", state=state.value)
        return report

    def _fail(self, report: RunReport, failure: Failure) -> RunReport:
        report.failure = failure
        self._enter(report, PipelineState.FAILED)
        self.logger.error("run_failed", kind=failure.kind.value, error=failure.describe())
        self.delivery.deliver_notice(self.formatter.format_error(failure.describe()))
        return report


__all__ = ["Pipeline", "PipelineState", "RunOptions", "RunReport", "merge_keywords"]
