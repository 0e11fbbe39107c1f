"""Typer CLI entrypoint for newsrelay."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Sequence

import structlog
import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, GlobalConfig, MatchStrategy, ScheduleConfig, ScheduleType, SourceConfig
from .delivery import DeliveryClient, FileSink, LatinScriptPolicy, MessageFormatter, WebhookSink
from .engine import FetchCoordinator, SourceFetcher
from .errors import ConfigError, StorageError
from .infra import RunLock, RunLockedError
from .logging_conf import available_logs, configure_logging, log_path, tail_log
from .pipeline import Pipeline, RunOptions, RunReport, merge_keywords
from .scheduler import APSchedulerAdapter
from .storage import SeenStore, build_seen_store

app = typer.Typer(
    help="newsrelay command line tool",
    no_args_is_help=True,
    rich_markup_mode=None,
)
history_app = typer.Typer(
    name="history",
    help="Seen-set maintenance commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Log viewing commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: GlobalConfig
    logger: structlog.BoundLogger
    scheduler: APSchedulerAdapter
    store: SeenStore
    pipeline_factory: Callable[[bool], Pipeline]


def build_pipeline(
    repository: ConfigRepository,
    config: GlobalConfig,
    store: SeenStore,
    logger: structlog.BoundLogger,
    dry_run: bool = False,
) -> Pipeline:
    fetcher = SourceFetcher(timeout=config.fetch_timeout, logger=logger.bind(component="fetcher"))
    coordinator = FetchCoordinator(
        fetcher,
        max_workers=config.max_workers,
        retry=config.fetch_retry,
        logger=logger.bind(component="coordinator"),
    )
    if dry_run:
        sink = FileSink(repository.locator.outputs_dir)
    else:
        if not config.delivery.webhook_url:
            fetcher.close()
            raise ConfigError("No webhook_url configured; set NEWSRELAY_WEBHOOK_URL or delivery.webhook_url")
        sink = WebhookSink(
            config.delivery.webhook_url,
            timeout=config.delivery.timeout,
            logger=logger.bind(component="webhook"),
        )
    delivery = DeliveryClient(
        sink,
        max_attempts=config.delivery_retry.max_attempts,
        base_delay=config.delivery_retry.base_delay,
        logger=logger.bind(component="delivery"),
    )
    formatter = MessageFormatter(
        username=config.delivery.username,
        language_policy=LatinScriptPolicy(config.delivery.latin_threshold),
        logger=logger.bind(component="formatter"),
    )
    return Pipeline(coordinator, store, delivery, formatter, logger=logger)


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    logger = configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    config = repository.load_global_config()
    store = build_seen_store(config.storage, repository.locator.project_root, logger=logger.bind(component="storage"))
    scheduler = APSchedulerAdapter(logger=logger)

    def _factory(dry_run: bool) -> Pipeline:
        return build_pipeline(repository, config, store, logger, dry_run=dry_run)

    return AppState(
        repository=repository,
        config=config,
        logger=logger,
        scheduler=scheduler,
        store=store,
        pipeline_factory=_factory,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _split_keywords(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _format_schedule(schedule: ScheduleConfig) -> str:
    value = schedule.value
    if not value:
        return "once (now)" if schedule.type is ScheduleType.ONCE else schedule.type.value
    if schedule.type is ScheduleType.INTERVAL and isinstance(value, dict):
        value = ", ".join(f"{unit}={amount}" for unit, amount in value.items())
    elif schedule.type is ScheduleType.INTERVAL:
        value = f"every {value}s"
    return f"{schedule.type.value} ({value}, UTC)"


def _render_sources_table(sources: Sequence[SourceConfig]) -> Table:
    table = Table(title=f"Sources · {len(sources)} configured", box=box.SIMPLE_HEAD)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Kind", style="magenta")
    table.add_column("Enabled", style="green")
    table.add_column("URL", overflow="fold")
    for source in sources:
        table.add_row(source.name, source.kind.value, "yes" if source.enabled else "no", source.url)
    return table


def _render_report_table(report: RunReport) -> Table:
    table = Table(title=f"Run result · {report.state.value}", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in report.as_summary().items():
        table.add_row(key, str(value))
    table.add_row("keywords", ", ".join(report.keywords) or "-")
    return table


def _render_jobs_table(jobs: Iterable[dict]) -> Table:
    table = Table(title="Scheduled jobs", box=box.SIMPLE_HEAD)
    table.add_column("Job ID", style="cyan", no_wrap=True)
    table.add_column("Next run", style="green")
    table.add_column("Trigger", style="magenta", overflow="fold")
    for job in jobs:
        table.add_row(
            str(job.get("id", "-")),
            str(job.get("next_run_time", "-")),
            str(job.get("trigger", "-")),
        )
    return table


def _execute_run(
    state: AppState,
    keywords: Sequence[str],
    options: RunOptions,
    dry_run: bool,
) -> RunReport:
    """Load feeds, build a pipeline and run it under the run lock."""

    feeds = state.repository.load_feeds()
    merged = merge_keywords(feeds.keywords, keywords)
    pipeline = state.pipeline_factory(dry_run)
    try:
        with RunLock(state.repository.locator.lock_path()):
            return pipeline.run(feeds.sources, merged, options)
    finally:
        pipeline.close()


def _run_options(
    config: GlobalConfig,
    skip_if_empty: bool = False,
    max_items: Optional[int] = None,
    strategy: Optional[MatchStrategy] = None,
    case_sensitive: bool = False,
) -> RunOptions:
    match = config.match
    updates: dict = {}
    if strategy is not None:
        updates["strategy"] = strategy
    if case_sensitive:
        updates["case_sensitive"] = True
    if updates:
        match = match.model_copy(update=updates)
    return RunOptions(
        skip_if_empty=skip_if_empty or config.skip_if_empty,
        max_items=max_items if max_items is not None else config.max_items,
        match=match,
        retention_days=config.storage.retention_days,
    )


app.add_typer(history_app, name="history", help="Inspect or maintain the seen-set")
app.add_typer(log_app, name="log", help="View log files")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    try:
        ctx.obj = build_state(verbose)
    except ConfigError as exc:
        console.print(f"Configuration error: {exc}", style="red", markup=False)
        raise typer.Exit(code=1)
    ctx.call_on_close(ctx.obj.store.close)


@app.command("run", help="Fetch, filter and deliver new items once.")
def run(
    ctx: typer.Context,
    keywords: Optional[str] = typer.Option(
        None, "--keywords", "-k", help="Comma separated keywords merged with the configured ones."
    ),
    skip_if_empty: bool = typer.Option(
        False, "--skip-if-empty", help="Send nothing when there are no new items."
    ),
    max_items: Optional[int] = typer.Option(None, "--max-items", min=1, help="Deliver at most N items."),
    strategy: Optional[MatchStrategy] = typer.Option(
        None, "--strategy", help="Keyword strategy: any or all."
    ),
    case_sensitive: bool = typer.Option(False, "--case-sensitive", help="Match keywords case sensitively."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Write payloads to data/outputs instead of posting."),
) -> None:
    state = _get_state(ctx)
    options = _run_options(state.config, skip_if_empty, max_items, strategy, case_sensitive)
    try:
        report = _execute_run(state, _split_keywords(keywords), options, dry_run)
    except ConfigError as exc:
        console.print(f"Configuration error: {exc}", style="red", markup=False)
        raise typer.Exit(code=1)
    except RunLockedError as exc:
        console.print(str(exc), style="yellow", markup=False)
        raise typer.Exit(code=1)

    console.print(_render_report_table(report))
    for failure in report.source_failures:
        console.print(f"- {failure.describe()}", style="yellow", markup=False)
    if not report.ok:
        message = report.failure.describe() if report.failure else "Run failed"
        console.print(message, style="red", markup=False)
        raise typer.Exit(code=1)
    if report.skipped_empty:
        console.print("No new items; delivery skipped.", style="dim")


@app.command("schedule", help="Run on the configured schedule until interrupted.")
def schedule(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Write payloads to data/outputs instead of posting."),
) -> None:
    state = _get_state(ctx)
    logger = state.logger.bind(component="cli")

    def _job() -> None:
        options = _run_options(state.config)
        try:
            report = _execute_run(state, [], options, dry_run)
        except (ConfigError, RunLockedError) as exc:
            logger.error("scheduled_run_aborted", error=str(exc))
            return
        if report.ok:
            logger.info("scheduled_run_done", **report.as_summary())
        else:
            logger.error("scheduled_run_failed", error=report.failure.describe() if report.failure else None)

    try:
        state.scheduler.schedule_run(state.config.schedule, _job)
    except ValueError as exc:
        console.print(f"Invalid schedule: {exc}", style="red")
        raise typer.Exit(code=1)
    state.scheduler.start()
    console.print(f"Scheduler started: {_format_schedule(state.config.schedule)}", style="green")
    jobs = list(state.scheduler.list_jobs())
    if jobs:
        console.print(_render_jobs_table(jobs))
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping scheduler.", style="yellow")
    finally:
        state.scheduler.remove_run()
        state.scheduler.shutdown()


@app.command("sources", help="List configured sources.")
def sources(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        feeds = state.repository.load_feeds()
    except ConfigError as exc:
        console.print(f"Configuration error: {exc}", style="red", markup=False)
        raise typer.Exit(code=1)
    if not feeds.sources:
        console.print("No sources configured.", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_sources_table(feeds.sources))
    enabled = len(feeds.enabled_sources())
    console.print(f"{enabled} of {len(feeds.sources)} source(s) enabled", style="dim")
    if feeds.keywords:
        console.print("Keywords: " + ", ".join(feeds.keywords), style="dim")


@history_app.command("show", help="Show the most recently published seen items.")
def history_show(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", help="Number of records to show."),
) -> None:
    state = _get_state(ctx)
    try:
        records = state.store.load_all()
    except StorageError as exc:
        console.print(str(exc), style="red", markup=False)
        raise typer.Exit(code=1)
    if not records:
        console.print("No history.", style="dim")
        return
    records.sort(key=lambda record: record.published_at, reverse=True)
    rows = records[: max(0, limit)]
    table = Table(title=f"Seen items · latest {len(rows)} of {len(records)}", box=box.SIMPLE_HEAD)
    table.add_column("Published", style="green")
    table.add_column("Source", style="magenta")
    table.add_column("Title", overflow="fold")
    for record in rows:
        table.add_row(record.published_at.strftime("%Y-%m-%d %H:%M"), record.source_name, record.title)
    console.print(table)


@history_app.command("prune", help="Drop seen items older than the retention window.")
def history_prune(
    ctx: typer.Context,
    days: Optional[int] = typer.Option(None, "--days", help="Retention in days (defaults to config)."),
) -> None:
    state = _get_state(ctx)
    retention = days if days is not None else state.config.storage.retention_days
    cutoff = datetime.now(timezone.utc) - timedelta(days=retention)
    try:
        removed = state.store.prune_older_than(cutoff)
    except StorageError as exc:
        console.print(str(exc), style="red", markup=False)
        raise typer.Exit(code=1)
    console.print(f"Removed {removed} record(s) older than {retention} day(s).", style="green")


@history_app.command("reset", help="Delete the whole seen-set.")
def history_reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt."),
) -> None:
    state = _get_state(ctx)
    if not yes:
        confirm = typer.confirm("Delete all seen-set history?", default=False)
        if not confirm:
            console.print("Cancelled.", style="yellow")
            raise typer.Exit(code=0)
    state.store.reset()
    console.print("Seen-set history cleared.", style="green")


@log_app.command("list", help="List available log files.")
def log_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    logs = list(available_logs(state.repository.locator.logs_dir))
    if not logs:
        console.print("No log files yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="Show the tail of a log file.")
def log_show(
    ctx: typer.Context,
    name: str = typer.Option("newsrelay", "--name", help="Log name without extension (newsrelay or error)."),
    tail: int = typer.Option(100, "--tail", help="Show the last N lines."),
) -> None:
    state = _get_state(ctx)
    path = log_path(name, state.repository.locator.logs_dir)
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} line(s)", style="cyan")
    console.print("".join(lines), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
