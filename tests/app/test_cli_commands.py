from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from newsrelay.app import AppState, app
from newsrelay.config import FeedsConfig, GlobalConfig, MatchStrategy
from newsrelay.errors import ConfigError, Failure, FailureKind
from newsrelay.pipeline import PipelineState, RunReport
from newsrelay.storage import JsonSeenStore


class StubPipeline:
    def __init__(self, report: RunReport) -> None:
        self.report = report
        self.calls: list[tuple] = []
        self.closed = False

    def run(self, sources, keywords, options):  # noqa: ANN001
        self.calls.append((list(sources), list(keywords), options))
        return self.report

    def close(self) -> None:
        self.closed = True


class StubScheduler:
    def __init__(self) -> None:
        self.events: list[str] = []
        self.callback = None

    def schedule_run(self, schedule, callback) -> None:  # noqa: ANN001
        self.events.append(f"schedule:{schedule.type.value}")
        self.callback = callback

    def start(self) -> None:
        self.events.append("start")

    def remove_run(self) -> None:
        self.events.append("remove")

    def shutdown(self) -> None:
        self.events.append("shutdown")

    def list_jobs(self) -> list[dict]:
        return [{"id": "relay::run", "next_run_time": "soon", "trigger": "cron[0 8 * * *]"}]


class ClosingStore(JsonSeenStore):
    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self.closed = 0

    def close(self) -> None:
        self.closed += 1


def make_state(
    tmp_path: Path,
    feeds: FeedsConfig,
    pipeline: StubPipeline | None = None,
    config: GlobalConfig | None = None,
    feeds_error: Exception | None = None,
) -> AppState:
    logs_dir = tmp_path / "logs"
    logs_dir.mkdir(exist_ok=True)

    def load_feeds():
        if feeds_error is not None:
            raise feeds_error
        return feeds

    locator = SimpleNamespace(
        lock_path=lambda: tmp_path / "run.lock",
        logs_dir=logs_dir,
        outputs_dir=tmp_path / "outputs",
    )
    repository = SimpleNamespace(load_feeds=load_feeds, locator=locator)
    factory_calls: list[bool] = []

    def factory(dry_run: bool):
        factory_calls.append(dry_run)
        return pipeline

    state = AppState(
        repository=repository,
        config=config or GlobalConfig(),
        logger=SimpleNamespace(bind=lambda **_: SimpleNamespace(info=lambda *a, **k: None, error=lambda *a, **k: None)),
        scheduler=StubScheduler(),
        store=ClosingStore(tmp_path / "seen.json"),
        pipeline_factory=factory,
    )
    state.factory_calls = factory_calls  # type: ignore[attr-defined]
    return state


@pytest.fixture
def feeds(sample_source_config) -> FeedsConfig:
    return FeedsConfig(
        sources=[sample_source_config(name="HN"), sample_source_config(name="Blog", url="https://blog.example.com/rss")],
        keywords=["rust", "go"],
    )


def test_cli_run_success(monkeypatch, tmp_path, feeds) -> None:
    report = RunReport(state=PipelineState.DONE, keywords=["rust", "go", "python"], fetched=5, filtered=3, new=2, delivered=2)
    pipeline = StubPipeline(report)
    state = make_state(tmp_path, feeds, pipeline)
    monkeypatch.setattr("newsrelay.app.build_state", lambda verbose: state)

    result = CliRunner().invoke(
        app, ["run", "--keywords", "go, python", "--max-items", "5", "--strategy", "all", "--dry-run"]
    )

    assert result.exit_code == 0, result.stdout
    assert "Run result" in result.stdout
    assert "delivered" in result.stdout
    sources, keywords, options = pipeline.calls[0]
    assert [source.name for source in sources] == ["HN", "Blog"]
    assert keywords == ["rust", "go", "python"]
    assert options.max_items == 5
    assert options.match.strategy is MatchStrategy.ALL
    assert options.retention_days == 30
    assert state.factory_calls == [True]
    assert pipeline.closed
    assert not (tmp_path / "run.lock").exists()


def test_cli_run_failure_exits_non_zero(monkeypatch, tmp_path, feeds) -> None:
    report = RunReport(
        state=PipelineState.FAILED,
        failure=Failure(kind=FailureKind.DELIVERY, message="Delivery failed after 3 attempts"),
    )
    state = make_state(tmp_path, feeds, StubPipeline(report))
    monkeypatch.setattr("newsrelay.app.build_state", lambda verbose: state)

    result = CliRunner().invoke(app, ["run"])

    assert result.exit_code == 1
    assert "Delivery failed after 3 attempts" in result.stdout


def test_cli_run_config_error(monkeypatch, tmp_path, feeds) -> None:
    state = make_state(tmp_path, feeds, feeds_error=ConfigError("Feeds configuration not found: feeds.json"))
    monkeypatch.setattr("newsrelay.app.build_state", lambda verbose: state)

    result = CliRunner().invoke(app, ["run"])

    assert result.exit_code == 1
    assert "Feeds configuration not found" in result.stdout


def test_cli_run_refuses_when_locked(monkeypatch, tmp_path, feeds) -> None:
    pipeline = StubPipeline(RunReport(state=PipelineState.DONE))
    state = make_state(tmp_path, feeds, pipeline)
    (tmp_path / "run.lock").write_text("123", encoding="utf-8")
    monkeypatch.setattr("newsrelay.app.build_state", lambda verbose: state)

    result = CliRunner().invoke(app, ["run"])

    assert result.exit_code == 1
    assert "already in progress" in result.stdout
    assert pipeline.calls == []
    assert pipeline.closed


def test_cli_sources(monkeypatch, tmp_path, feeds) -> None:
    state = make_state(tmp_path, feeds)
    monkeypatch.setattr("newsrelay.app.build_state", lambda verbose: state)

    result = CliRunner().invoke(app, ["sources"])

    assert result.exit_code == 0, result.stdout
    assert "HN" in result.stdout and "Blog" in result.stdout
    assert "2 of 2 source(s) enabled" in result.stdout
    assert "Keywords: rust, go" in result.stdout


def test_cli_history_show_prune_reset(monkeypatch, tmp_path, feeds, make_item) -> None:
    state = make_state(tmp_path, feeds)
    old = make_item(title="Ancient story", url="https://example.com/old", published_at=datetime(2000, 1, 1, tzinfo=timezone.utc))
    fresh = make_item(title="Fresh story", url="https://example.com/new", published_at=datetime.now(timezone.utc))
    state.store.append_new([old, fresh])
    monkeypatch.setattr("newsrelay.app.build_state", lambda verbose: state)
    runner = CliRunner()

    shown = runner.invoke(app, ["history", "show", "--limit", "5"])
    assert shown.exit_code == 0, shown.stdout
    assert "Fresh story" in shown.stdout and "Ancient story" in shown.stdout

    pruned = runner.invoke(app, ["history", "prune", "--days", "30"])
    assert pruned.exit_code == 0, pruned.stdout
    assert "Removed 1 record(s)" in pruned.stdout

    reset = runner.invoke(app, ["history", "reset", "--yes"])
    assert reset.exit_code == 0, reset.stdout
    assert state.store.load_all() == []


def test_cli_history_reset_can_be_cancelled(monkeypatch, tmp_path, feeds, make_item) -> None:
    state = make_state(tmp_path, feeds)
    state.store.append_new([make_item()])
    monkeypatch.setattr("newsrelay.app.build_state", lambda verbose: state)

    result = CliRunner().invoke(app, ["history", "reset"], input="n\n")

    assert result.exit_code == 0
    assert "Cancelled" in result.stdout
    assert len(state.store.load_all()) == 1


def test_cli_log_show(monkeypatch, tmp_path, feeds) -> None:
    state = make_state(tmp_path, feeds)
    (tmp_path / "logs" / "newsrelay.log").write_text("first\nsecond\nthird\n", encoding="utf-8")
    monkeypatch.setattr("newsrelay.app.build_state", lambda verbose: state)
    runner = CliRunner()

    listed = runner.invoke(app, ["log", "list"])
    assert listed.exit_code == 0, listed.stdout
    assert "newsrelay.log" in listed.stdout

    shown = runner.invoke(app, ["log", "show", "--tail", "2"])
    assert shown.exit_code == 0, shown.stdout
    assert "second" in shown.stdout and "third" in shown.stdout
    assert "first" not in shown.stdout


def test_cli_schedule_runs_until_interrupted(monkeypatch, tmp_path, feeds) -> None:
    pipeline = StubPipeline(RunReport(state=PipelineState.DONE))
    state = make_state(tmp_path, feeds, pipeline)
    monkeypatch.setattr("newsrelay.app.build_state", lambda verbose: state)

    def interrupt(_seconds: float) -> None:
        raise KeyboardInterrupt

    monkeypatch.setattr("newsrelay.app.time.sleep", interrupt)

    result = CliRunner().invoke(app, ["schedule"])

    assert result.exit_code == 0, result.stdout
    assert state.scheduler.events == ["schedule:cron", "start", "remove", "shutdown"]
    assert "relay::run" in result.stdout

    state.scheduler.callback()
    assert pipeline.calls and pipeline.calls[0][1] == ["rust", "go"]


def test_cli_run_rejects_zero_max_items(monkeypatch, tmp_path, feeds) -> None:
    pipeline = StubPipeline(RunReport(state=PipelineState.DONE))
    state = make_state(tmp_path, feeds, pipeline)
    monkeypatch.setattr("newsrelay.app.build_state", lambda verbose: state)

    result = CliRunner().invoke(app, ["run", "--max-items", "0"])

    assert result.exit_code == 2
    assert pipeline.calls == []


def test_cli_sources_counts_disabled(monkeypatch, tmp_path, sample_source_config) -> None:
    feeds = FeedsConfig(
        sources=[
            sample_source_config(name="HN"),
            sample_source_config(name="Old", url="https://old.example.com/rss", enabled=False),
        ]
    )
    state = make_state(tmp_path, feeds)
    monkeypatch.setattr("newsrelay.app.build_state", lambda verbose: state)

    result = CliRunner().invoke(app, ["sources"])

    assert result.exit_code == 0, result.stdout
    assert "1 of 2 source(s) enabled" in result.stdout


@pytest.mark.parametrize("args", [["sources"], ["history", "show"]])
def test_cli_closes_store_on_exit(monkeypatch, tmp_path, feeds, args) -> None:
    state = make_state(tmp_path, feeds)
    monkeypatch.setattr("newsrelay.app.build_state", lambda verbose: state)

    result = CliRunner().invoke(app, args)

    assert result.exit_code == 0, result.stdout
    assert state.store.closed == 1
