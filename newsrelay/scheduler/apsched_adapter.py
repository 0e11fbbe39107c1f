"""Run the relay periodically on a background APScheduler."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import ScheduleConfig, ScheduleType

RUN_JOB_ID = "relay::run"


def _cron_trigger(value: Any) -> BaseTrigger:
    return CronTrigger.from_crontab(str(value), timezone=timezone.utc)


def _interval_trigger(value: Any) -> BaseTrigger:
    if isinstance(value, dict):
        return IntervalTrigger(timezone=timezone.utc, **value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return IntervalTrigger(seconds=float(value), timezone=timezone.utc)
    raise ValueError(f"Interval schedule needs seconds or IntervalTrigger kwargs, got {value!r}")


def _once_trigger(value: Any) -> BaseTrigger:
    if not value:
        return DateTrigger(run_date=datetime.now(timezone.utc))
    run_date = datetime.fromisoformat(str(value))
    if run_date.tzinfo is None:
        run_date = run_date.replace(tzinfo=timezone.utc)
    return DateTrigger(run_date=run_date)


_TRIGGER_BUILDERS: dict[ScheduleType, Callable[[Any], BaseTrigger]] = {
    ScheduleType.CRON: _cron_trigger,
    ScheduleType.INTERVAL: _interval_trigger,
    ScheduleType.ONCE: _once_trigger,
}


class APSchedulerAdapter:
    """Own the scheduler and the single relay job registered on it."""

    def __init__(
        self,
        scheduler: BaseScheduler | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.scheduler = scheduler or BackgroundScheduler(timezone=timezone.utc)
        self.logger = (logger or structlog.get_logger("newsrelay")).bind(component="scheduler")
        self._running = False
        self.scheduler.add_listener(self._on_job_event, EVENT_JOB_ERROR | EVENT_JOB_MISSED)

    def start(self) -> None:
        if self._running:
            return
        self.scheduler.start()
        self._running = True
        self.logger.info("scheduler_started", jobs=len(self.list_jobs()))

    def shutdown(self) -> None:
        if not self._running:
            return
        self.scheduler.shutdown(wait=False)
        self._running = False
        self.logger.info("scheduler_stopped")

    def schedule_run(
        self,
        schedule: ScheduleConfig,
        callback: Callable[[], object],
        job_id: str = RUN_JOB_ID,
    ) -> None:
        """Register ``callback`` under ``schedule``, replacing any previous job."""

        trigger = self._build_trigger(schedule)
        # Overlapping runs would race on the seen-set
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info("run_scheduled", job_id=job_id, schedule=schedule.model_dump(mode="json"))

    def remove_run(self, job_id: str = RUN_JOB_ID) -> None:
        try:
            self.scheduler.remove_job(job_id)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("run_unschedule_failed", job_id=job_id, error=str(exc))

    def _build_trigger(self, schedule: ScheduleConfig) -> BaseTrigger:
        builder = _TRIGGER_BUILDERS.get(schedule.type)
        if builder is None:
            raise ValueError(f"Unknown schedule type: {schedule.type}")
        return builder(schedule.value)

    def _on_job_event(self, event: JobExecutionEvent) -> None:
        if event.code == EVENT_JOB_MISSED:
            self.logger.warning("scheduled_run_missed", job_id=event.job_id)
            return
        self.logger.error("scheduled_run_crashed", job_id=event.job_id, error=repr(event.exception))

    def list_jobs(self) -> list[dict]:
        return [
            {
                "id": job.id,
                "next_run_time": getattr(job, "next_run_time", None),
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]


__all__ = ["APSchedulerAdapter", "RUN_JOB_ID"]
