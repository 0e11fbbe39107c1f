"""Scheduling of periodic relay runs."""

from .apsched_adapter import RUN_JOB_ID, APSchedulerAdapter

__all__ = ["APSchedulerAdapter", "RUN_JOB_ID"]
