"""Durable worklist processing with business-hours scheduling."""

from snfs_defrag.batch.schedule import BusinessHours, ScheduleWindow
from snfs_defrag.batch.scheduler import BatchScheduler, SchedulerRunSummary, SchedulerState
from snfs_defrag.batch.worklist import WorklistStore

__all__ = [
    "BatchScheduler",
    "BusinessHours",
    "ScheduleWindow",
    "SchedulerRunSummary",
    "SchedulerState",
    "WorklistStore",
]
