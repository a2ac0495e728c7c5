"""Engine layer - session dispatch and execution."""

from viewpilot.core.engine.dispatcher import DispatchSummary, TaskReport, WatchDispatcher
from viewpilot.core.engine.pool import JobResult, WorkerPool

__all__ = [
    "DispatchSummary",
    "JobResult",
    "TaskReport",
    "WatchDispatcher",
    "WorkerPool",
]
