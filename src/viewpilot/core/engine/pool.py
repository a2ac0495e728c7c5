"""Worker pool implementation."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

# Type alias for a zero-argument coroutine factory
JobFactory = Callable[[], Coroutine[Any, Any, Any]]


@dataclass
class JobResult:
    """Result of one pooled job."""

    label: str
    value: Any = None
    error: str | None = None
    error_type: str | None = None
    timed_out: bool = False
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None


class WorkerPool:
    """
    Bounded concurrent execution of watch attempts.

    Each job runs under the pool semaphore and a whole-job timeout. Cancelling
    a timed-out job is the only way a session is ever interrupted.
    """

    def __init__(
        self,
        max_workers: int = 2,
        task_timeout: float = 3600.0,
    ) -> None:
        """
        Initialize worker pool.

        Args:
            max_workers: Maximum concurrent jobs
            task_timeout: Default job timeout in seconds
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self._max_workers = max_workers
        self._task_timeout = task_timeout
        self._semaphore = asyncio.Semaphore(max_workers)
        self._active = 0
        self._running = False

        self._stats = {
            "total_jobs_executed": 0,
            "total_jobs_succeeded": 0,
            "total_jobs_failed": 0,
            "total_jobs_timeout": 0,
        }

    @property
    def max_workers(self) -> int:
        """Get maximum worker count."""
        return self._max_workers

    @property
    def task_timeout(self) -> float:
        return self._task_timeout

    @property
    def active_workers(self) -> int:
        """Get count of jobs currently running."""
        return self._active

    @property
    def is_running(self) -> bool:
        """Check if pool is running."""
        return self._running

    @property
    def stats(self) -> dict[str, int]:
        """Get pool statistics."""
        return self._stats.copy()

    async def start(self) -> None:
        """Start the worker pool."""
        if self._running:
            return
        self._running = True
        logger.info("[POOL] Worker pool started", max_workers=self._max_workers)

    async def stop(self) -> None:
        """Stop accepting jobs."""
        if not self._running:
            return
        self._running = False
        logger.info("[POOL] Worker pool stopped", **self._stats)

    async def execute(
        self,
        label: str,
        job: JobFactory,
        timeout: float | None = None,
    ) -> JobResult:
        """
        Run a job under the concurrency bound and a timeout.

        Args:
            label: Human-readable job label for logs
            job: Coroutine factory, called once a slot is free
            timeout: Optional timeout override

        Returns:
            JobResult; exceptions and timeouts are captured, never raised
        """
        if not self._running:
            raise RuntimeError("Worker pool is not running")

        timeout = timeout or self._task_timeout

        async with self._semaphore:
            self._active += 1
            started_at = datetime.now()
            try:
                value = await asyncio.wait_for(job(), timeout=timeout)
                result = JobResult(label=label, value=value)
                self._stats["total_jobs_succeeded"] += 1

            except TimeoutError:
                self._stats["total_jobs_timeout"] += 1
                self._stats["total_jobs_failed"] += 1
                logger.warning("[POOL] Job timed out", label=label, timeout_s=timeout)
                result = JobResult(
                    label=label,
                    error=f"Session exceeded {timeout}s timeout",
                    error_type="SessionTimeout",
                    timed_out=True,
                )

            except Exception as e:
                self._stats["total_jobs_failed"] += 1
                logger.warning(
                    "[POOL] Job raised",
                    label=label,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                result = JobResult(label=label, error=str(e), error_type=type(e).__name__)

            finally:
                self._active -= 1

            self._stats["total_jobs_executed"] += 1
            result.duration_ms = (datetime.now() - started_at).total_seconds() * 1000
            return result
