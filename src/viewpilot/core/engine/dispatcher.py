"""Watch dispatcher: fans tasks out to sessions, retries, records outcomes."""

from __future__ import annotations

import asyncio
import inspect
import itertools
import time
from collections.abc import Awaitable, Callable, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from viewpilot.core.engine.pool import WorkerPool
from viewpilot.core.interfaces.browser import IPage
from viewpilot.core.models.task import (
    OutcomeStatus,
    SessionOutcome,
    TerminalFailureRecord,
    WatchTask,
)

if TYPE_CHECKING:
    from viewpilot.core.interfaces.output import IOutputWriter
    from viewpilot.core.models.config import Config

logger = structlog.get_logger(__name__)

# Opens a fresh page for one attempt, given the proxy for that attempt
PageFactory = Callable[[str | None], AbstractAsyncContextManager[IPage]]
# The watch session controller (see viewpilot.plugins.automation.watch_loop)
Controller = Callable[..., Awaitable[SessionOutcome]]


@dataclass
class TaskReport:
    """Final state of one task after all of its attempts."""

    task: WatchTask
    attempts: int
    outcome: SessionOutcome | None = None
    terminal: TerminalFailureRecord | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is not None and self.outcome.status == OutcomeStatus.SUCCESS


@dataclass
class DispatchSummary:
    """Aggregate result of a dispatch run."""

    reports: list[TaskReport] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def total(self) -> int:
        return len(self.reports)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.reports if r.succeeded)

    @property
    def terminal_failures(self) -> int:
        return sum(1 for r in self.reports if r.terminal is not None)

    @property
    def attempts(self) -> int:
        return sum(r.attempts for r in self.reports)

    @property
    def success_rate(self) -> float:
        if not self.reports:
            return 0.0
        return self.succeeded / self.total


class WatchDispatcher:
    """
    Runs one watch session per task with bounded concurrency.

    Owns retries, per-session timeouts, proxy rotation and persistence. A
    failed or timed-out attempt is retried with exponential backoff; once the
    retry budget is spent a single terminal failure record is written.
    """

    def __init__(
        self,
        config: Config,
        page_factory: PageFactory,
        writer: IOutputWriter | None = None,
        *,
        controller: Controller | None = None,
        pool: WorkerPool | None = None,
        on_report: Callable[[TaskReport], Awaitable[None] | None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if controller is None:
            from viewpilot.plugins.automation.watch_loop import watch_session

            controller = watch_session

        self.config = config
        self.page_factory = page_factory
        self.writer = writer
        self.controller = controller
        self.pool = pool or WorkerPool(
            max_workers=config.concurrency.max_workers,
            task_timeout=config.concurrency.task_timeout,
        )
        self._on_report = on_report
        self._clock = clock
        self._sleep = sleep

        proxies = config.proxy.urls if config.proxy.use_proxies else []
        self._proxy_cycle = itertools.cycle(proxies) if proxies else None

        self._start_lock = asyncio.Lock()
        self._last_start: float | None = None

    def backoff_delay(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt``."""
        retry = self.config.concurrency.retry
        return min(retry.backoff_base**attempt, retry.backoff_max)

    def _next_proxy(self) -> str | None:
        if self._proxy_cycle is None:
            return None
        return next(self._proxy_cycle)

    async def _stagger(self) -> None:
        """Keep session starts at least ``concurrency_interval`` apart."""
        interval = self.config.concurrency.concurrency_interval
        if interval <= 0:
            return
        async with self._start_lock:
            if self._last_start is not None:
                wait = self._last_start + interval - self._clock()
                if wait > 0:
                    await self._sleep(wait)
            self._last_start = self._clock()

    async def _emit(self, record: dict[str, Any]) -> None:
        if self.writer is None:
            return
        try:
            await self.writer.write(record)
        except Exception as e:
            logger.error(
                "[DISPATCH] Failed to write record",
                video_id=record.get("video_id"),
                status=record.get("status"),
                error=str(e),
            )

    async def _attempt(self, task: WatchTask, attempt: int) -> SessionOutcome:
        proxy = self._next_proxy()
        await self._stagger()

        async def job() -> SessionOutcome:
            async with self.page_factory(proxy) as page:
                return await self.controller(task, page, attempt=attempt)

        result = await self.pool.execute(f"{task.video_id or task.url}#{attempt}", job)
        if result.success and isinstance(result.value, SessionOutcome):
            return result.value

        # The controller's in-flight outcome is discarded; record the attempt here
        outcome = SessionOutcome.for_task(task, attempt=attempt)
        error = result.error or "Controller returned no outcome"
        outcome.finalize(OutcomeStatus.FAILURE, f"{result.error_type or 'Error'}: {error}")
        return outcome

    async def _run_task(self, task: WatchTask) -> TaskReport:
        max_attempts = self.config.concurrency.retry.max_attempts
        retry_log: list[str] = []
        last: SessionOutcome | None = None

        for attempt in range(1, max_attempts + 1):
            last = await self._attempt(task, attempt)
            await self._emit(last.to_dict())

            if last.status == OutcomeStatus.SUCCESS:
                return TaskReport(task=task, attempts=attempt, outcome=last)

            retry_log.append(f"attempt {attempt}: {last.error}")

            if attempt < max_attempts:
                delay = self.backoff_delay(attempt)
                logger.info(
                    "[DISPATCH] Retrying task",
                    video_id=task.video_id,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    delay_s=delay,
                    error=last.error,
                )
                await self._sleep(delay)

        terminal = TerminalFailureRecord(
            url=task.url,
            video_id=task.video_id,
            platform=task.platform,
            error=last.error if last else None,
            retry_log=retry_log,
        )
        logger.error(
            "[DISPATCH] Task failed terminally",
            video_id=task.video_id,
            attempts=max_attempts,
            error=terminal.error,
        )
        await self._emit(terminal.to_dict())
        return TaskReport(task=task, attempts=max_attempts, outcome=last, terminal=terminal)

    async def _run_and_report(self, task: WatchTask) -> TaskReport:
        report = await self._run_task(task)
        if self._on_report:
            try:
                result = self._on_report(report)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning("[DISPATCH] on_report callback failed", error=str(e))
        return report

    async def run(self, tasks: Sequence[WatchTask]) -> DispatchSummary:
        """
        Dispatch every task and wait for all of them.

        Args:
            tasks: Tasks to run

        Returns:
            DispatchSummary with one report per task, in input order
        """
        started = self._clock()
        logger.info(
            "[DISPATCH] Dispatch started",
            tasks=len(tasks),
            max_workers=self.pool.max_workers,
            max_attempts=self.config.concurrency.retry.max_attempts,
        )

        await self.pool.start()
        try:
            results = await asyncio.gather(
                *[self._run_and_report(task) for task in tasks],
                return_exceptions=True,
            )
        finally:
            await self.pool.stop()

        summary = DispatchSummary(elapsed=self._clock() - started)
        for task, result in zip(tasks, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    "[DISPATCH] Task crashed",
                    video_id=task.video_id,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                terminal = TerminalFailureRecord(
                    url=task.url,
                    video_id=task.video_id,
                    platform=task.platform,
                    error=f"{type(result).__name__}: {result}",
                )
                summary.reports.append(TaskReport(task=task, attempts=0, terminal=terminal))
            else:
                summary.reports.append(result)

        logger.info(
            "[DISPATCH] Dispatch complete",
            total=summary.total,
            succeeded=summary.succeeded,
            terminal_failures=summary.terminal_failures,
            attempts=summary.attempts,
            elapsed_s=round(summary.elapsed, 1),
        )
        return summary
