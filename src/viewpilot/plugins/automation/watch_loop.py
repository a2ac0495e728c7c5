"""Watch session controller.

Drives one page through the full watch lifecycle for one task:

    navigating -> consent -> ad_gate -> playback_assure
               -> duration_discovery -> watching -> done

Any session-fatal error becomes a ``failure`` outcome. The outcome is
finalized and handed off exactly once, whichever branch is taken.
"""

from __future__ import annotations

import asyncio
import inspect
import random
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import structlog

from viewpilot.core.errors import NavigationError, WatchSessionError, WatchTimeoutError
from viewpilot.core.interfaces.browser import IPage
from viewpilot.core.models.task import OutcomeStatus, SessionOutcome, WatchTask, WatchType
from viewpilot.plugins.automation.ads import AdGate
from viewpilot.plugins.automation.consent import ConsentResolver
from viewpilot.plugins.automation.duration import DurationStabilizer
from viewpilot.plugins.automation.media import probe_media, seek_media, set_volume
from viewpilot.plugins.automation.platforms import PlatformSelectors, get_selectors
from viewpilot.plugins.automation.playback import PlaybackAssurance
from viewpilot.plugins.behavior.interaction import (
    HumanInteractionSimulator,
    InteractionSchedule,
)
from viewpilot.plugins.behavior.mouse_plugin import MouseBehavior

logger = structlog.get_logger(__name__)

OutcomeCallback = Callable[[SessionOutcome], Awaitable[None] | None]


class WatchPhase(str, Enum):
    """Watch session states."""

    NAVIGATING = "navigating"
    CONSENT = "consent"
    AD_GATE = "ad_gate"
    PLAYBACK_ASSURE = "playback_assure"
    DURATION_DISCOVERY = "duration_discovery"
    WATCHING = "watching"
    DONE = "done"


class WatchSession:
    """One controller run for one task on one already-open page.

    Usage:
        session = WatchSession(task, page)
        outcome = await session.run()
    """

    def __init__(
        self,
        task: WatchTask,
        page: IPage,
        *,
        attempt: int = 1,
        selectors: PlatformSelectors | None = None,
        consent: ConsentResolver | None = None,
        ad_gate: AdGate | None = None,
        playback: PlaybackAssurance | None = None,
        stabilizer: DurationStabilizer | None = None,
        interactions: HumanInteractionSimulator | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_finalize: OutcomeCallback | None = None,
        probe_interval: float = 5.0,
        search_result_timeout: float = 30.0,
        network_idle_timeout: float = 20.0,
        timeout_factor: float = 1.5,
        timeout_grace: float = 120.0,
        first_interaction: tuple[float, float] = (15.0, 35.0),
        interaction_gap: tuple[float, float] = (25.0, 50.0),
    ) -> None:
        self.task = task
        self.page = page
        self.selectors = selectors or get_selectors(task.platform)
        self.rng = rng or random.Random()
        self._clock = clock
        self._sleep = sleep
        self._on_finalize = on_finalize

        self.consent = consent or ConsentResolver(sleep=sleep)
        self.ad_gate = ad_gate or AdGate(self.selectors, clock=clock, sleep=sleep)
        self.playback = playback or PlaybackAssurance(self.selectors, sleep=sleep)
        self.stabilizer = stabilizer or DurationStabilizer(
            self.selectors.media,
            ad_gate=self.ad_gate,
            duration_display=self.selectors.duration_display,
            sleep=sleep,
        )
        self.interactions = interactions or HumanInteractionSimulator(
            self.selectors,
            rng=self.rng,
            mouse=MouseBehavior(rng=self.rng, sleep=sleep),
        )

        self.probe_interval = probe_interval
        self.search_result_timeout = search_result_timeout
        self.network_idle_timeout = network_idle_timeout
        self.timeout_factor = timeout_factor
        self.timeout_grace = timeout_grace
        self.first_interaction = first_interaction
        self.interaction_gap = interaction_gap

        self.outcome = SessionOutcome.for_task(task, attempt=attempt)
        self.phase = WatchPhase.NAVIGATING
        self.interactions_performed = 0

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _goto(self, url: str) -> None:
        try:
            await self.page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.task.navigation_timeout * 1000,
            )
        except Exception as e:
            raise NavigationError(f"Navigation to {url} failed: {e}") from e

    async def _navigate(self) -> None:
        task = self.task

        if task.watch_type == WatchType.SEARCH:
            search_url = self.selectors.build_search_url(task.search_keywords or "")
            await self._goto(search_url)

            link = self.page.locator(self.selectors.result_link_for(task.video_id or "")).first
            try:
                await link.wait_for(state="visible", timeout=self.search_result_timeout * 1000)
                await link.click(timeout=self.search_result_timeout * 1000)
                await self.page.wait_for_load_state(
                    "domcontentloaded",
                    timeout=task.navigation_timeout * 1000,
                )
            except Exception as e:
                raise NavigationError(
                    f"Search result for {task.video_id} not found: {e}"
                ) from e
        else:
            if task.watch_type == WatchType.REFERER and task.referer_url:
                await self.page.set_extra_http_headers({"Referer": task.referer_url})
            await self._goto(task.url)

        logger.info(
            "[WATCH_NAV] Video page loaded",
            video_id=task.video_id,
            watch_type=task.watch_type.value,
            current_url=self.page.url,
        )

        try:
            await self.page.wait_for_load_state(
                "networkidle",
                timeout=self.network_idle_timeout * 1000,
            )
        except Exception as e:
            logger.warning(
                "[WATCH_NAV] Network idle not reached, continuing",
                video_id=task.video_id,
                timeout_s=self.network_idle_timeout,
                error=str(e)[:120],
            )

    async def _prepare_media(self) -> None:
        """Best-effort unmute, small random volume and seek to start."""
        volume = self.rng.uniform(0.05, 0.2)
        try:
            await set_volume(self.page, self.selectors.media, volume)
        except Exception as e:
            logger.debug("[WATCH_MEDIA] Volume set failed", error=str(e)[:120])

        if self.task.seek_to_start:
            try:
                await seek_media(self.page, self.selectors.media, 0)
            except Exception as e:
                logger.debug("[WATCH_MEDIA] Seek to start failed", error=str(e)[:120])

    async def _watch(self, requested: float) -> None:
        ceiling = requested * self.timeout_factor + self.timeout_grace
        schedule = InteractionSchedule(
            self.rng,
            first=self.first_interaction,
            gap=self.interaction_gap,
        )
        start = self._clock()
        last_time: float | None = None

        logger.info(
            "[WATCH_LOOP] Watching",
            video_id=self.task.video_id,
            requested_s=round(requested, 2),
            ceiling_s=round(ceiling, 2),
            first_interaction_s=round(schedule.next_at, 1),
        )

        while True:
            probe = await probe_media(self.page, self.selectors.media)
            if probe is None:
                raise WatchSessionError("Media element disappeared during watch")

            elapsed = self._clock() - start
            self.outcome.watch_time_actual_sec = probe.current_time

            if probe.ended or probe.current_time >= requested:
                logger.info(
                    "[WATCH_LOOP] Target reached",
                    video_id=self.task.video_id,
                    current_time_s=round(probe.current_time, 2),
                    requested_s=round(requested, 2),
                    ended=probe.ended,
                    elapsed_s=round(elapsed, 1),
                )
                return

            if elapsed > ceiling:
                raise WatchTimeoutError(elapsed, ceiling, probe.current_time)

            # Playing but frozen (buffering) counts as a stall
            stalled = (
                not probe.paused
                and last_time is not None
                and probe.current_time <= last_time
            )
            if probe.paused or stalled:
                logger.info(
                    "[WATCH_LOOP] Media not advancing, reassuring playback",
                    video_id=self.task.video_id,
                    current_time_s=round(probe.current_time, 2),
                    paused=probe.paused,
                )
                await self.playback.ensure_playing(self.page, stalled=stalled)
            last_time = probe.current_time

            if schedule.due(elapsed):
                await self.interactions.perform(self.page)
                self.interactions_performed += 1
                schedule.fired(elapsed)

            logger.debug(
                "[WATCH_LOOP] Progress",
                video_id=self.task.video_id,
                current_time_s=round(probe.current_time, 2),
                requested_s=round(requested, 2),
            )
            await self._sleep(self.probe_interval)

    async def _run_phases(self) -> None:
        task = self.task

        self.phase = WatchPhase.NAVIGATING
        await self._navigate()

        self.phase = WatchPhase.CONSENT
        await self.consent.resolve(self.page)

        self.phase = WatchPhase.AD_GATE
        if self.selectors.has_ads and task.auto_skip_ads:
            skip_after = self.rng.uniform(*task.skip_ads_after)
            await self.ad_gate.run(self.page, task.max_seconds_ads, skip_after)

        self.phase = WatchPhase.PLAYBACK_ASSURE
        await self.playback.ensure_playing(self.page)
        await self._prepare_media()

        self.phase = WatchPhase.DURATION_DISCOVERY
        result = await self.stabilizer.stabilize(self.page)
        requested = self.outcome.set_duration(result.duration, task.watch_time_percentage)

        self.phase = WatchPhase.WATCHING
        await self._watch(requested)

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    async def _hand_off(self) -> None:
        if self._on_finalize is None:
            return
        try:
            result = self._on_finalize(self.outcome)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(
                "[WATCH_SESSION] Outcome hand-off failed",
                video_id=self.task.video_id,
                error=str(e),
            )

    async def run(self) -> SessionOutcome:
        """Run the session to completion.

        Session-fatal errors are captured in the outcome, not raised.
        Cancellation propagates untouched; the dispatcher owns that outcome.
        """
        logger.info(
            "[WATCH_SESSION] Session started",
            url=self.task.url,
            video_id=self.task.video_id,
            platform=self.task.platform.value,
            attempt=self.outcome.attempt,
        )

        try:
            await self._run_phases()
        except asyncio.CancelledError:
            logger.warning(
                "[WATCH_SESSION] Session cancelled",
                video_id=self.task.video_id,
                phase=self.phase.value,
            )
            raise
        except Exception as e:
            failed_phase = self.phase
            self.phase = WatchPhase.DONE
            self.outcome.finalize(OutcomeStatus.FAILURE, f"{type(e).__name__}: {e}")
            logger.error(
                "[WATCH_SESSION] Session failed",
                video_id=self.task.video_id,
                phase=failed_phase.value,
                error=self.outcome.error,
            )
        else:
            self.phase = WatchPhase.DONE
            self.outcome.finalize(OutcomeStatus.SUCCESS)
            logger.info(
                "[WATCH_SESSION] Session succeeded",
                video_id=self.task.video_id,
                duration_s=self.outcome.duration_found_sec,
                watched_s=round(self.outcome.watch_time_actual_sec, 2),
                requested_s=round(self.outcome.watch_time_requested_sec, 2),
                interactions=self.interactions_performed,
            )

        await self._hand_off()
        return self.outcome


async def watch_session(
    task: WatchTask,
    page: IPage,
    *,
    attempt: int = 1,
    **kwargs: Any,
) -> SessionOutcome:
    """Run one watch session and return its finalized outcome."""
    return await WatchSession(task, page, attempt=attempt, **kwargs).run()
