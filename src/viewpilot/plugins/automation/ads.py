"""Pre-roll ad handling.

Waits for a skip button or for the ad to finish on its own. Expiry of the ad
budget is a soft timeout: an unskippable ad never aborts the session.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from viewpilot.plugins.automation.platforms import PlatformSelectors

if TYPE_CHECKING:
    from viewpilot.core.interfaces.browser import IPage

logger = structlog.get_logger(__name__)


class AdGateOutcome(str, Enum):
    """How the ad gate exited."""

    NONE = "none"  # No ad appeared within the detection window
    FINISHED = "finished"  # Ad ended on its own
    SKIPPED = "skipped"  # Skip button clicked
    TIMED_OUT = "timed_out"  # Budget exhausted, proceeding anyway


@dataclass
class AdGateResult:
    """Result of one pass through the ad gate."""

    outcome: AdGateOutcome
    skip_attempts: int = 0
    polling_elapsed: float = 0.0

    @property
    def ad_detected(self) -> bool:
        return self.outcome != AdGateOutcome.NONE


class AdGate:
    """Detect an ad and wait for it to become skippable or to finish."""

    def __init__(
        self,
        selectors: PlatformSelectors,
        *,
        detect_timeout: float = 7.0,
        skip_attempt_timeout: float = 1.5,
        poll_interval: float = 1.0,
        finished_delay: float = 1.0,
        skipped_delay: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.selectors = selectors
        self.detect_timeout = detect_timeout
        self.skip_attempt_timeout = skip_attempt_timeout
        self.poll_interval = poll_interval
        self.finished_delay = finished_delay
        self.skipped_delay = skipped_delay
        self._clock = clock
        self._sleep = sleep

    async def is_ad_showing(self, page: IPage) -> bool:
        """Check whether the ad indicator is currently visible."""
        if not self.selectors.ad_indicator:
            return False
        try:
            return bool(await page.locator(self.selectors.ad_indicator).first.is_visible())
        except Exception as e:
            logger.debug("[AD_GATE] Ad indicator query failed", error=str(e)[:120])
            return False

    async def _try_skip(self, page: IPage) -> bool:
        if not self.selectors.skip_button:
            return False
        try:
            await page.locator(self.selectors.skip_button).first.click(
                timeout=self.skip_attempt_timeout * 1000
            )
            return True
        except Exception:
            return False

    async def run(
        self,
        page: IPage,
        max_seconds_ads: float,
        skip_after: float = 0.0,
    ) -> AdGateResult:
        """Run the ad gate once.

        Args:
            page: Browser page object
            max_seconds_ads: Polling budget once an ad is detected
            skip_after: Seconds the ad must have been showing before skip clicks

        Returns:
            AdGateResult
        """
        if not self.selectors.has_ads:
            return AdGateResult(outcome=AdGateOutcome.NONE)

        try:
            await page.locator(self.selectors.ad_indicator).first.wait_for(
                state="visible",
                timeout=self.detect_timeout * 1000,
            )
        except Exception:
            logger.debug(
                "[AD_GATE] No ad detected",
                detect_timeout_s=self.detect_timeout,
            )
            return AdGateResult(outcome=AdGateOutcome.NONE)

        # At least one skip attempt must fit inside the budget
        skip_after = min(skip_after, max(0.0, max_seconds_ads - self.poll_interval))

        logger.info(
            "[AD_GATE] Ad detected",
            max_seconds_ads=max_seconds_ads,
            skip_after_s=round(skip_after, 1),
        )

        start = self._clock()
        skip_attempts = 0

        while (elapsed := self._clock() - start) < max_seconds_ads:
            if not await self.is_ad_showing(page):
                logger.info("[AD_GATE] Ad finished", elapsed_s=round(elapsed, 1))
                await self._sleep(self.finished_delay)
                return AdGateResult(AdGateOutcome.FINISHED, skip_attempts, elapsed)

            if elapsed >= skip_after:
                skip_attempts += 1
                if await self._try_skip(page):
                    logger.info(
                        "[AD_GATE] Ad skipped",
                        elapsed_s=round(elapsed, 1),
                        skip_attempts=skip_attempts,
                    )
                    await self._sleep(self.skipped_delay)
                    return AdGateResult(AdGateOutcome.SKIPPED, skip_attempts, elapsed)

            await self._sleep(self.poll_interval)

        elapsed = self._clock() - start
        logger.warning(
            "[AD_GATE] Ad not skippable within budget, proceeding",
            max_seconds_ads=max_seconds_ads,
            skip_attempts=skip_attempts,
        )
        return AdGateResult(AdGateOutcome.TIMED_OUT, skip_attempts, elapsed)
