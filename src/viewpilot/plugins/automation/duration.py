"""Media duration discovery.

Players report zero, NaN or the ad's own duration while an ad is showing, and
refine the real duration by small amounts once the manifest loads. A reading is
only trusted once consecutive samples agree within a duration-dependent
tolerance. When the element reports no finite duration, the player's own time
display is read instead.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from viewpilot.core.errors import DurationUndeterminableError
from viewpilot.plugins.automation.media import probe_media

if TYPE_CHECKING:
    from viewpilot.core.interfaces.browser import IPage
    from viewpilot.plugins.automation.ads import AdGate

logger = structlog.get_logger(__name__)


def duration_tolerance(duration: float) -> float:
    """Allowed jitter between consecutive samples."""
    return 1.0 if duration > 60 else 0.5


def is_usable(sample: float | None) -> bool:
    """A usable sample is a finite positive number."""
    return sample is not None and math.isfinite(sample) and sample > 0


def parse_time_display(text: str | None) -> float | None:
    """Parse a player time display (``M:SS`` or ``H:MM:SS``) into seconds."""
    if not text:
        return None
    parts = text.strip().split(":")
    if len(parts) not in (2, 3) or not all(part.isdigit() for part in parts):
        return None
    seconds = 0
    for part in parts:
        seconds = seconds * 60 + int(part)
    return float(seconds)


@dataclass
class DurationResult:
    """Result of duration discovery."""

    duration: float
    stable: bool
    attempts: int


class DurationSampleTracker:
    """Acceptance rule for a stream of duration samples.

    A sample is accepted once it and the samples before it have agreed within
    tolerance ``confirmations`` times in a row. Unusable samples reset the
    baseline.
    """

    def __init__(self, confirmations: int = 2) -> None:
        if confirmations < 1:
            raise ValueError("confirmations must be at least 1")
        self.confirmations = confirmations
        self.baseline: float | None = None
        self.last_usable: float | None = None
        self._agreements = 0

    def reset(self) -> None:
        self.baseline = None
        self._agreements = 0

    def feed(self, sample: float | None) -> float | None:
        """Feed one sample; returns the accepted duration once stable."""
        if sample is None or not is_usable(sample):
            self.reset()
            return None

        self.last_usable = sample

        if self.baseline is not None and abs(sample - self.baseline) < duration_tolerance(sample):
            self._agreements += 1
        else:
            self._agreements = 0

        self.baseline = sample
        if self._agreements >= self.confirmations:
            return sample
        return None


def stabilize_samples(samples: Iterable[float | None], confirmations: int = 2) -> float | None:
    """Run the acceptance rule over a fixed sample sequence."""
    tracker = DurationSampleTracker(confirmations)
    for sample in samples:
        found = tracker.feed(sample)
        if found is not None:
            return found
    return None


class DurationStabilizer:
    """Poll the media duration until it stabilizes."""

    def __init__(
        self,
        media_selector: str,
        ad_gate: AdGate | None = None,
        *,
        duration_display: str | None = None,
        display_timeout: float = 1.0,
        poll_interval: float = 1.0,
        ad_backoff: float = 2.0,
        max_attempts: int = 20,
        confirmations: int = 2,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.media_selector = media_selector
        self.ad_gate = ad_gate
        self.duration_display = duration_display
        self.display_timeout = display_timeout
        self.poll_interval = poll_interval
        self.ad_backoff = ad_backoff
        self.max_attempts = max_attempts
        self.confirmations = confirmations
        self._sleep = sleep

    async def _read_display(self, page: IPage) -> float | None:
        if not self.duration_display:
            return None
        try:
            text = await page.locator(self.duration_display).first.text_content(
                timeout=self.display_timeout * 1000
            )
        except Exception as e:
            logger.debug("[DURATION] Time display unreadable", error=str(e)[:120])
            return None
        return parse_time_display(text)

    async def _read(self, page: IPage) -> float | None:
        probe = await probe_media(page, self.media_selector)
        sample = probe.duration if probe else None
        if is_usable(sample):
            return sample

        # Infinity or NaN until the manifest loads; the control bar may already know
        shown = await self._read_display(page)
        if shown is not None:
            logger.debug("[DURATION] Using player time display", duration_s=shown)
            return shown
        return sample

    async def stabilize(self, page: IPage) -> DurationResult:
        """Discover the media duration.

        Returns:
            DurationResult; ``stable`` is False for a best-effort value

        Raises:
            DurationUndeterminableError: No usable sample was ever observed
        """
        tracker = DurationSampleTracker(self.confirmations)

        for attempt in range(1, self.max_attempts + 1):
            if self.ad_gate is not None and await self.ad_gate.is_ad_showing(page):
                logger.debug("[DURATION] Ad showing, resetting baseline", attempt=attempt)
                tracker.reset()
                await self._sleep(self.ad_backoff)
                continue

            sample = await self._read(page)
            found = tracker.feed(sample)
            if found is not None:
                logger.info(
                    "[DURATION] Duration stabilized",
                    duration_s=round(found, 2),
                    attempts=attempt,
                )
                return DurationResult(duration=found, stable=True, attempts=attempt)

            logger.debug(
                "[DURATION] Sample not yet stable",
                attempt=attempt,
                sample=sample,
            )
            await self._sleep(self.poll_interval)

        if tracker.last_usable is not None:
            logger.warning(
                "[DURATION] Duration never stabilized, using best effort",
                duration_s=round(tracker.last_usable, 2),
                attempts=self.max_attempts,
            )
            return DurationResult(
                duration=tracker.last_usable,
                stable=False,
                attempts=self.max_attempts,
            )

        raise DurationUndeterminableError(self.max_attempts)
