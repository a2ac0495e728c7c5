"""Playback assurance: make sure the main media element is actually playing."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from viewpilot.core.errors import PlaybackStartError, PlayerError
from viewpilot.plugins.automation.media import play_media, probe_media
from viewpilot.plugins.automation.platforms import PlatformSelectors

if TYPE_CHECKING:
    from viewpilot.core.interfaces.browser import IPage
    from viewpilot.core.models.task import MediaProbe

logger = structlog.get_logger(__name__)


class PlaybackStrategy(str, Enum):
    """Ways of starting a paused player, tried in order."""

    CLICK_PLAYER = "click_player"
    KEYBOARD_SHORTCUT = "keyboard_shortcut"
    MEDIA_PLAY = "media_play"


DEFAULT_STRATEGIES: tuple[PlaybackStrategy, ...] = (
    PlaybackStrategy.CLICK_PLAYER,
    PlaybackStrategy.KEYBOARD_SHORTCUT,
    PlaybackStrategy.MEDIA_PLAY,
)


class PlaybackAssurance:
    """Verify the player is healthy and advancing, starting it if paused."""

    def __init__(
        self,
        selectors: PlatformSelectors,
        strategies: Sequence[PlaybackStrategy] = DEFAULT_STRATEGIES,
        *,
        settle_delay: float = 1.5,
        click_timeout: float = 3.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.selectors = selectors
        self.strategies = tuple(strategies)
        self.settle_delay = settle_delay
        self.click_timeout = click_timeout
        self._sleep = sleep

    async def has_player_error(self, page: IPage) -> bool:
        """Check whether the player's error surface is visible."""
        if not self.selectors.error_surface:
            return False
        try:
            return bool(await page.locator(self.selectors.error_surface).first.is_visible())
        except Exception:
            return False

    async def _apply(self, page: IPage, strategy: PlaybackStrategy) -> None:
        if strategy == PlaybackStrategy.CLICK_PLAYER:
            await page.locator(self.selectors.player).first.click(
                timeout=self.click_timeout * 1000
            )
        elif strategy == PlaybackStrategy.KEYBOARD_SHORTCUT:
            await page.keyboard.press(self.selectors.play_shortcut)
        elif strategy == PlaybackStrategy.MEDIA_PLAY:
            await play_media(page, self.selectors.media)

    @staticmethod
    def _started(probe: MediaProbe | None, stalled_at: float | None) -> bool:
        if probe is None or probe.paused:
            return False
        return stalled_at is None or probe.current_time > stalled_at

    async def ensure_playing(
        self,
        page: IPage,
        *,
        stalled: bool = False,
    ) -> PlaybackStrategy | None:
        """Ensure the media element is playing and advancing.

        Args:
            page: Browser page object
            stalled: The media reports playing but its position stopped moving;
                strategies are applied anyway and success requires progress

        Returns:
            The strategy that started playback, or None if it was already playing

        Raises:
            PlayerError: The player shows an error surface
            PlaybackStartError: Every strategy failed to start playback
        """
        if await self.has_player_error(page):
            raise PlayerError()

        probe = await probe_media(page, self.selectors.media)
        if probe is not None and not probe.paused and not stalled:
            return None
        stalled_at = probe.current_time if stalled and probe is not None else None

        if probe is None:
            logger.debug("[PLAYBACK] No media element yet, trying strategies")

        for strategy in self.strategies:
            try:
                await self._apply(page, strategy)
            except Exception as e:
                logger.debug(
                    "[PLAYBACK] Strategy raised",
                    strategy=strategy.value,
                    error=str(e)[:120],
                )

            await self._sleep(self.settle_delay)

            probe = await probe_media(page, self.selectors.media)
            if self._started(probe, stalled_at):
                logger.info(
                    "[PLAYBACK] Playback started",
                    strategy=strategy.value,
                    stalled=stalled,
                )
                return strategy

            logger.debug("[PLAYBACK] Still not advancing after strategy", strategy=strategy.value)

        if await self.has_player_error(page):
            raise PlayerError()

        if probe is None:
            raise PlaybackStartError("Could not start playback: no media element found")
        raise PlaybackStartError(
            f"Could not start playback after {len(self.strategies)} strategies"
        )
