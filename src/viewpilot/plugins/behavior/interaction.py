"""Human-like micro-interactions during a watch session.

Each invocation performs exactly one randomly chosen, innocuous action. Any
failure is logged and swallowed: interactions never abort a session.
"""

from __future__ import annotations

import random
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from viewpilot.plugins.behavior.mouse_plugin import MouseBehavior

if TYPE_CHECKING:
    from viewpilot.core.interfaces.browser import IPage
    from viewpilot.plugins.automation.platforms import PlatformSelectors

logger = structlog.get_logger(__name__)


class InteractionAction(str, Enum):
    """Available micro-interactions."""

    POINTER_MOVE = "pointer_move"
    VOLUME_NUDGE = "volume_nudge"


class HumanInteractionSimulator:
    """Issue randomized micro-interactions against the player."""

    actions: tuple[InteractionAction, ...] = (
        InteractionAction.POINTER_MOVE,
        InteractionAction.VOLUME_NUDGE,
    )

    def __init__(
        self,
        selectors: PlatformSelectors,
        *,
        rng: random.Random | None = None,
        mouse: MouseBehavior | None = None,
        volume_delta: float = 0.05,
    ) -> None:
        self.selectors = selectors
        self.rng = rng or random.Random()
        self.mouse = mouse or MouseBehavior(rng=self.rng)
        self.volume_delta = volume_delta

    async def _pointer_move(self, page: IPage) -> None:
        box = await page.locator(self.selectors.player).first.bounding_box()
        if not box:
            raise RuntimeError("Player has no bounding box")
        x = box["x"] + self.rng.uniform(0.1, 0.9) * box["width"]
        y = box["y"] + self.rng.uniform(0.1, 0.9) * box["height"]
        moves = await self.mouse.move_to(page, x, y)
        logger.debug(
            "[INTERACTION] Pointer moved over player",
            target=f"({int(x)}, {int(y)})",
            steps=moves,
        )

    async def _volume_nudge(self, page: IPage) -> None:
        from viewpilot.plugins.automation.media import nudge_volume

        delta = self.rng.uniform(-self.volume_delta, self.volume_delta)
        volume = await nudge_volume(page, self.selectors.media, delta)
        logger.debug(
            "[INTERACTION] Volume nudged",
            delta=round(delta, 3),
            volume=round(volume, 3) if volume is not None else None,
        )

    async def perform(self, page: IPage) -> InteractionAction:
        """Perform one randomly chosen action.

        Returns:
            The action that was chosen (whether or not it succeeded)
        """
        action = self.rng.choice(self.actions)
        try:
            if action == InteractionAction.POINTER_MOVE:
                await self._pointer_move(page)
            else:
                await self._volume_nudge(page)
        except Exception as e:
            logger.warning(
                "[INTERACTION] Interaction failed",
                action=action.value,
                error=str(e)[:120],
            )
        return action


class InteractionSchedule:
    """Randomized per-session schedule of interaction times (elapsed seconds)."""

    def __init__(
        self,
        rng: random.Random,
        *,
        first: tuple[float, float] = (15.0, 35.0),
        gap: tuple[float, float] = (25.0, 50.0),
    ) -> None:
        self.rng = rng
        self.gap = gap
        self.next_at = rng.uniform(*first)
        self.fired_count = 0

    def due(self, elapsed: float) -> bool:
        return elapsed >= self.next_at

    def fired(self, elapsed: float) -> float:
        """Record a firing and schedule the next one; returns its time."""
        self.fired_count += 1
        self.next_at = elapsed + self.rng.uniform(*self.gap)
        return self.next_at
