"""Mouse movement simulation with Bezier curves and natural movement patterns."""

from __future__ import annotations

import asyncio
import contextlib
import math
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from viewpilot.core.interfaces.browser import IPage

POINTER_POSITION_JS = (
    "() => ({x: window._mouseX || window.innerWidth / 2, y: window._mouseY || window.innerHeight / 2})"
)
POINTER_TRACK_JS = "([x, y]) => { window._mouseX = x; window._mouseY = y; }"


@dataclass
class Point:
    """2D coordinate point."""

    x: float
    y: float


class MouseBehavior:
    """Simulate human-like pointer movements.

    Features:
    - Bezier curve trajectories (not linear)
    - Natural acceleration/deceleration
    - Micro tremor away from the endpoints
    - Occasional overshoot and correction
    """

    name = "mouse"

    def __init__(
        self,
        *,
        rng: random.Random | None = None,
        min_steps: int = 12,
        max_steps: int = 40,
        overshoot_probability: float = 0.15,
        tremor_amplitude: float = 1.5,
        base_delay_ms: float = 5.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.rng = rng or random.Random()
        self.min_steps = min_steps
        self.max_steps = max_steps
        self.overshoot_probability = overshoot_probability
        self.tremor_amplitude = tremor_amplitude
        self.base_delay_ms = base_delay_ms
        self._sleep = sleep

    def _bezier_curve(
        self,
        start: Point,
        end: Point,
        control1: Point,
        control2: Point,
        t: float,
    ) -> Point:
        """Calculate point on cubic Bezier curve."""
        u = 1 - t
        return Point(
            x=(u**3) * start.x
            + 3 * (u**2) * t * control1.x
            + 3 * u * (t**2) * control2.x
            + (t**3) * end.x,
            y=(u**3) * start.y
            + 3 * (u**2) * t * control1.y
            + 3 * u * (t**2) * control2.y
            + (t**3) * end.y,
        )

    def _generate_control_points(self, start: Point, end: Point) -> tuple[Point, Point]:
        """Generate control points offset from the straight line."""
        distance = math.dist((start.x, start.y), (end.x, end.y))
        deviation = min(distance * 0.3, 100)

        c1 = Point(
            x=start.x + (end.x - start.x) * 0.25 + self.rng.uniform(-deviation, deviation),
            y=start.y + (end.y - start.y) * 0.25 + self.rng.uniform(-deviation, deviation),
        )
        c2 = Point(
            x=start.x + (end.x - start.x) * 0.75 + self.rng.uniform(-deviation, deviation),
            y=start.y + (end.y - start.y) * 0.75 + self.rng.uniform(-deviation, deviation),
        )
        return c1, c2

    def _calculate_delay(self, progress: float, distance: float) -> float:
        """Delay between moves in ms: slow start, fast middle, slow end."""
        speed_multiplier = 1 - 4 * (progress - 0.5) ** 2
        distance_factor = max(0.5, min(2.0, 500 / max(distance, 1)))
        delay = self.base_delay_ms * (0.5 + speed_multiplier) * distance_factor
        return max(1, delay + self.rng.uniform(-2, 2))

    def generate_path(self, start: Point, end: Point) -> list[Point]:
        """Generate a human-like pointer path from start to end."""
        distance = math.dist((start.x, start.y), (end.x, end.y))
        num_steps = int(
            self.min_steps + (self.max_steps - self.min_steps) * min(distance / 1000, 1)
        )

        c1, c2 = self._generate_control_points(start, end)

        path = []
        for i in range(num_steps + 1):
            t = i / num_steps
            point = self._bezier_curve(start, end, c1, c2, t)

            # Tremor only away from the endpoints
            if 1 - abs(2 * t - 1) > 0.2:
                point = Point(
                    x=point.x + self.rng.gauss(0, self.tremor_amplitude),
                    y=point.y + self.rng.gauss(0, self.tremor_amplitude),
                )
            path.append(point)

        if self.rng.random() < self.overshoot_probability:
            overshoot_amount = self.rng.uniform(5, 20)
            dx = end.x - start.x
            dy = end.y - start.y
            magnitude = max(math.hypot(dx, dy), 1)
            overshoot = Point(
                x=end.x + (dx / magnitude) * overshoot_amount,
                y=end.y + (dy / magnitude) * overshoot_amount,
            )
            path.append(overshoot)

            correction_steps = self.rng.randint(3, 7)
            for i in range(1, correction_steps + 1):
                t = i / correction_steps
                path.append(
                    Point(
                        x=overshoot.x + (end.x - overshoot.x) * t,
                        y=overshoot.y + (end.y - overshoot.y) * t,
                    )
                )

        return path

    async def current_position(self, page: IPage) -> Point:
        """Last tracked pointer position (viewport centre if unknown)."""
        try:
            current = await page.evaluate(POINTER_POSITION_JS)
            return Point(float(current["x"]), float(current["y"]))
        except Exception:
            return Point(400, 300)

    async def move_to(self, page: IPage, x: float, y: float) -> int:
        """Move the pointer to a target along a human-like trajectory.

        Args:
            page: Browser page object with mouse.move() method
            x: Target X coordinate
            y: Target Y coordinate

        Returns:
            Number of pointer moves issued
        """
        start = await self.current_position(page)
        end = Point(x, y)
        path = self.generate_path(start, end)
        distance = math.dist((start.x, start.y), (end.x, end.y))

        for i, point in enumerate(path):
            progress = i / max(len(path) - 1, 1)
            await page.mouse.move(point.x, point.y)
            await self._sleep(self._calculate_delay(progress, distance) / 1000)

        with contextlib.suppress(Exception):
            await page.evaluate(POINTER_TRACK_JS, [end.x, end.y])
        return len(path)
