"""Consent dialog dismissal."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from viewpilot.core.interfaces.browser import IPage

logger = structlog.get_logger(__name__)

# Tried in order; first visible wins.
DEFAULT_CONSENT_PATTERNS: tuple[str, ...] = (
    r"accept all",
    r"agree to all",
    r"i agree",
    r"allow all",
    r"^accept$",
    r"^agree$",
)


class ConsentResolver:
    """Dismiss a cookie/consent dialog if one is showing.

    Makes a single pass over the patterns and clicks at most once. Absence of a
    dialog is not an error.
    """

    def __init__(
        self,
        patterns: tuple[str, ...] = DEFAULT_CONSENT_PATTERNS,
        *,
        role: str = "button",
        attempt_timeout: float = 5.0,
        settle_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.patterns = patterns
        self.role = role
        self.attempt_timeout = attempt_timeout
        self.settle_delay = settle_delay
        self._sleep = sleep

    async def resolve(self, page: IPage) -> str | None:
        """Click the first matching consent button.

        Returns:
            The pattern that matched, or None if no dialog was found
        """
        for pattern in self.patterns:
            button = page.get_by_role(self.role, name=re.compile(pattern, re.IGNORECASE)).first
            try:
                await button.wait_for(state="visible", timeout=self.attempt_timeout * 1000)
                await button.click(timeout=self.attempt_timeout * 1000)
            except Exception as e:
                logger.debug(
                    "[CONSENT] Pattern not clickable",
                    pattern=pattern,
                    error=str(e)[:120],
                )
                continue

            logger.info("[CONSENT] Consent dialog dismissed", pattern=pattern)
            await self._sleep(self.settle_delay)
            return pattern

        logger.debug("[CONSENT] No consent dialog found", patterns_tried=len(self.patterns))
        return None
