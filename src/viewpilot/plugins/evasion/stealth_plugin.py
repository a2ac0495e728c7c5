"""Stealth init script for watch sessions.

A small, fixed set of automation-indicator fixes registered before any page
script runs.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

_STEALTH_TEMPLATE = """
// navigator.webdriver is the first thing bot checks look at
Object.defineProperty(Navigator.prototype, 'webdriver', {get: () => undefined});

delete window.cdc_adoQpoasnfa76pfcZLmcfl_Array;
delete window.cdc_adoQpoasnfa76pfcZLmcfl_Promise;
delete window.cdc_adoQpoasnfa76pfcZLmcfl_Symbol;

if (!window.chrome) {
    window.chrome = {};
}
if (!window.chrome.runtime) {
    window.chrome.runtime = {};
}

Object.defineProperty(navigator, 'languages', {get: () => __LANGUAGES__});

if (navigator.permissions && navigator.permissions.query) {
    const originalQuery = navigator.permissions.query.bind(navigator.permissions);
    navigator.permissions.query = (parameters) => (
        parameters && parameters.name === 'notifications'
            ? Promise.resolve({state: Notification.permission})
            : originalQuery(parameters)
    );
}
"""


def languages_for_locale(locale: str) -> list[str]:
    """Accept-language list for a locale, e.g. ``en-US`` -> ``["en-US", "en"]``."""
    base = locale.split("-")[0]
    return [locale, base] if base != locale else [locale]


class StealthPlugin:
    """Injects the stealth init script into a browser context or page."""

    name = "stealth"

    def __init__(self, locale: str = "en-US") -> None:
        self.locale = locale

    def generate_stealth_script(self) -> str:
        """Build the init script for the configured locale."""
        return _STEALTH_TEMPLATE.replace(
            "__LANGUAGES__",
            json.dumps(languages_for_locale(self.locale)),
        )

    async def apply(self, target: Any) -> None:
        """Register the script on a Playwright context or page.

        Args:
            target: Object with an ``add_init_script(script)`` coroutine
        """
        await target.add_init_script(self.generate_stealth_script())
        logger.debug("[STEALTH] Init script registered", locale=self.locale)
