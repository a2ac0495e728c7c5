"""Browser engine plugins."""

from viewpilot.plugins.browsers.playwright_plugin import PlaywrightPageFactory

__all__ = ["PlaywrightPageFactory"]
