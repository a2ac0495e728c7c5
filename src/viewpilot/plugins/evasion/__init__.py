"""Anti-detection evasion plugins."""

from viewpilot.plugins.evasion.stealth_plugin import StealthPlugin

__all__ = ["StealthPlugin"]
