"""viewpilot - resilient watch-session controller for browser-hosted video."""

__version__ = "0.1.0"
