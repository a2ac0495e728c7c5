"""Pytest helpers for viewpilot tests."""

from tests.pytest_plugins.mock_browser import (
    FakeClock,
    MockKeyboard,
    MockLocator,
    MockMedia,
    MockMouse,
    MockPage,
    wire_youtube_player,
)

__all__ = [
    "FakeClock",
    "MockKeyboard",
    "MockLocator",
    "MockMedia",
    "MockMouse",
    "MockPage",
    "wire_youtube_player",
]
