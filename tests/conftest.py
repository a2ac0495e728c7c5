"""Global test fixtures for viewpilot."""

from __future__ import annotations

import random

import pytest
import structlog

from tests.pytest_plugins.mock_browser import (
    FakeClock,
    MockMedia,
    MockPage,
    wire_youtube_player,
)
from viewpilot.core.models.task import WatchTask

YOUTUBE_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
RUMBLE_URL = "https://rumble.com/v4abcde-some-video-title.html"


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any logging configuration a test applied."""
    yield
    structlog.reset_defaults()


# ============================================================================
# PYTEST FIXTURES - TIME AND RANDOMNESS
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    """Create a seeded random generator."""
    return random.Random(1234)


# ============================================================================
# PYTEST FIXTURES - BROWSER MOCKS
# ============================================================================


@pytest.fixture
def media(clock: FakeClock) -> MockMedia:
    """Create a playing 300 s media element that advances with the clock."""
    element = MockMedia()
    clock.listeners.append(element.advance)
    return element


@pytest.fixture
def mock_page(media: MockMedia) -> MockPage:
    """Create a mock YouTube watch page."""
    page = MockPage(media)
    wire_youtube_player(page, media)
    return page


# ============================================================================
# PYTEST FIXTURES - TASKS
# ============================================================================


@pytest.fixture
def youtube_task() -> WatchTask:
    """Create a direct YouTube watch task (50% of the video)."""
    return WatchTask.from_url(YOUTUBE_URL, watch_time_percentage=50.0)


@pytest.fixture
def rumble_task() -> WatchTask:
    """Create a direct Rumble watch task."""
    return WatchTask.from_url(RUMBLE_URL)
