"""Tests for media duration discovery."""

from __future__ import annotations

import math

import pytest

from tests.pytest_plugins.mock_browser import MockLocator, MockMedia, MockPage
from viewpilot.core.errors import DurationUndeterminableError
from viewpilot.plugins.automation.ads import AdGate
from viewpilot.plugins.automation.duration import (
    DurationSampleTracker,
    DurationStabilizer,
    duration_tolerance,
    is_usable,
    parse_time_display,
    stabilize_samples,
)
from viewpilot.plugins.automation.platforms import YOUTUBE_SELECTORS

# ============================================================================
# ACCEPTANCE RULE
# ============================================================================


class TestTolerance:
    """Tests for the duration-dependent tolerance."""

    @pytest.mark.parametrize(
        ("duration", "tolerance"),
        [(12.3, 0.5), (60.0, 0.5), (60.5, 1.0), (3600.0, 1.0)],
    )
    def test_tolerance(self, duration, tolerance):
        """Test long videos get a wider tolerance."""
        assert duration_tolerance(duration) == tolerance

    @pytest.mark.parametrize(
        ("sample", "usable"),
        [(None, False), (0.0, False), (-1.0, False), (math.nan, False), (math.inf, False), (0.1, True)],
    )
    def test_is_usable(self, sample, usable):
        """Test only finite positive samples are usable."""
        assert is_usable(sample) is usable


class TestStabilizeSamples:
    """Tests for the sample acceptance rule."""

    def test_refining_player_sequence(self):
        """Test [0, 12.01, 12.3, 12.31] stabilizes at 12.31, on the last sample."""
        tracker = DurationSampleTracker()
        assert tracker.feed(0) is None
        assert tracker.feed(12.01) is None
        assert tracker.feed(12.3) is None
        assert tracker.feed(12.31) == 12.31

    def test_stabilize_samples_helper(self):
        """Test the helper over a fixed sequence."""
        assert stabilize_samples([0, 12.01, 12.3, 12.31]) == 12.31

    def test_unusable_sample_resets_agreement(self):
        """Test NaN in the middle of agreeing samples starts over."""
        assert stabilize_samples([300.0, 300.0, math.nan, 300.0, 300.0]) is None
        assert stabilize_samples([300.0, 300.0, math.nan, 300.0, 300.0, 300.0]) == 300.0

    def test_jump_beyond_tolerance_resets(self):
        """Test an ad duration followed by the real one does not stabilize early."""
        assert stabilize_samples([15.0, 15.2, 212.0, 212.4]) is None
        assert stabilize_samples([15.0, 15.2, 212.0, 212.4, 212.4]) == 212.4

    def test_single_confirmation(self):
        """Test one agreement suffices when configured."""
        assert stabilize_samples([100.0, 100.5], confirmations=1) == 100.5

    def test_invalid_confirmations(self):
        """Test confirmations must be positive."""
        with pytest.raises(ValueError):
            DurationSampleTracker(confirmations=0)


# ============================================================================
# STABILIZER
# ============================================================================


class TestDurationStabilizer:
    """Tests for DurationStabilizer.stabilize."""

    @pytest.mark.asyncio
    async def test_stable_duration(self, clock):
        """Test a steady duration is accepted on the third read."""
        page = MockPage(MockMedia(duration=300.0))
        stabilizer = DurationStabilizer(YOUTUBE_SELECTORS.media, sleep=clock.sleep)

        result = await stabilizer.stabilize(page)

        assert result.duration == 300.0
        assert result.stable
        assert result.attempts == 3
        assert clock.sleeps == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_refining_duration(self, clock):
        """Test the player refining its duration stabilizes on the refined value."""
        page = MockPage(MockMedia(duration=12.31, duration_samples=[0.0, 12.01, 12.3, 12.31]))
        stabilizer = DurationStabilizer(YOUTUBE_SELECTORS.media, sleep=clock.sleep)

        result = await stabilizer.stabilize(page)

        assert result.duration == 12.31
        assert result.attempts == 4

    @pytest.mark.asyncio
    async def test_best_effort_when_never_stable(self, clock):
        """Test a drifting duration returns the last usable sample, unstable."""
        samples = [100.0 + 5 * i for i in range(5)]
        page = MockPage(MockMedia(duration=200.0, duration_samples=samples))
        stabilizer = DurationStabilizer(YOUTUBE_SELECTORS.media, max_attempts=5, sleep=clock.sleep)

        result = await stabilizer.stabilize(page)

        assert result.duration == 120.0
        assert not result.stable
        assert result.attempts == 5

    @pytest.mark.asyncio
    async def test_undeterminable(self, clock):
        """Test no usable sample at all is fatal."""
        page = MockPage(MockMedia(duration=math.nan))
        stabilizer = DurationStabilizer(YOUTUBE_SELECTORS.media, max_attempts=4, sleep=clock.sleep)

        with pytest.raises(DurationUndeterminableError, match="after 4 attempts"):
            await stabilizer.stabilize(page)

    @pytest.mark.asyncio
    async def test_missing_media_element(self, clock):
        """Test a page without media is undeterminable."""
        stabilizer = DurationStabilizer(YOUTUBE_SELECTORS.media, max_attempts=2, sleep=clock.sleep)

        with pytest.raises(DurationUndeterminableError):
            await stabilizer.stabilize(MockPage())

    @pytest.mark.asyncio
    async def test_ad_showing_resets_and_backs_off(self, clock):
        """Test samples are skipped while an ad shows, with the longer backoff."""
        media = MockMedia(duration=300.0)
        page = MockPage(media)
        ad_end = clock.now + 3
        page.set_locator(
            YOUTUBE_SELECTORS.ad_indicator,
            MockLocator(visible=lambda: clock.now < ad_end),
        )
        gate = AdGate(YOUTUBE_SELECTORS, clock=clock, sleep=clock.sleep)
        stabilizer = DurationStabilizer(YOUTUBE_SELECTORS.media, ad_gate=gate, sleep=clock.sleep)

        result = await stabilizer.stabilize(page)

        assert result.duration == 300.0
        assert clock.sleeps == [2.0, 2.0, 1.0, 1.0]
        assert media.probes == 3


# ============================================================================
# TIME DISPLAY FALLBACK
# ============================================================================


class TestTimeDisplay:
    """Tests for reading the duration from the player's time display."""

    @pytest.mark.parametrize(
        ("text", "seconds"),
        [
            ("3:45", 225.0),
            (" 0:07 ", 7.0),
            ("1:02:03", 3723.0),
            ("", None),
            (None, None),
            ("LIVE", None),
            ("3:4x", None),
            ("1:2:3:4", None),
        ],
    )
    def test_parse_time_display(self, text, seconds):
        """Test M:SS and H:MM:SS displays parse to seconds."""
        assert parse_time_display(text) == seconds

    @pytest.mark.asyncio
    async def test_infinite_duration_falls_back_to_display(self, clock):
        """Test an element reporting Infinity uses the control-bar duration."""
        page = MockPage(MockMedia(duration=math.inf))
        page.set_locator(YOUTUBE_SELECTORS.duration_display, MockLocator(text="3:45"))
        stabilizer = DurationStabilizer(
            YOUTUBE_SELECTORS.media,
            duration_display=YOUTUBE_SELECTORS.duration_display,
            sleep=clock.sleep,
        )

        result = await stabilizer.stabilize(page)

        assert result.duration == 225.0
        assert result.stable

    @pytest.mark.asyncio
    async def test_element_duration_preferred_over_display(self, clock):
        """Test the display is only read when the element has no usable duration."""
        page = MockPage(MockMedia(duration=300.0))
        page.set_locator(YOUTUBE_SELECTORS.duration_display, MockLocator(text="3:45"))
        stabilizer = DurationStabilizer(
            YOUTUBE_SELECTORS.media,
            duration_display=YOUTUBE_SELECTORS.duration_display,
            sleep=clock.sleep,
        )

        result = await stabilizer.stabilize(page)

        assert result.duration == 300.0

    @pytest.mark.asyncio
    async def test_unreadable_display_is_undeterminable(self, clock):
        """Test a missing display leaves a NaN duration undeterminable."""
        page = MockPage(MockMedia(duration=math.nan))
        stabilizer = DurationStabilizer(
            YOUTUBE_SELECTORS.media,
            duration_display=YOUTUBE_SELECTORS.duration_display,
            max_attempts=3,
            sleep=clock.sleep,
        )

        with pytest.raises(DurationUndeterminableError):
            await stabilizer.stabilize(page)
