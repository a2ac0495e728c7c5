"""Tests for the watch session controller."""

from __future__ import annotations

import asyncio
import math
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tests.pytest_plugins.mock_browser import MockLocator, MockMedia, MockPage
from viewpilot.core.models.task import OutcomeStatus, SessionOutcome, WatchTask, WatchType
from viewpilot.plugins.automation.media import MEDIA_SEEK_JS, MEDIA_SET_VOLUME_JS
from viewpilot.plugins.automation.platforms import RUMBLE_SELECTORS, YOUTUBE_SELECTORS
from viewpilot.plugins.automation.watch_loop import WatchPhase, WatchSession, watch_session

YOUTUBE_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def make_session(task, page, clock, rng, **kwargs) -> WatchSession:
    return WatchSession(task, page, rng=rng, clock=clock, sleep=clock.sleep, **kwargs)


# ============================================================================
# HAPPY PATH
# ============================================================================


class TestSuccessfulSession:
    """Tests for sessions that reach the requested watch time."""

    @pytest.mark.asyncio
    async def test_direct_session_succeeds(self, youtube_task, mock_page, media, clock, rng):
        """Test a playing video is watched to the requested time."""
        handoff = MagicMock()
        session = make_session(youtube_task, mock_page, clock, rng, on_finalize=handoff)

        outcome = await session.run()

        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.error is None
        assert outcome.end_time is not None
        assert outcome.duration_found_sec == 300.0
        assert outcome.watch_time_requested_sec == 150.0
        assert 150.0 <= outcome.watch_time_actual_sec < 160.0
        assert session.phase == WatchPhase.DONE
        handoff.assert_called_once_with(outcome)

    @pytest.mark.asyncio
    async def test_direct_navigation(self, youtube_task, mock_page, clock, rng):
        """Test direct navigation waits for DOM content, then network idle."""
        await make_session(youtube_task, mock_page, clock, rng).run()

        assert mock_page.visited == [YOUTUBE_URL]
        assert mock_page.goto_kwargs[0]["wait_until"] == "domcontentloaded"
        assert mock_page.goto_kwargs[0]["timeout"] == youtube_task.navigation_timeout * 1000
        assert mock_page.load_states == ["networkidle"]
        assert mock_page.headers == {}

    @pytest.mark.asyncio
    async def test_unmutes_sets_low_volume_and_seeks(self, youtube_task, mock_page, media, clock, rng):
        """Test the media is unmuted at a small volume and rewound to the start."""
        await make_session(youtube_task, mock_page, clock, rng).run()

        (_, volume), = mock_page.evaluated(MEDIA_SET_VOLUME_JS)
        assert 0.05 <= volume <= 0.2
        assert not media.muted
        assert mock_page.evaluated(MEDIA_SEEK_JS) == [[YOUTUBE_SELECTORS.media, 0]]

    @pytest.mark.asyncio
    async def test_no_seek_when_disabled(self, mock_page, clock, rng):
        """Test seek_to_start=False leaves the position alone."""
        task = WatchTask.from_url(YOUTUBE_URL, watch_time_percentage=10.0, seek_to_start=False)

        await make_session(task, mock_page, clock, rng).run()

        assert mock_page.evaluated(MEDIA_SEEK_JS) == []

    @pytest.mark.asyncio
    async def test_interactions_fire_during_watch(self, youtube_task, mock_page, clock, rng):
        """Test the simulator runs on its randomized schedule."""
        session = make_session(youtube_task, mock_page, clock, rng)

        await session.run()

        # 150 s of watching: first at 15-35 s, then every 25-50 s
        assert 2 <= session.interactions_performed <= 6

    @pytest.mark.asyncio
    async def test_ended_short_circuits_requested_time(self, clock, rng):
        """Test an ended video succeeds before reaching the requested time."""
        media = MockMedia(duration=200.0, duration_samples=[300.0, 300.0, 300.0])
        clock.listeners.append(media.advance)
        page = MockPage(media)
        page.set_locator(YOUTUBE_SELECTORS.player, MockLocator(visible=True))
        task = WatchTask.from_url(YOUTUBE_URL, watch_time_percentage=100.0)

        outcome = await make_session(task, page, clock, rng).run()

        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.watch_time_requested_sec == 300.0
        assert outcome.watch_time_actual_sec == 200.0

    @pytest.mark.asyncio
    async def test_requested_time_not_recomputed_on_drift(self, youtube_task, mock_page, media, clock, rng):
        """Test later duration probes never change the requested watch time."""
        media.duration_samples = [300.0, 300.0, 300.0] + [480.0] * 100

        outcome = await make_session(youtube_task, mock_page, clock, rng).run()

        assert outcome.duration_found_sec == 300.0
        assert outcome.watch_time_requested_sec == 150.0

    @pytest.mark.asyncio
    async def test_duration_from_time_display(self, youtube_task, mock_page, media, clock, rng):
        """Test a stream without a finite element duration uses the player display."""
        media.duration = math.inf
        mock_page.set_locator(YOUTUBE_SELECTORS.duration_display, MockLocator(text="3:45"))

        outcome = await make_session(youtube_task, mock_page, clock, rng).run()

        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.duration_found_sec == 225.0
        assert outcome.watch_time_requested_sec == 112.5

    @pytest.mark.asyncio
    async def test_paused_media_is_restarted(self, youtube_task, mock_page, media, clock, rng):
        """Test a stall during watching is recovered with playback assurance."""
        stall_at = clock.now + 60

        def stall(_seconds: float) -> None:
            if clock.now >= stall_at and not media.start_attempts:
                media.paused = True

        clock.listeners.append(stall)

        outcome = await make_session(youtube_task, mock_page, clock, rng).run()

        assert outcome.status == OutcomeStatus.SUCCESS
        assert media.start_attempts == ["click"]

    @pytest.mark.asyncio
    async def test_frozen_media_is_recovered(self, youtube_task, mock_page, media, clock, rng):
        """Test media that reports playing but stops advancing is restarted."""
        freeze_at = clock.now + 60
        frozen: list[float] = []

        def freeze(_seconds: float) -> None:
            if clock.now >= freeze_at and not frozen:
                frozen.append(media.current_time)
                media.rate = 0.0

        def unfreeze() -> None:
            media.try_start("click")
            media.rate = 1.0

        clock.listeners.append(freeze)
        mock_page.locator(YOUTUBE_SELECTORS.player).on_click = unfreeze

        outcome = await make_session(youtube_task, mock_page, clock, rng).run()

        assert frozen
        assert outcome.status == OutcomeStatus.SUCCESS
        assert media.start_attempts == ["click"]
        assert outcome.watch_time_actual_sec >= outcome.watch_time_requested_sec

    @pytest.mark.asyncio
    async def test_consent_and_ad_before_playback(self, youtube_task, mock_page, media, clock, rng):
        """Test consent is dismissed and a finishing ad is waited out."""
        consent = mock_page.buttons["Accept all"] = MockLocator(visible=True)
        ad_end = clock.now + 10
        mock_page.set_locator(
            YOUTUBE_SELECTORS.ad_indicator,
            MockLocator(visible=lambda: clock.now < ad_end),
        )

        outcome = await make_session(youtube_task, mock_page, clock, rng).run()

        assert outcome.status == OutcomeStatus.SUCCESS
        assert consent.clicks == 1
        assert clock.now > ad_end

    @pytest.mark.asyncio
    async def test_network_idle_timeout_is_not_fatal(self, youtube_task, mock_page, clock, rng):
        """Test a page that never goes idle still gets watched."""
        mock_page.load_state_errors.add("networkidle")

        outcome = await make_session(youtube_task, mock_page, clock, rng).run()

        assert outcome.status == OutcomeStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_watch_session_helper(self, youtube_task, mock_page, clock, rng):
        """Test the convenience coroutine passes the attempt through."""
        outcome = await watch_session(
            youtube_task, mock_page, attempt=3, rng=rng, clock=clock, sleep=clock.sleep
        )

        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.attempt == 3


# ============================================================================
# NAVIGATION MODES
# ============================================================================


class TestNavigation:
    """Tests for referer and search navigation."""

    @pytest.mark.asyncio
    async def test_referer_header_set_before_navigation(self, mock_page, clock, rng):
        """Test the referer watch type sends the configured Referer."""
        task = WatchTask.from_url(
            YOUTUBE_URL,
            watch_type=WatchType.REFERER,
            referer_url="https://news.example.com/article",
            watch_time_percentage=10.0,
        )
        headers_at_goto = []
        mock_page.on_goto = lambda url: headers_at_goto.append(dict(mock_page.headers))

        outcome = await make_session(task, mock_page, clock, rng).run()

        assert outcome.status == OutcomeStatus.SUCCESS
        assert headers_at_goto == [{"Referer": "https://news.example.com/article"}]

    @pytest.mark.asyncio
    async def test_search_navigation(self, mock_page, clock, rng):
        """Test search goes through the results page and clicks the matching link."""
        task = WatchTask.from_url(
            YOUTUBE_URL,
            watch_type=WatchType.SEARCH,
            search_keywords="never gonna give you up",
            watch_time_percentage=10.0,
        )
        link = mock_page.set_locator(
            YOUTUBE_SELECTORS.result_link_for("dQw4w9WgXcQ"),
            MockLocator(visible=True),
        )

        outcome = await make_session(task, mock_page, clock, rng).run()

        assert outcome.status == OutcomeStatus.SUCCESS
        assert mock_page.visited == [
            "https://www.youtube.com/results?search_query=never+gonna+give+you+up"
        ]
        assert link.clicks == 1
        assert link.waits == [("visible", 30000.0)]
        assert mock_page.load_states == ["domcontentloaded", "networkidle"]

    @pytest.mark.asyncio
    async def test_search_result_missing(self, mock_page, clock, rng):
        """Test a search without the target video fails the session."""
        task = WatchTask.from_url(
            YOUTUBE_URL,
            watch_type=WatchType.SEARCH,
            search_keywords="something else",
        )

        outcome = await make_session(task, mock_page, clock, rng).run()

        assert outcome.status == OutcomeStatus.FAILURE
        assert outcome.error.startswith("NavigationError: Search result for dQw4w9WgXcQ")

    @pytest.mark.asyncio
    async def test_goto_failure(self, youtube_task, mock_page, clock, rng):
        """Test a navigation error fails the session."""
        mock_page.goto_error = RuntimeError("net::ERR_PROXY_CONNECTION_FAILED")

        outcome = await make_session(youtube_task, mock_page, clock, rng).run()

        assert outcome.status == OutcomeStatus.FAILURE
        assert outcome.error.startswith("NavigationError:")
        assert "ERR_PROXY_CONNECTION_FAILED" in outcome.error
        assert outcome.duration_found_sec is None


# ============================================================================
# AD GATE APPLICABILITY
# ============================================================================


class TestAdGateApplicability:
    """Tests for when the ad gate runs."""

    @pytest.mark.asyncio
    async def test_platform_without_ads_skips_gate(self, rumble_task, media, clock, rng):
        """Test the ad gate is not run for platforms without ads."""
        page = MockPage(media)
        page.set_locator(RUMBLE_SELECTORS.player, MockLocator(visible=True))
        session = make_session(rumble_task, page, clock, rng)
        session.ad_gate.run = AsyncMock()

        outcome = await session.run()

        assert outcome.status == OutcomeStatus.SUCCESS
        session.ad_gate.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_task_opt_out_skips_gate(self, mock_page, clock, rng):
        """Test auto_skip_ads=False bypasses the ad gate."""
        task = WatchTask.from_url(YOUTUBE_URL, auto_skip_ads=False, watch_time_percentage=10.0)
        session = make_session(task, mock_page, clock, rng)
        session.ad_gate.run = AsyncMock()

        await session.run()

        session.ad_gate.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_skip_delay_drawn_from_task_range(self, mock_page, clock, rng):
        """Test the skip delay is drawn from the task's skip_ads_after range."""
        task = WatchTask.from_url(YOUTUBE_URL, skip_ads_after=(5.0, 10.0), watch_time_percentage=10.0)
        session = make_session(task, mock_page, clock, rng)
        session.ad_gate.run = AsyncMock()

        await session.run()

        page, max_seconds, skip_after = session.ad_gate.run.await_args.args
        assert max_seconds == task.max_seconds_ads
        assert 5.0 <= skip_after <= 10.0

    @pytest.mark.asyncio
    async def test_short_ad_budget_still_skips(self, mock_page, clock, rng):
        """Test a skip delay drawn above a small ad budget still clicks skip."""
        task = WatchTask.from_url(
            YOUTUBE_URL,
            max_seconds_ads=5,
            skip_ads_after=(8.0, 10.0),
            watch_time_percentage=10.0,
        )
        skipped: list[bool] = []
        mock_page.set_locator(
            YOUTUBE_SELECTORS.ad_indicator,
            MockLocator(visible=lambda: not skipped),
        )
        skip = mock_page.set_locator(
            YOUTUBE_SELECTORS.skip_button,
            MockLocator(visible=True, on_click=lambda: skipped.append(True)),
        )

        outcome = await make_session(task, mock_page, clock, rng).run()

        assert outcome.status == OutcomeStatus.SUCCESS
        assert skip.clicks == 1


# ============================================================================
# FAILURES AND FINALIZATION
# ============================================================================


class TestSessionFailures:
    """Tests for fatal session errors."""

    @pytest.mark.asyncio
    async def test_wall_clock_ceiling(self, youtube_task, mock_page, media, clock, rng):
        """Test a slowly advancing player hits the requested*1.5+120 ceiling."""
        media.rate = 0.1

        session = make_session(youtube_task, mock_page, clock, rng)
        outcome = await session.run()

        assert outcome.status == OutcomeStatus.FAILURE
        assert outcome.error.startswith("WatchTimeoutError:")
        assert 0.0 < outcome.watch_time_actual_sec < outcome.watch_time_requested_sec

    @pytest.mark.asyncio
    async def test_player_error(self, youtube_task, mock_page, clock, rng):
        """Test a player error surface fails the session."""
        mock_page.set_locator(YOUTUBE_SELECTORS.error_surface, MockLocator(visible=True))

        outcome = await make_session(youtube_task, mock_page, clock, rng).run()

        assert outcome.status == OutcomeStatus.FAILURE
        assert outcome.error == "PlayerError: Player error surface detected"

    @pytest.mark.asyncio
    async def test_media_disappears_mid_watch(self, youtube_task, mock_page, media, clock, rng):
        """Test losing the media element while watching is fatal."""
        gone_at = clock.now + 30

        def remove(_seconds: float) -> None:
            if clock.now >= gone_at:
                mock_page.media = None

        clock.listeners.append(remove)

        outcome = await make_session(youtube_task, mock_page, clock, rng).run()

        assert outcome.status == OutcomeStatus.FAILURE
        assert outcome.error == "WatchSessionError: Media element disappeared during watch"
        assert outcome.watch_time_actual_sec > 0

    @pytest.mark.asyncio
    async def test_async_handoff_and_handoff_errors(self, youtube_task, mock_page, clock, rng):
        """Test async callbacks are awaited and callback errors never escape."""
        handoff = AsyncMock(side_effect=RuntimeError("sink down"))

        outcome = await make_session(youtube_task, mock_page, clock, rng, on_finalize=handoff).run()

        assert outcome.status == OutcomeStatus.SUCCESS
        handoff.assert_awaited_once_with(outcome)

    @pytest.mark.asyncio
    async def test_cancellation_propagates_without_handoff(self, youtube_task, mock_page, clock, rng):
        """Test a cancelled session is left to the dispatcher."""
        handoff = MagicMock()
        blocked = asyncio.Event()

        async def stuck_sleep(seconds: float) -> None:
            blocked.set()
            await asyncio.Event().wait()

        session = WatchSession(
            youtube_task, mock_page, rng=rng, clock=clock, sleep=stuck_sleep, on_finalize=handoff
        )
        running = asyncio.create_task(session.run())
        await blocked.wait()
        running.cancel()

        with pytest.raises(asyncio.CancelledError):
            await running
        assert not session.outcome.is_finalized
        handoff.assert_not_called()


def _force_player_error(page: MockPage, media: MockMedia) -> None:
    page.set_locator(YOUTUBE_SELECTORS.error_surface, MockLocator(visible=True))


def _force_undeterminable(page: MockPage, media: MockMedia) -> None:
    media.duration = math.nan


class TestExactlyOneFinalization:
    """Every branch finalizes once and hands off once."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("arrange", "status"),
        [
            (lambda page, media: None, OutcomeStatus.SUCCESS),
            (_force_player_error, OutcomeStatus.FAILURE),
            (_force_undeterminable, OutcomeStatus.FAILURE),
        ],
        ids=["success", "player_error", "duration_undeterminable"],
    )
    async def test_single_finalization(self, arrange, status, youtube_task, mock_page, media, clock, rng):
        """Test the outcome is finalized once and handed off once."""
        arrange(mock_page, media)
        handoff = MagicMock()
        original = SessionOutcome.finalize

        with patch.object(SessionOutcome, "finalize", autospec=True, side_effect=original) as spy:
            outcome = await make_session(
                youtube_task, mock_page, clock, rng, on_finalize=handoff
            ).run()

        assert spy.call_count == 1
        handoff.assert_called_once_with(outcome)
        assert outcome.end_time is not None
        assert outcome.status == status
        assert outcome.status in (OutcomeStatus.SUCCESS, OutcomeStatus.FAILURE)
