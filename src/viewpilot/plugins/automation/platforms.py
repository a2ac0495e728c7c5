"""Per-platform selectors and URL templates.

Selectors target the desktop web players. They may need updates when the
platforms change their UI.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote_plus

from viewpilot.core.models.task import Platform


@dataclass(frozen=True)
class PlatformSelectors:
    """Selectors and endpoints for one hosting platform."""

    platform: Platform

    # Player
    media: str = "video"
    player: str = "video"
    error_surface: str | None = None
    duration_display: str | None = None  # control-bar total time, e.g. "3:45"

    # Ads (None means the platform has no ad gate)
    ad_indicator: str | None = None
    skip_button: str | None = None

    # Keyboard shortcut that toggles play/pause
    play_shortcut: str = "Space"

    # Search
    search_url: str | None = None  # format with {query}
    result_link: str = 'a[href*="{video_id}"]'

    @property
    def has_ads(self) -> bool:
        return self.ad_indicator is not None

    def build_search_url(self, keywords: str) -> str:
        """Search results endpoint for the given keywords."""
        if not self.search_url:
            raise ValueError(f"Search is not supported on {self.platform.value}")
        return self.search_url.format(query=quote_plus(keywords))

    def result_link_for(self, video_id: str) -> str:
        """Selector for a search result pointing at the video."""
        return self.result_link.format(video_id=video_id)


YOUTUBE_SELECTORS = PlatformSelectors(
    platform=Platform.YOUTUBE,
    media="#movie_player video",
    player="#movie_player",
    error_surface="#movie_player .ytp-error",
    duration_display=".ytp-time-duration",
    ad_indicator="#movie_player.ad-showing",
    skip_button=".ytp-skip-ad-button, .ytp-ad-skip-button, .ytp-ad-skip-button-modern",
    play_shortcut="k",
    search_url="https://www.youtube.com/results?search_query={query}",
    result_link='a#video-title[href*="{video_id}"]',
)

RUMBLE_SELECTORS = PlatformSelectors(
    platform=Platform.RUMBLE,
    media="#videoPlayer video",
    player="#videoPlayer",
    error_surface="#videoPlayer .error-message",
    duration_display=".media-time-duration",
    play_shortcut="Space",
    search_url="https://rumble.com/search/all?q={query}",
    result_link='a.video-item--a[href*="{video_id}"]',
)

GENERIC_SELECTORS = PlatformSelectors(platform=Platform.UNKNOWN)

_REGISTRY: dict[Platform, PlatformSelectors] = {
    Platform.YOUTUBE: YOUTUBE_SELECTORS,
    Platform.RUMBLE: RUMBLE_SELECTORS,
    Platform.UNKNOWN: GENERIC_SELECTORS,
}


def get_selectors(platform: Platform) -> PlatformSelectors:
    """Get the selector set for a platform (generic for unknown platforms)."""
    return _REGISTRY.get(platform, GENERIC_SELECTORS)
