"""Watch task and session outcome data models."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class Platform(str, Enum):
    """Supported video hosting platforms."""

    YOUTUBE = "youtube"
    RUMBLE = "rumble"
    UNKNOWN = "unknown"


class WatchType(str, Enum):
    """How the session reaches the video page."""

    DIRECT = "direct"  # Navigate straight to the video URL
    REFERER = "referer"  # Same as direct, with a Referer header
    SEARCH = "search"  # Go through the platform search results


class OutcomeStatus(str, Enum):
    """Session outcome status."""

    PROCESSING = "processing"
    SUCCESS = "success"
    FAILURE = "failure"
    TERMINAL_FAILURE = "terminal_failure"  # Assigned by the dispatcher only


_YOUTUBE_ID_PATTERNS = (
    re.compile(r"[?&]v=([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtu\.be/([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/embed/([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/shorts/([a-zA-Z0-9_-]{11})"),
)
_RUMBLE_VIDEO_PATTERN = re.compile(r"rumble\.com/(v[a-zA-Z0-9]+(?:-[^?#\s/&]+)?)")
_RUMBLE_GENERIC_PATTERN = re.compile(r"rumble\.com/([a-zA-Z0-9_-]+)")


def detect_platform(url: str) -> Platform:
    """Detect the hosting platform from a video URL."""
    if "youtube.com" in url or "youtu.be" in url:
        return Platform.YOUTUBE
    if "rumble.com" in url:
        return Platform.RUMBLE
    return Platform.UNKNOWN


def extract_video_id(url: str | None) -> str | None:
    """Extract the platform video id from a URL.

    Args:
        url: Video page URL

    Returns:
        The video id, or None when the URL is not recognised
    """
    if not url or not isinstance(url, str):
        return None

    platform = detect_platform(url)

    if platform == Platform.YOUTUBE:
        for pattern in _YOUTUBE_ID_PATTERNS:
            match = pattern.search(url)
            if match:
                return match.group(1)

    if platform == Platform.RUMBLE:
        match = _RUMBLE_VIDEO_PATTERN.search(url) or _RUMBLE_GENERIC_PATTERN.search(url)
        if match:
            return match.group(1)

    return None


@dataclass(frozen=True)
class WatchTask:
    """A single video to watch plus its navigation and watch configuration.

    Immutable once handed to a session; owned by the dispatcher.
    """

    url: str
    platform: Platform = Platform.UNKNOWN
    video_id: str | None = None
    watch_type: WatchType = WatchType.DIRECT
    referer_url: str | None = None
    search_keywords: str | None = None
    watch_time_percentage: float = 80.0
    auto_skip_ads: bool = True
    max_seconds_ads: int = 60
    navigation_timeout: float = 120.0  # seconds
    skip_ads_after: tuple[float, float] = (0.0, 0.0)  # seconds an ad plays before skipping
    seek_to_start: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.watch_time_percentage <= 100:
            raise ValueError(
                f"watch_time_percentage must be within 0..100, got {self.watch_time_percentage}"
            )
        if self.max_seconds_ads <= 0:
            raise ValueError(f"max_seconds_ads must be positive, got {self.max_seconds_ads}")
        if self.navigation_timeout <= 0:
            raise ValueError("navigation_timeout must be positive")
        if self.skip_ads_after[0] > self.skip_ads_after[1]:
            raise ValueError("skip_ads_after must be a (min, max) range")
        if self.watch_type == WatchType.REFERER and not self.referer_url:
            raise ValueError("referer watch type requires referer_url")
        if self.watch_type == WatchType.SEARCH:
            if not self.search_keywords:
                raise ValueError("search watch type requires search_keywords")
            if not self.video_id:
                raise ValueError("search watch type requires a known video_id")

    @classmethod
    def from_url(cls, url: str, **overrides: Any) -> WatchTask:
        """Build a task, deriving platform and video id from the URL."""
        overrides.setdefault("platform", detect_platform(url))
        overrides.setdefault("video_id", extract_video_id(url))
        return cls(url=url, **overrides)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "url": self.url,
            "platform": self.platform.value,
            "video_id": self.video_id,
            "watch_type": self.watch_type.value,
            "referer_url": self.referer_url,
            "search_keywords": self.search_keywords,
            "watch_time_percentage": self.watch_time_percentage,
            "auto_skip_ads": self.auto_skip_ads,
            "max_seconds_ads": self.max_seconds_ads,
            "navigation_timeout": self.navigation_timeout,
        }


@dataclass(frozen=True)
class MediaProbe:
    """A momentary read of the media element's playback state."""

    current_time: float
    paused: bool
    ended: bool
    duration: float

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> MediaProbe | None:
        """Build a probe from the page evaluation result (None if no media element)."""
        if not data:
            return None
        duration = data.get("duration")
        return cls(
            current_time=float(data.get("currentTime") or 0.0),
            paused=bool(data.get("paused", True)),
            ended=bool(data.get("ended", False)),
            duration=float(duration) if duration is not None else math.nan,
        )


@dataclass
class SessionOutcome:
    """Outcome of one session attempt.

    Created at session start with status ``processing``, mutated in place as
    phases complete, finalized exactly once, then handed to the dispatcher.
    """

    url: str
    video_id: str | None
    platform: Platform
    status: OutcomeStatus = OutcomeStatus.PROCESSING
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    duration_found_sec: float | None = None
    watch_time_requested_sec: float = 0.0
    watch_time_actual_sec: float = 0.0
    error: str | None = None
    attempt: int = 1

    @classmethod
    def for_task(cls, task: WatchTask, attempt: int = 1) -> SessionOutcome:
        """Create a fresh ``processing`` outcome for a task."""
        return cls(
            url=task.url,
            video_id=task.video_id,
            platform=task.platform,
            attempt=attempt,
        )

    @property
    def is_finalized(self) -> bool:
        """Check if the outcome has been finalized."""
        return self.end_time is not None

    def set_duration(self, duration: float, watch_time_percentage: float) -> float:
        """Record the discovered duration and derive the requested watch time.

        The requested watch time is computed once; later duration drift never
        changes it.
        """
        if self.duration_found_sec is not None:
            raise RuntimeError("Duration already recorded for this session")
        self.duration_found_sec = duration
        self.watch_time_requested_sec = duration * watch_time_percentage / 100
        return self.watch_time_requested_sec

    def finalize(self, status: OutcomeStatus, error: str | None = None) -> None:
        """Stamp the terminal status and end time (exactly once)."""
        if self.is_finalized:
            raise RuntimeError("Session outcome already finalized")
        if status not in (OutcomeStatus.SUCCESS, OutcomeStatus.FAILURE):
            raise ValueError(f"Session cannot finalize with status {status.value}")
        self.status = status
        self.error = error
        self.end_time = datetime.now(UTC)

    @property
    def elapsed(self) -> float | None:
        """Session wall-clock duration in seconds."""
        if not self.end_time:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "url": self.url,
            "video_id": self.video_id,
            "platform": self.platform.value,
            "status": self.status.value,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_found_sec": self.duration_found_sec,
            "watch_time_requested_sec": self.watch_time_requested_sec,
            "watch_time_actual_sec": self.watch_time_actual_sec,
            "error": self.error,
            "attempt": self.attempt,
        }


@dataclass
class TerminalFailureRecord:
    """Emitted by the dispatcher once a task exhausts its retry budget."""

    url: str
    video_id: str | None
    platform: Platform
    error: str | None
    retry_log: list[str] = field(default_factory=list)
    status: OutcomeStatus = OutcomeStatus.TERMINAL_FAILURE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "url": self.url,
            "video_id": self.video_id,
            "platform": self.platform.value,
            "status": self.status.value,
            "error": self.error,
            "retry_log": list(self.retry_log),
        }
