"""Watch session automation: consent, ads, playback, duration and the watch loop."""

from viewpilot.plugins.automation.ads import AdGate, AdGateOutcome, AdGateResult
from viewpilot.plugins.automation.consent import DEFAULT_CONSENT_PATTERNS, ConsentResolver
from viewpilot.plugins.automation.duration import (
    DurationResult,
    DurationSampleTracker,
    DurationStabilizer,
    duration_tolerance,
    stabilize_samples,
)
from viewpilot.plugins.automation.platforms import (
    PlatformSelectors,
    get_selectors,
)
from viewpilot.plugins.automation.playback import (
    DEFAULT_STRATEGIES,
    PlaybackAssurance,
    PlaybackStrategy,
)
from viewpilot.plugins.automation.watch_loop import WatchPhase, WatchSession, watch_session

__all__ = [
    # Consent
    "DEFAULT_CONSENT_PATTERNS",
    "ConsentResolver",
    # Ads
    "AdGate",
    "AdGateOutcome",
    "AdGateResult",
    # Playback
    "DEFAULT_STRATEGIES",
    "PlaybackAssurance",
    "PlaybackStrategy",
    # Duration
    "DurationResult",
    "DurationSampleTracker",
    "DurationStabilizer",
    "duration_tolerance",
    "stabilize_samples",
    # Platforms
    "PlatformSelectors",
    "get_selectors",
    # Watch loop
    "WatchPhase",
    "WatchSession",
    "watch_session",
]
