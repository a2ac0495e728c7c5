"""Session-fatal error taxonomy.

Soft conditions (missing consent dialog, unskippable ad, network-idle timeout,
interaction failures) never raise. Everything defined here terminates the
current watch session with a ``failure`` outcome, but never the dispatcher.
"""

from __future__ import annotations


class WatchSessionError(Exception):
    """Base class for errors that end a watch session."""


class NavigationError(WatchSessionError):
    """The video page could not be reached."""


class PlayerError(WatchSessionError):
    """The player is showing an unrecoverable error surface."""

    def __init__(self, message: str = "Player error surface detected") -> None:
        super().__init__(message)


class PlaybackStartError(WatchSessionError):
    """Playback could not be started after exhausting every strategy."""

    def __init__(self, message: str = "Could not start playback") -> None:
        super().__init__(message)


class DurationUndeterminableError(WatchSessionError):
    """No usable media duration was ever observed."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Duration undeterminable after {attempts} attempts")


class WatchTimeoutError(WatchSessionError):
    """The watch loop exceeded its wall-clock ceiling."""

    def __init__(self, elapsed: float, ceiling: float, current_time: float) -> None:
        self.elapsed = elapsed
        self.ceiling = ceiling
        self.current_time = current_time
        super().__init__(
            f"Watch loop exceeded {ceiling:.1f}s ceiling "
            f"(elapsed {elapsed:.1f}s, media at {current_time:.1f}s)"
        )
