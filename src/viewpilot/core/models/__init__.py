"""Core data models."""

from viewpilot.core.models.config import Config, ConcurrencyConfig, WatchConfig
from viewpilot.core.models.task import (
    MediaProbe,
    OutcomeStatus,
    Platform,
    SessionOutcome,
    TerminalFailureRecord,
    WatchTask,
    WatchType,
    detect_platform,
    extract_video_id,
)

__all__ = [
    # Config
    "ConcurrencyConfig",
    "Config",
    "WatchConfig",
    # Task
    "MediaProbe",
    "OutcomeStatus",
    "Platform",
    "SessionOutcome",
    "TerminalFailureRecord",
    "WatchTask",
    "WatchType",
    "detect_platform",
    "extract_video_id",
]
