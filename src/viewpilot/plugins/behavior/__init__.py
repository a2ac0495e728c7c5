"""Human behavior simulation plugins."""

from viewpilot.plugins.behavior.interaction import (
    HumanInteractionSimulator,
    InteractionAction,
    InteractionSchedule,
)
from viewpilot.plugins.behavior.mouse_plugin import MouseBehavior, Point

__all__ = [
    "HumanInteractionSimulator",
    "InteractionAction",
    "InteractionSchedule",
    "MouseBehavior",
    "Point",
]
