"""Interface definitions for the collaborators the controller talks to."""

from viewpilot.core.interfaces.browser import ILocator, IPage
from viewpilot.core.interfaces.output import IOutputWriter

__all__ = [
    "ILocator",
    "IOutputWriter",
    "IPage",
]
