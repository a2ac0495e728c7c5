"""Page facade interface definitions.

The watch controller only ever talks to a page through this surface. It is a
subset of the Playwright async page API, so a real Playwright (or Patchright)
page satisfies it directly. Timeouts on the facade are in milliseconds.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IMouse(Protocol):
    """Contract for virtual pointer movement."""

    async def move(self, x: float, y: float, *, steps: int = 1) -> None:
        """Move the pointer to a viewport coordinate."""
        ...


@runtime_checkable
class IKeyboard(Protocol):
    """Contract for keyboard shortcuts."""

    async def press(self, key: str, *, delay: float | None = None) -> None:
        """Press a key (or chord such as ``Shift+P``)."""
        ...


@runtime_checkable
class ILocator(Protocol):
    """Contract for a lazily-resolved element handle."""

    @property
    def first(self) -> ILocator:
        """The first matching element."""
        ...

    async def wait_for(self, *, state: str = "visible", timeout: float | None = None) -> None:
        """Wait until the element reaches a state; raises on timeout."""
        ...

    async def click(self, *, timeout: float | None = None) -> None:
        """Click the element; raises if it is not clickable within the timeout."""
        ...

    async def is_visible(self) -> bool:
        """Check current visibility without waiting."""
        ...

    async def count(self) -> int:
        """Number of matching elements."""
        ...

    async def text_content(self, *, timeout: float | None = None) -> str | None:
        """Raw text content of the element."""
        ...

    async def bounding_box(self) -> dict[str, float] | None:
        """Element box as ``{x, y, width, height}``."""
        ...


@runtime_checkable
class IPage(Protocol):
    """Contract for the page interactions the controller needs."""

    @property
    def url(self) -> str:
        """Current page URL."""
        ...

    @property
    def mouse(self) -> IMouse:
        """Virtual pointer."""
        ...

    @property
    def keyboard(self) -> IKeyboard:
        """Keyboard."""
        ...

    async def goto(
        self,
        url: str,
        *,
        wait_until: str = "load",
        timeout: float | None = None,
        referer: str | None = None,
    ) -> Any:
        """Navigate to a URL."""
        ...

    async def wait_for_load_state(
        self,
        state: str = "load",
        *,
        timeout: float | None = None,
    ) -> None:
        """Wait for page load state."""
        ...

    def locator(self, selector: str) -> ILocator:
        """Locate elements by CSS selector."""
        ...

    def get_by_role(self, role: str, *, name: Any = None) -> ILocator:
        """Locate elements by accessible role and name (string or regex)."""
        ...

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Evaluate JavaScript in the page context."""
        ...

    async def set_extra_http_headers(self, headers: dict[str, str]) -> None:
        """Set headers sent with every subsequent request."""
        ...
