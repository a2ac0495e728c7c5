"""Media element probes evaluated in the page."""

from __future__ import annotations

from typing import TYPE_CHECKING

from viewpilot.core.models.task import MediaProbe

if TYPE_CHECKING:
    from viewpilot.core.interfaces.browser import IPage

MEDIA_PROBE_JS = """
(selector) => {
    const el = document.querySelector(selector) || document.querySelector('video');
    if (!el) return null;
    return {
        currentTime: el.currentTime,
        paused: el.paused,
        ended: el.ended,
        duration: Number.isFinite(el.duration) ? el.duration : null,
    };
}
"""

MEDIA_PLAY_JS = """
(selector) => {
    const el = document.querySelector(selector) || document.querySelector('video');
    if (!el) return false;
    const result = el.play();
    if (result && result.catch) result.catch(() => {});
    return true;
}
"""

MEDIA_SET_VOLUME_JS = """
([selector, volume]) => {
    const el = document.querySelector(selector) || document.querySelector('video');
    if (!el) return null;
    el.muted = false;
    el.volume = Math.min(1, Math.max(0, volume));
    return el.volume;
}
"""

MEDIA_NUDGE_VOLUME_JS = """
([selector, delta]) => {
    const el = document.querySelector(selector) || document.querySelector('video');
    if (!el) return null;
    el.volume = Math.min(1, Math.max(0, el.volume + delta));
    return el.volume;
}
"""

MEDIA_SEEK_JS = """
([selector, position]) => {
    const el = document.querySelector(selector) || document.querySelector('video');
    if (!el) return false;
    el.currentTime = position;
    return true;
}
"""


async def probe_media(page: IPage, selector: str) -> MediaProbe | None:
    """Read the media element's playback state (None if there is no element)."""
    return MediaProbe.from_dict(await page.evaluate(MEDIA_PROBE_JS, selector))


async def play_media(page: IPage, selector: str) -> bool:
    """Call ``play()`` on the media element."""
    return bool(await page.evaluate(MEDIA_PLAY_JS, selector))


async def set_volume(page: IPage, selector: str, volume: float) -> float | None:
    """Unmute and set an absolute volume; returns the applied volume."""
    return await page.evaluate(MEDIA_SET_VOLUME_JS, [selector, volume])


async def nudge_volume(page: IPage, selector: str, delta: float) -> float | None:
    """Shift the volume by ``delta``, clamped to [0, 1] in the page."""
    return await page.evaluate(MEDIA_NUDGE_VOLUME_JS, [selector, delta])


async def seek_media(page: IPage, selector: str, position: float) -> bool:
    """Seek the media element to ``position`` seconds."""
    return bool(await page.evaluate(MEDIA_SEEK_JS, [selector, position]))
