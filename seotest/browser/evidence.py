"""Screenshot evidence for failed checks.

Element captures scroll the element into view, wait a fixed amount of time
for the (animated) scroll to settle, then clip a padded region around the
element. The wait is a heuristic: Playwright does not report when a smooth
scroll finishes, so `CaptureOptions.wait_time_ms` may be too short on slow
pages. Every element-capture failure resolves to ``None``.
"""
from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Dict, Optional

from ..config import CaptureOptions

logger = logging.getLogger(__name__)

IS_VISIBLE_JS = """(el) => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    return (
        rect.width > 0 &&
        rect.height > 0 &&
        style.visibility !== 'hidden' &&
        style.display !== 'none' &&
        style.opacity !== '0'
    );
}"""

SCROLL_INTO_VIEW_JS = """(el, opts) => {
    el.scrollIntoView({ behavior: opts.behavior, block: opts.block });
}"""

DOCUMENT_RECT_JS = """(el) => {
    const rect = el.getBoundingClientRect();
    return {
        x: rect.left + window.scrollX,
        y: rect.top + window.scrollY,
        width: rect.width,
        height: rect.height,
    };
}"""


class ElementNotVisible(Exception):
    pass


def to_data_url(png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


def padded_clip(rect: Dict[str, float], padding: int) -> Dict[str, float]:
    """
    Expand `rect` by `padding` on every side. x and y are clamped at 0; the far
    edge is left alone and may run past the page.
    """
    return {
        "x": max(0, rect["x"] - padding),
        "y": max(0, rect["y"] - padding),
        "width": rect["width"] + padding * 2,
        "height": rect["height"] + padding * 2,
    }


async def is_element_visible(element: Any) -> bool:
    return bool(await element.evaluate(IS_VISIBLE_JS))


async def capture_element(page: Any, element: Any, options: Optional[CaptureOptions] = None) -> Optional[str]:
    """
    Screenshot `element` with surrounding context as a PNG data URL.

    Returns None when the element is not visible or both the padded and the
    plain element screenshot fail.
    """
    opts = options or CaptureOptions()
    try:
        await element.evaluate(
            SCROLL_INTO_VIEW_JS,
            {"behavior": opts.scroll_behavior, "block": opts.scroll_block},
        )
        await asyncio.sleep(opts.wait_time_ms / 1000)

        if not await is_element_visible(element):
            raise ElementNotVisible("Element is not visible")

        rect = await element.evaluate(DOCUMENT_RECT_JS)
        clip = padded_clip(rect, opts.padding_px)
        png = await page.screenshot(type="png", clip=clip)
        return to_data_url(png)
    except Exception as e:
        logger.warning("Could not take element screenshot: %s", e)

    try:
        if not await is_element_visible(element):
            logger.warning("Element is not visible, skipping fallback screenshot")
            return None
        png = await element.screenshot(type="png")
        return to_data_url(png)
    except Exception as e:
        logger.warning("Fallback element screenshot also failed: %s", e)
        return None


async def capture_full_page(page: Any) -> str:
    png = await page.screenshot(type="png", full_page=True)
    return to_data_url(png)
