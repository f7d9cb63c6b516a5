from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, async_playwright

logger = logging.getLogger(__name__)


@asynccontextmanager
async def browser_session(headless: bool = True) -> AsyncIterator[Browser]:
    """
    Launch one Chromium instance for a whole run and close it exactly once,
    even when the body raises.
    """
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        logger.info("Browser launched (headless=%s)", headless)
        try:
            yield browser
        finally:
            await browser.close()
            logger.info("Browser closed")


async def new_page_context(
    browser: Browser,
    user_agent: Optional[str] = None,
    viewport_width: int = 1280,
    viewport_height: int = 800,
) -> BrowserContext:
    """Isolated context (cookies, storage, cache) for a single URL."""
    return await browser.new_context(
        viewport={"width": viewport_width, "height": viewport_height},
        device_scale_factor=1,
        user_agent=user_agent or None,
    )
