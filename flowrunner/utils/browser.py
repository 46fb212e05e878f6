"""Browser session helpers: one Chromium page scoped to a run."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = {"width": 1280, "height": 720}


async def launch_browser(playwright: Playwright, headless: bool = True, slow_mo: int = 0) -> Browser:
    """Launch Chromium with the run's headless/slow-motion settings."""
    return await playwright.chromium.launch(headless=headless, slow_mo=slow_mo)


async def create_context(
    browser: Browser,
    timeout_ms: int,
    viewport: Optional[dict] = None,
) -> BrowserContext:
    """Create a browser context whose default action timeout is ``timeout_ms``."""
    context = await browser.new_context(viewport=viewport or DEFAULT_VIEWPORT)
    context.set_default_timeout(timeout_ms)
    return context


@asynccontextmanager
async def open_session(
    timeout_ms: int, headless: bool = True, slow_mo: int = 0,
) -> AsyncIterator[Page]:
    """Yield a page for the duration of one run.

    The context and browser are closed on every exit path, including
    exceptions raised inside the ``async with`` block.
    """
    async with async_playwright() as p:
        logger.debug("Launching Chromium (headless=%s, slow_mo=%d)...", headless, slow_mo)
        browser = await launch_browser(p, headless=headless, slow_mo=slow_mo)
        try:
            context = await create_context(browser, timeout_ms)
            try:
                page = await context.new_page()
                yield page
            finally:
                await context.close()
        finally:
            await browser.close()
            logger.debug("Browser closed")
