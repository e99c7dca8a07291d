"""Browser lifecycle helpers for capture runs."""

from __future__ import annotations

import asyncio
import logging

from playwright.async_api import Browser, Page, Playwright

logger = logging.getLogger(__name__)

# Flags that keep headless Chromium stable inside containers
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]


async def launch_browser(playwright: Playwright, headless: bool = True, timeout_s: float = 30.0) -> Browser:
    """Launch Chromium, failing with TimeoutError after ``timeout_s``."""
    logger.debug("Launching Chromium (headless=%s)", headless)
    return await asyncio.wait_for(
        playwright.chromium.launch(headless=headless, args=LAUNCH_ARGS),
        timeout=timeout_s,
    )


async def new_capture_page(browser: Browser, width: int, height: int) -> Page:
    """Open a page with the viewport set before any navigation."""
    page = await browser.new_page()
    await page.set_viewport_size({"width": width, "height": height})
    return page


async def close_browser(browser: Browser | None) -> None:
    if browser is None:
        return
    try:
        await browser.close()
    except Exception as e:
        logger.debug("Browser close failed: %s", e)
