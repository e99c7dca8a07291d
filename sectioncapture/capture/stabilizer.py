"""Content stabilization — drive a page to a settled, fully-rendered state.

Lazy-loaded content, late images, web fonts, entrance animations and cookie
banners all change what a screenshot shows. Every helper here is bounded by
an iteration count or a wall-clock timeout, and none of them fail the
capture: a page that never settles is captured as-is.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import Page

from sectioncapture.capture.heuristics import CONSENT_SELECTORS, MOTION_MARKER_SELECTOR
from sectioncapture.capture.progress import ProgressReporter
from sectioncapture.models.capture_result import CapturePhase
from sectioncapture.models.config import StabilizationConfig

logger = logging.getLogger(__name__)

ANIMATION_POLL_MS = 200
MAX_ANIMATION_POLLS = 25
ENTRANCE_STABLE_POLLS = 5
ENTRANCE_MAX_WAIT_MS = 3000
FONT_BUFFER_MS = 100
CONSENT_CLICK_TIMEOUT_MS = 1000
CONSENT_SETTLE_MS = 500

_SCROLL_TICK_SCRIPT = """(distance) => {
    const scrollHeight = document.body.scrollHeight;
    window.scrollBy(0, distance);
    return scrollHeight;
}"""

_SCROLL_TOP_SCRIPT = "() => window.scrollTo(0, 0)"

_IMAGES_LOADED_SCRIPT = """() => Array.from(document.images).every((img) => {
    const src = img.getAttribute('src') || '';
    if (!src || src.startsWith('data:')) return true;
    return img.complete;
})"""

_FONTS_READY_SCRIPT = "() => document.fonts.ready.then(() => true)"

_RUNNING_ANIMATIONS_SCRIPT = """() => {
    if (typeof document.getAnimations !== 'function') return 0;
    return document.getAnimations()
        .filter((a) => a.playState === 'running' || a.playState === 'pending')
        .length;
}"""

_HIDDEN_ENTRANCE_SCRIPT = """() => document.querySelectorAll('[style*="opacity: 0"]').length"""

_HAS_SELECTOR_SCRIPT = "(selector) => document.querySelector(selector) !== null"


# ------------------------------------------------------------------
# Scrolling
# ------------------------------------------------------------------


@dataclass
class ScrollTracker:
    """Stop rule for the lazy-load scroll loop."""

    distance: int = 300
    max_iterations: int = 1000
    stable_ticks: int = 5
    total_scrolled: int = 0
    iterations: int = 0
    stable_count: int = 0
    last_scroll_height: int = 0

    def observe(self, scroll_height: int) -> bool:
        """Record one scroll tick; returns True when scrolling should stop."""
        self.total_scrolled += self.distance
        self.iterations += 1
        if scroll_height == self.last_scroll_height:
            self.stable_count += 1
        else:
            self.stable_count = 0
            self.last_scroll_height = scroll_height

        return (
            self.total_scrolled >= scroll_height
            or self.iterations >= self.max_iterations
            or self.stable_count >= self.stable_ticks
        )


async def auto_scroll(
    page: Page,
    distance: int = 300,
    delay_ms: int = 500,
    max_iterations: int = 1000,
    max_scroll_time_ms: int = 30000,
    stable_ticks: int = 5,
) -> ScrollTracker:
    """Scroll down in steps to trigger lazy loading, then back to the top."""
    tracker = ScrollTracker(distance=distance, max_iterations=max_iterations, stable_ticks=stable_ticks)

    async def _scroll_loop() -> None:
        while True:
            scroll_height = await page.evaluate(_SCROLL_TICK_SCRIPT, distance)
            if tracker.observe(int(scroll_height or 0)):
                return
            await page.wait_for_timeout(delay_ms)

    try:
        await asyncio.wait_for(_scroll_loop(), timeout=max_scroll_time_ms / 1000)
    except asyncio.TimeoutError:
        logger.warning("Auto-scroll hit the %dms limit after %d ticks", max_scroll_time_ms, tracker.iterations)
    except Exception as e:
        logger.debug("Auto-scroll interrupted: %s", e)
    finally:
        try:
            await page.evaluate(_SCROLL_TOP_SCRIPT)
        except Exception as e:
            logger.debug("Scroll reset failed: %s", e)

    logger.debug("Auto-scroll finished: %d ticks, %dpx", tracker.iterations, tracker.total_scrolled)
    return tracker


# ------------------------------------------------------------------
# Resource waits
# ------------------------------------------------------------------


async def wait_for_images(page: Page, timeout_ms: int = 10000) -> bool:
    """Wait until every non-data-URI image has finished loading."""
    try:
        await page.wait_for_function(_IMAGES_LOADED_SCRIPT, timeout=timeout_ms)
        return True
    except Exception as e:
        logger.debug("Images not fully loaded within %dms: %s", timeout_ms, e)
        return False


async def wait_for_fonts(page: Page) -> bool:
    try:
        await page.evaluate(_FONTS_READY_SCRIPT)
        await page.wait_for_timeout(FONT_BUFFER_MS)
        return True
    except Exception as e:
        logger.debug("Font readiness check failed: %s", e)
        return False


async def _wait_for_entrance_reveals(page: Page) -> None:
    """Wait until the count of opacity-0 elements stops changing."""
    last_count: Optional[int] = None
    stable = 0
    for _ in range(ENTRANCE_MAX_WAIT_MS // ANIMATION_POLL_MS):
        count = await page.evaluate(_HIDDEN_ENTRANCE_SCRIPT)
        if count == last_count:
            stable += 1
            if stable >= ENTRANCE_STABLE_POLLS:
                return
        else:
            stable = 0
            last_count = count
        await page.wait_for_timeout(ANIMATION_POLL_MS)
    logger.debug("Entrance animations still changing after %dms", ENTRANCE_MAX_WAIT_MS)


async def wait_for_animations(page: Page, base_wait_ms: int = 3000) -> None:
    """Let running animations and entrance reveals finish, then pause."""
    try:
        for _ in range(MAX_ANIMATION_POLLS):
            running = await page.evaluate(_RUNNING_ANIMATIONS_SCRIPT)
            if not running:
                break
            await page.wait_for_timeout(ANIMATION_POLL_MS)

        if await page.evaluate(_HAS_SELECTOR_SCRIPT, MOTION_MARKER_SELECTOR):
            await _wait_for_entrance_reveals(page)
    except Exception as e:
        logger.debug("Animation polling failed: %s", e)

    await page.wait_for_timeout(base_wait_ms)


async def wait_for_hero_content(page: Page, timeout_ms: int = 2000) -> bool:
    try:
        await page.wait_for_selector("h1", state="visible", timeout=timeout_ms)
        return True
    except Exception:
        logger.debug("No visible h1 within %dms", timeout_ms)
        return False


async def dismiss_cookie_consent(page: Page) -> bool:
    """Click the first visible consent button; returns True if one was clicked."""
    for selector in CONSENT_SELECTORS:
        try:
            button = page.locator(selector).first
            if not await button.is_visible():
                continue
            await button.click(timeout=CONSENT_CLICK_TIMEOUT_MS)
            await page.wait_for_timeout(CONSENT_SETTLE_MS)
            logger.info("Dismissed cookie consent via %s", selector)
            return True
        except Exception:
            continue
    return False


# ------------------------------------------------------------------
# Composite sequences
# ------------------------------------------------------------------


async def stabilize_page(
    page: Page,
    url: str,
    config: StabilizationConfig,
    reporter: Optional[ProgressReporter] = None,
    page_timeout_ms: int = 45000,
    wait_until: str = "load",
    settle_ms: int = 1000,
) -> None:
    """Navigate to ``url`` and settle the page.

    Navigation errors propagate so callers can retry; every later step is
    best-effort.
    """
    reporter = reporter or ProgressReporter()

    reporter.emit(CapturePhase.INITIALIZING, 10, f"Loading {url}")
    await page.goto(url, wait_until=wait_until, timeout=page_timeout_ms)
    await page.wait_for_timeout(settle_ms)

    if config.dismiss_cookie_consent:
        await dismiss_cookie_consent(page)

    reporter.emit(CapturePhase.SCROLLING, 20, "Scrolling to load lazy content")
    await auto_scroll(
        page,
        distance=config.scroll_distance,
        delay_ms=config.scroll_delay_ms,
        max_iterations=config.max_scroll_iterations,
        max_scroll_time_ms=config.max_scroll_time_ms,
        stable_ticks=config.stable_ticks,
    )

    reporter.emit(CapturePhase.WAITING_IMAGES, 40, "Waiting for images")
    await wait_for_images(page, config.image_timeout_ms)

    reporter.emit(CapturePhase.WAITING_FONTS, 50, "Waiting for fonts")
    await wait_for_fonts(page)

    reporter.emit(CapturePhase.WAITING_ANIMATIONS, 55, "Waiting for animations")
    await wait_for_animations(page, config.animation_wait_ms)

    reporter.emit(CapturePhase.WAITING_ANIMATIONS, 58, "Waiting for hero content")
    await wait_for_hero_content(page, config.hero_timeout_ms)


async def resettle(page: Page, config: StabilizationConfig) -> None:
    """Re-trigger lazy loading after a viewport change."""
    await auto_scroll(
        page,
        distance=config.scroll_distance,
        delay_ms=config.scroll_delay_ms,
        max_iterations=config.max_scroll_iterations,
        max_scroll_time_ms=config.max_scroll_time_ms,
        stable_ticks=config.stable_ticks,
    )
    await wait_for_images(page, config.image_timeout_ms)
