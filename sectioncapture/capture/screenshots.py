"""Full-page and per-section screenshot capture."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from playwright.async_api import Page

from sectioncapture.models.section import DetectedSection

logger = logging.getLogger(__name__)

# (offset from section top, pause in ms): overshoot, then settle on the exact top
SECTION_SCROLL_STEPS = ((-200, 300), (200, 300), (0, 500))
IMAGE_CAP_MS = 2000

_SCROLL_TO_SCRIPT = "(y) => window.scrollTo(0, y)"
_SCROLL_Y_SCRIPT = "() => window.scrollY"

_VISIBLE_IMAGES_SCRIPT = """(capMs) => Promise.all(
    Array.from(document.images)
        .filter((img) => {
            const rect = img.getBoundingClientRect();
            return rect.top < window.innerHeight && rect.bottom > 0 && !img.complete;
        })
        .map((img) => new Promise((resolve) => {
            img.addEventListener('load', resolve, {once: true});
            img.addEventListener('error', resolve, {once: true});
            setTimeout(resolve, capMs);
        }))
).then(() => true)"""


def section_filename(index: int, section: DetectedSection) -> str:
    return f"{index + 1:02d}-{section.type.value}.png"


def clear_directory(path: Path) -> None:
    """Remove screenshots left by an earlier capture."""
    if path.exists():
        shutil.rmtree(path)


async def capture_full_page(page: Page, path: Path) -> str:
    """Full-page screenshot; errors propagate so callers can retry."""
    path.parent.mkdir(parents=True, exist_ok=True)
    await page.screenshot(path=str(path), full_page=True)
    return str(path)


async def wait_for_visible_images(page: Page, cap_ms: int = IMAGE_CAP_MS) -> None:
    try:
        await page.evaluate(_VISIBLE_IMAGES_SCRIPT, cap_ms)
    except Exception as e:
        logger.debug("Visible image wait failed: %s", e)


async def capture_section(
    page: Page,
    section: DetectedSection,
    path: Path,
    max_height: int = 900,
) -> str:
    """Screenshot one section clipped to its box.

    Scrolling past the section and back mounts content revealed by
    intersection observers. Errors propagate so callers can retry.
    """
    box = section.bounding_box
    for offset, pause_ms in SECTION_SCROLL_STEPS:
        await page.evaluate(_SCROLL_TO_SCRIPT, max(0, box.y + offset))
        await page.wait_for_timeout(pause_ms)

    await wait_for_visible_images(page)

    scroll_y = await page.evaluate(_SCROLL_Y_SCRIPT) or 0
    clip_y = box.y - scroll_y
    path.parent.mkdir(parents=True, exist_ok=True)
    await page.screenshot(
        path=str(path),
        clip={
            "x": box.x,
            "y": max(0, clip_y),
            "width": max(1, box.width),
            "height": max(1, min(box.height, max_height)),
        },
    )
    return str(path)
