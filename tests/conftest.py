"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from sectioncapture.capture.section_detector import PAGE_METRICS_SCRIPT
from sectioncapture.models.config import CacheConfig, CaptureConfig, StabilizationConfig
from sectioncapture.models.section import BoundingBox, DetectedSection, SectionType


# ============================================================================
# Fake Playwright objects
# ============================================================================


class FakeLocator:
    """Locator over a fixed list of bounding rects."""

    def __init__(self, page: "FakePage", selector: str, rects: list[dict]):
        self.page = page
        self.selector = selector
        self.rects = rects

    @property
    def first(self) -> "FakeLocator":
        return FakeLocator(self.page, self.selector, self.rects[:1])

    def nth(self, index: int) -> "FakeLocator":
        return FakeLocator(self.page, self.selector, self.rects[index:index + 1])

    async def count(self) -> int:
        return len(self.rects)

    async def is_visible(self) -> bool:
        return bool(self.rects)

    async def bounding_box(self, timeout: Optional[int] = None) -> Optional[dict]:
        return dict(self.rects[0]) if self.rects else None

    async def click(self, timeout: Optional[int] = None) -> None:
        self.page.clicks.append(self.selector)


class FakePage:
    """Minimal stand-in for a Playwright page.

    ``scripts`` maps a script constant to either a value or a callable taking
    the evaluate argument. ``elements`` maps selectors to bounding rects.
    ``failures`` maps a method name (goto, screenshot, wait_for_function,
    wait_for_selector) to the exception it raises.
    """

    def __init__(
        self,
        scripts: Optional[dict[str, Any]] = None,
        elements: Optional[dict[str, list[dict]]] = None,
        failures: Optional[dict[str, Exception]] = None,
    ):
        self.scripts = scripts or {}
        self.elements = elements or {}
        self.failures = failures or {}
        self.evaluations: list[tuple[str, Any]] = []
        self.waits: list[int] = []
        self.clicks: list[str] = []
        self.visits: list[tuple[str, str]] = []
        self.screenshots: list[dict] = []
        self.viewport = {"width": 1440, "height": 900}

    def _maybe_fail(self, name: str) -> None:
        if name in self.failures:
            raise self.failures[name]

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.evaluations.append((script, arg))
        handler = self.scripts.get(script)
        if callable(handler):
            return handler(arg)
        return handler

    def evaluated(self, script: str) -> list[Any]:
        return [arg for s, arg in self.evaluations if s == script]

    async def goto(self, url: str, wait_until: str = "load", timeout: Optional[int] = None) -> None:
        self._maybe_fail("goto")
        self.visits.append((url, wait_until))

    async def wait_for_timeout(self, ms: int) -> None:
        self.waits.append(ms)

    async def wait_for_function(self, script: str, timeout: Optional[int] = None) -> None:
        self._maybe_fail("wait_for_function")

    async def wait_for_selector(self, selector: str, state: str = "visible", timeout: Optional[int] = None) -> None:
        self._maybe_fail("wait_for_selector")

    async def set_viewport_size(self, size: dict) -> None:
        self.viewport = dict(size)

    async def screenshot(self, path: str, full_page: bool = False, clip: Optional[dict] = None) -> bytes:
        self._maybe_fail("screenshot")
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_bytes(b"\x89PNG fake")
        self.screenshots.append({"path": path, "full_page": full_page, "clip": clip})
        return b""

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector, self.elements.get(selector, []))


class FakePlaywrightContext:
    """Async context manager standing in for ``async_playwright()``."""

    async def __aenter__(self):
        return Mock()

    async def __aexit__(self, *exc_info):
        return False


def rect(y: float, height: float, x: float = 0, width: float = 1440) -> dict:
    return {"x": x, "y": y, "width": width, "height": height}


def page_metrics(page_height: int, viewport_height: int = 900, viewport_width: int = 1440, scroll_y: int = 0) -> dict:
    return {
        "viewport_width": viewport_width,
        "viewport_height": viewport_height,
        "page_width": viewport_width,
        "page_height": page_height,
        "body_scroll_height": page_height,
        "scroll_x": 0,
        "scroll_y": scroll_y,
    }


# ============================================================================
# Page Fixtures
# ============================================================================


@pytest.fixture
def make_page() -> Callable[..., FakePage]:
    """Factory for fake pages."""
    return FakePage


@pytest.fixture
def landing_page() -> FakePage:
    """A 930px page with an 80px header, a 700px hero and a 150px footer."""
    return FakePage(
        scripts={PAGE_METRICS_SCRIPT: page_metrics(930)},
        elements={
            "header": [rect(0, 80)],
            '[class*="hero"]': [rect(80, 700)],
            "footer": [rect(780, 150)],
        },
    )


@pytest.fixture
def fake_browser(landing_page: FakePage) -> Mock:
    """A browser whose new_page returns the landing page."""
    browser = Mock()
    browser.new_page = AsyncMock(return_value=landing_page)
    browser.close = AsyncMock()
    return browser


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def fast_stabilization() -> StabilizationConfig:
    """Stabilization settings with no artificial waits."""
    return StabilizationConfig(
        scroll_delay_ms=0,
        max_scroll_time_ms=5000,
        image_timeout_ms=100,
        animation_wait_ms=0,
        hero_timeout_ms=100,
    )


@pytest.fixture
def capture_config(tmp_path: Path, fast_stabilization: StabilizationConfig) -> CaptureConfig:
    """Config writing websites and caches under a temp directory."""
    return CaptureConfig(
        websites_dir=str(tmp_path / "Websites"),
        stabilization=fast_stabilization,
        cache=CacheConfig(
            cache_dir=str(tmp_path / "cache"),
            token_cache_dir=str(tmp_path / "cache" / "tokens"),
        ),
    )


# ============================================================================
# Section Fixtures
# ============================================================================


@pytest.fixture
def sample_sections() -> list[DetectedSection]:
    """Header, hero and footer sections in page order."""
    return [
        DetectedSection(type=SectionType.HEADER, bounding_box=BoundingBox(x=0, y=0, width=1440, height=80)),
        DetectedSection(type=SectionType.HERO, bounding_box=BoundingBox(x=0, y=80, width=1440, height=700)),
        DetectedSection(type=SectionType.FOOTER, bounding_box=BoundingBox(x=0, y=780, width=1440, height=150)),
    ]


@pytest.fixture
def screenshot_files(tmp_path: Path, sample_sections: list[DetectedSection]) -> tuple[Path, list[DetectedSection]]:
    """A full-page image plus one image per sample section on disk."""
    source = tmp_path / "capture"
    sections_dir = source / "sections"
    sections_dir.mkdir(parents=True)
    full_page = source / "full-page.png"
    full_page.write_bytes(b"full")

    captured = []
    for i, section in enumerate(sample_sections):
        path = sections_dir / f"{i + 1:02d}-{section.type.value}.png"
        path.write_bytes(section.type.value.encode())
        captured.append(section.model_copy(update={"screenshot_path": str(path)}))
    return full_page, captured
