"""Capture orchestrator — runs one end-to-end single-viewport capture."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Optional

from playwright.async_api import Browser, Page, async_playwright

from sectioncapture.cache.screenshot_cache import ScreenshotCacheManager
from sectioncapture.capture.browser import close_browser, launch_browser, new_capture_page
from sectioncapture.capture.progress import ProgressCallback, ProgressReporter
from sectioncapture.capture.raw_data import extract_raw_page_data
from sectioncapture.capture.retry import with_retry
from sectioncapture.capture.screenshots import capture_full_page, capture_section, clear_directory, section_filename
from sectioncapture.capture.section_detector import SectionDetector, get_page_dimensions
from sectioncapture.capture.stabilizer import stabilize_page
from sectioncapture.models.capture_result import (
    CaptureMetadata,
    CapturePhase,
    CaptureRequest,
    CaptureResult,
)
from sectioncapture.models.config import CaptureConfig
from sectioncapture.models.section import DetectedSection

logger = logging.getLogger(__name__)


def timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class CaptureFailed(Exception):
    """A capture stage exhausted its retries."""


class CaptureOrchestrator:
    """Coordinates cache lookup, browser lifecycle, stabilization, detection and screenshots."""

    def __init__(self, config: Optional[CaptureConfig] = None, cache: Optional[ScreenshotCacheManager] = None):
        self.config = config or CaptureConfig()
        if cache is None and self.config.cache.enabled:
            cache = ScreenshotCacheManager(self.config.cache.cache_dir, self.config.cache.ttl_hours)
        self.cache = cache
        self.detector = SectionDetector(self.config.detection)

    def reference_dir(self, website_id: str) -> Path:
        return Path(self.config.websites_dir) / website_id / "reference"

    def run_capture(self, request: CaptureRequest, on_progress: Optional[ProgressCallback] = None) -> CaptureResult:
        """Synchronous wrapper around :meth:`capture`."""
        return asyncio.run(self.capture(request, on_progress))

    async def capture(self, request: CaptureRequest, on_progress: Optional[ProgressCallback] = None) -> CaptureResult:
        """Capture a page. Never raises; failures come back as ``success=False``."""
        reporter = ProgressReporter(on_progress)
        start = time.time()
        logger.info("=== Capturing %s for %s ===", request.url, request.website_id)

        try:
            cached = self._from_cache(request, reporter)
        except Exception as e:
            logger.warning("Screenshot cache lookup failed, capturing fresh: %s", e)
            cached = None
        if cached is not None:
            return cached

        browser: Browser | None = None
        try:
            async with async_playwright() as playwright:
                try:
                    browser = await self._launch(playwright, request)
                    result = await self._capture_with_browser(browser, request, reporter)
                finally:
                    await close_browser(browser)
        except CaptureFailed as e:
            return self._failure(request, reporter, str(e))
        except Exception as e:
            logger.exception("Capture of %s crashed", request.url)
            return self._failure(request, reporter, f"Capture failed: {e}")

        logger.info("=== Capture complete: %d sections in %.1fs ===", len(result.sections), time.time() - start)
        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _from_cache(self, request: CaptureRequest, reporter: ProgressReporter) -> CaptureResult | None:
        if request.skip_cache or self.cache is None:
            return None
        entry = self.cache.copy_to_website(request.url, self.reference_dir(request.website_id).parent)
        if entry is None:
            return None

        width, height = self._viewport(request)
        reporter.emit(CapturePhase.COMPLETE, 100, "Loaded screenshots from cache")
        return CaptureResult(
            success=True,
            website_id=request.website_id,
            full_page_path=entry.full_page_path,
            sections=entry.sections,
            metadata=CaptureMetadata(
                url=request.url,
                captured_at=entry.captured_at,
                viewport_width=width,
                viewport_height=height,
                full_page_height=entry.full_page_height,
            ),
            from_cache=True,
        )

    async def _launch(self, playwright, request: CaptureRequest) -> Browser:
        headless = self.config.headless if request.headless is None else request.headless
        launched = await with_retry(
            lambda: launch_browser(playwright, headless, self.config.browser_launch_timeout_s),
            self._max_retries(request),
            "Browser launch",
        )
        if not launched.success:
            raise CaptureFailed(launched.error)
        return launched.value

    async def _capture_with_browser(
        self, browser: Browser, request: CaptureRequest, reporter: ProgressReporter
    ) -> CaptureResult:
        retries = self._max_retries(request)
        width, height = self._viewport(request)
        page = await new_capture_page(browser, width, height)

        logger.info("--- Stage 1: Load and stabilize ---")
        loaded = await with_retry(
            lambda: stabilize_page(
                page,
                request.url,
                self.config.stabilization,
                reporter,
                page_timeout_ms=self._page_timeout_ms(request),
            ),
            retries,
            "Page navigation",
        )
        if not loaded.success:
            raise CaptureFailed(loaded.error)

        dimensions = await get_page_dimensions(page)

        logger.info("--- Stage 2: Full-page screenshot ---")
        reporter.emit(CapturePhase.CAPTURING, 60, "Capturing full page")
        reference_dir = self.reference_dir(request.website_id)
        full_page = await with_retry(
            lambda: capture_full_page(page, reference_dir / "full-page.png"),
            retries,
            "Full-page screenshot",
        )
        if not full_page.success:
            raise CaptureFailed(full_page.error)

        logger.info("--- Stage 3: Detect sections ---")
        reporter.emit(CapturePhase.SECTIONS, 65, "Detecting sections")
        detected = await self.detector.detect(page)

        logger.info("--- Stage 4: Section screenshots (%d) ---", len(detected))
        sections_dir = reference_dir / "sections"
        clear_directory(sections_dir)
        sections = await self._capture_sections(page, detected, sections_dir, retries, reporter)

        metadata = CaptureMetadata(
            url=request.url,
            captured_at=timestamp(),
            viewport_width=width,
            viewport_height=height,
            full_page_height=dimensions["scroll_height"],
        )
        self._save_metadata(reference_dir / "metadata.json", metadata, sections)

        if self.cache is not None:
            try:
                self.cache.set(request.url, full_page.value, sections, metadata.full_page_height)
            except Exception as e:
                logger.warning("Failed to write screenshot cache: %s", e)

        reporter.emit(CapturePhase.EXTRACTING, 95, "Extracting design data")
        raw_data = None
        try:
            raw_data = await extract_raw_page_data(page, request.url)
        except Exception as e:
            logger.warning("Raw design data extraction failed: %s", e)

        reporter.emit(CapturePhase.COMPLETE, 100, f"Captured {len(sections)} sections")
        return CaptureResult(
            success=True,
            website_id=request.website_id,
            full_page_path=full_page.value,
            sections=sections,
            metadata=metadata,
            raw_data=raw_data,
        )

    async def _capture_sections(
        self,
        page: Page,
        detected: list[DetectedSection],
        sections_dir: Path,
        retries: int,
        reporter: ProgressReporter,
    ) -> list[DetectedSection]:
        total = len(detected)
        captured: list[DetectedSection] = []
        for i, section in enumerate(detected):
            reporter.emit(
                CapturePhase.SECTIONS,
                70 + (i / max(total, 1)) * 25,
                f"Capturing {section.type.value} section",
                current_section=i + 1,
                total_sections=total,
            )
            path = sections_dir / section_filename(i, section)
            shot = await with_retry(
                lambda: capture_section(page, section, path, self.config.max_section_screenshot_height),
                retries,
                f"Section {i + 1} screenshot",
            )
            if not shot.success:
                logger.warning("Skipping %s section: %s", section.type.value, shot.error)
                continue
            captured.append(section.model_copy(update={"screenshot_path": shot.value}))
        return captured

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _viewport(self, request: CaptureRequest) -> tuple[int, int]:
        return (
            request.viewport_width or self.config.viewport.width,
            request.viewport_height or self.config.viewport.height,
        )

    def _max_retries(self, request: CaptureRequest) -> int:
        return self.config.max_retries if request.max_retries is None else request.max_retries

    def _page_timeout_ms(self, request: CaptureRequest) -> int:
        return self.config.page_timeout_ms if request.page_timeout_ms is None else request.page_timeout_ms

    def _save_metadata(self, path: Path, metadata: CaptureMetadata, sections: list[DetectedSection]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            **metadata.model_dump(),
            "section_count": len(sections),
            "sections": [
                {"id": s.id, "type": s.type.value, "bounding_box": s.bounding_box.model_dump()}
                for s in sections
            ],
        }
        with open(path, "w") as f:
            json.dump(data, f, indent=2, default=str)

    def _failure(self, request: CaptureRequest, reporter: ProgressReporter, error: str) -> CaptureResult:
        logger.error("Capture of %s failed: %s", request.url, error)
        reporter.emit(CapturePhase.FAILED, reporter.percent, error)
        return CaptureResult(success=False, website_id=request.website_id, error=error)
