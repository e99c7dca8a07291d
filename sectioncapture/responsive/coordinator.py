"""Responsive capture — one page load, re-captured at several viewport widths."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from playwright.async_api import Browser, Page, async_playwright

from sectioncapture.capture.browser import close_browser, launch_browser, new_capture_page
from sectioncapture.capture.progress import ProgressCallback, ProgressReporter
from sectioncapture.capture.retry import with_retry
from sectioncapture.capture.screenshots import capture_full_page, capture_section, clear_directory, section_filename
from sectioncapture.capture.section_detector import SectionDetector
from sectioncapture.capture.stabilizer import resettle, stabilize_page
from sectioncapture.capture.style_extractor import StyleExtractor
from sectioncapture.models.capture_result import (
    CapturePhase,
    ResponsiveCaptureRequest,
    ResponsiveCaptureResult,
    ResponsiveMetadata,
)
from sectioncapture.models.config import VIEWPORT_CONFIGS, CaptureConfig, ViewportConfig
from sectioncapture.models.section import DetectedSection, ResponsiveSectionInfo, SectionStyles

logger = logging.getLogger(__name__)

# Baseline load happens at desktop size before any resizing
INITIAL_VIEWPORT = (1440, 900)
RESIZE_SETTLE_MS = 500
INITIAL_SETTLE_MS = 500
ANCHOR_VIEWPORT = "desktop"


@dataclass
class ViewportRun:
    """Everything captured at one viewport width."""

    viewport: str
    full_page_path: str = ""
    sections: list[DetectedSection] = field(default_factory=list)
    styles: list[SectionStyles] = field(default_factory=list)


def align_sections(runs: dict[str, ViewportRun]) -> list[ResponsiveSectionInfo]:
    """Merge per-viewport detections into one list keyed on the anchor run.

    The desktop run anchors the list (or the first run when desktop was not
    captured). Other viewports contribute the first section of the same
    type; viewports without one are left out of that section's maps.
    """
    if not runs:
        return []
    anchor_name = ANCHOR_VIEWPORT if ANCHOR_VIEWPORT in runs else next(iter(runs))
    anchor = runs[anchor_name]

    merged: list[ResponsiveSectionInfo] = []
    for section in anchor.sections:
        info = ResponsiveSectionInfo(**section.model_dump())
        for name, run in runs.items():
            match = next((i for i, s in enumerate(run.sections) if s.type == section.type), None)
            if match is None:
                continue
            matched = run.sections[match]
            styles = run.styles[match] if match < len(run.styles) else SectionStyles()
            info.responsive_styles[name] = styles.styles
            info.responsive_html[name] = styles.html
            info.responsive_bounding_box[name] = matched.bounding_box
            if matched.screenshot_path:
                info.responsive_screenshot_path[name] = matched.screenshot_path
        merged.append(info)
    return merged


class ResponsiveCaptureCoordinator:
    """Captures sections, screenshots and styles at mobile, tablet and desktop widths."""

    def __init__(self, config: Optional[CaptureConfig] = None, style_extractor: Optional[StyleExtractor] = None):
        self.config = config or CaptureConfig()
        self.detector = SectionDetector(self.config.detection)
        self.style_extractor = style_extractor or StyleExtractor()

    def reference_dir(self, website_id: str) -> Path:
        return Path(self.config.websites_dir) / website_id / "reference"

    def run_capture(
        self, request: ResponsiveCaptureRequest, on_progress: Optional[ProgressCallback] = None
    ) -> ResponsiveCaptureResult:
        return asyncio.run(self.capture(request, on_progress))

    async def capture(
        self, request: ResponsiveCaptureRequest, on_progress: Optional[ProgressCallback] = None
    ) -> ResponsiveCaptureResult:
        """Never raises; failures come back as ``success=False``."""
        reporter = ProgressReporter(on_progress)
        viewports = [v for v in VIEWPORT_CONFIGS if v.name in request.viewports]
        if not viewports:
            return self._failure(request, reporter, f"No known viewports in {request.viewports}")

        browser: Browser | None = None
        try:
            async with async_playwright() as playwright:
                try:
                    browser = await self._launch(playwright, request)
                    return await self._capture_with_browser(browser, request, viewports, reporter)
                finally:
                    await close_browser(browser)
        except Exception as e:
            logger.exception("Responsive capture of %s crashed", request.url)
            return self._failure(request, reporter, str(e))

    async def _launch(self, playwright, request: ResponsiveCaptureRequest) -> Browser:
        headless = self.config.headless if request.headless is None else request.headless
        launched = await with_retry(
            lambda: launch_browser(playwright, headless, self.config.browser_launch_timeout_s),
            self._max_retries(request),
            "Browser launch",
        )
        if not launched.success:
            raise RuntimeError(launched.error)
        return launched.value

    async def _capture_with_browser(
        self,
        browser: Browser,
        request: ResponsiveCaptureRequest,
        viewports: list[ViewportConfig],
        reporter: ProgressReporter,
    ) -> ResponsiveCaptureResult:
        retries = self._max_retries(request)
        page = await new_capture_page(browser, *INITIAL_VIEWPORT)

        reporter.emit(CapturePhase.INITIALIZING, 5, f"Loading {request.url}")
        loaded = await with_retry(
            lambda: stabilize_page(
                page,
                request.url,
                self.config.stabilization,
                page_timeout_ms=self._page_timeout_ms(request),
                wait_until="domcontentloaded",
                settle_ms=INITIAL_SETTLE_MS,
            ),
            retries,
            "Page navigation",
        )
        if not loaded.success:
            return self._failure(request, reporter, loaded.error)

        runs: dict[str, ViewportRun] = {}
        step = 80 / len(viewports)
        for i, viewport in enumerate(viewports):
            reporter.emit(CapturePhase.CAPTURING, 15 + i * step, f"Capturing {viewport.name} ({viewport.width}px)")
            try:
                runs[viewport.name] = await self._capture_viewport(page, request, viewport, retries)
            except Exception as e:
                logger.warning("Skipping %s viewport: %s", viewport.name, e)

        if not runs:
            return self._failure(request, reporter, "No viewport could be captured")

        reporter.emit(CapturePhase.EXTRACTING, 95, "Aligning sections across viewports")
        sections = align_sections(runs)
        metadata = ResponsiveMetadata(
            url=request.url,
            captured_at=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            viewports=list(runs),
        )
        self._save_metadata(self.reference_dir(request.website_id) / "responsive-metadata.json", metadata, sections)

        reporter.emit(CapturePhase.COMPLETE, 100, f"Captured {len(sections)} sections at {len(runs)} viewports")
        return ResponsiveCaptureResult(
            success=True,
            website_id=request.website_id,
            full_page_paths={name: run.full_page_path for name, run in runs.items()},
            sections=sections,
            metadata=metadata,
        )

    async def _capture_viewport(
        self, page: Page, request: ResponsiveCaptureRequest, viewport: ViewportConfig, retries: int
    ) -> ViewportRun:
        logger.info("--- Viewport %s (%dx%d) ---", viewport.name, viewport.width, viewport.height)
        await page.set_viewport_size({"width": viewport.width, "height": viewport.height})
        await page.wait_for_timeout(RESIZE_SETTLE_MS)
        await resettle(page, self.config.stabilization)

        viewport_dir = self.reference_dir(request.website_id) / viewport.name
        full_page = await with_retry(
            lambda: capture_full_page(page, viewport_dir / "full-page.png"),
            retries,
            f"{viewport.name} full-page screenshot",
        )
        if not full_page.success:
            raise RuntimeError(full_page.error)

        clear_directory(viewport_dir / "sections")
        run = ViewportRun(viewport=viewport.name, full_page_path=full_page.value)
        for i, section in enumerate(await self.detector.detect(page)):
            path = viewport_dir / "sections" / section_filename(i, section)
            shot = await with_retry(
                lambda: capture_section(page, section, path, self.config.max_section_screenshot_height),
                retries,
                f"{viewport.name} section {i + 1} screenshot",
            )
            if not shot.success:
                logger.warning("Skipping %s %s section: %s", viewport.name, section.type.value, shot.error)
                continue
            run.sections.append(section.model_copy(update={"screenshot_path": shot.value}))
            run.styles.append(await self.style_extractor.extract_section(page, section.bounding_box))
        logger.info("%s: %d sections", viewport.name, len(run.sections))
        return run

    def _max_retries(self, request: ResponsiveCaptureRequest) -> int:
        return self.config.max_retries if request.max_retries is None else request.max_retries

    def _page_timeout_ms(self, request: ResponsiveCaptureRequest) -> int:
        return self.config.page_timeout_ms if request.page_timeout_ms is None else request.page_timeout_ms

    def _save_metadata(self, path: Path, metadata: ResponsiveMetadata, sections: list[ResponsiveSectionInfo]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            **metadata.model_dump(),
            "sections": [
                {
                    "id": s.id,
                    "type": s.type.value,
                    "responsive_bounding_box": {k: v.model_dump() for k, v in s.responsive_bounding_box.items()},
                }
                for s in sections
            ],
        }
        with open(path, "w") as f:
            json.dump(data, f, indent=2)

    def _failure(
        self, request: ResponsiveCaptureRequest, reporter: ProgressReporter, error: Optional[str]
    ) -> ResponsiveCaptureResult:
        logger.error("Responsive capture of %s failed: %s", request.url, error)
        reporter.emit(CapturePhase.FAILED, reporter.percent, error or "")
        return ResponsiveCaptureResult(success=False, website_id=request.website_id, error=error)
