"""Section detection — locate and classify the major regions of a page.

Detection runs as a ladder of increasingly generic strategies:

1. Selector detection: a table of CSS selectors per section type.
2. Named regions: large elements carrying design-tool layer names.
3. Viewport splitting: equal bands of roughly one viewport each.

A tier is accepted once it yields enough sections covering enough of the
page; otherwise the next tier is tried.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import Locator, Page

from sectioncapture.capture.heuristics import (
    BAND_CYCLE,
    FIXED_NAV_SELECTORS,
    NAME_TYPE_RULES,
    SECTION_KEYWORDS,
    SECTION_SELECTORS,
)
from sectioncapture.models.config import DetectionConfig
from sectioncapture.models.section import (
    SINGLETON_TYPES,
    BoundingBox,
    DetectedSection,
    SectionContent,
    SectionType,
)

logger = logging.getLogger(__name__)

LOCATOR_TIMEOUT_MS = 500

PAGE_METRICS_SCRIPT = """() => ({
    viewport_width: window.innerWidth,
    viewport_height: window.innerHeight,
    page_width: document.body.scrollWidth || window.innerWidth,
    page_height: Math.max(
        document.body.scrollHeight,
        document.documentElement.scrollHeight,
        document.body.offsetHeight,
        document.documentElement.offsetHeight
    ),
    body_scroll_height: document.body.scrollHeight,
    scroll_x: window.scrollX,
    scroll_y: window.scrollY,
})"""

NAMED_REGIONS_SCRIPT = """(minWidth) => {
    const regions = [];
    for (const el of document.querySelectorAll('[data-framer-name]')) {
        const rect = el.getBoundingClientRect();
        if (rect.width < minWidth) continue;
        const style = window.getComputedStyle(el);
        const parent = el.parentElement;
        regions.push({
            name: el.getAttribute('data-framer-name') || '',
            x: rect.x + window.scrollX,
            y: rect.y + window.scrollY,
            width: rect.width,
            height: rect.height,
            position: style.position,
            background_color: style.backgroundColor,
            background_image: style.backgroundImage,
            parent_height: parent ? parent.getBoundingClientRect().height : 0,
        });
    }
    return regions;
}"""

FIXED_NAV_SCRIPT = """(selectors) => {
    for (const sel of selectors) {
        for (const el of document.querySelectorAll(sel)) {
            const position = window.getComputedStyle(el).position;
            if (position !== 'fixed' && position !== 'sticky') continue;
            const rect = el.getBoundingClientRect();
            if (rect.top > 50 || rect.height <= 40 || rect.height >= 200) continue;
            if (el.querySelectorAll('a').length < 3) continue;
            return {x: rect.x + window.scrollX, y: 0, width: rect.width, height: rect.height};
        }
    }
    return null;
}"""

SECTION_CONTENT_SCRIPT = """(box) => {
    const inBox = (selector) => Array.from(document.querySelectorAll(selector)).filter((el) => {
        const rect = el.getBoundingClientRect();
        const top = rect.y + window.scrollY;
        return top >= box.y && top + rect.height <= box.y + box.height + 50
            && rect.width > 0 && rect.height > 0;
    });
    const clean = (text) => (text || '').replace(/\\s+/g, ' ').trim();

    const headings = [];
    for (let level = 1; level <= 6; level++) {
        for (const el of inBox(`h${level}`)) {
            const text = clean(el.textContent);
            if (text && text.length < 500) headings.push({level, text});
        }
    }

    const paragraphs = [];
    for (const el of inBox('p')) {
        const text = clean(el.textContent);
        if (text.length > 20 && text.length < 2000) paragraphs.push(text);
    }

    const buttons = [];
    for (const el of inBox('button, a[class*="button"], a[class*="btn"], [role="button"]')) {
        const text = clean(el.textContent);
        if (!text || text.length >= 100 || buttons.some((b) => b.text === text)) continue;
        const bg = window.getComputedStyle(el).backgroundColor;
        buttons.push({
            text,
            href: el.getAttribute('href'),
            is_primary: bg !== 'transparent' && bg !== 'rgba(0, 0, 0, 0)',
        });
    }

    const links = [];
    for (const el of inBox('a:not([class*="button"]):not([class*="btn"]):not([role="button"])')) {
        const text = clean(el.textContent);
        const href = el.getAttribute('href');
        if (!text || text.length >= 100 || !href || href.startsWith('#')) continue;
        if (!buttons.some((b) => b.text === text)) links.push({text, href});
    }

    const images = [];
    for (const el of inBox('img')) {
        const src = el.currentSrc || el.src || '';
        const rect = el.getBoundingClientRect();
        if (!src || src.startsWith('data:image/svg') || rect.width <= 10) continue;
        let role = 'decorative';
        if (rect.width > 400 && rect.height > 300) role = 'hero';
        else if (rect.width < 100 && rect.height < 100) {
            role = el.closest('[class*="avatar"], [class*="profile"], [class*="author"]') ? 'avatar' : 'icon';
        }
        images.push({src, alt: el.alt || '', role});
    }

    const lists = [];
    for (const el of inBox('ul, ol')) {
        const items = Array.from(el.querySelectorAll('li'))
            .map((li) => clean(li.textContent))
            .filter((t) => t && t.length < 500);
        if (items.length) lists.push(items);
    }

    const stats = [];
    for (const el of inBox('[class*="stat"], [class*="metric"], [data-framer-name*="Stat"]')) {
        const numbers = el.querySelectorAll('[class*="number"], [class*="value"], strong, b');
        const labels = el.querySelectorAll('[class*="label"], span, p');
        if (!numbers.length || !labels.length) continue;
        const value = clean(numbers[0].textContent);
        const label = clean(labels[labels.length - 1].textContent);
        if (value && label && value !== label) stats.push({value, label});
    }

    const badges = inBox('[class*="badge"], [class*="tag"], [class*="chip"], [class*="pill"]')
        .map((el) => clean(el.textContent))
        .filter((t) => t && t.length < 50);

    let layout = 'unknown';
    if (inBox('[class*="grid"], [style*="grid"]').length) {
        layout = inBox('[class*="card"]').length >= 3 ? 'cards' : 'grid';
    } else {
        const flex = inBox('[style*="flex"]');
        if (flex.length) {
            const style = window.getComputedStyle(flex[0]);
            if (style.justifyContent === 'center' || style.alignItems === 'center') layout = 'centered';
            else if (style.justifyContent === 'space-between') layout = 'split';
        }
    }
    if (layout === 'unknown' && lists.length) layout = 'list';
    if (layout === 'unknown' && headings.length <= 2 && paragraphs.length <= 2) layout = 'centered';

    return {headings, paragraphs, buttons, links, images, lists, stats, badges, layout};
}"""


@dataclass
class PageMetrics:
    viewport_width: int = 0
    viewport_height: int = 0
    page_width: int = 0
    page_height: int = 0
    body_scroll_height: int = 0
    scroll_x: float = 0
    scroll_y: float = 0


@dataclass
class NamedRegion:
    name: str
    box: BoundingBox
    semantic: bool
    has_background: bool


# ------------------------------------------------------------------
# Pure helpers
# ------------------------------------------------------------------


def calculate_coverage(sections: list[DetectedSection], page_height: float) -> float:
    """Fraction of the page height covered by the sections' heights."""
    if not sections or page_height <= 0:
        return 0.0
    return sum(s.bounding_box.height for s in sections) / page_height


def filter_overlapping_sections(sections: list[DetectedSection], threshold: float = 0.8) -> list[DetectedSection]:
    """Drop sections overlapping an earlier kept one by more than ``threshold``
    of the smaller area. Discovery order decides which one survives."""
    kept: list[DetectedSection] = []
    for section in sections:
        box = section.bounding_box
        overlaps = any(
            box.overlap_area(existing.bounding_box) > min(box.area, existing.bounding_box.area) * threshold
            for existing in kept
        )
        if not overlaps:
            kept.append(section)
    return kept


def sort_sections(sections: list[DetectedSection]) -> list[DetectedSection]:
    return sorted(sections, key=lambda s: s.bounding_box.y)


def is_in_viewport(box: BoundingBox, viewport_height: int) -> bool:
    return box.y < viewport_height and box.bottom > 0


def split_by_viewport(
    page_height: int,
    viewport_height: int,
    page_width: int,
    max_sections: int = 10,
    min_band_height: int = 100,
) -> list[DetectedSection]:
    """Cut the page into roughly viewport-tall bands typed by position."""
    if page_height <= 0:
        return []
    count = min(max(1, math.ceil(page_height / max(1, viewport_height))), max_sections)
    band_height = math.ceil(page_height / count)

    sections = []
    for i in range(count):
        y = i * band_height
        height = min(band_height, page_height - y)
        if height < min_band_height:
            continue
        sections.append(DetectedSection(
            type=band_type(i, count),
            bounding_box=BoundingBox(x=0, y=y, width=page_width, height=height),
        ))
    return sections


def band_type(index: int, total: int) -> SectionType:
    if index == 0:
        return SectionType.HEADER
    if index == 1:
        return SectionType.HERO
    if index == total - 1:
        return SectionType.FOOTER
    if index == total - 2:
        return SectionType.CTA
    return BAND_CYCLE[(index - 2) % len(BAND_CYCLE)]


def has_visible_background(background_color: str, background_image: str) -> bool:
    color = (background_color or "").strip()
    image = (background_image or "none").strip()
    return color not in ("", "rgba(0, 0, 0, 0)", "transparent") or image != "none"


def select_named_regions(
    raw_regions: list[dict],
    page_height: float,
    viewport_height: float,
    config: DetectionConfig,
) -> list[NamedRegion]:
    """Filter raw named-layer measurements down to non-overlapping regions."""
    candidates: list[NamedRegion] = []
    for raw in raw_regions:
        width = raw.get("width", 0)
        height = raw.get("height", 0)
        if width < config.named_region_min_width:
            continue
        name = (raw.get("name") or "").lower()
        box = BoundingBox.from_rect(raw)

        # Sticky layers inside a tall scroll container span the container
        parent_height = raw.get("parent_height") or 0
        if (
            raw.get("position") == "sticky"
            and height >= config.named_region_min_height
            and parent_height > height * 2
        ):
            candidates.append(NamedRegion(
                name=name or "sticky-section",
                box=box.model_copy(update={"height": round(parent_height)}),
                semantic=True,
                has_background=True,
            ))

        if height < config.named_region_min_height:
            continue
        if height > page_height * config.named_region_max_page_ratio:
            continue
        semantic = any(keyword in name for keyword in SECTION_KEYWORDS)
        has_bg = has_visible_background(raw.get("background_color", ""), raw.get("background_image", "none"))
        if not semantic and not has_bg:
            continue
        if not semantic and height < viewport_height * 0.5:
            continue
        candidates.append(NamedRegion(name=name, box=box, semantic=semantic, has_background=has_bg))

    candidates.sort(key=lambda r: r.box.y)
    return merge_named_regions(candidates, config.named_region_merge_overlap)


def merge_named_regions(regions: list[NamedRegion], overlap_ratio: float = 0.3) -> list[NamedRegion]:
    """Collapse vertically overlapping regions.

    Semantic (keyword-named) regions beat background-only ones; between
    equals, a region more than 1.2x taller replaces the shorter one.
    """
    merged: list[NamedRegion] = []
    for region in regions:
        match: Optional[int] = None
        for idx, existing in enumerate(merged):
            smaller = min(existing.box.height, region.box.height)
            if existing.box.vertical_overlap(region.box) > smaller * overlap_ratio:
                match = idx
                break
        if match is None:
            merged.append(region)
            continue
        existing = merged[match]
        prefer_new = (region.semantic and not existing.semantic) or (
            region.semantic == existing.semantic and region.box.height > existing.box.height * 1.2
        )
        if prefer_new:
            merged[match] = region
    return merged


def infer_region_type(
    name: str,
    index: int,
    total: int,
    height: int,
    previous: Optional[SectionType] = None,
) -> SectionType:
    """Classify a named region from its layer name and position."""
    name = name.lower()
    if "footer" in name or ("bottom" in name and index == total - 1):
        return SectionType.FOOTER
    if "nav" in name or "header" in name or (index == 0 and height < 200):
        return SectionType.HEADER
    if (
        any(k in name for k in ("hero", "landing", "banner"))
        or (index == 0 and height >= 200)
        or (index == 1 and previous == SectionType.HEADER)
    ):
        return SectionType.HERO
    for keywords, section_type in NAME_TYPE_RULES:
        if any(k in name for k in keywords):
            return section_type
    return SectionType.FEATURES


def merge_fixed_navigation(
    sections: list[DetectedSection], nav_box: BoundingBox, overlap_threshold: float = 0.8
) -> list[DetectedSection]:
    """Fold a fixed top navigation bar into the header section.

    A header touching the bar is extended to cover it. Without one, the bar
    becomes the header unless it already sits inside another section, such
    as a full-bleed hero drawn under it. A header lower on the page is left
    alone.
    """
    for idx, section in enumerate(sections):
        if section.type != SectionType.HEADER:
            continue
        if section.bounding_box.y > nav_box.bottom:
            return sections
        merged = section.model_copy(update={"bounding_box": section.bounding_box.union(nav_box)})
        return sort_sections(sections[:idx] + [merged] + sections[idx + 1:])

    if any(
        nav_box.overlap_area(s.bounding_box) > min(nav_box.area, s.bounding_box.area) * overlap_threshold
        for s in sections
    ):
        return sections
    return sort_sections([DetectedSection(type=SectionType.HEADER, bounding_box=nav_box)] + sections)


# ------------------------------------------------------------------
# Browser-side measurement
# ------------------------------------------------------------------


async def get_page_metrics(page: Page) -> PageMetrics:
    data = await page.evaluate(PAGE_METRICS_SCRIPT) or {}
    return PageMetrics(
        viewport_width=int(data.get("viewport_width", 0)),
        viewport_height=int(data.get("viewport_height", 0)),
        page_width=int(data.get("page_width", 0)),
        page_height=int(data.get("page_height", 0)),
        body_scroll_height=int(data.get("body_scroll_height", 0)),
        scroll_x=data.get("scroll_x", 0) or 0,
        scroll_y=data.get("scroll_y", 0) or 0,
    )


async def get_page_dimensions(page: Page) -> dict:
    """Viewport size plus the document's scroll height."""
    metrics = await get_page_metrics(page)
    return {
        "width": metrics.viewport_width,
        "height": metrics.viewport_height,
        "scroll_height": metrics.page_height,
    }


async def _measure(locator: Locator) -> dict | None:
    if not await locator.is_visible():
        return None
    return await locator.bounding_box(timeout=LOCATOR_TIMEOUT_MS)


async def detect_fixed_navigation(page: Page) -> BoundingBox | None:
    try:
        rect = await page.evaluate(FIXED_NAV_SCRIPT, list(FIXED_NAV_SELECTORS))
    except Exception as e:
        logger.debug("Fixed navigation check failed: %s", e)
        return None
    if not rect:
        return None
    return BoundingBox.from_rect(rect)


async def extract_section_content(page: Page, box: BoundingBox) -> SectionContent:
    """Pull headings, copy, calls to action and media inside a section."""
    try:
        data = await page.evaluate(SECTION_CONTENT_SCRIPT, box.model_dump())
        return SectionContent(**(data or {}))
    except Exception as e:
        logger.debug("Content extraction failed for box at y=%d: %s", box.y, e)
        return SectionContent()


# ------------------------------------------------------------------
# Detector
# ------------------------------------------------------------------


class SectionDetector:
    """Detects page sections through the selector / named-region / viewport ladder."""

    def __init__(self, config: Optional[DetectionConfig] = None):
        self.config = config or DetectionConfig()

    def is_sufficient(self, sections: list[DetectedSection], coverage: float) -> bool:
        return len(sections) >= self.config.min_sections and coverage >= self.config.coverage_threshold

    async def detect(self, page: Page) -> list[DetectedSection]:
        metrics = await get_page_metrics(page)

        sections = await self.detect_by_selectors(page, metrics.scroll_y)
        coverage = calculate_coverage(sections, metrics.page_height)
        tier = "selectors"
        logger.debug("Selector detection: %d sections, %.0f%% coverage", len(sections), coverage * 100)

        if not self.is_sufficient(sections, coverage):
            named = await self.detect_named_regions(page, metrics)
            named_coverage = calculate_coverage(named, metrics.page_height)
            logger.debug("Named-region detection: %d sections, %.0f%% coverage",
                         len(named), named_coverage * 100)
            if len(named) >= self.config.min_sections and named_coverage > coverage:
                sections, coverage, tier = named, named_coverage, "named regions"

        if not self.is_sufficient(sections, coverage) and self.config.use_fallback:
            sections = split_by_viewport(
                metrics.page_height,
                metrics.viewport_height,
                metrics.page_width or metrics.viewport_width,
                self.config.max_sections,
                self.config.min_band_height,
            )
            tier = "viewport split"

        threshold = self.config.overlap_threshold
        sections = sort_sections(filter_overlapping_sections(sections, threshold))

        nav_box = await detect_fixed_navigation(page)
        if nav_box is not None:
            merged = merge_fixed_navigation(sections, nav_box, threshold)
            sections = sort_sections(filter_overlapping_sections(merged, threshold))

        sections = sections[: self.config.max_sections]
        logger.info("Detected %d sections via %s: %s",
                    len(sections), tier, ", ".join(s.type.value for s in sections))
        return sections

    # -- Tier 1 ---------------------------------------------------------

    async def detect_by_selectors(self, page: Page, scroll_y: float = 0) -> list[DetectedSection]:
        found: list[DetectedSection] = []
        for section_type, selectors in SECTION_SELECTORS.items():
            if section_type in SINGLETON_TYPES:
                section = await self._first_match(page, section_type, selectors, scroll_y)
                if section is not None:
                    found.append(section)
            else:
                found.extend(await self._all_matches(page, section_type, selectors, scroll_y))

        kept = sort_sections(filter_overlapping_sections(found, self.config.overlap_threshold))
        return kept[: self.config.max_sections]

    async def _first_match(
        self, page: Page, section_type: SectionType, selectors: list[str], scroll_y: float
    ) -> DetectedSection | None:
        for selector in selectors:
            try:
                rect = await _measure(page.locator(selector).first)
            except Exception:
                continue
            if rect and rect["height"] > self.config.min_section_height:
                return DetectedSection(type=section_type, bounding_box=BoundingBox.from_rect(rect, scroll_y))
        return None

    async def _all_matches(
        self, page: Page, section_type: SectionType, selectors: list[str], scroll_y: float
    ) -> list[DetectedSection]:
        matches: list[DetectedSection] = []
        seen: set[tuple[int, int]] = set()
        for selector in selectors:
            try:
                locator = page.locator(selector)
                count = await locator.count()
            except Exception:
                continue
            for i in range(count):
                try:
                    rect = await _measure(locator.nth(i))
                except Exception:
                    continue
                if not rect or rect["height"] < self.config.min_section_height:
                    continue
                key = (round(rect["y"] + scroll_y), round(rect["height"]))
                if key in seen:
                    continue
                seen.add(key)
                matches.append(DetectedSection(type=section_type, bounding_box=BoundingBox.from_rect(rect, scroll_y)))
        return matches

    # -- Tier 2 ---------------------------------------------------------

    async def detect_named_regions(self, page: Page, metrics: PageMetrics) -> list[DetectedSection]:
        try:
            raw = await page.evaluate(NAMED_REGIONS_SCRIPT, self.config.named_region_min_width)
        except Exception as e:
            logger.debug("Named-region scan failed: %s", e)
            return []

        regions = select_named_regions(raw or [], metrics.page_height, metrics.viewport_height, self.config)
        regions = regions[: self.config.max_sections]

        sections: list[DetectedSection] = []
        for i, region in enumerate(regions):
            previous = sections[-1].type if sections else None
            section_type = infer_region_type(region.name, i, len(regions), region.box.height, previous)
            sections.append(DetectedSection(type=section_type, bounding_box=region.box))
        return sections
