"""Raw design data — page-wide style observations for token synthesis."""

from __future__ import annotations

import logging

from playwright.async_api import Page

from sectioncapture.models.capture_result import RawPageData

logger = logging.getLogger(__name__)

MAX_ELEMENT_SAMPLES = 200

RAW_DATA_SCRIPT = """(maxSamples) => {
    const skip = new Set(['SCRIPT', 'STYLE', 'NOSCRIPT', 'META', 'LINK', 'HEAD']);
    const transparent = new Set(['', 'rgba(0, 0, 0, 0)', 'transparent']);
    const sets = {
        colors: new Set(), backgrounds: new Set(), borders: new Set(),
        font_families: new Set(), font_sizes: new Set(), font_weights: new Set(), line_heights: new Set(),
        paddings: new Set(), margins: new Set(), gaps: new Set(), max_widths: new Set(),
        box_shadows: new Set(), border_radii: new Set(), transitions: new Set(),
    };
    const typographyElements = [];
    const spacingElements = [];

    for (const el of document.querySelectorAll('body *')) {
        if (skip.has(el.tagName)) continue;
        const style = window.getComputedStyle(el);
        if (style.display === 'none' || style.visibility === 'hidden') continue;
        const tag = el.tagName.toLowerCase();

        if (!transparent.has(style.color)) sets.colors.add(style.color);
        if (!transparent.has(style.backgroundColor)) sets.backgrounds.add(style.backgroundColor);
        if (style.borderStyle !== 'none' && !transparent.has(style.borderColor)) sets.borders.add(style.borderColor);

        sets.font_families.add(style.fontFamily);
        sets.font_sizes.add(style.fontSize);
        sets.font_weights.add(style.fontWeight);
        if (style.lineHeight !== 'normal') sets.line_heights.add(style.lineHeight);

        if (style.padding && style.padding !== '0px') sets.paddings.add(style.padding);
        if (style.margin && style.margin !== '0px') sets.margins.add(style.margin);
        if (style.gap && style.gap !== 'normal') sets.gaps.add(style.gap);
        if (style.maxWidth && style.maxWidth !== 'none') sets.max_widths.add(style.maxWidth);

        if (style.boxShadow && style.boxShadow !== 'none') sets.box_shadows.add(style.boxShadow);
        if (style.borderRadius && style.borderRadius !== '0px') sets.border_radii.add(style.borderRadius);
        if (style.transition && !style.transition.startsWith('all 0s')) sets.transitions.add(style.transition);

        const hasText = Array.from(el.childNodes).some((n) => n.nodeType === 3 && n.textContent.trim());
        if (hasText && typographyElements.length < maxSamples) {
            typographyElements.push({
                tag,
                font_size: style.fontSize,
                font_weight: style.fontWeight,
                font_family: style.fontFamily,
            });
        }
        if (['section', 'header', 'footer', 'nav', 'main', 'button', 'a'].includes(tag)
            && spacingElements.length < maxSamples) {
            spacingElements.push({tag, padding: style.padding, margin: style.margin});
        }
    }

    const list = (key) => Array.from(sets[key]);
    return {
        colors: {colors: list('colors'), backgrounds: list('backgrounds'), borders: list('borders')},
        typography: {
            font_families: list('font_families'),
            font_sizes: list('font_sizes'),
            font_weights: list('font_weights'),
            line_heights: list('line_heights'),
            element_types: typographyElements,
        },
        spacing: {
            paddings: list('paddings'),
            margins: list('margins'),
            gaps: list('gaps'),
            max_widths: list('max_widths'),
            element_types: spacingElements,
        },
        effects: {
            box_shadows: list('box_shadows'),
            border_radii: list('border_radii'),
            transitions: list('transitions'),
        },
    };
}"""


async def extract_raw_page_data(page: Page, url: str) -> RawPageData:
    """Collect distinct colors, typography, spacing and effects on the page.

    Errors propagate; callers decide whether raw data is optional.
    """
    data = await page.evaluate(RAW_DATA_SCRIPT, MAX_ELEMENT_SAMPLES)
    raw = RawPageData(url=url, **(data or {}))
    logger.debug(
        "Raw data: %d colors, %d font sizes, %d paddings",
        len(raw.colors.colors), len(raw.typography.font_sizes), len(raw.spacing.paddings),
    )
    return raw
