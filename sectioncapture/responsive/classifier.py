"""Responsive style classification — viewport diffs to utility-class tokens.

Mobile is the base breakpoint. A property only gets a tablet or desktop
entry when its value changes from the breakpoint below, so the output
reads the way mobile-first utility classes are written.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from sectioncapture.models.config import VIEWPORT_CONFIGS
from sectioncapture.models.responsive import LayoutAnalysis, ResponsiveClasses, ResponsiveStyleChange
from sectioncapture.models.section import ResponsiveSectionInfo, SectionType, StyleMap

logger = logging.getLogger(__name__)

BREAKPOINTS = ("mobile", "tablet", "desktop")
PREFIXES = {v.name: v.token_prefix for v in VIEWPORT_CONFIGS}

DISPLAY_TOKENS = {
    "flex": "flex",
    "grid": "grid",
    "block": "block",
    "inline-block": "inline-block",
    "inline": "inline",
    "inline-flex": "inline-flex",
    "none": "hidden",
}

FLEX_DIRECTION_TOKENS = {
    "row": "flex-row",
    "row-reverse": "flex-row-reverse",
    "column": "flex-col",
    "column-reverse": "flex-col-reverse",
}

JUSTIFY_TOKENS = {
    "flex-start": "justify-start",
    "flex-end": "justify-end",
    "center": "justify-center",
    "space-between": "justify-between",
    "space-around": "justify-around",
    "space-evenly": "justify-evenly",
}

ALIGN_TOKENS = {
    "flex-start": "items-start",
    "flex-end": "items-end",
    "center": "items-center",
    "baseline": "items-baseline",
    "stretch": "items-stretch",
}

TEXT_ALIGN_TOKENS = {
    "left": "text-left",
    "center": "text-center",
    "right": "text-right",
    "justify": "text-justify",
}

# px -> spacing step
SPACING_SCALE = {
    0: "0", 1: "0.5", 2: "0.5", 4: "1", 6: "1.5", 8: "2", 10: "2.5", 12: "3", 14: "3.5",
    16: "4", 20: "5", 24: "6", 28: "7", 32: "8", 36: "9", 40: "10", 44: "11", 48: "12",
    56: "14", 64: "16", 72: "18", 80: "20", 96: "24",
}

# (upper bound in px, token); anything larger is text-9xl
FONT_SIZE_BUCKETS = (
    (12, "text-xs"),
    (14, "text-sm"),
    (16, "text-base"),
    (18, "text-lg"),
    (20, "text-xl"),
    (24, "text-2xl"),
    (30, "text-3xl"),
    (36, "text-4xl"),
    (48, "text-5xl"),
    (60, "text-6xl"),
    (72, "text-7xl"),
    (96, "text-8xl"),
)

PADDING_PREFIXES = {
    "padding": "p",
    "paddingTop": "pt",
    "paddingRight": "pr",
    "paddingBottom": "pb",
    "paddingLeft": "pl",
}

SECTION_PRESETS = {
    SectionType.HEADER: "px-4 md:px-6 lg:px-8",
    SectionType.HERO: "px-4 py-12 md:px-6 md:py-16 lg:px-8 lg:py-24 text-center lg:text-left",
    SectionType.FEATURES: (
        "px-4 py-12 md:px-6 md:py-16 lg:px-8 lg:py-20 grid grid-cols-1 md:grid-cols-2 lg:grid-cols-3 gap-6 md:gap-8"
    ),
    SectionType.TESTIMONIALS: (
        "px-4 py-12 md:px-6 md:py-16 lg:px-8 lg:py-20 grid grid-cols-1 md:grid-cols-2 lg:grid-cols-3 gap-6"
    ),
    SectionType.PRICING: (
        "px-4 py-12 md:px-6 md:py-16 lg:px-8 lg:py-20 grid grid-cols-1 md:grid-cols-2 lg:grid-cols-3 gap-6 md:gap-8"
    ),
    SectionType.CTA: "px-4 py-12 md:px-6 md:py-16 lg:px-8 lg:py-20 text-center",
    SectionType.FOOTER: "px-4 py-8 md:px-6 md:py-12 lg:px-8 lg:py-16",
}
DEFAULT_PRESET = "px-4 py-8 md:px-6 md:py-12 lg:px-8"

_LEADING_NUMBER = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")


def _leading_number(value: str) -> Optional[float]:
    match = _LEADING_NUMBER.match(value or "")
    return float(match.group(1)) if match else None


# ------------------------------------------------------------------
# Value snapping
# ------------------------------------------------------------------


def px_to_spacing(value: str) -> str:
    """Snap a pixel length to the nearest spacing step ("" if unparseable)."""
    number = _leading_number(value)
    if number is None:
        return ""
    px = int(number)
    closest = min(SPACING_SCALE, key=lambda key: abs(key - px))
    return SPACING_SCALE[closest]


def px_to_font_size(value: str) -> str:
    number = _leading_number(value)
    if number is None:
        return ""
    for limit, token in FONT_SIZE_BUCKETS:
        if number <= limit:
            return token
    return "text-9xl"


def parse_grid_columns(value: str) -> int:
    """Column count of a grid-template-columns value."""
    repeat = re.search(r"repeat\((\d+)", value)
    if repeat:
        return int(repeat.group(1))
    fractions = re.findall(r"\d+fr", value)
    if fractions:
        return len(fractions)
    return len(value.split())


# ------------------------------------------------------------------
# Diffing
# ------------------------------------------------------------------


def detect_responsive_changes(styles_by_viewport: dict[str, StyleMap]) -> list[ResponsiveStyleChange]:
    """Report every property whose value is not identical at all breakpoints."""
    mobile = styles_by_viewport.get("mobile") or {}
    tablet = styles_by_viewport.get("tablet") or {}
    desktop = styles_by_viewport.get("desktop") or {}

    properties: list[str] = []
    for styles in (mobile, tablet, desktop):
        for prop in styles:
            if prop not in properties:
                properties.append(prop)

    changes = []
    for prop in properties:
        base = mobile.get(prop, "")
        tablet_value = tablet.get(prop, "")
        desktop_value = desktop.get(prop, "")
        if base == tablet_value == desktop_value:
            continue

        change = ResponsiveStyleChange(property=prop, base=base)
        if tablet_value and tablet_value != base:
            change.tablet = tablet_value
        if desktop_value and desktop_value != (tablet_value or base):
            change.desktop = desktop_value
        changes.append(change)
    return changes


# ------------------------------------------------------------------
# Token generation
# ------------------------------------------------------------------


def _mapped(table: dict[str, str]) -> Callable[[str], str]:
    return lambda value: table.get(value, "")


def _prefixed(prefix: str, convert: Callable[[str], str]) -> Callable[[str], str]:
    def token(value: str) -> str:
        step = convert(value)
        return f"{prefix}-{step}" if step else ""

    return token


# Property -> value-to-token converter
TOKENIZERS: dict[str, Callable[[str], str]] = {
    "display": _mapped(DISPLAY_TOKENS),
    "flexDirection": _mapped(FLEX_DIRECTION_TOKENS),
    "justifyContent": _mapped(JUSTIFY_TOKENS),
    "alignItems": _mapped(ALIGN_TOKENS),
    "textAlign": _mapped(TEXT_ALIGN_TOKENS),
    "gap": _prefixed("gap", px_to_spacing),
    "gridTemplateColumns": lambda value: f"grid-cols-{parse_grid_columns(value)}" if value.strip() else "",
    "fontSize": px_to_font_size,
    **{prop: _prefixed(prefix, px_to_spacing) for prop, prefix in PADDING_PREFIXES.items()},
}


def generate_classes(changes: list[ResponsiveStyleChange]) -> ResponsiveClasses:
    """Map each change onto per-breakpoint class tokens; unknown properties are ignored."""
    classes = ResponsiveClasses()
    for change in changes:
        tokenize = TOKENIZERS.get(change.property)
        if tokenize is None:
            continue
        for bucket, value in (("base", change.base), ("tablet", change.tablet), ("desktop", change.desktop)):
            if not value:
                continue
            token = tokenize(value)
            if token:
                getattr(classes, bucket).append(token)
    return classes


def classes_to_string(classes: ResponsiveClasses) -> str:
    parts = list(classes.base)
    parts += [f"{PREFIXES['tablet']}{c}" for c in classes.tablet]
    parts += [f"{PREFIXES['desktop']}{c}" for c in classes.desktop]
    return " ".join(parts)


# ------------------------------------------------------------------
# Layout analysis
# ------------------------------------------------------------------


def _layout_type(styles: StyleMap) -> str:
    if styles.get("display") == "grid":
        return "grid"
    if styles.get("display") == "flex":
        return "flex-col" if styles.get("flexDirection") == "column" else "flex-row"
    return "stack"


def analyze_layout_changes(styles_by_viewport: dict[str, StyleMap]) -> LayoutAnalysis:
    analysis = LayoutAnalysis()
    previous_gap = "0px"
    for name in BREAKPOINTS:
        styles = styles_by_viewport.get(name) or {}
        analysis.layout_type[name] = _layout_type(styles)
        columns = styles.get("gridTemplateColumns")
        analysis.columns[name] = parse_grid_columns(columns) if columns else 1
        # Unset gaps inherit from the breakpoint below
        previous_gap = styles.get("gap") or previous_gap
        analysis.gap[name] = previous_gap
    return analysis


def generate_layout_classes(layout: LayoutAnalysis) -> str:
    """Mobile-first layout classes (direction, grid columns, gap) for a layout analysis."""
    types = layout.layout_type
    cols = layout.columns
    classes: list[str] = []

    if types.get("mobile") == "flex-col":
        classes += ["flex", "flex-col"]
    elif types.get("mobile") == "grid":
        classes += ["grid", f"grid-cols-{cols.get('mobile', 1)}"]

    for lower, upper in (("mobile", "tablet"), ("tablet", "desktop")):
        prefix = PREFIXES[upper]
        if types.get(upper) != types.get(lower):
            if types.get(upper) == "flex-row":
                classes.append(f"{prefix}flex-row")
            elif types.get(upper) == "grid":
                classes.append(f"{prefix}grid-cols-{cols.get(upper, 1)}")
        elif cols.get(upper) != cols.get(lower):
            classes.append(f"{prefix}grid-cols-{cols.get(upper, 1)}")

    gaps = {name: px_to_spacing(layout.gap.get(name, "")) for name in BREAKPOINTS}
    if gaps["mobile"]:
        classes.append(f"gap-{gaps['mobile']}")
    if gaps["tablet"] and gaps["tablet"] != gaps["mobile"]:
        classes.append(f"{PREFIXES['tablet']}gap-{gaps['tablet']}")
    if gaps["desktop"] and gaps["desktop"] != gaps["tablet"]:
        classes.append(f"{PREFIXES['desktop']}gap-{gaps['desktop']}")
    return " ".join(classes)


def section_preset_classes(section_type: SectionType | str) -> str:
    """Default responsive padding/grid classes for a section type."""
    try:
        return SECTION_PRESETS[SectionType(section_type)]
    except ValueError:
        return DEFAULT_PRESET


class ResponsiveStyleClassifier:
    """Diffs a section's per-viewport styles and turns the diff into class tokens."""

    def changes(self, section: ResponsiveSectionInfo) -> list[ResponsiveStyleChange]:
        return detect_responsive_changes(section.responsive_styles)

    def classify(self, section: ResponsiveSectionInfo) -> ResponsiveClasses:
        classes = generate_classes(self.changes(section))
        logger.debug(
            "%s section: %d base, %d tablet, %d desktop classes",
            section.type.value, len(classes.base), len(classes.tablet), len(classes.desktop),
        )
        return classes

    def class_string(self, section: ResponsiveSectionInfo) -> str:
        return classes_to_string(self.classify(section))
