"""Computed-style extraction for captured sections.

The browser side only measures: it walks the matched section element and
returns raw computed values, background candidates and page images. All
filtering, background inheritance and HTML rendering happen here so the
rules can be exercised without a browser.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Optional

from playwright.async_api import Page

from sectioncapture.capture.heuristics import SECTION_ROOT_SELECTOR
from sectioncapture.models.section import BoundingBox, ExtractedElement, SectionStyles, StyleMap

logger = logging.getLogger(__name__)

STYLE_PROPERTIES: tuple[str, ...] = (
    "display", "position", "zIndex", "top", "right", "bottom", "left", "transform",
    "flexDirection", "justifyContent", "alignItems", "gap", "gridTemplateColumns",
    "width", "height", "maxWidth", "padding", "margin",
    "fontFamily", "fontSize", "fontWeight", "lineHeight", "textAlign", "color",
    "backgroundColor", "backgroundImage", "borderRadius", "border", "boxShadow",
    "opacity", "overflow", "objectFit", "mixBlendMode",
)

# Browser defaults that carry no design information
NOISE_VALUES = frozenset({
    "",
    "none",
    "normal",
    "auto",
    "0px",
    "rgba(0, 0, 0, 0)",
    "transparent",
    "rgb(0, 0, 0)",
    "start",
    "stretch",
})

# Colors that do not count as a section background
NON_BACKGROUND_COLORS = frozenset({"", "rgba(0, 0, 0, 0)", "transparent", "rgb(255, 255, 255)"})

VOID_TAGS = frozenset({"img", "br", "hr", "input"})

MAX_WALK_DEPTH = 10
MAX_TREE_CHILDREN = 50
MAX_INNER_TEXT = 500
BACKDROP_WIDTH_RATIO = 0.9
ORPHAN_MIN_WIDTH = 400
ORPHAN_MIN_HEIGHT = 200

SECTION_WALK_SCRIPT = """(args) => {
    const {y, height, properties, maxDepth, rootSelector} = args;
    const toCss = (prop) => prop.replace(/([A-Z])/g, '-$1').toLowerCase();

    let best = null;
    let bestOverlap = 0;
    for (const el of document.querySelectorAll(rootSelector)) {
        const rect = el.getBoundingClientRect();
        const top = rect.top + window.scrollY;
        const overlap = Math.max(0, Math.min(top + rect.height, y + height) - Math.max(top, y));
        if (overlap > bestOverlap && overlap > height * 0.3) {
            bestOverlap = overlap;
            best = el;
        }
    }
    if (!best) return null;

    const readStyles = (el) => {
        const computed = window.getComputedStyle(el);
        const out = {};
        for (const prop of properties) out[prop] = computed.getPropertyValue(toCss(prop));
        return out;
    };
    const background = (el) => {
        const computed = window.getComputedStyle(el);
        return {
            width: el.getBoundingClientRect().width,
            background_color: computed.backgroundColor,
            background_image: computed.backgroundImage,
        };
    };
    const walk = (el, depth) => {
        const tag = el.tagName.toLowerCase();
        const attrs = {};
        if (tag === 'img') {
            attrs.src = el.src;
            if (el.alt) attrs.alt = el.alt;
        } else if (tag === 'a') {
            attrs.href = el.href;
        } else if (tag === 'button' || tag === 'input') {
            const type = el.getAttribute('type');
            if (type) attrs.type = type;
        }
        const node = {tag, attrs, styles: readStyles(el), text: '', children: []};
        if (el.children.length === 0) {
            node.text = (el.textContent || '').trim();
        } else if (depth < maxDepth) {
            for (const child of el.children) node.children.push(walk(child, depth + 1));
        }
        return node;
    };

    const backdrops = [];
    for (const child of Array.from(best.children).slice(0, 5)) {
        backdrops.push(background(child));
        for (const nested of Array.from(child.querySelectorAll(':scope > div')).slice(0, 3)) {
            backdrops.push(background(nested));
        }
    }

    const ancestors = [];
    let current = best.parentElement;
    while (current && current !== document.body) {
        ancestors.push(background(current));
        current = current.parentElement;
    }

    const images = Array.from(document.images).map((img) => {
        const rect = img.getBoundingClientRect();
        return {
            src: img.src,
            alt: img.alt || '',
            y: rect.top + window.scrollY,
            width: rect.width,
            height: rect.height,
            border_radius: window.getComputedStyle(img).borderRadius,
        };
    });

    return {
        root: walk(best, 0),
        root_width: best.getBoundingClientRect().width,
        backdrops,
        ancestors,
        images,
    };
}"""

ELEMENT_TREE_SCRIPT = """(args) => {
    const {selector, properties, maxDepth, maxChildren, maxText} = args;
    const root = document.querySelector(selector);
    if (!root) return null;
    const toCss = (prop) => prop.replace(/([A-Z])/g, '-$1').toLowerCase();

    const walk = (el, depth) => {
        if (depth > maxDepth) return null;
        const computed = window.getComputedStyle(el);
        const styles = {};
        for (const prop of properties) styles[prop] = computed.getPropertyValue(toCss(prop));

        const attributes = {};
        for (const attr of el.attributes) {
            if (attr.name.startsWith('data-framer') || attr.name === 'class' || attr.name === 'style') continue;
            attributes[attr.name] = attr.value;
        }
        if (el.tagName === 'IMG') {
            attributes.src = el.src;
            attributes.alt = el.alt || '';
        }
        if (el.tagName === 'A') attributes.href = el.href;

        const children = [];
        for (const child of Array.from(el.children).slice(0, maxChildren)) {
            const node = walk(child, depth + 1);
            if (node) children.push(node);
        }
        const text = children.length === 0 && el.textContent ? el.textContent.trim().slice(0, maxText) : null;
        return {tag_name: el.tagName.toLowerCase(), attributes, computed_styles: styles, inner_text: text, children};
    };
    return walk(root, 0);
}"""


# ------------------------------------------------------------------
# Value normalization
# ------------------------------------------------------------------


def css_property_name(prop: str) -> str:
    """camelCase -> kebab-case (``backgroundColor`` -> ``background-color``)."""
    return re.sub(r"([A-Z])", r"-\1", prop).lower()


def camel_property_name(prop: str) -> str:
    return re.sub(r"-([a-z])", lambda m: m.group(1).upper(), prop.strip())


def normalize_value(prop: str, value: Optional[str]) -> Optional[str]:
    """Return the cleaned value, or None when it should be dropped."""
    value = (value or "").strip()
    if value in NOISE_VALUES:
        return None
    if prop == "fontFamily":
        if "system-ui" in value:
            return None
        first = value.split(",")[0].strip().strip("'\"")
        return f"'{first}', sans-serif"
    return value.replace('"', "'")


def normalize_styles(raw: dict) -> StyleMap:
    """Filter a raw computed-style dict down to the allow-listed, non-noise values."""
    styles: StyleMap = {}
    for prop in STYLE_PROPERTIES:
        if prop not in raw:
            continue
        value = normalize_value(prop, raw[prop])
        if value is not None:
            styles[prop] = value
    return styles


# ------------------------------------------------------------------
# Background inheritance
# ------------------------------------------------------------------


def is_real_background_color(color: Optional[str]) -> bool:
    return (color or "").strip() not in NON_BACKGROUND_COLORS


def has_background_image(image: Optional[str]) -> bool:
    return (image or "none").strip() != "none"


def _layer_background(layer: dict, gradient_only: bool) -> dict[str, str]:
    color = layer.get("background_color", "")
    image = layer.get("background_image", "none")
    found: dict[str, str] = {}
    if is_real_background_color(color):
        found["backgroundColor"] = color
    if has_background_image(image) and (not gradient_only or "gradient" in image):
        found["backgroundImage"] = image
    return found


def resolve_background(
    root_styles: dict,
    root_width: float,
    backdrops: list[dict],
    ancestors: list[dict],
) -> dict[str, str]:
    """Find the background a transparent section visually sits on.

    Full-width backdrop layers inside the section win over ancestors, since
    design tools commonly paint gradients on an absolutely positioned child.
    Returns an empty dict when the section paints its own background.
    """
    if is_real_background_color(root_styles.get("backgroundColor")) or has_background_image(
        root_styles.get("backgroundImage")
    ):
        return {}

    for layer in backdrops:
        if layer.get("width", 0) < root_width * BACKDROP_WIDTH_RATIO:
            continue
        found = _layer_background(layer, gradient_only=True)
        if found:
            return found

    for layer in ancestors:
        found = _layer_background(layer, gradient_only=False)
        if found:
            return found
    return {}


def apply_background(styles: StyleMap, inherited: dict[str, str]) -> StyleMap:
    merged = dict(styles)
    if inherited.get("backgroundColor") and not is_real_background_color(merged.get("backgroundColor")):
        merged["backgroundColor"] = inherited["backgroundColor"]
    if inherited.get("backgroundImage") and not has_background_image(merged.get("backgroundImage")):
        merged["backgroundImage"] = inherited["backgroundImage"]
    return merged


# ------------------------------------------------------------------
# HTML rendering
# ------------------------------------------------------------------


def style_attribute(styles: StyleMap) -> str:
    if not styles:
        return ""
    declarations = "; ".join(f"{css_property_name(p)}: {v}" for p, v in styles.items())
    return f' style="{declarations}"'


def render_html(node: dict, root_background: Optional[dict[str, str]] = None) -> str:
    """Render a walked node tree as HTML with every style inlined."""
    tag = node.get("tag", "div")
    styles = normalize_styles(node.get("styles", {}))
    if root_background:
        styles = apply_background(styles, root_background)

    attrs = "".join(f' {name}="{html.escape(str(value))}"' for name, value in node.get("attrs", {}).items())
    style = style_attribute(styles)

    if tag in VOID_TAGS:
        return f"<{tag}{attrs}{style} />"

    children = node.get("children") or []
    if children:
        inner = "".join(render_html(child) for child in children)
    else:
        inner = html.escape(node.get("text", ""), quote=False)
    return f"<{tag}{attrs}{style}>{inner}</{tag}>"


def _px(value: float) -> str:
    return f"{round(value, 2):g}px"


def find_orphan_images(images: list[dict], y: int, height: int, markup: str) -> list[str]:
    """Large images overlapping the section that the walked markup misses.

    Design tools often place hero imagery in sibling layers; these are
    re-attached as absolutely positioned background images.
    """
    orphans: list[str] = []
    seen: set[str] = set()
    for img in images:
        src = img.get("src") or ""
        top = img.get("y", 0)
        img_height = img.get("height", 0)
        img_width = img.get("width", 0)
        overlaps = top < y + height and top + img_height > y
        if not overlaps or img_width <= ORPHAN_MIN_WIDTH or img_height <= ORPHAN_MIN_HEIGHT:
            continue
        if not src or src in seen or src in markup or html.escape(src) in markup:
            continue
        seen.add(src)
        declarations = "; ".join([
            "position: absolute",
            f"width: {_px(img_width)}",
            f"height: {_px(img_height)}",
            f"top: {_px(top - y)}",
            "left: 0",
            "z-index: 0",
            f"border-radius: {img.get('border_radius') or '0px'}",
            "object-fit: cover",
        ])
        orphans.append(
            f'<img src="{html.escape(src)}" alt="{html.escape(img.get("alt", ""))}" style="{declarations}" />'
        )
    return orphans


def build_section_styles(walk: dict, box: BoundingBox) -> SectionStyles:
    """Turn a raw section walk into inline-styled HTML plus root styles."""
    root = walk.get("root") or {}
    inherited = resolve_background(
        root.get("styles", {}),
        walk.get("root_width", 0),
        walk.get("backdrops", []),
        walk.get("ancestors", []),
    )
    markup = render_html(root, root_background=inherited)
    orphans = find_orphan_images(walk.get("images", []), box.y, box.height, markup)
    root_styles = apply_background(normalize_styles(root.get("styles", {})), inherited)
    return SectionStyles(html="".join(orphans) + markup, styles=root_styles)


def build_element_tree(node: dict) -> ExtractedElement:
    return ExtractedElement(
        tag_name=node.get("tag_name", "div"),
        attributes={k: str(v) for k, v in (node.get("attributes") or {}).items()},
        computed_styles=normalize_styles(node.get("computed_styles") or {}),
        inner_text=node.get("inner_text") or None,
        children=[build_element_tree(child) for child in node.get("children") or []],
    )


# ------------------------------------------------------------------
# JSX conversion
# ------------------------------------------------------------------


def _js_string(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _jsx_style(styles: dict[str, str]) -> str:
    if not styles:
        return ""
    entries = ", ".join(f"{camel_property_name(k)}: {_js_string(v)}" for k, v in styles.items())
    return f" style={{{{ {entries} }}}}"


def element_to_jsx(element: ExtractedElement, indent: int = 0) -> str:
    """Render an extracted element tree as JSX with inline style objects."""
    spaces = "  " * indent
    attr_parts = []
    for name, value in element.attributes.items():
        if name in ("style", "class"):
            continue
        if name == "for":
            name = "htmlFor"
        attr_parts.append(f'{name}="{html.escape(value)}"')
    attrs = (" " + " ".join(attr_parts)) if attr_parts else ""
    style = _jsx_style(element.computed_styles)
    tag = element.tag_name

    if tag in VOID_TAGS:
        return f"{spaces}<{tag}{attrs}{style} />"
    if element.children:
        inner = "\n".join(element_to_jsx(child, indent + 1) for child in element.children)
        return f"{spaces}<{tag}{attrs}{style}>\n{inner}\n{spaces}</{tag}>"
    if element.inner_text:
        return f"{spaces}<{tag}{attrs}{style}>{element.inner_text}</{tag}>"
    return f"{spaces}<{tag}{attrs}{style} />"


_STYLE_ATTR_RE = re.compile(r'\s*style="([^"]*)"')


def _style_string_to_jsx(match: re.Match) -> str:
    declarations = {}
    for part in match.group(1).split(";"):
        prop, sep, value = part.partition(":")
        if not sep or not prop.strip():
            continue
        declarations[prop.strip()] = value.strip()
    return _jsx_style(declarations)


def clean_html_for_jsx(markup: str) -> str:
    """Make captured HTML paste-able into JSX."""
    markup = re.sub(r'\s*data-framer-[^=]*="[^"]*"', "", markup, flags=re.IGNORECASE)
    markup = re.sub(r'\s*class="[^"]*"', "", markup, flags=re.IGNORECASE)
    markup = _STYLE_ATTR_RE.sub(_style_string_to_jsx, markup)
    return re.sub(r"<(img|br|hr|input)([^>]*?)(?<!/)>", r"<\1\2 />", markup, flags=re.IGNORECASE)


# ------------------------------------------------------------------
# Extractor
# ------------------------------------------------------------------


class StyleExtractor:
    """Extracts inline-styled markup and root styles from live sections."""

    def __init__(self, max_depth: int = MAX_WALK_DEPTH):
        self.max_depth = max_depth

    async def extract_section(self, page: Page, box: BoundingBox) -> SectionStyles:
        """Never raises; an unmatched or failing section yields empty output."""
        try:
            walk = await page.evaluate(SECTION_WALK_SCRIPT, {
                "y": box.y,
                "height": box.height,
                "properties": list(STYLE_PROPERTIES),
                "maxDepth": self.max_depth,
                "rootSelector": SECTION_ROOT_SELECTOR,
            })
        except Exception as e:
            logger.debug("Style walk failed for section at y=%d: %s", box.y, e)
            return SectionStyles()

        if not walk:
            logger.debug("No element matches section at y=%d (h=%d)", box.y, box.height)
            return SectionStyles()
        return build_section_styles(walk, box)

    async def extract_element_tree(
        self,
        page: Page,
        selector: str,
        max_depth: Optional[int] = None,
        max_children: int = MAX_TREE_CHILDREN,
    ) -> ExtractedElement | None:
        try:
            node = await page.evaluate(ELEMENT_TREE_SCRIPT, {
                "selector": selector,
                "properties": list(STYLE_PROPERTIES),
                "maxDepth": self.max_depth if max_depth is None else max_depth,
                "maxChildren": max_children,
                "maxText": MAX_INNER_TEXT,
            })
        except Exception as e:
            logger.debug("Element tree extraction failed for %s: %s", selector, e)
            return None
        return build_element_tree(node) if node else None
