"""Tests for computed-style extraction and HTML/JSX rendering."""

import pytest

from conftest import FakePage
from sectioncapture.capture.style_extractor import (
    ELEMENT_TREE_SCRIPT,
    SECTION_WALK_SCRIPT,
    StyleExtractor,
    apply_background,
    build_element_tree,
    clean_html_for_jsx,
    css_property_name,
    camel_property_name,
    element_to_jsx,
    find_orphan_images,
    normalize_styles,
    normalize_value,
    render_html,
    resolve_background,
)
from sectioncapture.models.section import BoundingBox, ExtractedElement

TRANSPARENT = "rgba(0, 0, 0, 0)"


def layer(width: float, color: str = TRANSPARENT, image: str = "none") -> dict:
    return {"width": width, "background_color": color, "background_image": image}


def node(tag: str, styles: dict = None, text: str = "", children: list = None, attrs: dict = None) -> dict:
    return {"tag": tag, "attrs": attrs or {}, "styles": styles or {}, "text": text, "children": children or []}


class TestNormalization:
    """Tests for style value normalization."""

    def test_property_name_conversion(self):
        """Test camelCase and kebab-case conversions."""
        assert css_property_name("backgroundColor") == "background-color"
        assert css_property_name("zIndex") == "z-index"
        assert camel_property_name("grid-template-columns") == "gridTemplateColumns"

    def test_zero_dropped_real_value_kept(self):
        """Test 0px is filtered while 16px survives."""
        styles = normalize_styles({"padding": "0px", "fontSize": "16px", "margin": "0px"})
        assert styles == {"fontSize": "16px"}
        assert "0px" not in styles.values()

    def test_noise_values_dropped(self):
        """Test browser defaults are removed."""
        styles = normalize_styles({
            "display": "block",
            "position": "static",
            "color": "rgb(0, 0, 0)",
            "backgroundColor": TRANSPARENT,
            "boxShadow": "none",
            "lineHeight": "normal",
            "alignItems": "stretch",
        })
        assert styles == {"display": "block", "position": "static"}

    def test_unlisted_properties_ignored(self):
        """Test only allow-listed properties are kept, in list order."""
        styles = normalize_styles({"cursor": "pointer", "color": "rgb(1, 2, 3)", "display": "flex"})
        assert list(styles) == ["display", "color"]

    def test_font_family_simplified(self):
        """Test font stacks collapse to the first family plus a fallback."""
        assert normalize_value("fontFamily", '"Inter", "Inter Placeholder", sans-serif') == "'Inter', sans-serif"
        assert normalize_value("fontFamily", "system-ui, -apple-system, sans-serif") is None

    def test_double_quotes_replaced(self):
        """Test double quotes become single quotes for attribute safety."""
        assert normalize_value("backgroundImage", 'url("hero.png")') == "url('hero.png')"


class TestBackgroundResolution:
    """Tests for background inheritance."""

    def test_backdrop_gradient_beats_ancestor(self):
        """Test a full-width child gradient wins over an ancestor color."""
        found = resolve_background(
            {"backgroundColor": TRANSPARENT},
            1440,
            [layer(1400, image="linear-gradient(180deg, rgb(10, 20, 30), rgb(0, 0, 0))")],
            [layer(1440, color="rgb(245, 245, 245)")],
        )
        assert found == {"backgroundImage": "linear-gradient(180deg, rgb(10, 20, 30), rgb(0, 0, 0))"}

    def test_narrow_backdrop_ignored(self):
        """Test backdrops under 90% of the section width are skipped."""
        found = resolve_background(
            {},
            1440,
            [layer(600, color="rgb(255, 0, 0)")],
            [layer(1440, color="rgb(245, 245, 245)")],
        )
        assert found == {"backgroundColor": "rgb(245, 245, 245)"}

    def test_backdrop_url_image_not_inherited(self):
        """Test non-gradient backdrop images are not treated as backgrounds."""
        found = resolve_background(
            {},
            1440,
            [layer(1440, image="url('photo.jpg')")],
            [],
        )
        assert found == {}

    def test_ancestor_image(self):
        """Test any ancestor image is inherited."""
        found = resolve_background({}, 1440, [], [layer(1440), layer(1440, image="url('bg.png')")])
        assert found == {"backgroundImage": "url('bg.png')"}

    def test_white_ancestor_ignored(self):
        """Test plain white is not considered a background."""
        assert resolve_background({}, 1440, [], [layer(1440, color="rgb(255, 255, 255)")]) == {}

    def test_own_background_wins(self):
        """Test nothing is inherited when the section paints itself."""
        found = resolve_background(
            {"backgroundColor": "rgb(12, 12, 12)"},
            1440,
            [layer(1440, image="linear-gradient(red, blue)")],
            [],
        )
        assert found == {}

    def test_apply_background(self):
        """Test inherited values only fill missing backgrounds."""
        merged = apply_background({"color": "rgb(1, 1, 1)"}, {"backgroundColor": "rgb(9, 9, 9)"})
        assert merged == {"color": "rgb(1, 1, 1)", "backgroundColor": "rgb(9, 9, 9)"}


class TestRenderHtml:
    """Tests for inline-styled HTML rendering."""

    def test_nested_markup(self):
        """Test styles are inlined and text escaped."""
        tree = node("div", {"padding": "16px", "margin": "0px"}, children=[
            node("h1", {"fontSize": "48px"}, text="Build & ship"),
            node("img", attrs={"src": "a.png", "alt": "A"}),
        ])
        assert render_html(tree) == (
            '<div style="padding: 16px"><h1 style="font-size: 48px">Build &amp; ship</h1>'
            '<img src="a.png" alt="A" /></div>'
        )

    def test_root_background_applied(self):
        """Test inherited backgrounds land on the root element only."""
        tree = node("section", children=[node("p", text="Hi")])
        markup = render_html(tree, root_background={"backgroundColor": "rgb(9, 9, 9)"})
        assert markup == '<section style="background-color: rgb(9, 9, 9)"><p>Hi</p></section>'

    def test_attribute_escaping(self):
        """Test attribute values are escaped."""
        markup = render_html(node("a", attrs={"href": "/q?a=1&b=\"2\""}, text="Go"))
        assert 'href="/q?a=1&amp;b=&quot;2&quot;"' in markup


class TestOrphanImages:
    """Tests for re-attaching large images outside the walked markup."""

    def test_large_overlapping_image(self):
        """Test a large image inside the section is positioned absolutely."""
        images = [{"src": "https://cdn.site/hero.jpg", "alt": "Hero", "y": 150, "width": 800, "height": 400,
                   "border_radius": "12px"}]
        orphans = find_orphan_images(images, 100, 700, "<section></section>")
        assert len(orphans) == 1
        assert 'src="https://cdn.site/hero.jpg"' in orphans[0]
        assert "top: 50px" in orphans[0]
        assert "width: 800px" in orphans[0]
        assert "border-radius: 12px" in orphans[0]

    def test_skips_small_outside_and_present(self):
        """Test small, non-overlapping and already-rendered images are skipped."""
        images = [
            {"src": "icon.png", "y": 150, "width": 40, "height": 40},
            {"src": "far.png", "y": 5000, "width": 800, "height": 400},
            {"src": "inline.png", "y": 150, "width": 800, "height": 400},
            {"src": "dup.png", "y": 150, "width": 800, "height": 400},
            {"src": "dup.png", "y": 150, "width": 800, "height": 400},
        ]
        orphans = find_orphan_images(images, 100, 700, '<img src="inline.png" />')
        assert len(orphans) == 1
        assert "dup.png" in orphans[0]


class TestStyleExtractor:
    """Tests for StyleExtractor against a fake page."""

    @pytest.mark.asyncio
    async def test_extract_section(self):
        """Test root styles, inherited background and markup."""
        walk = {
            "root": node("section", {"padding": "64px", "margin": "0px", "backgroundColor": TRANSPARENT},
                         children=[node("h2", {"fontSize": "16px"}, text="Pricing")]),
            "root_width": 1440,
            "backdrops": [layer(1440, image="linear-gradient(red, blue)")],
            "ancestors": [],
            "images": [],
        }
        page = FakePage(scripts={SECTION_WALK_SCRIPT: walk})
        result = await StyleExtractor().extract_section(page, BoundingBox(y=1200, width=1440, height=600))

        assert result.styles == {"padding": "64px", "backgroundImage": "linear-gradient(red, blue)"}
        assert "0px" not in result.styles.values()
        assert '<h2 style="font-size: 16px">Pricing</h2>' in result.html
        assert page.evaluated(SECTION_WALK_SCRIPT)[0]["y"] == 1200

    @pytest.mark.asyncio
    async def test_no_matching_element(self):
        """Test an unmatched section yields empty styles."""
        result = await StyleExtractor().extract_section(FakePage(), BoundingBox(height=100))
        assert result.html == ""
        assert result.styles == {}

    @pytest.mark.asyncio
    async def test_walk_failure(self):
        """Test evaluation errors are not raised."""
        def boom(_):
            raise RuntimeError("Execution context was destroyed")

        page = FakePage(scripts={SECTION_WALK_SCRIPT: boom})
        result = await StyleExtractor().extract_section(page, BoundingBox(height=100))
        assert result.styles == {}

    @pytest.mark.asyncio
    async def test_element_tree(self):
        """Test element trees are built with normalized styles."""
        tree = {
            "tag_name": "div",
            "attributes": {"id": "hero"},
            "computed_styles": {"display": "flex", "gap": "0px"},
            "inner_text": None,
            "children": [
                {"tag_name": "h1", "attributes": {}, "computed_styles": {"fontSize": "64px"},
                 "inner_text": "Hello", "children": []},
            ],
        }
        page = FakePage(scripts={ELEMENT_TREE_SCRIPT: tree})
        element = await StyleExtractor().extract_element_tree(page, "#hero", max_depth=3)
        assert element.computed_styles == {"display": "flex"}
        assert element.children[0].inner_text == "Hello"
        assert page.evaluated(ELEMENT_TREE_SCRIPT)[0]["maxDepth"] == 3

    @pytest.mark.asyncio
    async def test_element_tree_missing(self):
        """Test a missing selector returns None."""
        assert await StyleExtractor().extract_element_tree(FakePage(), "#missing") is None


class TestJsx:
    """Tests for JSX conversion."""

    def test_element_to_jsx(self):
        """Test attributes, style objects and nesting."""
        element = build_element_tree({
            "tag_name": "form",
            "computed_styles": {"display": "flex"},
            "children": [
                {"tag_name": "label", "attributes": {"for": "email", "class": "x"},
                 "computed_styles": {"fontSize": "14px"}, "inner_text": "Email"},
                {"tag_name": "input", "attributes": {"type": "email"}},
            ],
        })
        assert element_to_jsx(element) == (
            "<form style={{ display: 'flex' }}>\n"
            "  <label htmlFor=\"email\" style={{ fontSize: '14px' }}>Email</label>\n"
            "  <input type=\"email\" />\n"
            "</form>"
        )

    def test_empty_element_self_closes(self):
        """Test childless, textless elements self-close."""
        assert element_to_jsx(ExtractedElement(tag_name="div")) == "<div />"

    def test_clean_html_for_jsx(self):
        """Test class and design-tool attributes are stripped and styles converted."""
        markup = (
            '<div class="wrap" data-framer-name="Hero" style="padding: 16px; font-size: 12px">'
            '<img src="x.png"><br></div>'
        )
        cleaned = clean_html_for_jsx(markup)
        assert "class=" not in cleaned
        assert "data-framer" not in cleaned
        assert "<div style={{ padding: '16px', fontSize: '12px' }}>" in cleaned
        assert '<img src="x.png" />' in cleaned
        assert "<br />" in cleaned

    def test_quotes_escaped_in_style_values(self):
        """Test single quotes inside values are escaped."""
        cleaned = clean_html_for_jsx("<p style=\"font-family: 'Inter', sans-serif\">x</p>")
        assert "fontFamily: '\\'Inter\\', sans-serif'" in cleaned
