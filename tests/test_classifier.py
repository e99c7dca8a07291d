"""Tests for responsive style classification."""

import pytest

from sectioncapture.models.responsive import ResponsiveClasses, ResponsiveStyleChange
from sectioncapture.models.section import BoundingBox, ResponsiveSectionInfo, SectionType
from sectioncapture.responsive.classifier import (
    DEFAULT_PRESET,
    ResponsiveStyleClassifier,
    analyze_layout_changes,
    classes_to_string,
    detect_responsive_changes,
    generate_classes,
    generate_layout_classes,
    parse_grid_columns,
    px_to_font_size,
    px_to_spacing,
    section_preset_classes,
)


class TestDetectResponsiveChanges:
    """Tests for per-viewport style diffing."""

    def test_desktop_only_change(self):
        """Test 16px/16px/24px reports a base and a desktop value only."""
        changes = detect_responsive_changes({
            "mobile": {"padding": "16px"},
            "tablet": {"padding": "16px"},
            "desktop": {"padding": "24px"},
        })
        assert changes == [ResponsiveStyleChange(property="padding", base="16px", desktop="24px")]
        assert changes[0].tablet is None

    def test_identical_values_skipped(self):
        """Test properties equal at every breakpoint are not reported."""
        changes = detect_responsive_changes({
            "mobile": {"display": "flex", "gap": "8px"},
            "tablet": {"display": "flex", "gap": "16px"},
            "desktop": {"display": "flex", "gap": "16px"},
        })
        assert [c.property for c in changes] == ["gap"]
        assert changes[0].tablet == "16px"
        assert changes[0].desktop is None

    def test_missing_tablet_compares_desktop_to_mobile(self):
        """Test desktop is diffed against mobile when tablet has no value."""
        changes = detect_responsive_changes({
            "mobile": {"display": "block"},
            "tablet": {},
            "desktop": {"display": "flex"},
        })
        assert changes == [ResponsiveStyleChange(property="display", base="block", desktop="flex")]

    def test_property_only_on_larger_viewport(self):
        """Test a property absent on mobile has an empty base."""
        changes = detect_responsive_changes({"mobile": {}, "desktop": {"gridTemplateColumns": "1fr 1fr 1fr"}})
        assert changes[0].base == ""
        assert changes[0].desktop == "1fr 1fr 1fr"

    def test_missing_viewports(self):
        """Test absent viewports count as empty style maps."""
        changes = detect_responsive_changes({"desktop": {"padding": "16px"}})
        assert changes == [ResponsiveStyleChange(property="padding", base="", desktop="16px")]
        assert detect_responsive_changes({}) == []


class TestValueSnapping:
    """Tests for numeric snapping and column parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("0px", "0"), ("17px", "4"), ("16px", "4"), ("24px", "6"), ("100px", "24"), ("31.5px", "8"),
        ("64px 32px", "16"), ("auto", ""),
    ])
    def test_px_to_spacing(self, value, expected):
        """Test pixel values snap to the nearest spacing step."""
        assert px_to_spacing(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("12px", "text-xs"), ("13px", "text-sm"), ("16px", "text-base"), ("30px", "text-3xl"),
        ("64px", "text-7xl"), ("144px", "text-9xl"), ("large", ""),
    ])
    def test_px_to_font_size(self, value, expected):
        """Test font sizes map to named buckets."""
        assert px_to_font_size(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("repeat(3, minmax(0, 1fr))", 3),
        ("1fr 2fr", 2),
        ("240px 240px 240px 240px", 4),
        ("320px", 1),
    ])
    def test_parse_grid_columns(self, value, expected):
        """Test column counts from grid templates."""
        assert parse_grid_columns(value) == expected


class TestGenerateClasses:
    """Tests for class generation."""

    def test_padding_change(self):
        """Test a desktop padding change becomes an lg: class."""
        classes = generate_classes([ResponsiveStyleChange(property="padding", base="16px", desktop="24px")])
        assert classes == ResponsiveClasses(base=["p-4"], desktop=["p-6"])
        assert classes_to_string(classes) == "p-4 lg:p-6"

    def test_token_tables(self):
        """Test keyword properties map through their tables."""
        classes = generate_classes([
            ResponsiveStyleChange(property="display", base="none", tablet="flex"),
            ResponsiveStyleChange(property="flexDirection", base="column", tablet="row"),
            ResponsiveStyleChange(property="justifyContent", base="center", desktop="space-between"),
            ResponsiveStyleChange(property="alignItems", base="flex-start", desktop="center"),
            ResponsiveStyleChange(property="textAlign", base="center", desktop="left"),
        ])
        assert classes.base == ["hidden", "flex-col", "justify-center", "items-start", "text-center"]
        assert classes.tablet == ["flex", "flex-row"]
        assert classes.desktop == ["justify-between", "items-center", "text-left"]

    def test_grid_font_and_gap(self):
        """Test grid, font-size and gap tokens."""
        classes = generate_classes([
            ResponsiveStyleChange(property="gridTemplateColumns", base="320px", tablet="1fr 1fr",
                                  desktop="repeat(4, 1fr)"),
            ResponsiveStyleChange(property="fontSize", base="36px", desktop="60px"),
            ResponsiveStyleChange(property="gap", base="16px", tablet="32px"),
        ])
        assert classes_to_string(classes) == (
            "grid-cols-1 text-4xl gap-4 md:grid-cols-2 md:gap-8 lg:grid-cols-4 lg:text-6xl"
        )

    def test_side_padding(self):
        """Test directional padding prefixes."""
        classes = generate_classes([ResponsiveStyleChange(property="paddingTop", base="48px", tablet="96px")])
        assert classes_to_string(classes) == "pt-12 md:pt-24"

    def test_unmapped_values_skipped(self):
        """Test unknown properties and unknown keywords produce no classes."""
        classes = generate_classes([
            ResponsiveStyleChange(property="color", base="rgb(1, 1, 1)", desktop="rgb(2, 2, 2)"),
            ResponsiveStyleChange(property="display", base="contents", desktop="table"),
            ResponsiveStyleChange(property="padding", base="", desktop="auto"),
        ])
        assert classes == ResponsiveClasses()
        assert classes_to_string(classes) == ""


class TestLayoutClasses:
    """Tests for layout analysis."""

    def test_stack_to_grid(self):
        """Test a flex column becoming a row, then a three-column grid."""
        layout = analyze_layout_changes({
            "mobile": {"display": "flex", "flexDirection": "column", "gap": "16px"},
            "tablet": {"display": "flex", "flexDirection": "row"},
            "desktop": {"display": "grid", "gridTemplateColumns": "repeat(3, 1fr)", "gap": "32px"},
        })
        assert layout.layout_type == {"mobile": "flex-col", "tablet": "flex-row", "desktop": "grid"}
        assert layout.columns == {"mobile": 1, "tablet": 1, "desktop": 3}
        assert layout.gap == {"mobile": "16px", "tablet": "16px", "desktop": "32px"}
        assert generate_layout_classes(layout) == "flex flex-col md:flex-row lg:grid-cols-3 gap-4 lg:gap-8"

    def test_grid_column_changes(self):
        """Test column count changes within a grid layout."""
        layout = analyze_layout_changes({
            "mobile": {"display": "grid", "gridTemplateColumns": "1fr"},
            "tablet": {"display": "grid", "gridTemplateColumns": "1fr 1fr"},
            "desktop": {"display": "grid", "gridTemplateColumns": "1fr 1fr 1fr 1fr"},
        })
        assert generate_layout_classes(layout) == "grid grid-cols-1 md:grid-cols-2 lg:grid-cols-4 gap-0"

    def test_section_presets(self):
        """Test default classes per section type."""
        assert section_preset_classes(SectionType.HEADER) == "px-4 md:px-6 lg:px-8"
        assert section_preset_classes("hero").endswith("text-center lg:text-left")
        assert "lg:grid-cols-3" in section_preset_classes(SectionType.PRICING)
        assert section_preset_classes("sidebar") == DEFAULT_PRESET


class TestResponsiveStyleClassifier:
    """Tests for the classifier facade."""

    def test_classify_section(self):
        """Test a section's responsive styles become class strings."""
        section = ResponsiveSectionInfo(
            type=SectionType.HERO,
            bounding_box=BoundingBox(width=1440, height=700),
            responsive_styles={
                "mobile": {"fontSize": "36px", "textAlign": "center"},
                "tablet": {"fontSize": "48px", "textAlign": "center"},
                "desktop": {"fontSize": "72px", "textAlign": "left"},
            },
        )
        classifier = ResponsiveStyleClassifier()
        classes = classifier.classify(section)
        assert classes.base == ["text-4xl", "text-center"]
        assert classes.tablet == ["text-5xl"]
        assert classes.desktop == ["text-7xl", "text-left"]
        assert classifier.class_string(section) == "text-4xl text-center md:text-5xl lg:text-7xl lg:text-left"

    def test_classify_static_section(self):
        """Test a section that never changes yields no classes."""
        styles = {"padding": "32px", "display": "block"}
        section = ResponsiveSectionInfo(
            type=SectionType.FOOTER,
            bounding_box=BoundingBox(),
            responsive_styles={"mobile": styles, "tablet": styles, "desktop": styles},
        )
        assert ResponsiveStyleClassifier().class_string(section) == ""

    def test_classify_without_tablet(self):
        """Test a skipped tablet capture keeps the mobile value as base only."""
        section = ResponsiveSectionInfo(
            type=SectionType.FOOTER,
            bounding_box=BoundingBox(),
            responsive_styles={"mobile": {"padding": "32px"}, "desktop": {"padding": "32px"}},
        )
        assert ResponsiveStyleClassifier().class_string(section) == "p-8"
