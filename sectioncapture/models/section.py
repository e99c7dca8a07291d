"""Section models — detected page regions and their per-viewport data."""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SectionType(str, Enum):
    HEADER = "header"
    HERO = "hero"
    FEATURES = "features"
    TESTIMONIALS = "testimonials"
    PRICING = "pricing"
    CTA = "cta"
    FOOTER = "footer"


# At most one of each per page
SINGLETON_TYPES = frozenset({SectionType.HEADER, SectionType.HERO, SectionType.CTA, SectionType.FOOTER})
REPEATABLE_TYPES = frozenset({SectionType.FEATURES, SectionType.TESTIMONIALS, SectionType.PRICING})

# Computed-style property name -> value
StyleMap = dict[str, str]


class BoundingBox(BaseModel):
    """Page-coordinate rectangle; y includes the scroll offset."""

    x: int = 0
    y: int = 0
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)

    @classmethod
    def from_rect(cls, rect: dict, scroll_y: float = 0) -> BoundingBox:
        """Build from a browser rect (floats), shifting y into page space."""
        return cls(
            x=round(rect.get("x", 0)),
            y=round(rect.get("y", 0) + scroll_y),
            width=max(0, round(rect.get("width", 0))),
            height=max(0, round(rect.get("height", 0))),
        )

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def overlap_area(self, other: BoundingBox) -> int:
        x_overlap = max(0, min(self.x + self.width, other.x + other.width) - max(self.x, other.x))
        y_overlap = max(0, min(self.bottom, other.bottom) - max(self.y, other.y))
        return x_overlap * y_overlap

    def vertical_overlap(self, other: BoundingBox) -> int:
        return max(0, min(self.bottom, other.bottom) - max(self.y, other.y))

    def union(self, other: BoundingBox) -> BoundingBox:
        left = min(self.x, other.x)
        top = min(self.y, other.y)
        right = max(self.x + self.width, other.x + other.width)
        bottom = max(self.bottom, other.bottom)
        return BoundingBox(x=left, y=top, width=right - left, height=bottom - top)


def new_section_id() -> str:
    return f"section-{uuid.uuid4()}"


class DetectedSection(BaseModel):
    id: str = Field(default_factory=new_section_id)
    type: SectionType
    bounding_box: BoundingBox
    screenshot_path: str = ""  # Filled in once the section is captured


class SectionStyles(BaseModel):
    """Inline-styled markup and root styles for one section."""

    html: str = ""
    styles: StyleMap = Field(default_factory=dict)


class ResponsiveSectionInfo(DetectedSection):
    # Keyed by viewport name (mobile / tablet / desktop)
    responsive_styles: dict[str, StyleMap] = Field(default_factory=dict)
    responsive_html: dict[str, str] = Field(default_factory=dict)
    responsive_bounding_box: dict[str, BoundingBox] = Field(default_factory=dict)
    responsive_screenshot_path: dict[str, str] = Field(default_factory=dict)


class ExtractedElement(BaseModel):
    """One node of a full element-tree style extraction."""

    tag_name: str
    attributes: dict[str, str] = Field(default_factory=dict)
    computed_styles: StyleMap = Field(default_factory=dict)
    inner_text: Optional[str] = None
    children: list[ExtractedElement] = Field(default_factory=list)


class SectionContent(BaseModel):
    """Textual content pulled from a section for downstream generators."""

    headings: list[dict] = Field(default_factory=list)  # {level, text}
    paragraphs: list[str] = Field(default_factory=list)
    buttons: list[dict] = Field(default_factory=list)  # {text, href}
    links: list[dict] = Field(default_factory=list)
    images: list[dict] = Field(default_factory=list)  # {src, alt}
    lists: list[list[str]] = Field(default_factory=list)
    stats: list[dict] = Field(default_factory=list)  # {value, label}
    badges: list[str] = Field(default_factory=list)
    layout: str = "single-column"
