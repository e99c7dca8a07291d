"""Capture request, progress and result models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from sectioncapture.models.section import DetectedSection, ResponsiveSectionInfo


class CapturePhase(str, Enum):
    INITIALIZING = "initializing"
    SCROLLING = "scrolling"
    WAITING_IMAGES = "waiting_images"
    WAITING_FONTS = "waiting_fonts"
    WAITING_ANIMATIONS = "waiting_animations"
    CAPTURING = "capturing"
    SECTIONS = "sections"
    EXTRACTING = "extracting"
    COMPLETE = "complete"
    FAILED = "failed"


class CaptureProgress(BaseModel):
    phase: CapturePhase
    percent: int = Field(default=0, ge=0, le=100)
    message: str = ""
    current_section: Optional[int] = None
    total_sections: Optional[int] = None


class CaptureRequest(BaseModel):
    website_id: str
    url: str
    viewport_width: Optional[int] = None
    viewport_height: Optional[int] = None
    max_retries: Optional[int] = None
    page_timeout_ms: Optional[int] = None
    skip_cache: bool = False
    headless: Optional[bool] = None


class CaptureMetadata(BaseModel):
    url: str
    captured_at: str
    viewport_width: int
    viewport_height: int
    full_page_height: int = 0


# ============================================================================
# Raw design data
# ============================================================================


class ColorData(BaseModel):
    colors: list[str] = Field(default_factory=list)
    backgrounds: list[str] = Field(default_factory=list)
    borders: list[str] = Field(default_factory=list)


class TypographyData(BaseModel):
    font_families: list[str] = Field(default_factory=list)
    font_sizes: list[str] = Field(default_factory=list)
    font_weights: list[str] = Field(default_factory=list)
    line_heights: list[str] = Field(default_factory=list)
    element_types: list[dict] = Field(default_factory=list)  # {tag, font_size, font_weight, font_family}


class SpacingData(BaseModel):
    paddings: list[str] = Field(default_factory=list)
    margins: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    max_widths: list[str] = Field(default_factory=list)
    element_types: list[dict] = Field(default_factory=list)  # {tag, padding, margin}


class EffectsData(BaseModel):
    box_shadows: list[str] = Field(default_factory=list)
    border_radii: list[str] = Field(default_factory=list)
    transitions: list[str] = Field(default_factory=list)


class RawPageData(BaseModel):
    """Unaggregated style observations across the whole page."""

    url: str = ""
    colors: ColorData = Field(default_factory=ColorData)
    typography: TypographyData = Field(default_factory=TypographyData)
    spacing: SpacingData = Field(default_factory=SpacingData)
    effects: EffectsData = Field(default_factory=EffectsData)


# ============================================================================
# Results
# ============================================================================


class CaptureResult(BaseModel):
    success: bool
    website_id: str
    full_page_path: str = ""
    sections: list[DetectedSection] = Field(default_factory=list)
    metadata: Optional[CaptureMetadata] = None
    raw_data: Optional[RawPageData] = None  # Best effort; absent on extraction failure
    error: Optional[str] = None
    from_cache: bool = False


class ResponsiveCaptureRequest(BaseModel):
    website_id: str
    url: str
    viewports: list[str] = Field(default_factory=lambda: ["mobile", "tablet", "desktop"])
    max_retries: Optional[int] = None
    page_timeout_ms: Optional[int] = None
    headless: Optional[bool] = None


class ResponsiveMetadata(BaseModel):
    url: str
    captured_at: str
    viewports: list[str] = Field(default_factory=list)


class ResponsiveCaptureResult(BaseModel):
    success: bool
    website_id: str
    full_page_paths: dict[str, str] = Field(default_factory=dict)
    sections: list[ResponsiveSectionInfo] = Field(default_factory=list)
    metadata: Optional[ResponsiveMetadata] = None
    error: Optional[str] = None
