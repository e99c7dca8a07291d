"""Responsive diff and design-token class models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ResponsiveStyleChange(BaseModel):
    """One property whose value differs across viewports.

    ``base`` is the mobile value; ``tablet`` and ``desktop`` are present
    only where the value changes from the previous breakpoint.
    """

    property: str
    base: str = ""
    tablet: Optional[str] = None
    desktop: Optional[str] = None


class ResponsiveClasses(BaseModel):
    base: list[str] = Field(default_factory=list)
    tablet: list[str] = Field(default_factory=list)
    desktop: list[str] = Field(default_factory=list)


class LayoutAnalysis(BaseModel):
    # Keyed by viewport name; layout type is one of stack / grid / flex-row / flex-col
    layout_type: dict[str, str] = Field(default_factory=dict)
    columns: dict[str, int] = Field(default_factory=dict)
    gap: dict[str, str] = Field(default_factory=dict)
