"""Configuration models for section capture."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ViewportConfig(BaseModel):
    name: str = "desktop"
    width: int = 1440
    height: int = 900
    is_base: bool = False
    token_prefix: str = ""  # Utility-class breakpoint prefix, e.g. "md:"


# Ordered smallest first; mobile is the base breakpoint.
VIEWPORT_CONFIGS: list[ViewportConfig] = [
    ViewportConfig(name="mobile", width=375, height=812, is_base=True, token_prefix=""),
    ViewportConfig(name="tablet", width=768, height=1024, token_prefix="md:"),
    ViewportConfig(name="desktop", width=1440, height=900, token_prefix="lg:"),
]

VIEWPORT_NAMES = [v.name for v in VIEWPORT_CONFIGS]


def get_viewport(name: str) -> ViewportConfig:
    for viewport in VIEWPORT_CONFIGS:
        if viewport.name == name:
            return viewport
    raise ValueError(f"Unknown viewport '{name}' (expected one of {', '.join(VIEWPORT_NAMES)})")


class StabilizationConfig(BaseModel):
    scroll_distance: int = 300
    scroll_delay_ms: int = 500
    max_scroll_iterations: int = 1000
    max_scroll_time_ms: int = 30000
    stable_ticks: int = 5
    image_timeout_ms: int = 10000
    animation_wait_ms: int = 3000
    hero_timeout_ms: int = 2000
    dismiss_cookie_consent: bool = True


class DetectionConfig(BaseModel):
    max_sections: int = 10
    min_section_height: int = 50
    min_sections: int = 3
    coverage_threshold: float = 0.5
    overlap_threshold: float = 0.8
    use_fallback: bool = True

    # Named-region (design-tool export) heuristics
    named_region_min_width: int = 1200
    named_region_min_height: int = 200
    named_region_max_page_ratio: float = 0.7
    named_region_merge_overlap: float = 0.3

    # Viewport-split fallback drops bands shorter than this
    min_band_height: int = 100


class CacheConfig(BaseModel):
    cache_dir: str = "cache"
    ttl_hours: float = 12
    token_cache_dir: str = "cache/tokens"
    token_ttl_hours: float = 24
    enabled: bool = True


class CaptureConfig(BaseModel):
    # Output
    websites_dir: str = "Websites"

    # Default viewport for single-viewport captures
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)

    # Browser
    headless: bool = True
    browser_launch_timeout_s: float = 30.0

    # Reliability
    max_retries: int = 3
    page_timeout_ms: int = 45000

    # Section screenshots are clipped to this height
    max_section_screenshot_height: int = 900

    stabilization: StabilizationConfig = Field(default_factory=StabilizationConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @classmethod
    def load(cls, path: str | Path) -> CaptureConfig:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

    def with_env_overrides(self) -> CaptureConfig:
        """Return a copy with environment variable overrides applied.

        Recognised variables: WEBSITES_DIR, CACHE_DIR, CACHE_TTL_HOURS,
        TOKEN_CACHE_DIR and TOKEN_CACHE_TTL_HOURS. TTL values that are not
        positive numbers are ignored.
        """
        cfg = self.model_copy(deep=True)
        if os.environ.get("WEBSITES_DIR"):
            cfg.websites_dir = os.environ["WEBSITES_DIR"]
        if os.environ.get("CACHE_DIR"):
            cfg.cache.cache_dir = os.environ["CACHE_DIR"]
        if os.environ.get("TOKEN_CACHE_DIR"):
            cfg.cache.token_cache_dir = os.environ["TOKEN_CACHE_DIR"]

        ttl = _positive_float(os.environ.get("CACHE_TTL_HOURS"))
        if ttl is not None:
            cfg.cache.ttl_hours = ttl
        token_ttl = _positive_float(os.environ.get("TOKEN_CACHE_TTL_HOURS"))
        if token_ttl is not None:
            cfg.cache.token_ttl_hours = token_ttl
        return cfg

    @classmethod
    def from_env(cls) -> CaptureConfig:
        return cls().with_env_overrides()


def _positive_float(raw: str | None) -> float | None:
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric TTL value: %r", raw)
        return None
    return value if value > 0 else None
