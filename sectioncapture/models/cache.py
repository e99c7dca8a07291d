"""Cache entry models for screenshots and design tokens."""

from __future__ import annotations

from pydantic import BaseModel, Field

from sectioncapture.models.section import DetectedSection


class CacheEntry(BaseModel):
    domain: str
    captured_at: str
    expires_at: str
    full_page_path: str  # Absolute path inside the cache directory
    sections: list[DetectedSection] = Field(default_factory=list)
    full_page_height: int = 0


class TokenCacheEntry(BaseModel):
    domain: str
    extracted_at: str
    expires_at: str
    tokens: dict = Field(default_factory=dict)


class CacheStats(BaseModel):
    total_domains: int = 0
    valid_domains: int = 0
    expired_domains: int = 0
    cache_dir: str = ""
