"""Screenshot cache — domain-keyed, TTL-bounded store of captured screenshots."""

from __future__ import annotations

import json
import logging
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from sectioncapture.models.cache import CacheEntry, CacheStats
from sectioncapture.models.section import DetectedSection
from sectioncapture.url_utils import domain_dir_name, extract_domain

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime | None:
    try:
        return datetime.strptime(value.strip(), TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScreenshotCacheManager:
    """Stores full-page and section screenshots per domain.

    Layout::

        {cache_dir}/{domain}/metadata.json
        {cache_dir}/{domain}/expires_at.txt
        {cache_dir}/{domain}/screenshots/full-page.png
        {cache_dir}/{domain}/screenshots/sections/{NN}-{type}.png

    Paths inside metadata.json are relative to the domain directory.
    There is no locking: concurrent writers for one domain may race.
    """

    def __init__(
        self,
        cache_dir: str | Path,
        ttl_hours: float = 12,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.cache_dir = Path(cache_dir)
        self.ttl_hours = ttl_hours
        self._clock = clock or utc_now

    def _domain_dir(self, domain: str) -> Path:
        return self.cache_dir / domain_dir_name(domain)

    def _metadata_path(self, domain: str) -> Path:
        return self._domain_dir(domain) / "metadata.json"

    def _expiry_path(self, domain: str) -> Path:
        return self._domain_dir(domain) / "expires_at.txt"

    def _read_entry(self, domain: str) -> CacheEntry | None:
        """Load the stored entry with paths resolved against the domain dir."""
        meta_path = self._metadata_path(domain)
        if not meta_path.exists():
            return None
        try:
            with open(meta_path) as f:
                data = json.load(f)
            entry = CacheEntry(**data)
        except Exception as e:
            logger.warning("Failed to read cache metadata for %s: %s", domain, e)
            return None

        base = self._domain_dir(domain)
        return entry.model_copy(update={
            "full_page_path": str(base / entry.full_page_path),
            "sections": [
                s.model_copy(update={"screenshot_path": str(base / s.screenshot_path)})
                for s in entry.sections
            ],
        })

    def _is_expired(self, domain: str) -> bool:
        expiry_path = self._expiry_path(domain)
        if not expiry_path.exists():
            return True
        expires_at = parse_timestamp(expiry_path.read_text())
        return expires_at is None or self._clock() >= expires_at

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_valid(self, url: str) -> bool:
        """True when the entry exists, has not expired and every file is present."""
        domain = extract_domain(url)
        if self._is_expired(domain):
            return False
        entry = self._read_entry(domain)
        if entry is None:
            return False
        if not Path(entry.full_page_path).exists():
            logger.debug("Cached full-page screenshot missing for %s", domain)
            return False
        return all(Path(s.screenshot_path).exists() for s in entry.sections)

    def get(self, url: str) -> CacheEntry | None:
        domain = extract_domain(url)
        if not self.is_valid(url):
            return None
        logger.info("Screenshot cache hit for %s", domain)
        return self._read_entry(domain)

    def set(
        self,
        url: str,
        full_page_path: str | Path,
        sections: list[DetectedSection],
        full_page_height: int = 0,
    ) -> CacheEntry:
        """Copy the screenshots into the cache and record the entry."""
        domain = extract_domain(url)
        base = self._domain_dir(domain)
        sections_dir = base / "screenshots" / "sections"
        if sections_dir.exists():
            shutil.rmtree(sections_dir)
        sections_dir.mkdir(parents=True, exist_ok=True)

        full_dest = base / "screenshots" / "full-page.png"
        shutil.copy2(full_page_path, full_dest)

        cached_sections: list[DetectedSection] = []
        for section in sections:
            if not section.screenshot_path:
                continue
            src = Path(section.screenshot_path)
            dest = sections_dir / src.name
            shutil.copy2(src, dest)
            cached_sections.append(
                section.model_copy(update={"screenshot_path": str(dest.relative_to(base))})
            )

        now = self._clock()
        expires = now + timedelta(hours=self.ttl_hours)
        entry = CacheEntry(
            domain=domain,
            captured_at=format_timestamp(now),
            expires_at=format_timestamp(expires),
            full_page_path=str(full_dest.relative_to(base)),
            sections=cached_sections,
            full_page_height=full_page_height,
        )
        with open(self._metadata_path(domain), "w") as f:
            json.dump(entry.model_dump(mode="json"), f, indent=2)
        self._expiry_path(domain).write_text(entry.expires_at)

        logger.info("Cached %d section screenshots for %s (expires %s)",
                    len(cached_sections), domain, entry.expires_at)
        return self._read_entry(domain) or entry

    def clear(self, url: str) -> bool:
        base = self._domain_dir(extract_domain(url))
        if not base.exists():
            return False
        shutil.rmtree(base)
        logger.info("Cleared screenshot cache for %s", base.name)
        return True

    def clear_all(self) -> int:
        """Remove every domain entry; returns the number removed."""
        if not self.cache_dir.exists():
            return 0
        removed = 0
        for child in self.cache_dir.iterdir():
            if child.is_dir() and (child / "metadata.json").exists():
                shutil.rmtree(child)
                removed += 1
        logger.info("Cleared %d screenshot cache entries", removed)
        return removed

    def stats(self) -> CacheStats:
        stats = CacheStats(cache_dir=str(self.cache_dir))
        if not self.cache_dir.exists():
            return stats
        for child in sorted(self.cache_dir.iterdir()):
            if not child.is_dir() or not (child / "metadata.json").exists():
                continue
            stats.total_domains += 1
            if self.is_valid(child.name):
                stats.valid_domains += 1
            else:
                stats.expired_domains += 1
        return stats

    def copy_to_website(self, url: str, website_dir: str | Path) -> CacheEntry | None:
        """Copy a valid cached capture into ``{website_dir}/reference``.

        Returns the entry with paths pointing at the copied files, or None
        when nothing valid is cached.
        """
        entry = self.get(url)
        if entry is None:
            return None

        reference_dir = Path(website_dir) / "reference"
        sections_dir = reference_dir / "sections"
        if sections_dir.exists():
            shutil.rmtree(sections_dir)
        sections_dir.mkdir(parents=True, exist_ok=True)

        full_dest = reference_dir / "full-page.png"
        shutil.copy2(entry.full_page_path, full_dest)

        copied: list[DetectedSection] = []
        for section in entry.sections:
            dest = sections_dir / Path(section.screenshot_path).name
            shutil.copy2(section.screenshot_path, dest)
            copied.append(section.model_copy(update={"screenshot_path": str(dest)}))

        return entry.model_copy(update={"full_page_path": str(full_dest), "sections": copied})
