"""Design-token cache — stores synthesized token documents per domain."""

from __future__ import annotations

import json
import logging
import shutil
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from sectioncapture.cache.screenshot_cache import format_timestamp, parse_timestamp, utc_now
from sectioncapture.models.cache import CacheStats, TokenCacheEntry
from sectioncapture.url_utils import domain_dir_name, extract_domain

logger = logging.getLogger(__name__)


class TokenCacheManager:
    """Caches token documents at ``{cache_dir}/{domain}/tokens.json``."""

    def __init__(
        self,
        cache_dir: str | Path,
        ttl_hours: float = 24,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.cache_dir = Path(cache_dir)
        self.ttl_hours = ttl_hours
        self._clock = clock or utc_now

    def _tokens_path(self, url: str) -> Path:
        return self.cache_dir / domain_dir_name(url) / "tokens.json"

    def _load(self, path: Path) -> TokenCacheEntry | None:
        try:
            with open(path) as f:
                return TokenCacheEntry(**json.load(f))
        except Exception as e:
            logger.warning("Failed to read token cache %s: %s", path, e)
            return None

    def _expired(self, entry: TokenCacheEntry) -> bool:
        expires_at = parse_timestamp(entry.expires_at)
        return expires_at is None or self._clock() >= expires_at

    def get(self, url: str) -> dict | None:
        path = self._tokens_path(url)
        if not path.exists():
            return None
        entry = self._load(path)
        if entry is None or self._expired(entry):
            return None
        logger.info("Token cache hit for %s", entry.domain)
        return entry.tokens

    def set(self, url: str, tokens: dict) -> TokenCacheEntry:
        now = self._clock()
        entry = TokenCacheEntry(
            domain=extract_domain(url),
            extracted_at=format_timestamp(now),
            expires_at=format_timestamp(now + timedelta(hours=self.ttl_hours)),
            tokens=tokens,
        )
        path = self._tokens_path(url)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(entry.model_dump(), f, indent=2, default=str)
        logger.debug("Cached design tokens for %s", entry.domain)
        return entry

    def clear(self, url: str) -> bool:
        domain_dir = self._tokens_path(url).parent
        if not domain_dir.exists():
            return False
        shutil.rmtree(domain_dir)
        return True

    def clear_all(self) -> int:
        if not self.cache_dir.exists():
            return 0
        removed = 0
        for child in self.cache_dir.iterdir():
            if (child / "tokens.json").exists():
                shutil.rmtree(child)
                removed += 1
        return removed

    def stats(self) -> CacheStats:
        stats = CacheStats(cache_dir=str(self.cache_dir))
        if not self.cache_dir.exists():
            return stats
        for path in sorted(self.cache_dir.glob("*/tokens.json")):
            stats.total_domains += 1
            entry = self._load(path)
            if entry is not None and not self._expired(entry):
                stats.valid_domains += 1
            else:
                stats.expired_domains += 1
        return stats
