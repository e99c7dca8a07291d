"""Shared URL utilities — derive cache keys from URLs."""

from __future__ import annotations

import re
from urllib.parse import urlparse


def extract_domain(url: str) -> str:
    """Return the hostname without a leading ``www.``.

    Strings that do not parse as absolute URLs fall back to a regex that
    strips the scheme, the ``www.`` prefix and everything after the host.
    """
    hostname = urlparse(url).hostname
    if hostname:
        return re.sub(r"^www\.", "", hostname)
    stripped = re.sub(r"^https?://", "", url.strip())
    stripped = re.sub(r"^www\.", "", stripped)
    return re.split(r"[/?#]", stripped, maxsplit=1)[0]


def domain_dir_name(url: str) -> str:
    """Filesystem-safe directory name for a URL's domain."""
    return re.sub(r"[^A-Za-z0-9.\-]", "_", extract_domain(url))
