"""Site profile registry."""

from __future__ import annotations

from urllib.parse import urlparse

from scraper_service.ingest.sites.base import SiteProfile
from scraper_service.ingest.sites.shein import SheinProfile


_PROFILES: list[SiteProfile] = [
    SheinProfile(),
]

_DEFAULT_PROFILE = SiteProfile()


def get_profile_for_url(url: str) -> SiteProfile:
    """Return the site profile for a product URL, by hostname."""
    try:
        hostname = urlparse(url).hostname or ""
    except ValueError:
        hostname = ""
    for profile in _PROFILES:
        if hostname and profile.matches(hostname):
            return profile
    return _DEFAULT_PROFILE


__all__ = [
    "SiteProfile",
    "SheinProfile",
    "get_profile_for_url",
]
