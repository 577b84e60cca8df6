"""Browser-like HTTP header generation.

Image CDNs validate the referer and block non-browser agents, so every
outbound request carries a consistent browser identity.
"""

import logging
from typing import Optional, Dict
from urllib.parse import urlparse

from scraper_service.config import settings

logger = logging.getLogger(__name__)

IMAGE_ACCEPT = "image/avif,image/webp,image/apng,image/*,*/*;q=0.8"
PAGE_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8"


class HeaderBuilder:
    """
    Builds browser-like headers for page sessions and image requests.

    Features:
    - Fixed Chrome user agent from settings
    - Accept header per request kind
    - Referer defaulting to the target site's homepage
    """

    def __init__(
        self,
        user_agent: Optional[str] = None,
        accept_language: Optional[str] = None,
        default_referer: Optional[str] = None,
    ):
        self.user_agent = user_agent or settings.user_agent
        self.accept_language = accept_language or settings.accept_language
        self.default_referer = default_referer or settings.default_referer

    def build_image_headers(self, referer: Optional[str] = None) -> Dict[str, str]:
        """
        Build headers for downloading an image.

        Args:
            referer: Referer URL (defaults to the target site's homepage)

        Returns:
            Dict of HTTP headers
        """
        return {
            "User-Agent": self.user_agent,
            "Accept": IMAGE_ACCEPT,
            "Accept-Language": self.accept_language,
            "Connection": "keep-alive",
            "Referer": referer or self.default_referer,
        }

    def build_page_headers(self, referer: Optional[str] = None) -> Dict[str, str]:
        """
        Build extra headers for a browser page session.

        The user agent is set on the browser context, not here.
        """
        return {
            "Accept-Language": self.accept_language,
            "Referer": referer or self.default_referer,
        }

    @staticmethod
    def homepage_for(url: str) -> Optional[str]:
        """Get the homepage URL (scheme + host) for a page URL."""
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            return None
        return f"{parsed.scheme}://{parsed.netloc}/"


# Global header builder instance
header_builder = HeaderBuilder()
