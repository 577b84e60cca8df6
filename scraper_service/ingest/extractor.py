"""Product page extractor.

Drives a browser session against a product URL, fuses image signals and
extracts text fields with the matching site profile. Any failure yields a
tagged Fallback carrying mock data instead of an exception.
"""

import asyncio
import logging
import time
from dataclasses import replace
from typing import AsyncContextManager, Callable, Optional

from selectolax.parser import HTMLParser

from scraper_service.config import settings
from scraper_service.ingest.base import (
    Extracted,
    ExtractionResult,
    Fallback,
    PageSnapshot,
    ProductRecord,
)
from scraper_service.ingest.browser_session import PlaywrightSession
from scraper_service.ingest.image_fusion import (
    extract_meta_images,
    harvest_dom_images,
    merge_image_sources,
)
from scraper_service.ingest.json_extractor import extract_embedded_image_urls
from scraper_service.ingest.mock_data import random_mock_product
from scraper_service.ingest.sites import SiteProfile, get_profile_for_url
from scraper_service.metrics import extraction_duration_seconds, extraction_results_total

logger = logging.getLogger(__name__)

# Called with the referer for the page; returns an async context manager
# whose value has ``async capture(url) -> PageSnapshot``.
SessionFactory = Callable[[Optional[str]], AsyncContextManager]


def build_record(url: str, snapshot: PageSnapshot, profile: SiteProfile) -> ProductRecord:
    """
    Build a product record from a captured page.

    Image URLs come from fusing all page signals; when fusion finds nothing
    the profile's selector images are used, then its fallback images.
    """
    tree = HTMLParser(snapshot.html)
    record = profile.extract_record(tree, url)

    fused = merge_image_sources(
        dom_images=harvest_dom_images(tree),
        network_images=snapshot.network_images,
        meta_images=extract_meta_images(tree),
        embedded_images=extract_embedded_image_urls(snapshot.html),
        matcher=profile.cdn_matcher(url),
    )

    if fused:
        logger.info(f"Using {len(fused)} images from merged sources")
        return replace(record, image_urls=tuple(fused))

    if not record.image_urls and profile.fallback_images:
        return replace(record, image_urls=tuple(profile.fallback_images))

    return record


class ProductExtractor:
    """Extract a ProductRecord from a product page URL."""

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize extractor.

        Args:
            session_factory: Builds a browser session for a referer
                (defaults to PlaywrightSession)
            timeout: Overall seconds allowed per extraction
        """
        self.session_factory = session_factory or (lambda referer: PlaywrightSession(referer=referer))
        self.timeout = timeout if timeout is not None else settings.extraction_timeout_seconds

    async def extract(self, url: str) -> ExtractionResult:
        """
        Extract product data from a URL.

        Never raises for extraction problems: session setup, navigation,
        parsing and timeouts all produce a Fallback with a mock record.

        Args:
            url: Product page URL

        Returns:
            Extracted(record) or Fallback(record, reason)
        """
        profile = get_profile_for_url(url)
        start = time.monotonic()

        try:
            snapshot = await asyncio.wait_for(self._capture(url, profile), timeout=self.timeout)
            record = build_record(url, snapshot, profile)
        except asyncio.TimeoutError:
            return self._fallback(url, profile, f"Extraction timed out after {self.timeout}s")
        except Exception as e:
            logger.error(f"Scraping failed for {url}: {type(e).__name__}: {e}")
            return self._fallback(url, profile, f"{type(e).__name__}: {e}")
        finally:
            extraction_duration_seconds.labels(site=profile.site).observe(time.monotonic() - start)

        extraction_results_total.labels(site=profile.site, outcome="extracted").inc()
        return Extracted(record)

    async def _capture(self, url: str, profile: SiteProfile) -> PageSnapshot:
        async with self.session_factory(profile.referer_for(url)) as session:
            return await session.capture(url)

    @staticmethod
    def _fallback(url: str, profile: SiteProfile, reason: str) -> Fallback:
        extraction_results_total.labels(site=profile.site, outcome="fallback").inc()
        logger.warning(f"Using mock product data for {url}: {reason}")
        return Fallback(record=random_mock_product(), reason=reason)
