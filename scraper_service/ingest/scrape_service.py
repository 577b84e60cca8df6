"""Scrape orchestration: extract a product page and re-host its images."""

import logging
import time
import uuid
from dataclasses import dataclass, replace
from typing import Optional
from urllib.parse import urlparse

from scraper_service.config import settings
from scraper_service.ingest.base import ExtractionResult, ProductRecord
from scraper_service.ingest.errors import OrchestrationFailure, ScraperError, ValidationError
from scraper_service.ingest.extractor import ProductExtractor
from scraper_service.ingest.image_downloader import ImageDownloader
from scraper_service.ingest.sites import get_profile_for_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScrapeResult:
    """Final record plus how the extraction went."""

    record: ProductRecord
    extraction: ExtractionResult


def validate_url(url: Optional[str]) -> str:
    """
    Validate a scrape request URL.

    Raises:
        ValidationError: If the URL is missing or not an absolute http(s) URL
    """
    if not url or not url.strip():
        raise ValidationError("URL is required")

    url = url.strip()
    try:
        parsed = urlparse(url)
    except ValueError:
        raise ValidationError("Invalid URL format")

    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Invalid URL format")

    return url


def new_product_id() -> str:
    """Timestamp-derived identifier namespacing one request's image files."""
    return f"{int(time.time() * 1000)}{uuid.uuid4().hex[:6]}"


class ScrapeService:
    """Orchestrates extraction and image re-hosting for one request."""

    def __init__(self, extractor: ProductExtractor, downloader: ImageDownloader):
        self.extractor = extractor
        self.downloader = downloader

    async def scrape(self, url: Optional[str], public_base_url: str = "") -> ScrapeResult:
        """
        Scrape a product URL.

        Image download failures never fail the request: remote URLs are
        replaced with local copies only when at least one download worked.

        Args:
            url: Product page URL
            public_base_url: Prefix for local image paths in the response

        Returns:
            ScrapeResult with the final record

        Raises:
            ValidationError: If the URL is missing or malformed
            OrchestrationFailure: On any unexpected error
        """
        url = validate_url(url)
        logger.info(f"Scraping product from: {url}")

        try:
            extraction = await self.extractor.extract(url)
            record = extraction.record

            if record.image_urls:
                record = await self._rehost_images(url, record, public_base_url)

            return ScrapeResult(record=record, extraction=extraction)

        except ScraperError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error scraping {url}")
            raise OrchestrationFailure(str(e) or "Failed to scrape product data") from e

    async def _rehost_images(
        self,
        url: str,
        record: ProductRecord,
        public_base_url: str,
    ) -> ProductRecord:
        product_id = new_product_id()
        referer = get_profile_for_url(url).referer_for(url)

        logger.info(f"Downloading {len(record.image_urls)} images for product {product_id}...")
        local_paths = await self.downloader.download_all(
            record.image_urls, product_id, referer=referer
        )

        if not local_paths:
            logger.warning("Image download failed, using original URLs")
            return record

        base = (settings.public_base_url or public_base_url).rstrip("/")
        logger.info(f"Successfully downloaded {len(local_paths)} images")
        return replace(record, image_urls=tuple(f"{base}{path}" for path in local_paths))
