"""FastAPI dependencies."""

from functools import lru_cache

from fastapi import Depends

from scraper_service.ingest.extractor import ProductExtractor
from scraper_service.ingest.image_downloader import ImageDownloader
from scraper_service.ingest.image_proxy import ImageProxy
from scraper_service.ingest.scrape_service import ScrapeService


@lru_cache
def get_image_downloader() -> ImageDownloader:
    """Shared downloader bound to the configured download directory."""
    return ImageDownloader()


@lru_cache
def get_product_extractor() -> ProductExtractor:
    """Shared extractor; each extraction opens its own browser session."""
    return ProductExtractor()


@lru_cache
def get_image_proxy() -> ImageProxy:
    return ImageProxy()


def get_scrape_service(
    extractor: ProductExtractor = Depends(get_product_extractor),
    downloader: ImageDownloader = Depends(get_image_downloader),
) -> ScrapeService:
    """Dependency for the scrape orchestrator."""
    return ScrapeService(extractor=extractor, downloader=downloader)
