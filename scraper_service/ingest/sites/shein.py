"""SHEIN product page profile."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, List
from urllib.parse import urlsplit

from selectolax.parser import HTMLParser

from scraper_service.config import settings
from scraper_service.ingest.candidates import is_cdn_host
from scraper_service.ingest.image_fusion import (
    DOM_ASSET_PATTERN,
    absolutize_scheme,
    extract_meta_images,
    image_source,
    upgrade_image_url,
)
from scraper_service.ingest.json_extractor import extract_json_script_images
from scraper_service.ingest.sites.base import SiteProfile, clean_text, unique_capped

logger = logging.getLogger(__name__)

# Thumbnail markers skipped by the gallery cascade
SMALL_IMAGE_TOKENS = ["_thumb", "_thumbnail", "_60x", "_80x", "_100x"]


def is_shein_cdn_url(url: str) -> bool:
    """Check if a URL is hosted on the SHEIN image CDN (host only, not path or query)."""
    try:
        return is_cdn_host(urlsplit(url.strip()).hostname)
    except ValueError:
        return False


class SheinProfile(SiteProfile):
    """Extraction profile for SHEIN product pages and the ltwebstatic CDN."""

    site = "shein"

    name_selectors = [
        '[data-testid="product-title"]',
        '.product-intro__head-name',
        '.sui-atom-cropped-text',
        'h1',
    ]
    price_selectors = [
        '.original-price',
        '.product-intro__head-mainprice',
        '[class*="price-current"]',
        '[data-testid="price"]',
    ]
    description_selectors = [
        '.product-intro__head-detail',
        '.product-detail',
        '[data-testid="product-description"]',
    ]
    image_selectors = [
        # Prefer product gallery containers
        '[class*="product-intro"] img',
        '[class*="product-gallery"] img',
        '[data-testid*="gallery"] img',
        '.product-intro__head-gallery img',
        '.sui-image img',
        # Fallbacks
        'img[src*="ltwebstatic.com"]',
        'img[src*="shein"]',
    ]
    color_selectors = [
        '[data-testid="color-option"]',
        '.color-item',
        '[class*="color"]',
    ]
    size_selectors = [
        '[data-testid="size-option"]',
        '.size-item',
        '[class*="size"]',
    ]

    max_selector_images = 6
    truncate_description = False

    default_description = "Trendy fashion item from Shein"
    default_price = Decimal("9.99")
    default_colors = ("Black", "White")
    default_sizes = ("XS", "S", "M", "L", "XL")
    # Off-CDN placeholders would break the CDN-only guarantee
    fallback_images = ()

    def matches(self, hostname: str) -> bool:
        hostname = hostname.lower()
        return hostname == "shein.com" or hostname.endswith(".shein.com")

    def default_name(self, url: str) -> str:
        return "Shein Fashion Item"

    def referer_for(self, url: str) -> str:
        return settings.default_referer

    def cdn_matcher(self, url: str) -> Callable[[str], bool]:
        return is_shein_cdn_url

    def extract_colors(self, tree: HTMLParser) -> List[str]:
        values = []
        for selector in self.color_selectors:
            for node in tree.css(selector):
                title = (node.attributes.get("title") or "").strip()
                values.append(title or clean_text(node))
        return unique_capped(values, settings.max_options)

    def extract_sizes(self, tree: HTMLParser) -> List[str]:
        values = []
        for selector in self.size_selectors:
            for node in tree.css(selector):
                values.append(clean_text(node))
        return unique_capped(values, settings.max_options)

    def extract_images(self, tree: HTMLParser, url: str) -> List[str]:
        """
        Collect gallery images, falling back to meta tags and JSON scripts.

        Gallery images are CDN-only, skip thumbnails and are upgraded to 750x.
        """
        images = self._gallery_images(tree)

        if not images:
            for meta_url in extract_meta_images(tree):
                meta_url = absolutize_scheme(meta_url)
                if is_shein_cdn_url(meta_url) and meta_url not in images:
                    images.append(meta_url)

        if not images:
            logger.debug("No images found with standard selectors, trying script tags...")
            for script_url in extract_json_script_images(tree, is_shein_cdn_url):
                if len(images) >= self.max_selector_images:
                    break
                if script_url not in images:
                    images.append(script_url)

        return images

    def _gallery_images(self, tree: HTMLParser) -> List[str]:
        images: List[str] = []
        for selector in self.image_selectors:
            for img in tree.css(selector):
                if len(images) >= self.max_selector_images:
                    break
                source = image_source(img.attributes)
                if not source:
                    continue
                src = absolutize_scheme(source)
                if not is_shein_cdn_url(src) or DOM_ASSET_PATTERN.search(src):
                    continue
                if any(token in src for token in SMALL_IMAGE_TOKENS):
                    continue

                high_res = upgrade_image_url(src)
                if high_res not in images:
                    images.append(high_res)

            if images:
                logger.debug(f"Found {len(images)} images with selector: {selector}")
                break
        return images
