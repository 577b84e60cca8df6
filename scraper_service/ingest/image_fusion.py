"""Merge image URLs collected from several page signals.

Collection (DOM, network, meta tags, raw HTML) happens elsewhere; this module
only decides which collected URLs make it into a product record.
"""

import logging
import re
from typing import Callable, Iterable, List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from selectolax.parser import HTMLParser

from scraper_service.config import settings
from scraper_service.ingest.candidates import upgrade_size

logger = logging.getLogger(__name__)

GALLERY_CONTAINER_SELECTORS = [
    '[class*="product-intro"]',
    '[class*="product-gallery"]',
    '[data-testid*="gallery"]',
]

IMAGE_SOURCE_ATTRIBUTES = ("src", "data-src", "data-original")

META_IMAGE_SELECTORS = [
    'meta[property="og:image"]',
    'meta[name="og:image"]',
    'meta[property="twitter:image"]',
    'meta[name="twitter:image"]',
]

DOM_ASSET_PATTERN = re.compile(r"sprite|icon|logo", re.IGNORECASE)
ASSET_PATTERN = re.compile(r"sprite|icon|logo|placeholder", re.IGNORECASE)

# Explicit small-size tokens, or WxH suffixes with two-digit dimensions
TINY_THUMBNAIL_PATTERN = re.compile(r"(?:[_-]\d{2}x\d{2}\.)|(?:_(?:60x|80x|100x))")


def absolutize_scheme(url: str) -> str:
    """Turn a scheme-relative URL into an https URL."""
    url = url.strip()
    return "https:" + url if url.startswith("//") else url


def is_tiny_thumbnail(url: str) -> bool:
    """Check if a URL names an image too small to be a product shot."""
    return bool(TINY_THUMBNAIL_PATTERN.search(url))


def image_source(attributes: dict) -> Optional[str]:
    """Read an img element's source, preferring src over lazy-load attributes."""
    for attr in IMAGE_SOURCE_ATTRIBUTES:
        value = attributes.get(attr)
        if value and value.strip():
            return value.strip()
    return None


def harvest_dom_images(tree: HTMLParser) -> List[str]:
    """
    Collect image URLs from img elements.

    Product gallery containers are preferred; the whole document is scanned
    only when no gallery container exists. Sprite, icon and logo assets are
    dropped.
    """
    containers = []
    for selector in GALLERY_CONTAINER_SELECTORS:
        containers.extend(tree.css(selector))

    if containers:
        img_nodes = [img for container in containers for img in container.css("img")]
    else:
        img_nodes = tree.css("img")

    images: List[str] = []
    for img in img_nodes:
        source = image_source(img.attributes)
        if not source:
            continue
        url = absolutize_scheme(source)
        if DOM_ASSET_PATTERN.search(url):
            continue
        if url not in images:
            images.append(url)

    logger.debug(f"Harvested {len(images)} DOM images ({len(containers)} gallery containers)")
    return images


def extract_meta_images(tree: HTMLParser) -> List[str]:
    """Collect og:image / twitter:image meta tag contents."""
    images: List[str] = []
    for selector in META_IMAGE_SELECTORS:
        for node in tree.css(selector):
            content = node.attributes.get("content")
            if content and content.strip() and content.strip() not in images:
                images.append(content.strip())
    return images


def upgrade_image_url(url: str, size: str = "750x") -> str:
    """Upgrade an image URL to a larger size, leaving tiny thumbnails alone."""
    if is_tiny_thumbnail(url):
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    return urlunsplit(parts._replace(path=upgrade_size(parts.path, size)))


def merge_image_sources(
    dom_images: Sequence[str],
    network_images: Sequence[str],
    meta_images: Sequence[str],
    embedded_images: Sequence[str],
    matcher: Callable[[str], bool],
    max_images: Optional[int] = None,
) -> List[str]:
    """
    Fuse image URLs from all page signals into one ranked list.

    Any one signal finding an image is enough for inclusion. URLs are
    normalised to https, filtered to the site's CDN, stripped of non-product
    assets, upgraded to 750x, deduplicated and truncated.

    Args:
        dom_images: URLs from img elements
        network_images: URLs of image responses observed by the browser
        meta_images: URLs from og:image / twitter:image tags
        embedded_images: URLs found by scanning raw HTML
        matcher: Returns True for URLs on the site's image CDN
        max_images: Maximum number of URLs to return

    Returns:
        Ordered list of unique image URLs
    """
    limit = max_images if max_images is not None else settings.max_fused_images

    union: Iterable[str] = (
        *dom_images,
        *network_images,
        *meta_images,
        *embedded_images,
    )

    merged: List[str] = []
    for raw in union:
        if not raw:
            continue
        url = absolutize_scheme(raw)
        if not matcher(url):
            continue
        if ASSET_PATTERN.search(url):
            continue
        url = upgrade_image_url(url)
        if url not in merged:
            merged.append(url)
        if len(merged) >= limit:
            break

    return merged
