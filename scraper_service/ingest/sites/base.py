"""Site profile base class and the generic e-commerce profile."""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from selectolax.parser import HTMLParser, Node

from scraper_service.config import settings
from scraper_service.ingest.base import ProductRecord
from scraper_service.ingest.header_builder import HeaderBuilder

logger = logging.getLogger(__name__)

PRICE_PATTERN = re.compile(r"\d[\d,]*(?:\.\d+)?")

# Currency markers checked in order; anything else is USD
CURRENCY_MARKERS = [
    ("€", "EUR"),
    ("£", "GBP"),
    ("CAD", "CAD"),
]


def clean_text(node: Optional[Node]) -> str:
    """Get an element's text with whitespace collapsed."""
    if node is None:
        return ""
    return " ".join(node.text(separator=" ").split())


def first_text(tree: HTMLParser, selectors: List[str]) -> Tuple[Optional[str], str]:
    """
    Try selectors in order and return the first non-empty match.

    Only the first element each selector matches is considered.

    Returns:
        Tuple of (matched_selector, text) or (None, "")
    """
    for i, selector in enumerate(selectors):
        try:
            node = tree.css_first(selector)
        except Exception as e:
            logger.debug(f"Selector {i+1}/{len(selectors)} error: {selector[:50]}... - {e}")
            continue
        text = clean_text(node)
        if text:
            logger.debug(f"Selector {i+1}/{len(selectors)} matched: {selector[:50]}")
            return selector, text
    return None, ""


def parse_price(price_text: str) -> Tuple[Optional[Decimal], str]:
    """
    Parse an amount and currency code from price text.

    Returns:
        Tuple of (amount or None, ISO currency code)
    """
    currency = "USD"
    for marker, code in CURRENCY_MARKERS:
        if marker in price_text:
            currency = code
            break

    match = PRICE_PATTERN.search(price_text)
    if not match:
        return None, currency

    try:
        return Decimal(match.group(0).replace(",", "")), currency
    except InvalidOperation:
        return None, currency


def unique_capped(values: Iterable[str], limit: int) -> List[str]:
    """Deduplicate non-empty values preserving order, up to ``limit`` items."""
    result: List[str] = []
    for value in values:
        if value and value not in result:
            result.append(value)
            if len(result) >= limit:
                break
    return result


def base_domain(hostname: str) -> str:
    """Get the last two labels of a hostname (shop.example.com -> example.com)."""
    labels = [label for label in hostname.lower().split(".") if label]
    return ".".join(labels[-2:])


class SiteProfile:
    """
    Generic e-commerce extraction profile.

    Subclasses override the selector cascades, defaults and CDN matching
    for a specific site.
    """

    site: str = "generic"

    name_selectors: List[str] = [
        'h1[data-testid="product-title"]',
        'h1.product-title',
        'h1#product-title',
        '.product-name h1',
        '.product-title h1',
        '[data-automation-id="product-title"]',
        '.pdp-product-name',
        '.product-name',
        'h1',
    ]
    price_selectors: List[str] = [
        '[data-testid="price"]',
        '.price-current',
        '.product-price',
        '.price',
        '[data-automation-id="product-price"]',
        '.pdp-price',
        '.current-price',
        '.sale-price',
    ]
    description_selectors: List[str] = [
        '[data-testid="product-description"]',
        '.product-description',
        '.product-details',
        '.product-info',
        '.description',
        '.pdp-description',
    ]
    image_selectors: List[str] = [
        '.product-images img',
        '.product-gallery img',
        '[data-testid="product-image"]',
        '.pdp-images img',
        '.gallery img',
    ]

    color_keywords: List[str] = ["color", "colour"]
    size_keywords: List[str] = ["size", "sizes"]

    max_selector_images: int = 5
    truncate_description: bool = True

    default_description: str = "Product description not available"
    default_price: Decimal = Decimal("0.00")
    default_colors: Tuple[str, ...] = ("Standard",)
    default_sizes: Tuple[str, ...] = ("One Size",)
    fallback_images: Tuple[str, ...] = (
        "https://images.unsplash.com/photo-1555041469-a586c61ea9bc?w=400",
    )

    def matches(self, hostname: str) -> bool:
        """Check if this profile handles a hostname."""
        return True

    def default_name(self, url: str) -> str:
        return f"Product from {urlparse(url).hostname or 'unknown site'}"

    def referer_for(self, url: str) -> str:
        """Referer to send when downloading this page's images."""
        return HeaderBuilder.homepage_for(url) or settings.default_referer

    def cdn_matcher(self, url: str) -> Callable[[str], bool]:
        """
        Build a predicate accepting image URLs hosted by this site.

        The generic profile accepts any host under the page's base domain,
        so cdn.example.com images are accepted for www.example.com pages.
        """
        domain = base_domain(urlparse(url).hostname or "")

        def matcher(image_url: str) -> bool:
            try:
                host = (urlparse(image_url).hostname or "").lower()
            except ValueError:
                return False
            if not host or not domain:
                return False
            return host == domain or host.endswith("." + domain)

        return matcher

    def extract_record(self, tree: HTMLParser, url: str) -> ProductRecord:
        """
        Extract textual product fields and selector-based images.

        Args:
            tree: Parsed page HTML
            url: Product page URL

        Returns:
            ProductRecord with defaults filled in for missing fields
        """
        _, name = first_text(tree, self.name_selectors)

        price: Optional[Decimal] = None
        currency = "USD"
        price_selector, price_text = first_text(tree, self.price_selectors)
        if price_selector:
            price, currency = parse_price(price_text)

        _, description = first_text(tree, self.description_selectors)
        if description and self.truncate_description:
            description = description[:settings.description_max_length]

        colors = self.extract_colors(tree)
        sizes = self.extract_sizes(tree)
        images = self.extract_images(tree, url)

        logger.info(
            f"[{self.site}] Extracted name={name[:60]!r} price={price} {currency} "
            f"colors={len(colors)} sizes={len(sizes)} images={len(images)}"
        )

        return ProductRecord(
            name=name or self.default_name(url),
            description=description or self.default_description,
            price=price if price else self.default_price,
            currency=currency,
            colors=tuple(colors) or self.default_colors,
            sizes=tuple(sizes) or self.default_sizes,
            image_urls=tuple(images),
        )

    def extract_colors(self, tree: HTMLParser) -> List[str]:
        return self._extract_options(tree, self.color_keywords)

    def extract_sizes(self, tree: HTMLParser) -> List[str]:
        return self._extract_options(tree, self.size_keywords)

    def _extract_options(self, tree: HTMLParser, keywords: List[str]) -> List[str]:
        """Extract variant options from select elements and keyword-classed elements."""
        values: List[str] = []

        for keyword in keywords:
            for selector in (
                f'select[name*="{keyword}"] option',
                f'select[id*="{keyword}"] option',
            ):
                for option in tree.css(selector):
                    value = clean_text(option)
                    if value and value != "Select":
                        values.append(value)

            for node in tree.css(f'[class*="{keyword}"]'):
                value = clean_text(node)
                if value and len(value) < 20:
                    values.append(value)

        return unique_capped(values, settings.max_options)

    def extract_images(self, tree: HTMLParser, url: str) -> List[str]:
        """Collect gallery images from the first selector that yields any."""
        images: List[str] = []
        for selector in self.image_selectors:
            for img in tree.css(selector):
                src = img.attributes.get("src") or img.attributes.get("data-src")
                if not src or "placeholder" in src:
                    continue
                try:
                    image_url = urljoin(url, src.strip())
                except ValueError:
                    continue
                if image_url not in images:
                    images.append(image_url)
                if len(images) >= self.max_selector_images:
                    break
            if images:
                break
        return images
