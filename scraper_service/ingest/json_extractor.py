"""Extract image URLs embedded in page scripts and raw HTML."""

import json
import logging
import re
from typing import Any, Callable, List

from selectolax.parser import HTMLParser

logger = logging.getLogger(__name__)

# Absolute image URLs anywhere in the markup, including inline JSON
EMBEDDED_IMAGE_PATTERN = re.compile(
    r"""https?://[^"'\s()<>\\]+?\.(?:jpe?g|png|webp|gif)""",
    re.IGNORECASE,
)

JSON_SCRIPT_SELECTORS = [
    'script[type="application/json"]',
    'script[type="application/ld+json"]',
]


def extract_embedded_image_urls(html: str) -> List[str]:
    """
    Scan raw HTML for absolute image URLs.

    Catches URLs inside inline JSON state that neither the DOM nor network
    capture see. JSON-escaped slashes are undone before scanning.

    Returns URLs in document order, deduplicated.
    """
    if not html:
        return []
    text = html.replace("\\/", "/")
    found = EMBEDDED_IMAGE_PATTERN.findall(text)
    return list(dict.fromkeys(found))


def extract_images_from_object(obj: Any, matcher: Callable[[str], bool]) -> List[str]:
    """
    Recursively collect string values accepted by ``matcher``.

    Scheme-relative values are returned as https URLs.
    """
    images: List[str] = []

    def traverse(item: Any) -> None:
        if isinstance(item, str):
            if matcher(item):
                url = "https:" + item if item.startswith("//") else item
                if url not in images:
                    images.append(url)
        elif isinstance(item, list):
            for value in item:
                traverse(value)
        elif isinstance(item, dict):
            for value in item.values():
                traverse(value)

    traverse(obj)
    return images


def extract_json_script_images(tree: HTMLParser, matcher: Callable[[str], bool]) -> List[str]:
    """
    Extract image URLs from JSON and JSON-LD script tags.

    Scripts that do not parse as JSON are skipped.
    """
    images: List[str] = []
    for selector in JSON_SCRIPT_SELECTORS:
        for script in tree.css(selector):
            content = script.text()
            if not content or not content.strip():
                continue
            try:
                data = json.loads(content)
            except json.JSONDecodeError:
                continue
            for url in extract_images_from_object(data, matcher):
                if url not in images:
                    images.append(url)

    if images:
        logger.debug(f"Found {len(images)} images in JSON script tags")
    return images
