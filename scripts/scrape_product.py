#!/usr/bin/env python3
"""
Scrape one product URL from the command line and print the result.

Usage:
    python scripts/scrape_product.py <url> [--download] [--headed]
"""

import argparse
import asyncio
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from scraper_service.ingest.browser_session import PlaywrightSession
from scraper_service.ingest.extractor import ProductExtractor
from scraper_service.ingest.image_downloader import ImageDownloader
from scraper_service.ingest.scrape_service import new_product_id
from scraper_service.ingest.sites import get_profile_for_url
from scraper_service.logging_config import setup_logging


async def scrape(url: str, download: bool, headed: bool) -> int:
    extractor = ProductExtractor(
        session_factory=lambda referer: PlaywrightSession(referer=referer, headless=not headed)
    )
    result = await extractor.extract(url)
    record = result.record

    print("=== SCRAPING RESULT ===")
    print(f"Status: {result.status}")
    if result.is_fallback:
        print(f"Fallback reason: {result.reason}")
    print(f"Name: {record.name}")
    print(f"Price: {record.price} {record.currency}")
    print(f"Description: {record.description[:100]}...")
    print(f"Colors: {', '.join(record.colors)}")
    print(f"Sizes: {', '.join(record.sizes)}")
    print("")
    print("=== IMAGE URLS ===")
    for i, image_url in enumerate(record.image_urls, start=1):
        print(f"{i}. {image_url}")

    if download and record.image_urls:
        downloader = ImageDownloader()
        product_id = new_product_id()
        paths = await downloader.download_all(
            record.image_urls,
            product_id,
            referer=get_profile_for_url(url).referer_for(url),
        )
        print("")
        print(f"=== DOWNLOADED {len(paths)}/{len(record.image_urls)} ===")
        for path in paths:
            print(path)

    return 1 if result.is_fallback else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Scrape a product page")
    parser.add_argument("url", help="Product page URL")
    parser.add_argument("--download", action="store_true", help="Also download images")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(scrape(args.url, args.download, args.headed)))


if __name__ == "__main__":
    main()
