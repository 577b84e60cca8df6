"""Headless browser session for capturing dynamic product pages."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Response,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from scraper_service.config import settings
from scraper_service.ingest.base import PageSnapshot
from scraper_service.ingest.errors import ExtractionFailure
from scraper_service.ingest.header_builder import HeaderBuilder, header_builder

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]

# Fractions of page height scrolled to, in order, to trigger lazy loading
SCROLL_STEPS = (1 / 3, 2 / 3)


class PlaywrightSession:
    """
    One headless Chromium session with a bounded lifetime.

    Use as an async context manager; the browser is always torn down on exit.
    Image responses observed while the page loads are recorded per session,
    which catches gallery images loaded by client-side JS.
    """

    def __init__(
        self,
        referer: Optional[str] = None,
        headless: Optional[bool] = None,
        headers: Optional[HeaderBuilder] = None,
    ):
        self.referer = referer
        self.headless = settings.browser_headless if headless is None else headless
        self.headers = headers or header_builder

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._network_images: List[str] = []

    async def __aenter__(self) -> "PlaywrightSession":
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Launch the browser and create a context with a browser identity."""
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=BROWSER_ARGS,
        )
        self._context = await self._browser.new_context(
            user_agent=self.headers.user_agent,
            extra_http_headers=self.headers.build_page_headers(self.referer),
            viewport={"width": settings.viewport_width, "height": settings.viewport_height},
        )

    async def close(self) -> None:
        """Close browser and cleanup."""
        if self._context:
            try:
                await self._context.close()
            except Exception as e:
                logger.error(f"Error closing browser context: {e}")
            self._context = None

        if self._browser:
            try:
                await self._browser.close()
            except Exception as e:
                logger.error(f"Error closing browser: {e}")
            self._browser = None

        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.error(f"Error stopping playwright: {e}")
            self._playwright = None

    def _record_response(self, response: Response) -> None:
        try:
            if response.request.resource_type == "image":
                url = response.url
                if url not in self._network_images:
                    self._network_images.append(url)
        except PlaywrightError:
            pass  # Response detached from a closed page

    async def capture(self, url: str) -> PageSnapshot:
        """
        Load a product page and capture its rendered HTML and image traffic.

        Args:
            url: Product page URL

        Returns:
            PageSnapshot of the rendered page

        Raises:
            ExtractionFailure: If the session is not started or navigation fails
        """
        if self._context is None:
            raise ExtractionFailure(url, "Browser session not started")

        page = await self._context.new_page()
        page.on("response", self._record_response)

        logger.debug(f"Navigating to {url}")
        try:
            await page.goto(
                url,
                wait_until="networkidle",
                timeout=settings.navigation_timeout_seconds * 1000,
            )
        except PlaywrightTimeoutError:
            raise ExtractionFailure(url, "Navigation timeout")
        except PlaywrightError as e:
            raise ExtractionFailure(url, str(e))

        await self._trigger_lazy_loading(page)

        html = await page.content()
        logger.info(
            f"Captured {url}: {len(html)} bytes HTML, "
            f"{len(self._network_images)} network images"
        )
        return PageSnapshot(
            url=url,
            final_url=page.url,
            html=html,
            network_images=list(self._network_images),
        )

    async def _trigger_lazy_loading(self, page: Page) -> None:
        """Scroll down the page in steps so lazy images load. Never fatal."""
        try:
            await page.wait_for_selector(
                "img", timeout=settings.img_wait_timeout_seconds * 1000
            )
            for fraction in SCROLL_STEPS:
                await page.evaluate(
                    f"() => window.scrollTo(0, document.body.scrollHeight * {fraction:.4f})"
                )
                await asyncio.sleep(settings.scroll_settle_seconds)
            logger.debug("Page scrolled and images should be loaded")
        except PlaywrightError as e:
            logger.info(f"Images may not have loaded properly, continuing: {e}")
