"""Tests for PlaywrightSession lifecycle and capture, with Playwright mocked."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from scraper_service.config import settings
from scraper_service.ingest.browser_session import PlaywrightSession
from scraper_service.ingest.errors import ExtractionFailure

PAGE_URL = "https://us.shein.com/Dress-p-1.html"


def make_response(url: str, resource_type: str) -> MagicMock:
    response = MagicMock()
    response.url = url
    response.request.resource_type = resource_type
    return response


def make_playwright(page=None):
    """Build a mocked async_playwright() chain: playwright -> browser -> context -> page."""
    page = page or MagicMock()
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()

    factory = MagicMock()
    factory.return_value.start = AsyncMock(return_value=playwright)
    return factory, playwright, browser, context


def make_page(html: str = "<html><img src='a.jpg'></html>") -> MagicMock:
    page = MagicMock()
    page.goto = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.evaluate = AsyncMock()
    page.content = AsyncMock(return_value=html)
    page.url = PAGE_URL
    return page


@pytest.fixture(autouse=True)
def no_scroll_delay(monkeypatch):
    monkeypatch.setattr(settings, "scroll_settle_seconds", 0)


class TestSessionLifecycle:
    """Test browser startup and teardown."""

    @pytest.mark.asyncio
    async def test_context_created_with_browser_identity(self):
        factory, playwright, browser, _ = make_playwright()

        with patch("scraper_service.ingest.browser_session.async_playwright", factory):
            async with PlaywrightSession(referer="https://us.shein.com/", headless=True):
                pass

        playwright.chromium.launch.assert_awaited_once()
        assert playwright.chromium.launch.call_args.kwargs["headless"] is True
        context_kwargs = browser.new_context.call_args.kwargs
        assert context_kwargs["user_agent"] == settings.user_agent
        assert context_kwargs["extra_http_headers"]["Referer"] == "https://us.shein.com/"

    @pytest.mark.asyncio
    async def test_launch_failure_still_stops_playwright(self):
        factory, playwright, _, _ = make_playwright()
        playwright.chromium.launch = AsyncMock(side_effect=PlaywrightError("executable missing"))

        with patch("scraper_service.ingest.browser_session.async_playwright", factory):
            with pytest.raises(PlaywrightError):
                async with PlaywrightSession():
                    pass

        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_continues_past_failures(self):
        factory, playwright, browser, context = make_playwright()
        context.close = AsyncMock(side_effect=Exception("context already gone"))
        browser.close = AsyncMock(side_effect=Exception("browser crashed"))

        session = PlaywrightSession()
        with patch("scraper_service.ingest.browser_session.async_playwright", factory):
            await session.start()
        await session.close()

        context.close.assert_awaited_once()
        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()
        assert session._context is None
        assert session._browser is None
        assert session._playwright is None

    @pytest.mark.asyncio
    async def test_session_closed_when_capture_fails(self):
        page = make_page()
        page.goto = AsyncMock(side_effect=PlaywrightTimeoutError("30000ms exceeded"))
        factory, playwright, browser, context = make_playwright(page)

        with patch("scraper_service.ingest.browser_session.async_playwright", factory):
            with pytest.raises(ExtractionFailure, match="Navigation timeout"):
                async with PlaywrightSession() as session:
                    await session.capture(PAGE_URL)

        context.close.assert_awaited_once()
        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()


class TestCapture:
    """Test page capture."""

    def test_only_image_responses_recorded(self):
        session = PlaywrightSession()
        session._record_response(make_response("https://img.ltwebstatic.com/a.jpg", "image"))
        session._record_response(make_response("https://us.shein.com/app.js", "script"))
        session._record_response(make_response("https://us.shein.com/api/goods", "fetch"))
        session._record_response(make_response("https://img.ltwebstatic.com/a.jpg", "image"))

        assert session._network_images == ["https://img.ltwebstatic.com/a.jpg"]

    @pytest.mark.asyncio
    async def test_capture_returns_html_and_network_images(self):
        page = make_page()

        async def goto(url, **kwargs):
            handler = page.on.call_args.args[1]
            handler(make_response("https://img.ltwebstatic.com/b.jpg", "image"))
            handler(make_response("https://us.shein.com/style.css", "stylesheet"))

        page.goto = AsyncMock(side_effect=goto)
        factory, _, _, _ = make_playwright(page)

        with patch("scraper_service.ingest.browser_session.async_playwright", factory):
            async with PlaywrightSession() as session:
                snapshot = await session.capture(PAGE_URL)

        assert snapshot.url == PAGE_URL
        assert snapshot.final_url == PAGE_URL
        assert snapshot.html == "<html><img src='a.jpg'></html>"
        assert snapshot.network_images == ["https://img.ltwebstatic.com/b.jpg"]
        assert page.goto.call_args.kwargs["wait_until"] == "networkidle"
        assert page.evaluate.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_images_do_not_fail_capture(self):
        page = make_page("<html><p>no images yet</p></html>")
        page.wait_for_selector = AsyncMock(side_effect=PlaywrightTimeoutError("5000ms exceeded"))
        factory, _, _, _ = make_playwright(page)

        with patch("scraper_service.ingest.browser_session.async_playwright", factory):
            async with PlaywrightSession() as session:
                snapshot = await session.capture(PAGE_URL)

        assert snapshot.html == "<html><p>no images yet</p></html>"
        page.evaluate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_navigation_error_raises_extraction_failure(self):
        page = make_page()
        page.goto = AsyncMock(side_effect=PlaywrightError("net::ERR_NAME_NOT_RESOLVED"))
        factory, _, _, _ = make_playwright(page)

        with patch("scraper_service.ingest.browser_session.async_playwright", factory):
            async with PlaywrightSession() as session:
                with pytest.raises(ExtractionFailure, match="ERR_NAME_NOT_RESOLVED"):
                    await session.capture(PAGE_URL)

    @pytest.mark.asyncio
    async def test_capture_before_start_fails(self):
        with pytest.raises(ExtractionFailure, match="not started"):
            await PlaywrightSession().capture(PAGE_URL)
