"""Tests for ProductExtractor with a fake browser session."""

import asyncio
from decimal import Decimal

import pytest

from scraper_service.ingest.base import Extracted, Fallback, PageSnapshot
from scraper_service.ingest.errors import ExtractionFailure
from scraper_service.ingest.extractor import ProductExtractor, build_record
from scraper_service.ingest.mock_data import MOCK_PRODUCTS
from scraper_service.ingest.sites import SheinProfile, SiteProfile

GENERIC_URL = "https://www.example.com/p/lamp"
SHEIN_URL = "https://us.shein.com/Linen-Shirt-p-42.html"

LAMP_PAGE = """
<html>
<body>
    <h1>Desk Lamp</h1>
    <span class="price">$12.00</span>
    <div class="product-gallery">
        <img src="https://cdn.example.com/img.jpg">
    </div>
</body>
</html>
"""


class FakeSession:
    """Stands in for PlaywrightSession."""

    def __init__(self, snapshot=None, error=None, delay=0.0):
        self.snapshot = snapshot
        self.error = error
        self.delay = delay
        self.entered = False
        self.closed = False
        self.captured = []

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    async def capture(self, url):
        self.captured.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.snapshot


class SessionRecorder:
    """Session factory that remembers the referers it was called with."""

    def __init__(self, session):
        self.session = session
        self.referers = []

    def __call__(self, referer):
        self.referers.append(referer)
        return self.session


class TestProductExtractor:
    """Test ProductExtractor.extract."""

    @pytest.mark.asyncio
    async def test_extracted_record(self):
        snapshot = PageSnapshot(
            url=GENERIC_URL,
            html=LAMP_PAGE,
            network_images=[
                "https://cdn.example.com/img_750x.jpg",
                "https://tracker.other.com/pixel.gif",
            ],
        )
        session = FakeSession(snapshot=snapshot)
        extractor = ProductExtractor(session_factory=SessionRecorder(session))

        result = await extractor.extract(GENERIC_URL)

        assert isinstance(result, Extracted)
        assert result.status == "extracted"
        assert result.reason is None
        assert result.record.name == "Desk Lamp"
        assert result.record.price == Decimal("12.00")
        assert result.record.image_urls == ("https://cdn.example.com/img_750x.jpg",)
        assert session.captured == [GENERIC_URL]
        assert session.closed

    @pytest.mark.asyncio
    async def test_navigation_failure_falls_back(self):
        session = FakeSession(error=ExtractionFailure(GENERIC_URL, "Navigation timeout"))
        extractor = ProductExtractor(session_factory=SessionRecorder(session))

        result = await extractor.extract(GENERIC_URL)

        assert isinstance(result, Fallback)
        assert result.is_fallback
        assert result.record in MOCK_PRODUCTS
        assert "Navigation timeout" in result.reason
        assert session.closed

    @pytest.mark.asyncio
    async def test_session_factory_failure_falls_back(self):
        def broken_factory(referer):
            raise RuntimeError("browser executable not found")

        extractor = ProductExtractor(session_factory=broken_factory)
        result = await extractor.extract(GENERIC_URL)

        assert result.status == "fallback"
        assert "RuntimeError" in result.reason

    @pytest.mark.asyncio
    async def test_timeout_falls_back_and_closes_session(self):
        session = FakeSession(snapshot=PageSnapshot(url=GENERIC_URL, html=""), delay=5)
        extractor = ProductExtractor(session_factory=SessionRecorder(session), timeout=0.05)

        result = await extractor.extract(GENERIC_URL)

        assert isinstance(result, Fallback)
        assert "timed out" in result.reason
        assert session.closed

    @pytest.mark.asyncio
    async def test_referer_per_site(self):
        snapshot = PageSnapshot(url=SHEIN_URL, html="<html></html>")
        shein = SessionRecorder(FakeSession(snapshot=snapshot))
        await ProductExtractor(session_factory=shein).extract(SHEIN_URL)

        generic = SessionRecorder(FakeSession(snapshot=PageSnapshot(url=GENERIC_URL, html="")))
        await ProductExtractor(session_factory=generic).extract(GENERIC_URL)

        assert shein.referers == ["https://us.shein.com/"]
        assert generic.referers == ["https://www.example.com/"]

    @pytest.mark.asyncio
    async def test_network_images_filtered_to_cdn(self):
        snapshot = PageSnapshot(
            url=SHEIN_URL,
            html="<html></html>",
            network_images=[
                "https://img.ltwebstatic.com/images3_pi/a.jpg",
                "https://www.google-analytics.com/collect.gif",
                "https://img.ltwebstatic.com/images3_pi/sprite.png",
            ],
        )
        extractor = ProductExtractor(session_factory=SessionRecorder(FakeSession(snapshot=snapshot)))

        result = await extractor.extract(SHEIN_URL)

        assert result.status == "extracted"
        assert result.record.image_urls == ("https://img.ltwebstatic.com/images3_pi/a_750x.jpg",)


class TestBuildRecord:
    """Test build_record image source precedence."""

    def test_selector_images_kept_when_fusion_empty(self):
        html = '<div class="product-images"><img src="https://static.othercdn.net/a.jpg"></div>'
        record = build_record(GENERIC_URL, PageSnapshot(url=GENERIC_URL, html=html), SiteProfile())
        assert record.image_urls == ("https://static.othercdn.net/a.jpg",)

    def test_generic_fallback_images(self):
        record = build_record(GENERIC_URL, PageSnapshot(url=GENERIC_URL, html="<p>empty</p>"), SiteProfile())
        assert record.image_urls == SiteProfile.fallback_images

    def test_shein_never_uses_off_cdn_placeholders(self):
        record = build_record(SHEIN_URL, PageSnapshot(url=SHEIN_URL, html="<p>empty</p>"), SheinProfile())
        assert record.image_urls == ()

    def test_shein_rejects_off_cdn_hosts_with_vendor_name_in_path(self):
        html = """
            <head><meta property="og:image" content="https://tracker.example.net/shein/og.jpg"></head>
            <div class="product-intro">
                <img src="https://images.unsplash.com/shein-dress.jpg">
                <img src="https://img.ltwebstatic.com/images3_pi/dress.jpg">
            </div>
        """
        snapshot = PageSnapshot(
            url=SHEIN_URL,
            html=html,
            network_images=["https://evil.example.org/pixel?ref=shein.png"],
        )

        record = build_record(SHEIN_URL, snapshot, SheinProfile())

        assert record.image_urls == ("https://img.ltwebstatic.com/images3_pi/dress_750x.jpg",)
