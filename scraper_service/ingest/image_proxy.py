"""Passthrough image proxy for CDNs that reject cross-origin browser requests."""

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional
from urllib.parse import urlparse

import httpx

from scraper_service.config import settings
from scraper_service.ingest.header_builder import HeaderBuilder, header_builder

logger = logging.getLogger(__name__)


class ImageProxyError(RuntimeError):
    """Raised when an image cannot be proxied; carries the HTTP status to return."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass
class ProxiedImage:
    """An open upstream image response. Must be closed after streaming."""

    response: httpx.Response
    client: httpx.AsyncClient

    @property
    def content_type(self) -> str:
        return self.response.headers.get("content-type") or "image/jpeg"

    def iter_bytes(self) -> AsyncIterator[bytes]:
        return self.response.aiter_bytes()

    async def aclose(self) -> None:
        await self.response.aclose()
        await self.client.aclose()


class ImageProxy:
    """Opens remote images for streaming back to the caller."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        headers: Optional[HeaderBuilder] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout if timeout is not None else settings.proxy_timeout_seconds
        self.headers = headers or header_builder
        self._transport = transport

    async def open(self, url: Optional[str]) -> ProxiedImage:
        """
        Open a remote image.

        Args:
            url: Absolute image URL

        Returns:
            ProxiedImage positioned at the start of the body

        Raises:
            ImageProxyError: 400 for a missing/invalid URL, 404 for upstream
                non-200, 408 on timeout, 500 on other fetch errors
        """
        if not url:
            raise ImageProxyError(400, "URL parameter is required")

        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ImageProxyError(400, "Invalid URL")

        client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            transport=self._transport,
        )
        try:
            request = client.build_request("GET", url, headers=self.headers.build_image_headers())
            response = await client.send(request, stream=True)
        except httpx.TimeoutException:
            await client.aclose()
            raise ImageProxyError(408, "Request timeout")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            await client.aclose()
            logger.error(f"Error fetching image {url}: {e}")
            raise ImageProxyError(500, "Failed to fetch image")

        if response.status_code != 200:
            await response.aclose()
            await client.aclose()
            raise ImageProxyError(404, "Image not found")

        return ProxiedImage(response=response, client=client)
