"""Download product images and store them locally."""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence
from urllib.parse import urljoin, urlparse

import httpx

from scraper_service.config import settings
from scraper_service.ingest.candidates import build_candidates
from scraper_service.ingest.errors import DownloadCandidateFailure, DownloadExhausted
from scraper_service.ingest.header_builder import HeaderBuilder, header_builder
from scraper_service.logging_config import get_logger
from scraper_service.metrics import image_candidate_failures_total, image_downloads_total

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".avif", ".gif")

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/avif": ".avif",
    "image/gif": ".gif",
}

REDIRECT_STATUSES = {301, 302, 303, 307, 308}


@dataclass
class CandidateOutcome:
    """Result of one successful candidate request: a file or a redirect."""

    local_path: Optional[str] = None
    redirect_to: Optional[str] = None


def extension_from_content_type(content_type: str) -> Optional[str]:
    """Guess a file extension from a response content-type."""
    if not content_type:
        return None
    content_type = content_type.lower()
    for mime, ext in CONTENT_TYPE_EXTENSIONS.items():
        if mime in content_type:
            return ext
    return None


def choose_extension(url: str, content_type: str) -> str:
    """
    Pick the stored file extension for a downloaded image.

    Prefers the URL's own image extension, then the content-type table,
    then ``.jpg``. ``.jpeg`` is stored as ``.jpg``.
    """
    ext = Path(urlparse(url).path).suffix.lower()
    if ext not in IMAGE_EXTENSIONS:
        ext = extension_from_content_type(content_type) or ".jpg"
    if ext == ".jpeg":
        ext = ".jpg"
    return ext


class ImageDownloader:
    """Resolve image URLs to locally stored files, trying candidate variants."""

    def __init__(
        self,
        download_dir: str | Path | None = None,
        url_prefix: Optional[str] = None,
        timeout: Optional[float] = None,
        max_redirects: Optional[int] = None,
        headers: Optional[HeaderBuilder] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize image downloader.

        Args:
            download_dir: Directory for stored images
            url_prefix: Public path prefix the directory is served under
            timeout: Seconds allowed per candidate attempt
            max_redirects: Redirect hops followed per candidate
            headers: Header builder for outbound requests
            transport: Optional httpx transport (tests inject a mock here)
        """
        self.download_dir = Path(download_dir or settings.download_dir)
        self.url_prefix = (url_prefix or settings.images_url_prefix).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.image_download_timeout
        self.max_redirects = max_redirects if max_redirects is not None else settings.max_redirects
        self.headers = headers or header_builder
        self._transport = transport

        self.download_dir.mkdir(parents=True, exist_ok=True)

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=False,
            transport=self._transport,
        )

    def _local_path(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"

    def find_existing(self, basename: str) -> Optional[Path]:
        """Find a stored file for a basename under any image extension."""
        for ext in IMAGE_EXTENSIONS:
            path = self.download_dir / f"{basename}{ext}"
            if path.exists():
                return path
        return None

    def local_file(self, filename: str) -> Optional[Path]:
        """
        Resolve a served filename to a file in the download directory.

        Only bare filenames are accepted; anything with a path component
        resolves to None.
        """
        name = Path(filename).name
        if not name or name != filename:
            return None
        path = self.download_dir / name
        return path if path.is_file() else None

    async def download(
        self,
        image_url: str,
        product_id: str,
        index: int,
        referer: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> str:
        """
        Download one image, trying candidate URLs in priority order.

        Args:
            image_url: Discovered image URL
            product_id: Per-request product identifier
            index: Image index within the product
            referer: Referer header (defaults to the target site's homepage)
            client: Shared HTTP client (a private one is created if omitted)

        Returns:
            Local path the image is served under, e.g. /api/images/123_0.jpg

        Raises:
            DownloadExhausted: If no candidate yielded an image
        """
        basename = f"{product_id}_{index}"

        existing = self.find_existing(basename)
        if existing:
            image_downloads_total.labels(status="cached").inc()
            return self._local_path(existing.name)

        if client is None:
            async with self._build_client() as own_client:
                return await self._download_candidates(
                    own_client, image_url, basename, referer, product_id, index
                )

        return await self._download_candidates(
            client, image_url, basename, referer, product_id, index
        )

    async def _download_candidates(
        self,
        client: httpx.AsyncClient,
        image_url: str,
        basename: str,
        referer: Optional[str],
        product_id: str,
        index: int,
    ) -> str:
        log = get_logger(__name__, product_id=product_id, index=index)
        headers = self.headers.build_image_headers(referer)

        # (url, redirect hops taken to reach it)
        queue: deque[tuple[str, int]] = deque((c, 0) for c in build_candidates(image_url))
        attempts = 0

        while queue:
            url, hops = queue.popleft()
            attempts += 1

            try:
                outcome = await asyncio.wait_for(
                    self._try_candidate(client, url, headers, basename),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                self._record_failure(log, DownloadCandidateFailure(url, "timeout", kind="timeout"))
                continue
            except DownloadCandidateFailure as e:
                self._record_failure(log, e)
                continue

            if outcome.redirect_to:
                if hops >= self.max_redirects:
                    self._record_failure(
                        log,
                        DownloadCandidateFailure(
                            url, f"more than {self.max_redirects} redirects", kind="redirect_cap"
                        ),
                    )
                    continue
                queue.appendleft((outcome.redirect_to, hops + 1))
                continue

            image_downloads_total.labels(status="success").inc()
            log.info(f"Downloaded image {basename} from {url}")
            return outcome.local_path

        image_downloads_total.labels(status="exhausted").inc()
        raise DownloadExhausted(image_url, attempts)

    @staticmethod
    def _record_failure(log, error: DownloadCandidateFailure) -> None:
        image_candidate_failures_total.labels(reason=error.kind).inc()
        log.debug(f"Candidate failed, advancing: {error}")

    async def _try_candidate(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: dict[str, str],
        basename: str,
    ) -> CandidateOutcome:
        """
        Request one candidate URL.

        Raises:
            DownloadCandidateFailure: On bad status, wrong content-type,
                network error or write failure
        """
        try:
            async with client.stream("GET", url, headers=headers) as response:
                status = response.status_code

                if status in REDIRECT_STATUSES and response.headers.get("location"):
                    return CandidateOutcome(
                        redirect_to=urljoin(url, response.headers["location"])
                    )

                if status != 200:
                    raise DownloadCandidateFailure(
                        url, f"HTTP {status}", kind="status", status_code=status
                    )

                content_type = response.headers.get("content-type", "")
                if not content_type.lower().startswith("image/"):
                    raise DownloadCandidateFailure(
                        url, f"unexpected content-type {content_type!r}", kind="content_type"
                    )

                target = self.download_dir / f"{basename}{choose_extension(url, content_type)}"
                await self._write(response, target, url)
                return CandidateOutcome(local_path=self._local_path(target.name))

        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            raise DownloadCandidateFailure(
                url, f"{type(e).__name__}: {e}", kind="network"
            ) from e

    @staticmethod
    async def _write(response: httpx.Response, target: Path, url: str) -> None:
        """Stream a response body to disk, removing the file on any failure."""
        completed = False
        try:
            with open(target, "wb") as fh:
                async for chunk in response.aiter_bytes():
                    fh.write(chunk)
            completed = True
        except (OSError, httpx.HTTPError, httpx.StreamError) as e:
            raise DownloadCandidateFailure(url, f"write failed: {e}", kind="write") from e
        finally:
            if not completed:
                target.unlink(missing_ok=True)

    async def download_all(
        self,
        image_urls: Sequence[str],
        product_id: str,
        referer: Optional[str] = None,
    ) -> list[str]:
        """
        Download all images for a product concurrently.

        Individual failures are logged and dropped; the batch never fails
        as a whole. Result order follows the input order.

        Args:
            image_urls: Image URLs to download
            product_id: Per-request product identifier
            referer: Referer header for every request

        Returns:
            Local paths of the images that were stored
        """
        async with self._build_client() as client:
            results = await asyncio.gather(*(
                self._download_or_none(url, product_id, index, referer, client)
                for index, url in enumerate(image_urls)
            ))

        return [path for path in results if path is not None]

    async def _download_or_none(
        self,
        image_url: str,
        product_id: str,
        index: int,
        referer: Optional[str],
        client: httpx.AsyncClient,
    ) -> Optional[str]:
        try:
            return await self.download(image_url, product_id, index, referer=referer, client=client)
        except DownloadExhausted as e:
            logger.warning(f"Failed to download image {index} for product {product_id}: {e}")
            return None
        except Exception as e:
            logger.error(
                f"Unexpected error downloading image {index} for product {product_id}: "
                f"{type(e).__name__}: {e}"
            )
            return None
