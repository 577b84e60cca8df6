"""Image serving and proxy routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse, JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from scraper_service.api.deps import get_image_downloader, get_image_proxy
from scraper_service.config import settings
from scraper_service.ingest.image_downloader import ImageDownloader
from scraper_service.ingest.image_proxy import ImageProxy, ImageProxyError
from scraper_service.metrics import image_proxy_requests_total

logger = logging.getLogger(__name__)

router = APIRouter(tags=["images"])


@router.get(settings.images_url_prefix.rstrip("/") + "/{filename}")
async def get_image(
    filename: str,
    downloader: ImageDownloader = Depends(get_image_downloader),
):
    """Serve a downloaded product image."""
    path = downloader.local_file(filename)
    if path is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return FileResponse(path)


@router.get("/proxy-image")
async def proxy_image(
    url: Optional[str] = Query(None, description="Remote image URL"),
    proxy: ImageProxy = Depends(get_image_proxy),
):
    """Stream a remote image through this service with permissive CORS."""
    try:
        image = await proxy.open(url)
    except ImageProxyError as e:
        image_proxy_requests_total.labels(status=str(e.status_code)).inc()
        return JSONResponse(
            status_code=e.status_code,
            content={"success": False, "error": e.message},
        )

    image_proxy_requests_total.labels(status="200").inc()
    return StreamingResponse(
        image.iter_bytes(),
        media_type=image.content_type,
        headers={
            "Cache-Control": f"public, max-age={settings.proxy_cache_max_age}",
            "Access-Control-Allow-Origin": "*",
        },
        background=BackgroundTask(image.aclose),
    )
