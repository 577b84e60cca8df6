"""Product scraping routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from scraper_service.api.deps import get_scrape_service
from scraper_service.ingest.errors import OrchestrationFailure, ValidationError
from scraper_service.ingest.scrape_service import ScrapeService
from scraper_service.metrics import scrape_requests_total

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["scrape"])


class ScrapeRequest(BaseModel):
    url: Optional[str] = None


class ProductData(BaseModel):
    name: str
    description: str
    price: float
    currency: str
    colors: List[str]
    sizes: List[str]
    image_urls: List[str]


class ExtractionInfo(BaseModel):
    status: str
    reason: Optional[str] = None


class ScrapeResponse(BaseModel):
    success: bool = True
    data: ProductData
    extraction: ExtractionInfo


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@router.post("/scrape", response_model=ScrapeResponse)
async def scrape_product(
    request: Request,
    payload: Optional[ScrapeRequest] = Body(default=None),
    service: ScrapeService = Depends(get_scrape_service),
):
    """
    Scrape a product page.

    Extraction and image download problems are absorbed: the response is a
    200 with either scraped or fallback data. `extraction.status` tells the
    two apart.
    """
    url = payload.url if payload else None

    try:
        result = await service.scrape(url, public_base_url=str(request.base_url))
    except ValidationError as e:
        scrape_requests_total.labels(status="invalid").inc()
        return _error(400, str(e))
    except OrchestrationFailure as e:
        scrape_requests_total.labels(status="error").inc()
        logger.error(f"Scraping error for {url}: {e}")
        return _error(500, str(e) or "Failed to scrape product data")

    scrape_requests_total.labels(status=result.extraction.status).inc()
    return ScrapeResponse(
        data=ProductData(**result.record.to_dict()),
        extraction=ExtractionInfo(
            status=result.extraction.status,
            reason=result.extraction.reason,
        ),
    )
