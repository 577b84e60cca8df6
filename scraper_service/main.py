"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from scraper_service.config import settings
from scraper_service.api.routes import images, scrape

# Configure structured logging
from scraper_service.logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info(f"Starting Product Scraper Service (images in {settings.download_dir})...")

    yield

    # Shutdown
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Product Scraper Service",
    description="Extract product data from e-commerce pages and re-host images",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add Prometheus instrumentation
instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    should_respect_env_var=True,
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/metrics", "/health", "/favicon.ico"],
    inprogress_name="http_requests_inprogress",
    inprogress_labels=True,
)
instrumentator.instrument(app).expose(app, include_in_schema=True, tags=["monitoring"])

# Include API routes
app.include_router(scrape.router)
app.include_router(images.router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors in the service's {success, error} shape."""
    message = exc.detail
    if exc.status_code == 404 and message == "Not Found":
        message = "Endpoint not found"
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors, not schema dumps."""
    logger.debug(f"Rejected request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request body"},
    )


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "OK", "message": "Product Scraper Service is running"}


if __name__ == "__main__":
    # Run with uvicorn
    uvicorn.run(
        "scraper_service.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
