"""Prometheus metrics for the Product Scraper Service."""

from prometheus_client import Counter, Histogram, Info

# Application info
app_info = Info("product_scraper", "Product Scraper Service application info")
app_info.info({"version": "0.1.0", "name": "product-scraper-service"})

# Scrape request metrics
scrape_requests_total = Counter(
    "scrape_requests_total",
    "Total number of scrape requests",
    ["status"],
)

# Extraction metrics
extraction_results_total = Counter(
    "extraction_results_total",
    "Total number of page extractions by outcome",
    ["site", "outcome"],
)

extraction_duration_seconds = Histogram(
    "extraction_duration_seconds",
    "Time spent extracting a product page",
    ["site"],
    buckets=[1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0, 90.0],
)

# Image download metrics
image_downloads_total = Counter(
    "image_downloads_total",
    "Total number of image downloads by result",
    ["status"],
)

image_candidate_failures_total = Counter(
    "image_candidate_failures_total",
    "Total number of failed image candidate attempts",
    ["reason"],
)

# Image proxy metrics
image_proxy_requests_total = Counter(
    "image_proxy_requests_total",
    "Total number of image proxy requests",
    ["status"],
)
