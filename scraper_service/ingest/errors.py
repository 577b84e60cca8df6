"""Error types for the scrape pipeline.

Each failure kind is recovered at the smallest scope that can handle it:
candidate failures advance to the next candidate, exhausted downloads drop
one image, extraction failures become a fallback record. Only validation and
orchestration errors reach the HTTP layer.
"""

from typing import Optional


class ScraperError(Exception):
    """Base class for scrape pipeline errors."""
    pass


class ValidationError(ScraperError):
    """Scrape request input is missing or malformed."""
    pass


class ExtractionFailure(ScraperError):
    """Browser session or page parsing failed."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to extract {url}: {reason}")


class DownloadCandidateFailure(ScraperError):
    """One candidate URL for an image failed."""

    def __init__(
        self,
        url: str,
        reason: str,
        kind: str = "error",
        status_code: Optional[int] = None,
    ):
        self.url = url
        self.reason = reason
        self.kind = kind  # status, content_type, network, write, redirect_cap, timeout
        self.status_code = status_code
        super().__init__(f"Candidate {url} failed: {reason}")


class DownloadExhausted(ScraperError):
    """Every candidate URL for an image failed."""

    def __init__(self, image_url: str, attempts: int):
        self.image_url = image_url
        self.attempts = attempts
        super().__init__(f"Exhausted {attempts} candidates for {image_url}")


class OrchestrationFailure(ScraperError):
    """Unexpected error while assembling a scrape response."""
    pass
