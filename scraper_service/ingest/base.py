"""Core data types for scraped product data."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, ClassVar, Union


@dataclass(frozen=True)
class ProductRecord:
    """Structured product data extracted from one page."""

    name: str
    description: str
    price: Decimal
    currency: str = "USD"
    colors: tuple[str, ...] = ()
    sizes: tuple[str, ...] = ()
    image_urls: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape returned by the API."""
        return {
            "name": self.name,
            "description": self.description,
            "price": float(self.price),
            "currency": self.currency,
            "colors": list(self.colors),
            "sizes": list(self.sizes),
            "image_urls": list(self.image_urls),
        }


@dataclass
class PageSnapshot:
    """Everything one browser session captured from a product page."""

    url: str
    html: str
    final_url: str = ""
    network_images: list[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.final_url:
            self.final_url = self.url


@dataclass(frozen=True)
class Extracted:
    """Extraction succeeded against the live page."""

    record: ProductRecord

    status: ClassVar[str] = "extracted"
    is_fallback: ClassVar[bool] = False

    @property
    def reason(self) -> None:
        return None


@dataclass(frozen=True)
class Fallback:
    """Extraction failed; record is canned mock data."""

    record: ProductRecord
    reason: str

    status: ClassVar[str] = "fallback"
    is_fallback: ClassVar[bool] = True


ExtractionResult = Union[Extracted, Fallback]
