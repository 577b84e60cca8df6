"""Canned product records used when a page cannot be extracted."""

import random
from decimal import Decimal
from typing import Optional

from scraper_service.ingest.base import ProductRecord

MOCK_PRODUCTS = (
    ProductRecord(
        name="Premium Wireless Headphones",
        description=(
            "High-quality wireless headphones with noise cancellation and premium sound "
            "quality. Perfect for music lovers and professionals."
        ),
        price=Decimal("199.99"),
        currency="USD",
        colors=("Black", "White", "Silver"),
        sizes=("One Size",),
        image_urls=(
            "https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=400",
            "https://images.unsplash.com/photo-1484704849700-f032a568e944?w=400",
        ),
    ),
    ProductRecord(
        name="Smart Fitness Watch",
        description=(
            "Advanced fitness tracking watch with heart rate monitoring, GPS, and "
            "smartphone integration."
        ),
        price=Decimal("299.99"),
        currency="USD",
        colors=("Black", "White", "Rose Gold"),
        sizes=("38mm", "42mm", "46mm"),
        image_urls=(
            "https://images.unsplash.com/photo-1523275335684-37898b6baf30?w=400",
        ),
    ),
    ProductRecord(
        name="Comfortable Running Shoes",
        description=(
            "Lightweight running shoes designed for maximum comfort and performance "
            "during your workout sessions."
        ),
        price=Decimal("89.99"),
        currency="USD",
        colors=("White", "Black", "Blue", "Red"),
        sizes=("7", "8", "9", "10", "11", "12"),
        image_urls=(
            "https://images.unsplash.com/photo-1542291026-7eec264c27ff?w=400",
        ),
    ),
)


def random_mock_product(rng: Optional[random.Random] = None) -> ProductRecord:
    """Pick one of the canned mock products."""
    return (rng or random).choice(MOCK_PRODUCTS)
