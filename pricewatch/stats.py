"""
Product price statistics.
"""

import logging
from typing import Optional

from pricewatch.database.models import (
    Product,
    ProductStats,
    calculate_percentage_change,
    create_product_stats,
    should_create_stats,
)
from pricewatch.database.repository import ProductStatsRepository

logger = logging.getLogger(__name__)


class ProductStatsService:
    """Records price points used for product history charts."""

    def __init__(self, stats_repo: ProductStatsRepository):
        self.stats_repo = stats_repo

    def create_initial_stats(self, product: Product) -> ProductStats:
        """
        Record the baseline price of a newly added product.

        Every product gets at least one point so its chart is never empty.
        """
        stats = create_product_stats(
            product_id=product.id,
            price=product.price,
            old_price=product.price,
            percentage_change=0.0,
        )
        return self.stats_repo.create(stats)

    def handle_price_change(self, product: Product) -> Optional[ProductStats]:
        """
        Record a price point if the last change was a significant drop.

        Args:
            product: Product after update_price

        Returns:
            Created stats, or None if the change was not significant
        """
        if not product.old_price or product.old_price <= 0:
            return None

        if not should_create_stats(product.old_price, product.price):
            return None

        stats = create_product_stats(
            product_id=product.id,
            price=product.price,
            old_price=product.old_price,
            percentage_change=calculate_percentage_change(
                product.old_price, product.price
            ),
        )
        logger.info(
            f"Recorded {stats.percentage_change:.2f}% drop for product {product.id}"
        )
        return self.stats_repo.create(stats)

    def get_product_statistics(self, product_id: str) -> list[ProductStats]:
        return self.stats_repo.find_by_product_id(product_id)

    def get_latest_statistics(self, limit: int = 10) -> list[ProductStats]:
        return self.stats_repo.find_latest(limit)
