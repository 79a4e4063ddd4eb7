"""
CHECK_PRODUCT processor.
"""

import logging
from typing import Optional

from pricewatch.catalog.base import CatalogLookup, CatalogProduct
from pricewatch.database.models import (
    Action,
    ActionType,
    Product,
    create_notify_price_action,
)
from pricewatch.database.repository import ActionRepository, ProductRepository
from pricewatch.stats import ProductStatsService
from .base import ActionProcessor

logger = logging.getLogger(__name__)


class CheckProductProcessor(ActionProcessor):
    """Refreshes known products from the catalog and queues drop alerts."""

    action_type = ActionType.CHECK_PRODUCT

    def __init__(
        self,
        action_repo: ActionRepository,
        product_repo: ProductRepository,
        catalog: CatalogLookup,
        stats_service: Optional[ProductStatsService] = None,
    ):
        super().__init__(action_repo)
        self.product_repo = product_repo
        self.catalog = catalog
        self.stats_service = stats_service

    def process_next(self, limit: int) -> int:
        """
        Check the next page of products.

        Catalog errors propagate so the whole page is retried on the
        next tick.

        Args:
            limit: Maximum number of products to check

        Returns:
            Number of products updated
        """
        products = self.product_repo.get_next_products_to_check(limit)
        if not products:
            return 0

        catalog_products = self.catalog.get_products([p.id for p in products])

        updated = 0
        for product in products:
            catalog_product = catalog_products.get(product.id)
            if catalog_product is None:
                logger.debug(f"Product {product.id} not returned by catalog")
                continue

            try:
                self._update_product(product, catalog_product)
                updated += 1
            except Exception as e:
                logger.error(f"Error updating product {product.id}: {e}")

        return updated

    def process(self, action: Action) -> None:
        """Check the product named by a queued CHECK_PRODUCT action."""
        product = self.product_repo.find_by_id(action.value)
        if product is None:
            self._give_up(action, f"product {action.value} not found")
            return

        try:
            catalog_product = self.catalog.get_product(product.id)
            if catalog_product is None:
                self._give_up(action, f"product {product.id} not found in catalog")
                return

            self._update_product(product, catalog_product)
            self.action_repo.mark_processed(action.id)
        except Exception:
            logger.exception(f"Error processing CHECK_PRODUCT action {action.id}")

    def _update_product(self, product: Product, catalog_product: CatalogProduct) -> None:
        should_notify = product.update_price(catalog_product.current_price)

        product.offer_id = catalog_product.offer_id
        product.title = catalog_product.title
        product.full_price = catalog_product.full_price
        product.in_stock = catalog_product.in_stock
        product.image = catalog_product.image_url
        product.preorder = catalog_product.is_preorder

        self.product_repo.update(product)

        if self.stats_service:
            try:
                self.stats_service.handle_price_change(product)
            except Exception as e:
                logger.error(f"Error recording stats for {product.id}: {e}")

        if should_notify:
            self.action_repo.create(create_notify_price_action(product.id))
            logger.info(
                f"Price drop on {product.id}: {product.old_price} -> {product.price}"
            )
