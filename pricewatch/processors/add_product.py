"""
ADD_PRODUCT processor.

Turns a product link submitted by a user into a monitored product and a
subscription for that user.
"""

import logging
from typing import Optional

from pricewatch.catalog.base import CatalogLookup, CatalogProduct
from pricewatch.catalog.urls import UrlResolver, extract_product_id, is_valid_product_id
from pricewatch.classifier import ProductClassifier
from pricewatch.database.models import (
    Action,
    ActionOrigin,
    ActionType,
    Product,
    Subscription,
    User,
    create_notify_price_action,
    create_product,
    create_product_added_notification,
)
from pricewatch.database.repository import (
    ActionRepository,
    NotificationRepository,
    ProductRepository,
    SubscriptionRepository,
    UserRepository,
)
from pricewatch.stats import ProductStatsService
from .base import ActionProcessor

logger = logging.getLogger(__name__)

# Only books are sent to the classifier
CLASSIFIED_PRODUCT_GROUP = "Book"


class AddProductProcessor(ActionProcessor):
    """Processes ADD_PRODUCT actions."""

    action_type = ActionType.ADD_PRODUCT

    def __init__(
        self,
        action_repo: ActionRepository,
        product_repo: ProductRepository,
        subscription_repo: SubscriptionRepository,
        user_repo: UserRepository,
        catalog: CatalogLookup,
        url_resolver: UrlResolver,
        stats_service: Optional[ProductStatsService] = None,
        notification_repo: Optional[NotificationRepository] = None,
        classifier: Optional[ProductClassifier] = None,
    ):
        super().__init__(action_repo)
        self.product_repo = product_repo
        self.subscription_repo = subscription_repo
        self.user_repo = user_repo
        self.catalog = catalog
        self.url_resolver = url_resolver
        self.stats_service = stats_service
        self.notification_repo = notification_repo
        self.classifier = classifier

    def process(self, action: Action) -> None:
        """
        Process a single ADD_PRODUCT action.

        Catalog errors propagate and leave the action pending.
        """
        user = self._find_enabled_user(action)
        if user is None:
            self._give_up(action, "user not found or monitoring disabled")
            return

        product_id = self._resolve_product_id(action)
        if product_id is None:
            self._give_up(action, f"no valid product in {action.value}")
            return

        catalog_product = self.catalog.get_products([product_id]).get(product_id)
        if catalog_product is None:
            self._give_up(action, f"product {product_id} not found in catalog")
            return

        self._add_product(action, user, product_id, catalog_product)

    def process_next(self, limit: int) -> int:
        """
        Process pending ADD_PRODUCT actions with one catalog lookup.

        If the batched lookup fails, every valid action of the batch is
        marked processed instead of being retried.
        """
        actions = self.action_repo.find_pending_by_type(self.action_type, limit)
        if not actions:
            return 0

        valid: list[tuple[Action, User, str]] = []
        for action in actions:
            user = self._find_enabled_user(action)
            if user is None:
                self._give_up(action, "user not found or monitoring disabled")
                continue

            product_id = self._resolve_product_id(action)
            if product_id is None:
                self._give_up(action, f"no valid product in {action.value}")
                continue

            valid.append((action, user, product_id))

        if not valid:
            return len(actions)

        product_ids = list(dict.fromkeys(product_id for _, _, product_id in valid))
        try:
            catalog_products = self.catalog.get_products(product_ids)
        except Exception as e:
            logger.error(
                f"Catalog lookup failed for {len(product_ids)} products, "
                f"dropping {len(valid)} ADD_PRODUCT actions: {e}"
            )
            for action, _, _ in valid:
                self.action_repo.mark_processed(action.id)
            return len(actions)

        for action, user, product_id in valid:
            catalog_product = catalog_products.get(product_id)
            if catalog_product is None:
                self._give_up(action, f"product {product_id} not found in catalog")
                continue

            try:
                self._add_product(action, user, product_id, catalog_product)
            except Exception as e:
                logger.error(f"Error processing ADD_PRODUCT action {action.id}: {e}")

        return len(actions)

    def _find_enabled_user(self, action: Action) -> Optional[User]:
        if not action.user_id:
            return None
        user = self.user_repo.find_by_id(action.user_id)
        if user is None or not user.enabled:
            return None
        return user

    def _resolve_product_id(self, action: Action) -> Optional[str]:
        """Resolve the submitted link to a valid catalog identifier."""
        resolution = self.url_resolver.resolve(action.value)
        if not resolution.success or not resolution.is_catalog_url:
            logger.debug(f"Could not resolve {action.value}: {resolution.error}")
            return None

        product_id = extract_product_id(resolution.final_url)
        if product_id is None or not is_valid_product_id(product_id):
            return None

        return product_id

    def _add_product(
        self,
        action: Action,
        user: User,
        product_id: str,
        catalog_product: CatalogProduct,
    ) -> None:
        """Create or refresh the product, then subscribe the user."""
        product = self.product_repo.find_by_id(product_id)

        if product is None:
            product = self._create_product(product_id, catalog_product)
        else:
            subscription = self.subscription_repo.find_by_product_and_user(
                product_id, user.id
            )
            if subscription is not None and not self._has_changed(
                product, catalog_product
            ):
                logger.info(f"User {user.id} already monitors unchanged {product_id}")
                self.action_repo.mark_processed(action.id)
                return

            self._refresh_product(product, catalog_product)

        self.subscription_repo.upsert(Subscription(product_id=product.id, user_id=user.id))

        if action.origin == ActionOrigin.SITE and user.has_site:
            self._record_product_added(user, product)

        self.action_repo.mark_processed(action.id)
        logger.info(f"User {user.id} now monitors {product.id}")

    def _create_product(self, product_id: str, catalog_product: CatalogProduct) -> Product:
        product = create_product(
            id=product_id,
            title=catalog_product.title,
            price=catalog_product.current_price,
            full_price=catalog_product.full_price,
            in_stock=catalog_product.in_stock,
            preorder=catalog_product.is_preorder,
            url=catalog_product.url,
            image=catalog_product.image_url,
            offer_id=catalog_product.offer_id,
            product_group=catalog_product.product_group,
        )

        if self.classifier and product.product_group == CLASSIFIED_PRODUCT_GROUP:
            try:
                classification = self.classifier.classify(product.title)
                if classification:
                    product.category = classification.category
                    product.genre = classification.genre
            except Exception as e:
                logger.warning(f"Could not classify product {product_id}: {e}")

        self.product_repo.create(product)

        if self.stats_service:
            try:
                self.stats_service.create_initial_stats(product)
            except Exception as e:
                logger.error(f"Error creating initial stats for {product_id}: {e}")

        return product

    def _refresh_product(self, product: Product, catalog_product: CatalogProduct) -> None:
        """Copy catalog data onto a known product and queue a drop alert."""
        product.offer_id = catalog_product.offer_id
        product.title = catalog_product.title
        product.full_price = catalog_product.full_price
        product.in_stock = catalog_product.in_stock
        product.image = catalog_product.image_url
        product.preorder = catalog_product.is_preorder
        should_notify = product.update_price(catalog_product.current_price)

        self.product_repo.update(product)

        if self.stats_service:
            try:
                self.stats_service.handle_price_change(product)
            except Exception as e:
                logger.error(f"Error recording stats for {product.id}: {e}")

        if should_notify:
            self.action_repo.create(create_notify_price_action(product.id))

    @staticmethod
    def _has_changed(product: Product, catalog_product: CatalogProduct) -> bool:
        return (
            product.price != catalog_product.current_price
            or product.in_stock != catalog_product.in_stock
            or product.preorder != catalog_product.is_preorder
            or product.full_price != catalog_product.full_price
        )

    def _record_product_added(self, user: User, product: Product) -> None:
        if self.notification_repo is None:
            return
        try:
            self.notification_repo.create(
                create_product_added_notification(
                    user.id, product.title, product.id, product.url
                )
            )
        except Exception as e:
            logger.error(f"Error creating PRODUCT_ADDED notification for {user.id}: {e}")
