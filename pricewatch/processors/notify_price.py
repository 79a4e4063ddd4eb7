"""
NOTIFY_PRICE processor.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

from pricewatch.database.models import (
    Action,
    ActionType,
    Product,
    User,
    create_price_drop_notification,
)
from pricewatch.database.repository import (
    ActionRepository,
    NotificationRepository,
    ProductRepository,
    SubscriptionRepository,
    UserRepository,
)
from pricewatch.notifiers.base import Notifier
from .base import ActionProcessor

logger = logging.getLogger(__name__)


class NotifyPriceProcessor(ActionProcessor):
    """
    Delivers price drop alerts to every interested subscriber.

    Delivery is all-or-nothing: if any recipient fails, the action stays
    pending and the next attempt messages every recipient again.
    """

    action_type = ActionType.NOTIFY_PRICE

    def __init__(
        self,
        action_repo: ActionRepository,
        product_repo: ProductRepository,
        subscription_repo: SubscriptionRepository,
        user_repo: UserRepository,
        notifier: Notifier,
        notification_repo: Optional[NotificationRepository] = None,
    ):
        super().__init__(action_repo)
        self.product_repo = product_repo
        self.subscription_repo = subscription_repo
        self.user_repo = user_repo
        self.notifier = notifier
        self.notification_repo = notification_repo

    def process(self, action: Action) -> None:
        product = self.product_repo.find_by_id(action.value)
        if product is None:
            self._give_up(action, f"product {action.value} not found")
            return

        subscriptions = self.subscription_repo.find_by_product_id(product.id)
        if not subscriptions:
            self._give_up(action, f"no subscribers for {product.id}")
            return

        interested = [
            s for s in subscriptions if s.should_notify_for_price(product.price)
        ]
        if not interested:
            logger.info(f"No subscriber of {product.id} wants price {product.price}")
            self.action_repo.mark_processed(action.id)
            return

        recipients: list[tuple[User, str]] = []
        for subscription in interested:
            user = self.user_repo.find_by_id(subscription.user_id)
            if user is None:
                continue
            recipient = self.notifier.recipient_for(user)
            if not recipient:
                continue
            recipients.append((user, recipient))

        if not recipients:
            self._give_up(action, f"no reachable subscribers for {product.id}")
            return

        old_price = product.old_price if product.old_price is not None else product.price

        for user, _ in recipients:
            if user.has_site:
                self._record_price_drop(user, product, old_price)

        if not self._deliver(recipients, product, old_price):
            logger.error(f"NOTIFY_PRICE action {action.id} left pending for retry")
            return

        self.action_repo.mark_processed(action.id)
        logger.info(f"Notified {len(recipients)} users about {product.id}")

    def _deliver(
        self,
        recipients: list[tuple[User, str]],
        product: Product,
        old_price: float,
    ) -> bool:
        """Send to all recipients in parallel, True if all succeeded."""
        failures = 0
        with ThreadPoolExecutor(max_workers=len(recipients)) as executor:
            futures = {
                executor.submit(
                    self.notifier.notify_price_change,
                    recipient,
                    product,
                    old_price,
                    product.price,
                ): user
                for user, recipient in recipients
            }
            for future in as_completed(futures):
                user = futures[future]
                try:
                    future.result()
                except Exception as e:
                    failures += 1
                    logger.error(f"Error notifying user {user.id} about {product.id}: {e}")

        return failures == 0

    def _record_price_drop(self, user: User, product: Product, old_price: float) -> None:
        if self.notification_repo is None:
            return
        try:
            self.notification_repo.create(
                create_price_drop_notification(
                    user.id,
                    product.title,
                    product.id,
                    product.url,
                    old_price,
                    product.price,
                )
            )
        except Exception as e:
            logger.error(f"Error creating PRICE_DROP notification for {user.id}: {e}")
