"""
LINK_ACCOUNTS processor.

Merges a Telegram-only user into a site user.
"""

import logging
from typing import Optional

from pricewatch.database.models import (
    Action,
    ActionType,
    Subscription,
    UserOrigin,
    create_account_linked_notification,
)
from pricewatch.database.repository import (
    ActionRepository,
    NotificationRepository,
    SubscriptionRepository,
    UserRepository,
)
from pricewatch.notifiers.telegram import TelegramNotifier
from .base import ActionProcessor

logger = logging.getLogger(__name__)


class LinkAccountsProcessor(ActionProcessor):
    """Processes LINK_ACCOUNTS actions."""

    action_type = ActionType.LINK_ACCOUNTS

    def __init__(
        self,
        action_repo: ActionRepository,
        user_repo: UserRepository,
        subscription_repo: SubscriptionRepository,
        notification_repo: Optional[NotificationRepository] = None,
        telegram: Optional[TelegramNotifier] = None,
    ):
        super().__init__(action_repo)
        self.user_repo = user_repo
        self.subscription_repo = subscription_repo
        self.notification_repo = notification_repo
        self.telegram = telegram

    def process(self, action: Action) -> None:
        """
        Link the site user in action.user_id with the Telegram user whose
        Telegram id is action.value.

        Subscriptions of the Telegram user move to the site user, except
        for products the site user already monitors. The Telegram user
        is deleted afterwards.
        """
        try:
            site_user = self.user_repo.find_by_id(action.user_id) if action.user_id else None
            telegram_user = self.user_repo.find_by_telegram_id(action.value)

            if site_user is None or telegram_user is None:
                self._give_up(action, "user not found")
                return

            if site_user.id == telegram_user.id:
                self._give_up(action, "accounts are already the same user")
                return

            site_products = {
                s.product_id for s in self.subscription_repo.find_by_user_id(site_user.id)
            }
            merged = 0
            duplicates = 0
            for subscription in self.subscription_repo.find_by_user_id(telegram_user.id):
                self.subscription_repo.remove_by_product_and_user(
                    subscription.product_id, telegram_user.id
                )
                if subscription.product_id in site_products:
                    duplicates += 1
                    continue
                self.subscription_repo.create(
                    Subscription(
                        product_id=subscription.product_id,
                        user_id=site_user.id,
                        desired_price=subscription.desired_price,
                        created_at=subscription.created_at,
                    )
                )
                merged += 1

            # telegram_id is unique, so the old user goes before the copy
            self.user_repo.delete(telegram_user.id)

            site_user.telegram_id = telegram_user.telegram_id
            site_user.username = telegram_user.username or site_user.username
            site_user.language = telegram_user.language or site_user.language
            site_user.origin = UserOrigin.BOTH
            self.user_repo.update(site_user)

            if self.notification_repo:
                self.notification_repo.create(
                    create_account_linked_notification(site_user.id)
                )

            if self.telegram:
                self.telegram.send_message(
                    action.value, self._build_success_message(merged, duplicates)
                )

            self.action_repo.mark_processed(action.id)
            logger.info(
                f"Linked Telegram user {telegram_user.id} into {site_user.id} "
                f"({merged} merged, {duplicates} duplicates)"
            )
        except Exception:
            logger.exception(f"Error processing LINK_ACCOUNTS action {action.id}")

    @staticmethod
    def _build_success_message(merged: int, duplicates: int) -> str:
        message = (
            "✅ *Accounts linked\\!*\n\n"
            "Your Telegram account is now linked to your site account\\. "
            "You will get price alerts in both places\\."
        )
        if merged > 0:
            message += f"\n\n📦 {merged} product\\(s\\) moved from Telegram\\."
        if duplicates > 0:
            message += (
                f"\n\n⚠️ {duplicates} duplicate product\\(s\\) kept from your site account\\."
            )
        return message
