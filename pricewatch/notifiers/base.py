"""
Base notifier classes.
"""

from abc import ABC, abstractmethod
from typing import Optional, Any

from pricewatch.database.models import Product, User


class NotificationError(Exception):
    """Raised when a notification could not be delivered."""

    def __init__(self, channel: str, message: str):
        super().__init__(f"{channel}: {message}")
        self.channel = channel


class Notifier(ABC):
    """Abstract base class for price-change notifiers."""

    channel = "unknown"

    @abstractmethod
    def recipient_for(self, user: User) -> Optional[str]:
        """
        Get the delivery identity of a user on this channel.

        Args:
            user: User to reach

        Returns:
            Recipient address, or None if the user cannot be reached here
        """
        pass

    @abstractmethod
    def notify_price_change(
        self,
        recipient: str,
        product: Product,
        old_price: float,
        new_price: float,
    ) -> None:
        """
        Send a price-change message to one recipient.

        Args:
            recipient: Address returned by recipient_for
            product: Product whose price changed
            old_price: Previous price
            new_price: Current price

        Raises:
            NotificationError: If delivery failed
        """
        pass


class NotifierFactory:
    """Factory for creating notifier instances."""

    @staticmethod
    def create(config: dict[str, Any]) -> Notifier:
        """
        Create a notifier from configuration.

        Args:
            config: Notifier configuration dict

        Returns:
            Appropriate Notifier instance

        Raises:
            ValueError: If notifier type is unknown
        """
        notifier_type = config.get("type")

        if notifier_type == "telegram":
            from .telegram import TelegramNotifier

            return TelegramNotifier(
                bot_token=config.get("bot_token", ""),
                api_url=config.get("api_url", "https://api.telegram.org"),
                timeout=config.get("timeout", 10),
            )

        elif notifier_type == "discord":
            from .discord import DiscordNotifier

            return DiscordNotifier(
                mention_on_big_drop=config.get("mention_on_big_drop", True),
                big_drop_pct=config.get("big_drop_pct", 20.0),
            )

        else:
            raise ValueError(f"Unknown notifier type: {notifier_type}")
