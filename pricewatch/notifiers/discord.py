"""
Discord webhook notifier.
"""

import time
from typing import Any, Optional

import requests

from pricewatch.database.models import Product, User, calculate_percentage_change
from .base import Notifier, NotificationError


class DiscordNotifier(Notifier):
    """Sends price alerts to each user's Discord webhook."""

    channel = "discord"

    # Discord embed colors
    COLOR_DROP = 0x2ECC71  # Green
    COLOR_BIG_DROP = 0xFF0000  # Red

    def __init__(
        self,
        mention_on_big_drop: bool = True,
        big_drop_pct: float = 20.0,
    ):
        """
        Initialize Discord notifier.

        Args:
            mention_on_big_drop: Whether to @here when the drop is large
            big_drop_pct: Drop percentage considered large
        """
        self.mention_on_big_drop = mention_on_big_drop
        self.big_drop_pct = big_drop_pct

    def recipient_for(self, user: User) -> Optional[str]:
        return user.discord_webhook_url or None

    def notify_price_change(
        self,
        recipient: str,
        product: Product,
        old_price: float,
        new_price: float,
    ) -> None:
        """Send price drop embed to the recipient's webhook."""
        payload = self._create_payload(product, old_price, new_price)
        try:
            response = self._send_webhook(recipient, payload)
        except requests.exceptions.RequestException as e:
            raise NotificationError(self.channel, f"Connection error: {str(e)}") from e

        if not response.ok:
            raise NotificationError(
                self.channel, f"HTTP {response.status_code}: {response.text}"
            )

    def _send_webhook(self, webhook_url: str, payload: dict[str, Any]) -> requests.Response:
        """Send webhook with rate limit handling."""
        response = requests.post(webhook_url, json=payload, timeout=10)

        # Handle rate limiting
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "1")
            time.sleep(float(retry_after))
            response = requests.post(webhook_url, json=payload, timeout=10)

        return response

    def _create_payload(
        self, product: Product, old_price: float, new_price: float
    ) -> dict[str, Any]:
        """Create Discord webhook payload."""
        drop_pct = calculate_percentage_change(old_price, new_price)
        payload: dict[str, Any] = {
            "embeds": [self._create_embed(product, old_price, new_price, drop_pct)],
        }

        if self.mention_on_big_drop and drop_pct >= self.big_drop_pct:
            payload["content"] = "@here"

        return payload

    def _create_embed(
        self,
        product: Product,
        old_price: float,
        new_price: float,
        drop_pct: float,
    ) -> dict[str, Any]:
        """Create Discord embed for a price drop."""
        color = self.COLOR_BIG_DROP if drop_pct >= self.big_drop_pct else self.COLOR_DROP

        embed: dict[str, Any] = {
            "title": f"📉 {product.title}",
            "url": product.url,
            "description": f"Price dropped {drop_pct:.2f}%",
            "color": color,
            "fields": [
                {"name": "Previous Price", "value": f"{old_price:.2f}", "inline": True},
                {"name": "New Price", "value": f"{new_price:.2f}", "inline": True},
                {
                    "name": "Stock",
                    "value": "In stock" if product.in_stock else "Out of stock",
                    "inline": True,
                },
            ],
        }

        if product.image:
            embed["thumbnail"] = {"url": product.image}

        return embed
