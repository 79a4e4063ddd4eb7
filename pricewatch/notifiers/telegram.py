"""
Telegram Bot API notifier.
"""

import logging
import re
from typing import Any, Optional

import requests

from pricewatch.database.models import Product, User
from .base import Notifier, NotificationError

logger = logging.getLogger(__name__)

_MARKDOWN_SPECIAL = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")

# Suggested desired price is the current price minus this fraction
SUGGESTED_DISCOUNT = 0.05


def escape_markdown(text: str) -> str:
    """Escape MarkdownV2 special characters."""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


class TelegramNotifier(Notifier):
    """Sends price alerts as Telegram chat messages."""

    channel = "telegram"

    def __init__(
        self,
        bot_token: str,
        api_url: str = "https://api.telegram.org",
        timeout: float = 10,
    ):
        """
        Initialize Telegram notifier.

        Args:
            bot_token: Bot token issued by BotFather
            api_url: Bot API base URL
            timeout: Request timeout in seconds
        """
        if not bot_token:
            raise ValueError("Telegram bot token is not configured")
        self.bot_token = bot_token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def recipient_for(self, user: User) -> Optional[str]:
        return user.telegram_id or None

    def notify_price_change(
        self,
        recipient: str,
        product: Product,
        old_price: float,
        new_price: float,
    ) -> None:
        """Send price drop message with product and monitoring buttons."""
        payload = {
            "chat_id": recipient,
            "text": self._format_price_message(product, old_price, new_price),
            "parse_mode": "MarkdownV2",
            "reply_markup": self._create_keyboard(recipient, product, new_price),
        }
        self._send(payload)

    def send_message(self, recipient: str, text: str) -> None:
        """Send plain MarkdownV2 text."""
        self._send({"chat_id": recipient, "text": text, "parse_mode": "MarkdownV2"})

    def _send(self, payload: dict[str, Any]) -> None:
        url = f"{self.api_url}/bot{self.bot_token}/sendMessage"
        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise NotificationError(self.channel, f"Connection error: {e}") from e

        if not response.ok:
            raise NotificationError(
                self.channel, f"HTTP {response.status_code}: {response.text}"
            )

    def _format_price_message(
        self, product: Product, old_price: float, new_price: float
    ) -> str:
        if old_price > 0:
            difference = (old_price - new_price) / old_price * 100
        else:
            difference = 0.0

        lines = [
            "*Good news\\! The price dropped\\!*",
            "",
            f"📚 *{escape_markdown(product.title)}*",
            "",
            f"💰 Previous price: {escape_markdown(f'{old_price:.2f}')}",
            f"✨ *New price: {escape_markdown(f'{new_price:.2f}')}*",
            f"📉 Reduction: {escape_markdown(f'{difference:.2f}')}%",
            "",
            "✅ In stock" if product.in_stock else "❌ Out of stock",
        ]
        if product.preorder:
            lines.append("⏳ *Pre\\-order*")
        return "\n".join(lines)

    def _create_keyboard(
        self, recipient: str, product: Product, new_price: float
    ) -> dict[str, Any]:
        suggested_price = new_price * (1 - SUGGESTED_DISCOUNT)
        rows = []
        # Telegram rejects url buttons with an empty url
        if product.url:
            rows.append([{"text": "🛒 View product", "url": product.url}])
        rows.append([{
            "text": "🛑 Stop monitoring",
            "callback_data": f"stop_monitor:{product.id}:{recipient}",
        }])
        rows.append([{
            "text": f"💰 Set desired price to {suggested_price:.2f} (-5%)",
            "callback_data": f"update_price:{product.id}:{recipient}:{suggested_price:.2f}",
        }])
        return {"inline_keyboard": rows}
