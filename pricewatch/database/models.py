"""
Data models for pricewatch.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Any


class ActionType(str, Enum):
    """Kinds of work the scheduler dispatches."""

    ADD_PRODUCT = "ADD_PRODUCT"
    CHECK_PRODUCT = "CHECK_PRODUCT"
    NOTIFY_PRICE = "NOTIFY_PRICE"
    LINK_ACCOUNTS = "LINK_ACCOUNTS"


class ActionOrigin(str, Enum):
    """Surface an action was produced from."""

    TELEGRAM = "TELEGRAM"
    SITE = "SITE"


class UserOrigin(str, Enum):
    """Surfaces a user can be reached on."""

    TELEGRAM = "TELEGRAM"
    SITE = "SITE"
    BOTH = "BOTH"


class NotificationType(str, Enum):
    PRODUCT_ADDED = "PRODUCT_ADDED"
    PRICE_DROP = "PRICE_DROP"
    ACCOUNT_LINKED = "ACCOUNT_LINKED"


class NotificationStatus(str, Enum):
    UNREAD = "UNREAD"
    READ = "READ"


# Minutes between scheduler ticks per action type
DEFAULT_INTERVALS = {
    ActionType.ADD_PRODUCT: 5,
    ActionType.CHECK_PRODUCT: 30,
    ActionType.NOTIFY_PRICE: 1,
    ActionType.LINK_ACCOUNTS: 2,
}

# Minimum price reduction (percent) worth a statistics record
MIN_STATS_PERCENTAGE = 5.0


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


@dataclass
class Action:
    """Persisted unit of pending or completed work."""

    type: ActionType
    value: str  # URL for ADD_PRODUCT, product id for CHECK/NOTIFY, telegram id for LINK
    user_id: Optional[str] = None
    origin: Optional[ActionOrigin] = None
    id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    is_processed: bool = False


def create_add_product_action(
    user_id: str,
    product_link: str,
    origin: Optional[ActionOrigin] = ActionOrigin.TELEGRAM,
) -> Action:
    return Action(
        id=_new_id("add"),
        type=ActionType.ADD_PRODUCT,
        value=product_link,
        user_id=user_id,
        origin=origin,
    )


def create_check_product_action(product_id: str) -> Action:
    return Action(
        id=_new_id("check"),
        type=ActionType.CHECK_PRODUCT,
        value=product_id,
    )


def create_notify_price_action(product_id: str) -> Action:
    """Prices are read back from the product when the action is processed."""
    return Action(
        id=_new_id("notify"),
        type=ActionType.NOTIFY_PRICE,
        value=product_id,
    )


def create_link_accounts_action(site_user_id: str, telegram_id: str) -> Action:
    return Action(
        id=_new_id("link"),
        type=ActionType.LINK_ACCOUNTS,
        value=telegram_id,
        user_id=site_user_id,
        origin=ActionOrigin.SITE,
    )


@dataclass
class ActionConfig:
    """Scheduling settings for one action type."""

    action_type: ActionType
    interval_minutes: float
    enabled: bool = True

    @property
    def id(self) -> str:
        return self.action_type.value


@dataclass
class Product:
    """A catalog product under monitoring."""

    id: str  # catalog identifier (ASIN)
    title: str
    price: float
    full_price: float
    old_price: Optional[float] = None
    lowest_price: Optional[float] = None
    in_stock: bool = True
    preorder: bool = False
    url: str = ""
    image: str = ""
    offer_id: str = ""
    product_group: Optional[str] = None
    category: Optional[str] = None
    genre: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def update_price(self, new_price: float) -> bool:
        """
        Record a new price.

        Args:
            new_price: Price just read from the catalog

        Returns:
            True if the new price is lower than the current one
        """
        should_notify = new_price < self.price

        self.old_price = self.price
        self.price = new_price
        if self.lowest_price is None:
            self.lowest_price = new_price
        else:
            self.lowest_price = min(self.lowest_price, new_price)
        self.updated_at = datetime.now()

        return should_notify


def create_product(**params: Any) -> Product:
    """Create a product with a zero initial price delta."""
    product = Product(**params)
    product.old_price = product.price
    product.lowest_price = product.price
    now = datetime.now()
    product.created_at = now
    product.updated_at = now
    return product


@dataclass
class Subscription:
    """A user watching a product."""

    product_id: str
    user_id: str
    desired_price: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def id(self) -> str:
        return f"{self.product_id}#{self.user_id}"

    def should_notify_for_price(self, current_price: float) -> bool:
        """Without a desired price every drop notifies."""
        if self.desired_price is None:
            return True
        return current_price <= self.desired_price


@dataclass
class User:
    """User with monitoring and delivery settings."""

    id: str
    username: str = ""
    name: str = ""
    language: str = "pt-BR"
    enabled: bool = False  # monitoring starts disabled
    telegram_id: Optional[str] = None
    discord_webhook_url: Optional[str] = None
    email: Optional[str] = None
    origin: UserOrigin = UserOrigin.TELEGRAM
    created_at: Optional[datetime] = None

    @property
    def has_site(self) -> bool:
        return self.origin in (UserOrigin.SITE, UserOrigin.BOTH)


@dataclass
class ProductStats:
    """Price point recorded for history charts."""

    product_id: str
    price: float
    old_price: float
    percentage_change: float
    id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)


def calculate_percentage_change(old_price: float, new_price: float) -> float:
    """Positive for a reduction, negative for an increase."""
    if old_price <= 0:
        return 0.0
    return ((old_price - new_price) / old_price) * 100


def should_create_stats(old_price: float, new_price: float) -> bool:
    return calculate_percentage_change(old_price, new_price) >= MIN_STATS_PERCENTAGE


def create_product_stats(
    product_id: str,
    price: float,
    old_price: float,
    percentage_change: float,
) -> ProductStats:
    return ProductStats(
        id=_new_id("stats"),
        product_id=product_id,
        price=price,
        old_price=old_price,
        percentage_change=percentage_change,
    )


@dataclass
class Notification:
    """In-app notification shown on the website."""

    user_id: str
    type: NotificationType
    title: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)
    status: NotificationStatus = NotificationStatus.UNREAD
    id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    read_at: Optional[datetime] = None


def create_product_added_notification(
    user_id: str,
    product_title: str,
    product_id: str,
    product_url: str,
) -> Notification:
    return Notification(
        id=_new_id("ntf"),
        user_id=user_id,
        type=NotificationType.PRODUCT_ADDED,
        title="Product added!",
        message=f'"{product_title}" was added to your monitoring list.',
        metadata={"product_id": product_id, "url": product_url},
    )


def create_price_drop_notification(
    user_id: str,
    product_title: str,
    product_id: str,
    product_url: str,
    old_price: float,
    new_price: float,
) -> Notification:
    discount = calculate_percentage_change(old_price, new_price)
    return Notification(
        id=_new_id("ntf"),
        user_id=user_id,
        type=NotificationType.PRICE_DROP,
        title=f"Price drop: {product_title}",
        message=(
            f"Price dropped from {old_price:.2f} to {new_price:.2f} "
            f"({discount:.0f}% off)!"
        ),
        metadata={
            "product_id": product_id,
            "old_price": old_price,
            "new_price": new_price,
            "url": product_url,
        },
    )


def create_account_linked_notification(user_id: str) -> Notification:
    return Notification(
        id=_new_id("ntf"),
        user_id=user_id,
        type=NotificationType.ACCOUNT_LINKED,
        title="Accounts linked!",
        message="Your Telegram account is now linked to your site account.",
    )
