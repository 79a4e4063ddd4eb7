"""
Repository classes for CRUD operations.
"""

import json
from datetime import datetime
from typing import Optional

from .connection import Database
from .models import (
    Action,
    ActionConfig,
    ActionOrigin,
    ActionType,
    Notification,
    NotificationStatus,
    NotificationType,
    Product,
    ProductStats,
    Subscription,
    User,
    UserOrigin,
)


def _to_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class UserRepository:
    """CRUD operations for users."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, user: User) -> User:
        """Create a new user."""
        user.created_at = user.created_at or datetime.now()
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO users
                (id, username, name, language, enabled, telegram_id,
                 discord_webhook_url, email, origin, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user.id,
                    user.username,
                    user.name,
                    user.language,
                    1 if user.enabled else 0,
                    user.telegram_id,
                    user.discord_webhook_url,
                    user.email,
                    user.origin.value,
                    _to_timestamp(user.created_at),
                ),
            )
        return user

    def find_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        with self.db.cursor() as cursor:
            cursor.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def find_by_telegram_id(self, telegram_id: str) -> Optional[User]:
        """Get user by Telegram chat ID."""
        with self.db.cursor() as cursor:
            cursor.execute("SELECT * FROM users WHERE telegram_id = ?", (telegram_id,))
            row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def update(self, user: User) -> User:
        """Update user details."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                UPDATE users
                SET username = ?, name = ?, language = ?, enabled = ?,
                    telegram_id = ?, discord_webhook_url = ?, email = ?, origin = ?
                WHERE id = ?
                """,
                (
                    user.username,
                    user.name,
                    user.language,
                    1 if user.enabled else 0,
                    user.telegram_id,
                    user.discord_webhook_url,
                    user.email,
                    user.origin.value,
                    user.id,
                ),
            )
        return user

    def set_enabled(self, user_id: str, enabled: bool) -> Optional[User]:
        """Turn monitoring on or off for a user."""
        with self.db.cursor() as cursor:
            cursor.execute(
                "UPDATE users SET enabled = ? WHERE id = ?",
                (1 if enabled else 0, user_id),
            )
        return self.find_by_id(user_id)

    def delete(self, user_id: str) -> None:
        """Delete user."""
        with self.db.cursor() as cursor:
            cursor.execute("DELETE FROM users WHERE id = ?", (user_id,))

    def list_all(self) -> list[User]:
        """List all users."""
        with self.db.cursor() as cursor:
            cursor.execute("SELECT * FROM users ORDER BY id")
            rows = cursor.fetchall()
        return [self._row_to_user(row) for row in rows]

    def _row_to_user(self, row) -> User:
        """Convert database row to User."""
        return User(
            id=row["id"],
            username=row["username"],
            name=row["name"],
            language=row["language"],
            enabled=bool(row["enabled"]),
            telegram_id=row["telegram_id"],
            discord_webhook_url=row["discord_webhook_url"],
            email=row["email"],
            origin=UserOrigin(row["origin"]),
            created_at=_from_timestamp(row["created_at"]),
        )


class ProductRepository:
    """CRUD operations for products."""

    def __init__(self, db: Database):
        self.db = db
        # Last product id returned by get_next_products_to_check
        self._check_cursor: Optional[str] = None

    def create(self, product: Product) -> Product:
        """Create a new product."""
        now = datetime.now()
        product.created_at = product.created_at or now
        product.updated_at = product.updated_at or now
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO products
                (id, title, price, old_price, full_price, lowest_price, in_stock,
                 preorder, url, image, offer_id, product_group, category, genre,
                 created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    product.id,
                    product.title,
                    product.price,
                    product.old_price,
                    product.full_price,
                    product.lowest_price,
                    1 if product.in_stock else 0,
                    1 if product.preorder else 0,
                    product.url,
                    product.image,
                    product.offer_id,
                    product.product_group,
                    product.category,
                    product.genre,
                    _to_timestamp(product.created_at),
                    _to_timestamp(product.updated_at),
                ),
            )
        return product

    def find_by_id(self, product_id: str) -> Optional[Product]:
        """Get product by catalog identifier."""
        with self.db.cursor() as cursor:
            cursor.execute("SELECT * FROM products WHERE id = ?", (product_id,))
            row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_product(row)

    def update(self, product: Product) -> Product:
        """Persist every mutable product field."""
        product.updated_at = datetime.now()
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                UPDATE products
                SET title = ?, price = ?, old_price = ?, full_price = ?,
                    lowest_price = ?, in_stock = ?, preorder = ?, url = ?,
                    image = ?, offer_id = ?, product_group = ?, category = ?,
                    genre = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    product.title,
                    product.price,
                    product.old_price,
                    product.full_price,
                    product.lowest_price,
                    1 if product.in_stock else 0,
                    1 if product.preorder else 0,
                    product.url,
                    product.image,
                    product.offer_id,
                    product.product_group,
                    product.category,
                    product.genre,
                    _to_timestamp(product.updated_at),
                    product.id,
                ),
            )
        return product

    def delete(self, product_id: str) -> None:
        """Delete product."""
        with self.db.cursor() as cursor:
            cursor.execute("DELETE FROM products WHERE id = ?", (product_id,))

    def list_all(self) -> list[Product]:
        """List all products."""
        with self.db.cursor() as cursor:
            cursor.execute("SELECT * FROM products ORDER BY id")
            rows = cursor.fetchall()
        return [self._row_to_product(row) for row in rows]

    def get_next_products_to_check(self, limit: int) -> list[Product]:
        """
        Get the next page of products to refresh.

        Pages through the table by id. A short page means the end was
        reached, so the following call starts over from the beginning.

        Args:
            limit: Maximum number of products to return

        Returns:
            Next products in id order
        """
        try:
            with self.db.cursor() as cursor:
                if self._check_cursor is None:
                    cursor.execute(
                        "SELECT * FROM products ORDER BY id LIMIT ?",
                        (limit,),
                    )
                else:
                    cursor.execute(
                        "SELECT * FROM products WHERE id > ? ORDER BY id LIMIT ?",
                        (self._check_cursor, limit),
                    )
                rows = cursor.fetchall()
        except Exception:
            self._check_cursor = None
            raise

        products = [self._row_to_product(row) for row in rows]
        if len(products) < limit:
            self._check_cursor = None
        else:
            self._check_cursor = products[-1].id
        return products

    def _row_to_product(self, row) -> Product:
        """Convert database row to Product."""
        return Product(
            id=row["id"],
            title=row["title"],
            price=row["price"],
            old_price=row["old_price"],
            full_price=row["full_price"],
            lowest_price=row["lowest_price"],
            in_stock=bool(row["in_stock"]),
            preorder=bool(row["preorder"]),
            url=row["url"],
            image=row["image"],
            offer_id=row["offer_id"],
            product_group=row["product_group"],
            category=row["category"],
            genre=row["genre"],
            created_at=_from_timestamp(row["created_at"]),
            updated_at=_from_timestamp(row["updated_at"]),
        )


class SubscriptionRepository:
    """CRUD operations for product subscriptions."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, subscription: Subscription) -> Subscription:
        """Create a new subscription."""
        now = datetime.now()
        subscription.created_at = subscription.created_at or now
        subscription.updated_at = subscription.updated_at or now
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO subscriptions
                (product_id, user_id, desired_price, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    subscription.product_id,
                    subscription.user_id,
                    subscription.desired_price,
                    _to_timestamp(subscription.created_at),
                    _to_timestamp(subscription.updated_at),
                ),
            )
        return subscription

    def upsert(self, subscription: Subscription) -> Subscription:
        """
        Update existing subscription or create new one.

        An unset desired price keeps the one already stored.
        """
        now = datetime.now()
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO subscriptions
                (product_id, user_id, desired_price, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(product_id, user_id) DO UPDATE SET
                    desired_price = COALESCE(excluded.desired_price, desired_price),
                    updated_at = excluded.updated_at
                """,
                (
                    subscription.product_id,
                    subscription.user_id,
                    subscription.desired_price,
                    now.isoformat(),
                    now.isoformat(),
                ),
            )

        return self.find_by_product_and_user(
            subscription.product_id, subscription.user_id
        )

    def find_by_product_and_user(
        self, product_id: str, user_id: str
    ) -> Optional[Subscription]:
        """Get the subscription of one user to one product."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                SELECT * FROM subscriptions
                WHERE product_id = ? AND user_id = ?
                """,
                (product_id, user_id),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_subscription(row)

    def find_by_product_id(self, product_id: str) -> list[Subscription]:
        """Get everyone watching a product."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                SELECT * FROM subscriptions
                WHERE product_id = ?
                ORDER BY created_at
                """,
                (product_id,),
            )
            rows = cursor.fetchall()
        return [self._row_to_subscription(row) for row in rows]

    def find_by_user_id(self, user_id: str) -> list[Subscription]:
        """Get every product a user watches."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                SELECT * FROM subscriptions
                WHERE user_id = ?
                ORDER BY created_at
                """,
                (user_id,),
            )
            rows = cursor.fetchall()
        return [self._row_to_subscription(row) for row in rows]

    def remove_by_product_and_user(self, product_id: str, user_id: str) -> None:
        """Stop monitoring a product for a user."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                DELETE FROM subscriptions
                WHERE product_id = ? AND user_id = ?
                """,
                (product_id, user_id),
            )

    def update_desired_price(
        self, product_id: str, user_id: str, desired_price: Optional[float]
    ) -> Optional[Subscription]:
        """Set or clear the price threshold of a subscription."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                UPDATE subscriptions
                SET desired_price = ?, updated_at = ?
                WHERE product_id = ? AND user_id = ?
                """,
                (desired_price, datetime.now().isoformat(), product_id, user_id),
            )
        return self.find_by_product_and_user(product_id, user_id)

    def _row_to_subscription(self, row) -> Subscription:
        """Convert database row to Subscription."""
        return Subscription(
            product_id=row["product_id"],
            user_id=row["user_id"],
            desired_price=row["desired_price"],
            created_at=_from_timestamp(row["created_at"]),
            updated_at=_from_timestamp(row["updated_at"]),
        )


class ActionRepository:
    """CRUD operations for the action queue."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, action: Action) -> Action:
        """Enqueue a new action."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO actions
                (id, type, value, user_id, origin, created_at, is_processed)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    action.id,
                    action.type.value,
                    action.value,
                    action.user_id,
                    action.origin.value if action.origin else None,
                    action.created_at.isoformat(),
                    1 if action.is_processed else 0,
                ),
            )
        return action

    def find_by_id(self, action_id: str) -> Optional[Action]:
        """Get action by ID."""
        with self.db.cursor() as cursor:
            cursor.execute("SELECT * FROM actions WHERE id = ?", (action_id,))
            row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_action(row)

    def update(self, action: Action) -> Action:
        """Update action fields."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                UPDATE actions
                SET type = ?, value = ?, user_id = ?, origin = ?, is_processed = ?
                WHERE id = ?
                """,
                (
                    action.type.value,
                    action.value,
                    action.user_id,
                    action.origin.value if action.origin else None,
                    1 if action.is_processed else 0,
                    action.id,
                ),
            )
        return action

    def delete(self, action_id: str) -> None:
        """Delete action."""
        with self.db.cursor() as cursor:
            cursor.execute("DELETE FROM actions WHERE id = ?", (action_id,))

    def find_by_type(self, action_type: ActionType, limit: int = 50) -> list[Action]:
        """Get actions of a type, processed or not, oldest first."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                SELECT * FROM actions
                WHERE type = ?
                ORDER BY created_at, rowid
                LIMIT ?
                """,
                (action_type.value, limit),
            )
            rows = cursor.fetchall()
        return [self._row_to_action(row) for row in rows]

    def find_pending_by_type(self, action_type: ActionType, limit: int) -> list[Action]:
        """Get unprocessed actions of a type, oldest first."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                SELECT * FROM actions
                WHERE type = ? AND is_processed = 0
                ORDER BY created_at, rowid
                LIMIT ?
                """,
                (action_type.value, limit),
            )
            rows = cursor.fetchall()
        return [self._row_to_action(row) for row in rows]

    def mark_processed(self, action_id: str) -> None:
        """Flag action as processed so it is never dispatched again."""
        with self.db.cursor() as cursor:
            cursor.execute(
                "UPDATE actions SET is_processed = 1 WHERE id = ?",
                (action_id,),
            )

    def _row_to_action(self, row) -> Action:
        """Convert database row to Action."""
        return Action(
            id=row["id"],
            type=ActionType(row["type"]),
            value=row["value"],
            user_id=row["user_id"],
            origin=ActionOrigin(row["origin"]) if row["origin"] else None,
            created_at=datetime.fromisoformat(row["created_at"]),
            is_processed=bool(row["is_processed"]),
        )


class ActionConfigRepository:
    """CRUD operations for per-type scheduling settings."""

    def __init__(self, db: Database):
        self.db = db

    def upsert(self, config: ActionConfig) -> ActionConfig:
        """Create or replace the config of an action type."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO action_configs (action_type, interval_minutes, enabled)
                VALUES (?, ?, ?)
                ON CONFLICT(action_type) DO UPDATE SET
                    interval_minutes = excluded.interval_minutes,
                    enabled = excluded.enabled
                """,
                (
                    config.action_type.value,
                    config.interval_minutes,
                    1 if config.enabled else 0,
                ),
            )
        return config

    def find_by_type(self, action_type: ActionType) -> Optional[ActionConfig]:
        """Get config for an action type."""
        with self.db.cursor() as cursor:
            cursor.execute(
                "SELECT * FROM action_configs WHERE action_type = ?",
                (action_type.value,),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_config(row)

    def find_enabled(self) -> list[ActionConfig]:
        """Get configs of every enabled action type."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                SELECT * FROM action_configs
                WHERE enabled = 1
                ORDER BY action_type
                """
            )
            rows = cursor.fetchall()
        return [self._row_to_config(row) for row in rows]

    def list_all(self) -> list[ActionConfig]:
        """List all configs."""
        with self.db.cursor() as cursor:
            cursor.execute("SELECT * FROM action_configs ORDER BY action_type")
            rows = cursor.fetchall()
        return [self._row_to_config(row) for row in rows]

    def _row_to_config(self, row) -> ActionConfig:
        """Convert database row to ActionConfig."""
        return ActionConfig(
            action_type=ActionType(row["action_type"]),
            interval_minutes=row["interval_minutes"],
            enabled=bool(row["enabled"]),
        )


class ProductStatsRepository:
    """CRUD operations for price statistics."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, stats: ProductStats) -> ProductStats:
        """Create a new statistics record."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO product_stats
                (id, product_id, price, old_price, percentage_change, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    stats.id,
                    stats.product_id,
                    stats.price,
                    stats.old_price,
                    stats.percentage_change,
                    stats.created_at.isoformat(),
                ),
            )
        return stats

    def find_by_product_id(self, product_id: str) -> list[ProductStats]:
        """Get price history of a product, oldest first."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                SELECT * FROM product_stats
                WHERE product_id = ?
                ORDER BY created_at
                """,
                (product_id,),
            )
            rows = cursor.fetchall()
        return [self._row_to_stats(row) for row in rows]

    def find_latest(self, limit: int = 10) -> list[ProductStats]:
        """Get the most recent records across all products."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                SELECT * FROM product_stats
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = cursor.fetchall()
        return [self._row_to_stats(row) for row in rows]

    def _row_to_stats(self, row) -> ProductStats:
        """Convert database row to ProductStats."""
        return ProductStats(
            id=row["id"],
            product_id=row["product_id"],
            price=row["price"],
            old_price=row["old_price"],
            percentage_change=row["percentage_change"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class NotificationRepository:
    """CRUD operations for in-app notifications."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, notification: Notification) -> Notification:
        """Create a new notification."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO notifications
                (id, user_id, type, title, message, metadata, status, created_at, read_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    notification.id,
                    notification.user_id,
                    notification.type.value,
                    notification.title,
                    notification.message,
                    json.dumps(notification.metadata),
                    notification.status.value,
                    notification.created_at.isoformat(),
                    _to_timestamp(notification.read_at),
                ),
            )
        return notification

    def find_by_user_id(self, user_id: str, limit: int = 50) -> list[Notification]:
        """Get a user's notifications, newest first."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                SELECT * FROM notifications
                WHERE user_id = ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (user_id, limit),
            )
            rows = cursor.fetchall()
        return [self._row_to_notification(row) for row in rows]

    def mark_read(self, notification_id: str) -> None:
        """Mark notification as read."""
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                UPDATE notifications
                SET status = ?, read_at = ?
                WHERE id = ?
                """,
                (
                    NotificationStatus.READ.value,
                    datetime.now().isoformat(),
                    notification_id,
                ),
            )

    def _row_to_notification(self, row) -> Notification:
        """Convert database row to Notification."""
        return Notification(
            id=row["id"],
            user_id=row["user_id"],
            type=NotificationType(row["type"]),
            title=row["title"],
            message=row["message"],
            metadata=json.loads(row["metadata"]),
            status=NotificationStatus(row["status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            read_at=_from_timestamp(row["read_at"]),
        )
