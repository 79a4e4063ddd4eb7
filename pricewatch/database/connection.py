"""
SQLite database connection and schema management.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional


class Database:
    """SQLite database connection manager shared by the scheduler threads."""

    def __init__(self, db_path: str):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file, or ":memory:" for in-memory DB.
        """
        self.db_path = db_path
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._connect()

    def _connect(self) -> None:
        """Establish database connection."""
        if self.db_path != ":memory:":
            # Ensure parent directory exists
            path = Path(self.db_path)
            path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._connection.execute("PRAGMA foreign_keys = ON")

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the database connection."""
        if self._connection is None:
            raise sqlite3.ProgrammingError("Database connection is closed")
        return self._connection

    @contextmanager
    def cursor(self) -> Iterator[sqlite3.Cursor]:
        """
        Yield a cursor holding the connection lock.

        Commits when the block exits cleanly, rolls back otherwise.
        """
        with self._lock:
            connection = self.connection
            cursor = connection.cursor()
            try:
                yield cursor
                connection.commit()
            except Exception:
                connection.rollback()
                raise
            finally:
                cursor.close()

    def initialize(self) -> None:
        """Create database schema if it doesn't exist."""
        with self.cursor() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    username TEXT NOT NULL DEFAULT '',
                    name TEXT NOT NULL DEFAULT '',
                    language TEXT NOT NULL DEFAULT 'pt-BR',
                    enabled INTEGER NOT NULL DEFAULT 0,
                    telegram_id TEXT UNIQUE,
                    discord_webhook_url TEXT,
                    email TEXT,
                    origin TEXT NOT NULL DEFAULT 'TELEGRAM',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS products (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    price REAL NOT NULL,
                    old_price REAL,
                    full_price REAL NOT NULL,
                    lowest_price REAL,
                    in_stock INTEGER NOT NULL DEFAULT 1,
                    preorder INTEGER NOT NULL DEFAULT 0,
                    url TEXT NOT NULL DEFAULT '',
                    image TEXT NOT NULL DEFAULT '',
                    offer_id TEXT NOT NULL DEFAULT '',
                    product_group TEXT,
                    category TEXT,
                    genre TEXT,
                    created_at TIMESTAMP,
                    updated_at TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS subscriptions (
                    product_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    desired_price REAL,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (product_id, user_id),
                    FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE,
                    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS actions (
                    id TEXT PRIMARY KEY,
                    type TEXT NOT NULL,
                    value TEXT NOT NULL,
                    user_id TEXT,
                    origin TEXT,
                    created_at TIMESTAMP NOT NULL,
                    is_processed INTEGER NOT NULL DEFAULT 0
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS action_configs (
                    action_type TEXT PRIMARY KEY,
                    interval_minutes REAL NOT NULL,
                    enabled INTEGER NOT NULL DEFAULT 1
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS product_stats (
                    id TEXT PRIMARY KEY,
                    product_id TEXT NOT NULL,
                    price REAL NOT NULL,
                    old_price REAL NOT NULL,
                    percentage_change REAL NOT NULL,
                    created_at TIMESTAMP NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS notifications (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    title TEXT NOT NULL,
                    message TEXT NOT NULL,
                    metadata TEXT NOT NULL DEFAULT '{}',
                    status TEXT NOT NULL DEFAULT 'UNREAD',
                    created_at TIMESTAMP NOT NULL,
                    read_at TIMESTAMP
                )
            """)

            # Indexes for common queries
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_actions_pending
                ON actions(type, is_processed, created_at)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_subscriptions_user
                ON subscriptions(user_id)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_product_stats_product
                ON product_stats(product_id, created_at)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_notifications_user
                ON notifications(user_id, created_at)
            """)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None
