"""
Pytest configuration and shared fixtures.
"""

import pytest

from pricewatch.catalog.base import CatalogProduct
from pricewatch.catalog.mock import MockCatalogClient
from pricewatch.catalog.urls import UrlResolver
from pricewatch.database.connection import Database
from pricewatch.database.models import Product, User, UserOrigin, create_product
from pricewatch.database.repository import (
    ActionConfigRepository,
    ActionRepository,
    NotificationRepository,
    ProductRepository,
    ProductStatsRepository,
    SubscriptionRepository,
    UserRepository,
)
from pricewatch.stats import ProductStatsService

PRODUCT_ID = "B012345678"


@pytest.fixture
def db():
    """Create in-memory database with schema."""
    db = Database(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def repos(db):
    """Create all repositories."""
    return {
        "user": UserRepository(db),
        "product": ProductRepository(db),
        "subscription": SubscriptionRepository(db),
        "action": ActionRepository(db),
        "action_config": ActionConfigRepository(db),
        "stats": ProductStatsRepository(db),
        "notification": NotificationRepository(db),
    }


@pytest.fixture
def stats_service(repos):
    return ProductStatsService(repos["stats"])


@pytest.fixture
def sample_catalog_product():
    """Catalog entry for PRODUCT_ID."""
    return CatalogProduct(
        offer_id="offer-1",
        title="Sandman Vol. 1",
        full_price=120.0,
        current_price=100.0,
        in_stock=True,
        image_url="https://images.example/sandman.jpg",
        is_preorder=False,
        url=f"https://shop.example/dp/{PRODUCT_ID}",
        product_group="Book",
    )


@pytest.fixture
def catalog(sample_catalog_product):
    """Mock catalog that knows PRODUCT_ID."""
    return MockCatalogClient({PRODUCT_ID: sample_catalog_product})


@pytest.fixture
def url_resolver():
    """Resolver treating shop.example as a catalog domain."""
    return UrlResolver(catalog_domains=["shop.example"], short_domains=["short.example"])


@pytest.fixture
def telegram_user(repos) -> User:
    """Enabled Telegram user."""
    return repos["user"].create(
        User(id="u1", username="alice", telegram_id="1001", enabled=True)
    )


@pytest.fixture
def site_user(repos) -> User:
    """Enabled site-only user."""
    return repos["user"].create(
        User(id="u2", username="bob", enabled=True, origin=UserOrigin.SITE)
    )


@pytest.fixture
def stored_product(repos) -> Product:
    """PRODUCT_ID stored at price 100."""
    return repos["product"].create(
        create_product(
            id=PRODUCT_ID,
            title="Sandman Vol. 1",
            price=100.0,
            full_price=120.0,
            url=f"https://shop.example/dp/{PRODUCT_ID}",
            offer_id="offer-1",
            image="https://images.example/sandman.jpg",
            product_group="Book",
        )
    )


@pytest.fixture
def sample_webhook_url():
    """Sample Discord webhook URL for testing."""
    return "https://discord.com/api/webhooks/123456789/abcdefghijklmnop"
