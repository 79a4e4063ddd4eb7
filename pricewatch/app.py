"""
Application wiring.
"""

import logging
from typing import Optional

from pricewatch.catalog.base import CatalogLookup
from pricewatch.catalog.http_client import HttpCatalogClient
from pricewatch.catalog.mock import MockCatalogClient
from pricewatch.catalog.urls import UrlResolver
from pricewatch.classifier import ProductClassifier
from pricewatch.config import AppConfig
from pricewatch.database.connection import Database
from pricewatch.database.models import ActionConfig, ActionType
from pricewatch.database.repository import (
    ActionConfigRepository,
    ActionRepository,
    NotificationRepository,
    ProductRepository,
    ProductStatsRepository,
    SubscriptionRepository,
    UserRepository,
)
from pricewatch.notifiers.base import Notifier, NotifierFactory
from pricewatch.notifiers.telegram import TelegramNotifier
from pricewatch.processors.add_product import AddProductProcessor
from pricewatch.processors.base import ActionProcessor
from pricewatch.processors.check_product import CheckProductProcessor
from pricewatch.processors.link_accounts import LinkAccountsProcessor
from pricewatch.processors.notify_price import NotifyPriceProcessor
from pricewatch.scheduler import ActionScheduler
from pricewatch.stats import ProductStatsService

logger = logging.getLogger(__name__)


def create_catalog(config: AppConfig) -> CatalogLookup:
    """Build the catalog client named in the configuration."""
    catalog = config.catalog
    if catalog.provider == "http":
        return HttpCatalogClient(
            endpoint=catalog.endpoint,
            api_key=catalog.api_key or None,
            marketplace=catalog.marketplace,
            max_batch_size=catalog.max_batch_size,
            timeout=catalog.timeout,
            max_retries=config.advanced.max_retries,
            retry_delay=config.advanced.retry_delay_seconds,
        )

    logger.info("Using mock catalog")
    return MockCatalogClient(generate_unknown=True)


def create_notifier(config: AppConfig) -> Notifier:
    """Build the notifier for the configured channel."""
    notifications = config.notifications
    if notifications.channel == "discord":
        return NotifierFactory.create({
            "type": "discord",
            "mention_on_big_drop": notifications.discord.mention_on_big_drop,
            "big_drop_pct": notifications.discord.big_drop_pct,
        })

    return NotifierFactory.create({
        "type": "telegram",
        "bot_token": notifications.telegram.bot_token,
        "api_url": notifications.telegram.api_url,
        "timeout": notifications.telegram.timeout,
    })


def seed_action_configs(
    config_repo: ActionConfigRepository,
    config: AppConfig,
    overwrite: bool = False,
) -> list[ActionConfig]:
    """
    Store the configured intervals for each action type.

    Args:
        config_repo: Action config repository
        config: Application configuration
        overwrite: Replace intervals already stored in the database

    Returns:
        Configs written
    """
    written = []
    for action_type, settings in config.scheduler.actions.items():
        if not overwrite and config_repo.find_by_type(action_type):
            continue
        written.append(
            config_repo.upsert(
                ActionConfig(
                    action_type=action_type,
                    interval_minutes=settings.interval_minutes,
                    enabled=settings.enabled,
                )
            )
        )
    return written


class PriceWatchApp:
    """Main pricewatch application."""

    def __init__(
        self,
        db: Database,
        config: AppConfig,
        catalog: Optional[CatalogLookup] = None,
        notifier: Optional[Notifier] = None,
        classifier: Optional[ProductClassifier] = None,
    ):
        """
        Initialize pricewatch app.

        Args:
            db: Initialized database
            config: Application configuration
            catalog: Catalog lookup, built from config if omitted
            notifier: Price alert notifier, built from config if omitted
            classifier: Optional product classifier for books
        """
        self.db = db
        self.config = config

        # Initialize repositories
        self.user_repo = UserRepository(db)
        self.product_repo = ProductRepository(db)
        self.subscription_repo = SubscriptionRepository(db)
        self.action_repo = ActionRepository(db)
        self.action_config_repo = ActionConfigRepository(db)
        self.stats_repo = ProductStatsRepository(db)
        self.notification_repo = NotificationRepository(db)

        # Initialize services
        self.catalog = catalog or create_catalog(config)
        self.notifier = notifier or create_notifier(config)
        self.url_resolver = UrlResolver(
            catalog_domains=config.url_resolver.catalog_domains,
            short_domains=config.url_resolver.short_domains,
            max_redirects=config.url_resolver.max_redirects,
            timeout=config.url_resolver.timeout,
        )
        self.stats_service = ProductStatsService(self.stats_repo)

        self.processors: list[ActionProcessor] = [
            AddProductProcessor(
                self.action_repo,
                self.product_repo,
                self.subscription_repo,
                self.user_repo,
                self.catalog,
                self.url_resolver,
                stats_service=self.stats_service,
                notification_repo=self.notification_repo,
                classifier=classifier,
            ),
            CheckProductProcessor(
                self.action_repo,
                self.product_repo,
                self.catalog,
                stats_service=self.stats_service,
            ),
            NotifyPriceProcessor(
                self.action_repo,
                self.product_repo,
                self.subscription_repo,
                self.user_repo,
                self.notifier,
                notification_repo=self.notification_repo,
            ),
            LinkAccountsProcessor(
                self.action_repo,
                self.user_repo,
                self.subscription_repo,
                notification_repo=self.notification_repo,
                telegram=self.notifier if isinstance(self.notifier, TelegramNotifier) else None,
            ),
        ]

        self.scheduler = ActionScheduler(
            self.processors,
            self.action_config_repo,
            batch_limit=config.scheduler.batch_limit,
        )

    def get_processor(self, action_type: ActionType) -> ActionProcessor:
        for processor in self.processors:
            if processor.action_type == action_type:
                return processor
        raise KeyError(action_type)

    def seed_action_configs(self, overwrite: bool = False) -> list[ActionConfig]:
        return seed_action_configs(self.action_config_repo, self.config, overwrite)

    def run_once(self) -> dict[ActionType, int]:
        """Run one batch of every enabled action type."""
        results = {}
        for config in self.action_config_repo.find_enabled():
            try:
                processor = self.get_processor(config.action_type)
            except KeyError:
                logger.warning(f"No processor for {config.action_type.value}, skipping")
                continue

            try:
                results[config.action_type] = processor.process_next(
                    self.config.scheduler.batch_limit
                )
            except Exception:
                logger.exception(f"Error processing {config.action_type.value} actions")
        return results

    def start(self) -> None:
        self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()
