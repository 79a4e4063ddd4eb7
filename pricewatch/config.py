"""
Configuration loading and validation.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from pricewatch.catalog.urls import CATALOG_DOMAINS, SHORT_URL_DOMAINS
from pricewatch.database.models import DEFAULT_INTERVALS, ActionType


class ConfigValidationError(Exception):
    """Raised when configuration is invalid."""

    pass


@dataclass
class DatabaseConfig:
    """Database configuration."""

    path: str = "data/pricewatch.db"


@dataclass
class ActionScheduleConfig:
    """Interval settings for one action type."""

    interval_minutes: float
    enabled: bool = True


def _default_actions() -> dict[ActionType, ActionScheduleConfig]:
    return {
        action_type: ActionScheduleConfig(interval_minutes=minutes)
        for action_type, minutes in DEFAULT_INTERVALS.items()
    }


@dataclass
class SchedulerConfig:
    """Scheduler configuration."""

    batch_limit: int = 10
    actions: dict[ActionType, ActionScheduleConfig] = field(
        default_factory=_default_actions
    )


@dataclass
class CatalogConfig:
    """Catalog lookup configuration."""

    provider: str = "mock"
    endpoint: str = ""
    api_key: str = ""
    marketplace: str = "www.amazon.com.br"
    max_batch_size: int = 10
    timeout: float = 10


@dataclass
class UrlResolverConfig:
    """Product link resolution settings."""

    catalog_domains: list[str] = field(default_factory=lambda: list(CATALOG_DOMAINS))
    short_domains: list[str] = field(default_factory=lambda: list(SHORT_URL_DOMAINS))
    max_redirects: int = 10
    timeout: float = 10


@dataclass
class TelegramConfig:
    """Telegram notification settings."""

    bot_token: str = ""
    api_url: str = "https://api.telegram.org"
    timeout: float = 10


@dataclass
class DiscordConfig:
    """Discord notification settings."""

    mention_on_big_drop: bool = True
    big_drop_pct: float = 20.0


@dataclass
class NotificationsConfig:
    """Notifications configuration."""

    channel: str = "telegram"
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    discord: DiscordConfig = field(default_factory=DiscordConfig)


@dataclass
class AdvancedConfig:
    """Advanced configuration."""

    log_level: str = "INFO"
    max_retries: int = 3
    retry_delay_seconds: float = 1.0


@dataclass
class AppConfig:
    """Main application configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    url_resolver: UrlResolverConfig = field(default_factory=UrlResolverConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)


def _substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in string values."""
    if isinstance(value, str):
        # Match ${VAR_NAME} pattern
        pattern = r"\$\{([^}]+)\}"
        matches = re.findall(pattern, value)
        for var_name in matches:
            env_value = os.environ.get(var_name, "")
            value = value.replace(f"${{{var_name}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _parse_action_type(name: str) -> ActionType:
    try:
        return ActionType(str(name).upper())
    except ValueError:
        raise ConfigValidationError(f"Unknown action type: {name}")


def _validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values."""
    # Check database path is provided
    db_config = config_dict.get("database") or {}
    db_path = db_config.get("path")
    if not db_path:
        raise ConfigValidationError("Database path is required")

    path = Path(db_path)
    parent = path.parent
    if db_path != ":memory:" and parent.exists() and not os.access(parent, os.W_OK):
        raise ConfigValidationError(f"Database path not writable: {parent}")

    scheduler = config_dict.get("scheduler") or {}
    batch_limit = scheduler.get("batch_limit", 10)
    if not isinstance(batch_limit, int) or batch_limit <= 0:
        raise ConfigValidationError("Scheduler batch_limit must be a positive integer")

    for name, settings in (scheduler.get("actions") or {}).items():
        _parse_action_type(name)
        interval = (settings or {}).get("interval_minutes")
        if interval is not None and (
            not isinstance(interval, (int, float)) or interval <= 0
        ):
            raise ConfigValidationError(
                f"interval_minutes for {name} must be a positive number"
            )

    catalog = config_dict.get("catalog") or {}
    provider = catalog.get("provider", "mock")
    if provider not in ("mock", "http"):
        raise ConfigValidationError(f"Unknown catalog provider: {provider}")
    if provider == "http" and not catalog.get("endpoint"):
        raise ConfigValidationError("Catalog endpoint is required for http provider")
    max_batch_size = catalog.get("max_batch_size", 10)
    if not isinstance(max_batch_size, int) or max_batch_size <= 0:
        raise ConfigValidationError("Catalog max_batch_size must be a positive integer")

    notifications = config_dict.get("notifications") or {}
    channel = notifications.get("channel", "telegram")
    if channel not in ("telegram", "discord"):
        raise ConfigValidationError(f"Unknown notification channel: {channel}")

    advanced = config_dict.get("advanced") or {}
    max_retries = advanced.get("max_retries", 3)
    if not isinstance(max_retries, int) or max_retries <= 0:
        raise ConfigValidationError("Advanced max_retries must be a positive integer")


def _build_scheduler(sched_dict: dict[str, Any]) -> SchedulerConfig:
    actions = _default_actions()
    for name, settings in (sched_dict.get("actions") or {}).items():
        action_type = _parse_action_type(name)
        settings = settings or {}
        actions[action_type] = ActionScheduleConfig(
            interval_minutes=settings.get(
                "interval_minutes", DEFAULT_INTERVALS[action_type]
            ),
            enabled=settings.get("enabled", True),
        )

    return SchedulerConfig(
        batch_limit=sched_dict.get("batch_limit", 10),
        actions=actions,
    )


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file, None for defaults

    Returns:
        AppConfig instance

    Raises:
        ConfigValidationError: If configuration is invalid
        FileNotFoundError: If config file doesn't exist
    """
    if config_path is None:
        raw_config = {}
    else:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path) as f:
            raw_config = yaml.safe_load(f) or {}

    # Substitute environment variables
    config_dict = _substitute_env_vars(raw_config)
    config_dict.setdefault("database", {}).setdefault("path", DatabaseConfig.path)

    # Validate
    _validate_config(config_dict)

    # Build config objects
    database = DatabaseConfig(**config_dict.get("database", {}))
    scheduler = _build_scheduler(config_dict.get("scheduler") or {})

    # Catalog
    catalog = CatalogConfig(**(config_dict.get("catalog") or {}))
    if not catalog.api_key:
        catalog.api_key = os.environ.get("CATALOG_API_KEY", "")

    url_resolver = UrlResolverConfig(**(config_dict.get("url_resolver") or {}))

    # Notifications
    notif_dict = config_dict.get("notifications") or {}
    telegram = TelegramConfig(**(notif_dict.get("telegram") or {}))
    if not telegram.bot_token:
        telegram.bot_token = os.environ.get("TELEGRAM_BOT_TOKEN", "")
    notifications = NotificationsConfig(
        channel=notif_dict.get("channel", "telegram"),
        telegram=telegram,
        discord=DiscordConfig(**(notif_dict.get("discord") or {})),
    )

    # Advanced
    advanced = AdvancedConfig(**(config_dict.get("advanced") or {}))

    return AppConfig(
        database=database,
        scheduler=scheduler,
        catalog=catalog,
        url_resolver=url_resolver,
        notifications=notifications,
        advanced=advanced,
    )
