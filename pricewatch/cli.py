"""
CLI commands for pricewatch.
"""

import argparse
import uuid
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from pricewatch.app import create_catalog, seed_action_configs
from pricewatch.config import AppConfig, load_config
from pricewatch.database.connection import Database
from pricewatch.database.models import (
    Action,
    ActionConfig,
    ActionOrigin,
    ActionType,
    DEFAULT_INTERVALS,
    User,
    UserOrigin,
    create_add_product_action,
    create_check_product_action,
)
from pricewatch.database.repository import (
    ActionConfigRepository,
    ActionRepository,
    ProductRepository,
    ProductStatsRepository,
    SubscriptionRepository,
    UserRepository,
)
from pricewatch.processors.check_product import CheckProductProcessor
from pricewatch.stats import ProductStatsService


def add_user(
    db: Database,
    user_id: Optional[str] = None,
    telegram_id: Optional[str] = None,
    discord_webhook: Optional[str] = None,
    email: Optional[str] = None,
    origin: UserOrigin = UserOrigin.TELEGRAM,
    enabled: bool = False,
) -> User:
    """Add a new user."""
    repo = UserRepository(db)
    user = User(
        id=user_id or uuid.uuid4().hex,
        telegram_id=telegram_id,
        discord_webhook_url=discord_webhook,
        email=email,
        origin=origin,
        enabled=enabled,
    )
    return repo.create(user)


def enqueue_add_product(
    db: Database,
    user_id: str,
    url: str,
    origin: ActionOrigin = ActionOrigin.TELEGRAM,
) -> Action:
    """Queue a product link for a user."""
    repo = ActionRepository(db)
    return repo.create(create_add_product_action(user_id, url, origin))


def check_product(db: Database, config: AppConfig, product_id: str) -> Optional[Action]:
    """Queue a CHECK_PRODUCT action and process it right away."""
    action_repo = ActionRepository(db)
    processor = CheckProductProcessor(
        action_repo,
        ProductRepository(db),
        create_catalog(config),
        stats_service=ProductStatsService(ProductStatsRepository(db)),
    )
    action = action_repo.create(create_check_product_action(product_id))
    processor.process(action)
    return action_repo.find_by_id(action.id)


def set_action_config(
    db: Database,
    action_type: ActionType,
    interval_minutes: Optional[float] = None,
    enabled: Optional[bool] = None,
) -> ActionConfig:
    """Change the interval or enabled flag of an action type."""
    repo = ActionConfigRepository(db)
    config = repo.find_by_type(action_type) or ActionConfig(
        action_type=action_type,
        interval_minutes=DEFAULT_INTERVALS[action_type],
    )
    if interval_minutes is not None:
        if interval_minutes <= 0:
            raise ValueError("Interval must be positive")
        config.interval_minutes = interval_minutes
    if enabled is not None:
        config.enabled = enabled
    return repo.upsert(config)


def _action_type(value: str) -> ActionType:
    try:
        return ActionType(value.upper().replace("-", "_"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Unknown action type: {value}")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="pricewatch CLI")
    parser.add_argument("--db", help="Database path (overrides config)")
    parser.add_argument("--config", help="Path to config file")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    # User commands
    user_parser = subparsers.add_parser("user", help="User management")
    user_subparsers = user_parser.add_subparsers(dest="action")

    add_user_parser = user_subparsers.add_parser("add", help="Add user")
    add_user_parser.add_argument("--id", help="User ID")
    add_user_parser.add_argument("--telegram-id", help="Telegram chat ID")
    add_user_parser.add_argument("--discord", help="Discord webhook URL")
    add_user_parser.add_argument("--email", help="User email")
    add_user_parser.add_argument(
        "--origin", choices=[o.value for o in UserOrigin], default="TELEGRAM"
    )
    add_user_parser.add_argument("--enabled", action="store_true", help="Enable monitoring")

    user_subparsers.add_parser("list", help="List users")

    enable_parser = user_subparsers.add_parser("enable", help="Enable monitoring")
    enable_parser.add_argument("user_id")
    disable_parser = user_subparsers.add_parser("disable", help="Disable monitoring")
    disable_parser.add_argument("user_id")

    # Action commands
    action_parser = subparsers.add_parser("action", help="Action queue")
    action_subparsers = action_parser.add_subparsers(dest="action")

    add_product_parser = action_subparsers.add_parser(
        "add-product", help="Queue a product link"
    )
    add_product_parser.add_argument("--user", required=True, help="User ID")
    add_product_parser.add_argument("--url", required=True, help="Product link")
    add_product_parser.add_argument(
        "--origin", choices=[o.value for o in ActionOrigin], default="TELEGRAM"
    )

    check_parser = action_subparsers.add_parser("check", help="Check a product now")
    check_parser.add_argument("product_id")

    list_actions_parser = action_subparsers.add_parser("list", help="List actions")
    list_actions_parser.add_argument("--type", type=_action_type, required=True)
    list_actions_parser.add_argument("--pending", action="store_true")
    list_actions_parser.add_argument("--limit", type=int, default=50)

    # Config commands
    config_parser = subparsers.add_parser("config", help="Action schedule settings")
    config_subparsers = config_parser.add_subparsers(dest="action")

    set_parser = config_subparsers.add_parser("set", help="Set action type schedule")
    set_parser.add_argument("type", type=_action_type)
    set_parser.add_argument("--interval", type=float, help="Minutes between ticks")
    enabled_group = set_parser.add_mutually_exclusive_group()
    enabled_group.add_argument("--enable", dest="enabled", action="store_true", default=None)
    enabled_group.add_argument("--disable", dest="enabled", action="store_false")

    config_subparsers.add_parser("list", help="List action type schedules")

    seed_parser = config_subparsers.add_parser("seed", help="Seed schedules from config")
    seed_parser.add_argument("--overwrite", action="store_true")

    # Subscription commands
    sub_parser = subparsers.add_parser("subscription", help="Subscriptions")
    sub_subparsers = sub_parser.add_subparsers(dest="action")

    list_subs_parser = sub_subparsers.add_parser("list", help="List subscriptions")
    list_subs_parser.add_argument("--user", required=True, help="User ID")

    remove_sub_parser = sub_subparsers.add_parser("remove", help="Stop monitoring")
    remove_sub_parser.add_argument("--user", required=True, help="User ID")
    remove_sub_parser.add_argument("--product", required=True, help="Product ID")

    desired_parser = sub_subparsers.add_parser("desired-price", help="Set desired price")
    desired_parser.add_argument("--user", required=True, help="User ID")
    desired_parser.add_argument("--product", required=True, help="Product ID")
    desired_parser.add_argument("--price", type=float, help="Desired price, omit to clear")

    # Stats commands
    stats_parser = subparsers.add_parser("stats", help="Price statistics")
    stats_subparsers = stats_parser.add_subparsers(dest="action")
    show_stats_parser = stats_subparsers.add_parser("show", help="Show statistics")
    show_stats_parser.add_argument("--product", help="Product ID, latest of all if omitted")
    show_stats_parser.add_argument("--limit", type=int, default=10)

    # DB commands
    db_parser = subparsers.add_parser("db", help="Database management")
    db_subparsers = db_parser.add_subparsers(dest="action")
    db_subparsers.add_parser("migrate", help="Run migrations")

    args = parser.parse_args()

    config = load_config(args.config)

    # Initialize database
    db = Database(args.db or config.database.path)
    db.initialize()

    # Handle commands
    if args.command == "user":
        repo = UserRepository(db)
        if args.action == "add":
            user = add_user(
                db,
                user_id=args.id,
                telegram_id=args.telegram_id,
                discord_webhook=args.discord,
                email=args.email,
                origin=UserOrigin(args.origin),
                enabled=args.enabled,
            )
            print(f"Created user with ID: {user.id}")
        elif args.action == "list":
            for user in repo.list_all():
                status = "enabled" if user.enabled else "disabled"
                print(
                    f"ID: {user.id}, Telegram: {user.telegram_id}, "
                    f"Origin: {user.origin.value}, {status}"
                )
        elif args.action in ("enable", "disable"):
            user = repo.set_enabled(args.user_id, args.action == "enable")
            if user is None:
                print(f"User not found: {args.user_id}")
            else:
                print(f"Monitoring {args.action}d for {user.id}")

    elif args.command == "action":
        if args.action == "add-product":
            action = enqueue_add_product(
                db, args.user, args.url, ActionOrigin(args.origin)
            )
            print(f"Queued action {action.id}")
        elif args.action == "check":
            action = check_product(db, config, args.product_id)
            state = "processed" if action and action.is_processed else "pending"
            print(f"Check of {args.product_id} {state}")
        elif args.action == "list":
            repo = ActionRepository(db)
            if args.pending:
                actions = repo.find_pending_by_type(args.type, args.limit)
            else:
                actions = repo.find_by_type(args.type, args.limit)
            for a in actions:
                state = "processed" if a.is_processed else "pending"
                print(f"{a.id}: {a.value} ({state}, {a.created_at:%Y-%m-%d %H:%M})")

    elif args.command == "config":
        repo = ActionConfigRepository(db)
        if args.action == "set":
            action_config = set_action_config(
                db, args.type, interval_minutes=args.interval, enabled=args.enabled
            )
            print(
                f"{action_config.action_type.value}: every "
                f"{action_config.interval_minutes} minutes, "
                f"{'enabled' if action_config.enabled else 'disabled'}"
            )
        elif args.action == "list":
            for c in repo.list_all():
                state = "enabled" if c.enabled else "disabled"
                print(f"{c.action_type.value}: every {c.interval_minutes} minutes ({state})")
        elif args.action == "seed":
            seeded = seed_action_configs(repo, config, overwrite=args.overwrite)
            print(f"Seeded {len(seeded)} action configs")

    elif args.command == "subscription":
        repo = SubscriptionRepository(db)
        if args.action == "list":
            for s in repo.find_by_user_id(args.user):
                desired = f"{s.desired_price:.2f}" if s.desired_price is not None else "-"
                print(f"{s.product_id}: desired {desired}")
        elif args.action == "remove":
            repo.remove_by_product_and_user(args.product, args.user)
            print(f"Stopped monitoring {args.product} for {args.user}")
        elif args.action == "desired-price":
            repo.update_desired_price(args.product, args.user, args.price)
            print(f"Desired price for {args.product} set to {args.price}")

    elif args.command == "stats":
        if args.action == "show":
            service = ProductStatsService(ProductStatsRepository(db))
            if args.product:
                stats = service.get_product_statistics(args.product)
            else:
                stats = service.get_latest_statistics(args.limit)
            for s in stats:
                print(
                    f"{s.created_at:%Y-%m-%d %H:%M} {s.product_id}: "
                    f"{s.old_price:.2f} -> {s.price:.2f} ({s.percentage_change:.2f}%)"
                )

    elif args.command == "db":
        if args.action == "migrate":
            db.initialize()
            print("Migrations applied")

    db.close()


if __name__ == "__main__":
    main()
