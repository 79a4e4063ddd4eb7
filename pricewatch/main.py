"""
Main application entry point.
"""

import logging
import signal

from dotenv import load_dotenv

load_dotenv()

from pricewatch.app import PriceWatchApp
from pricewatch.database.connection import Database

logger = logging.getLogger(__name__)

# Seconds to let running ticks finish before the database closes
SHUTDOWN_GRACE_SECONDS = 30


def main():
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="pricewatch price drop monitor")
    parser.add_argument(
        "--config", default="config.yaml", help="Path to config file"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument(
        "--once", action="store_true", help="Process one batch per action type and exit"
    )

    args = parser.parse_args()

    # Load config
    from pricewatch.config import load_config

    config = load_config(args.config)

    # Setup logging
    log_level = logging.DEBUG if args.debug else getattr(
        logging, config.advanced.log_level.upper(), logging.INFO
    )
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Initialize database
    db = Database(config.database.path)
    db.initialize()

    app = PriceWatchApp(db=db, config=config)
    seeded = app.seed_action_configs()
    if seeded:
        logger.info(f"Seeded {len(seeded)} action configs")

    if args.once:
        for action_type, count in app.run_once().items():
            logger.info(f"{action_type.value}: {count}")
        db.close()
        return

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        app.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    app.start()
    while not app.scheduler.wait(timeout=1):
        pass

    if not app.scheduler.drain(timeout=SHUTDOWN_GRACE_SECONDS):
        logger.warning("Closing database with ticks still running")
    db.close()


if __name__ == "__main__":
    main()
