from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from immo_trakt.config import DEFAULT_CONFIG_FILE, AppConfig, load_config
from immo_trakt.dispatcher import Dispatcher
from immo_trakt.errors import ConfigError
from immo_trakt.fetcher.immoscout import ImmoScoutSource, build_page_url
from immo_trakt.notifiers.base import LogNotifier, Notifier
from immo_trakt.notifiers.discord import DiscordNotifier
from immo_trakt.notifiers.mail import EmailNotifier
from immo_trakt.notifiers.slack import SlackNotifier
from immo_trakt.notifiers.telegram import TelegramNotifier, resolve_chat_id
from immo_trakt.scheduler import run_forever

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_notifiers(config: AppConfig, dry_run: bool = False) -> List[Notifier]:
    """Create one notifier per configured transport.

    Raises ConfigError when a Telegram token is set but no chat can be found.
    """
    if dry_run:
        return [LogNotifier()]

    notifiers: List[Notifier] = []

    if config.telegram_token:
        chat_id = config.telegram_chat_id or resolve_chat_id(config.telegram_token)
        notifiers.append(TelegramNotifier(config.telegram_token, chat_id))

    if config.slack_webhook_url:
        notifiers.append(SlackNotifier(config.slack_webhook_url))

    if config.discord_webhook_url:
        notifiers.append(DiscordNotifier(config.discord_webhook_url))

    if config.email.enabled:
        notifiers.append(EmailNotifier(config.email))

    return notifiers


def build_dispatcher(config: AppConfig, notifiers: Sequence[Notifier]) -> Dispatcher:
    source = ImmoScoutSource(
        config.search.search_url,
        timeout=config.search.request_timeout_seconds,
    )
    return Dispatcher(
        source,
        notifiers,
        config.search.filters,
        include_existing_offers=config.include_existing_offers,
    )


def run_bot(config: AppConfig, dispatcher: Dispatcher, once: bool = False) -> int:
    """Run ticks until interrupted, or a single one with once=True.

    Returns 0 on success, 1 if a tick recorded errors.
    """
    logger.info("=" * 60)
    logger.info("IMMO-TRAKT STARTING")
    logger.info("=" * 60)
    logger.info("Search: %s", build_page_url(config.search.search_url, 1))
    logger.info("Notifiers: %s", ", ".join(n.name for n in dispatcher.notifiers) or "none")
    logger.info("Include existing offers: %s", config.include_existing_offers)

    if once:
        metrics = dispatcher.run_tick()
        return 0 if metrics.errors == 0 else 1

    logger.info("Program scheduled to run with following frequency: %s", config.frequency)
    try:
        run_forever(dispatcher.run_tick, config.interval_seconds)
    finally:
        dispatcher.run_metrics.log_summary()
    return 0


def main(argv: Optional[Sequence[str]] = None, config_path: str | Path = DEFAULT_CONFIG_FILE) -> int:
    """Main entry point.

    Returns 0 on success, 1 on error, 130 when interrupted.
    """
    parser = argparse.ArgumentParser(
        description="immo-trakt - Get notified about new ImmobilienScout24 listings",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=str(config_path),
        help=f"Path to configuration file (default: {config_path})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch listings but only log notifications",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single polling tick and exit",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config)
        notifiers = build_notifiers(config, dry_run=args.dry_run)
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    if args.dry_run:
        logger.info("DRY RUN MODE - No notifications will be sent")
    elif not notifiers:
        logger.warning("No notifiers configured. New listings will only be logged.")

    dispatcher = build_dispatcher(config, notifiers)

    try:
        return run_bot(config, dispatcher, once=args.once)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
