"""CLI entry point for Alertmanager Bot.

Usage:
    python -m alertmanager_bot [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import NoReturn

from pydantic import ValidationError

from alertmanager_bot import __version__
from alertmanager_bot.bot import Bot
from alertmanager_bot.config import Settings, clear_settings_cache, get_settings
from alertmanager_bot.errors import BotError
from alertmanager_bot.logfmt import configure_logging, fields
from alertmanager_bot.shutdown import GracefulShutdown
from alertmanager_bot.store import create_store
from alertmanager_bot.telegram import TelegramClient
from alertmanager_bot.webhook import AlertNotification, WebhookServer

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="alertmanager-bot",
        description="Relay Prometheus Alertmanager notifications to Telegram chats.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m alertmanager_bot                          Run the bot
  python -m alertmanager_bot --config-check           Validate config and exit
  python -m alertmanager_bot --log-level DEBUG        Enable debug logging
  python -m alertmanager_bot --listen-addr :9087      Listen on another port
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration and exit without running the bot",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level (default: from settings)",
    )

    parser.add_argument(
        "--listen-addr",
        default=None,
        help="Override webhook listen address host:port (default: from settings)",
    )

    return parser


def print_config_summary(settings: Settings) -> None:
    """Print a summary of the configuration."""
    print("Configuration:")
    for key, value in settings.redacted_summary().items():
        print(f"  {key}: {value}")
    print()


def validate_config() -> Settings | None:
    """Validate and load configuration.

    Returns:
        Settings instance if valid, None if invalid.
    """
    try:
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        print("Configuration validation failed:", file=sys.stderr)
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            print(f"  {field}: {error['msg']}", file=sys.stderr)
        return None


def parse_listen_addr(addr: str) -> tuple[str, int]:
    """Split host:port, defaulting the host to all interfaces."""
    host, _, port = addr.rpartition(":")
    return host or "0.0.0.0", int(port)


async def run_bot(settings: Settings, listen_addr: str | None = None) -> int:
    """Run the bot and webhook server until a shutdown signal arrives.

    Args:
        settings: Application settings.
        listen_addr: Optional override for settings.listen_addr.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)
    host, port = parse_listen_addr(listen_addr or settings.listen_addr)

    try:
        async with GracefulShutdown() as shutdown:
            store = await create_store(settings.storage)
            shutdown.register_cleanup(store.close)

            client = TelegramClient(
                settings.telegram.token,
                poll_timeout=settings.telegram.poll_timeout,
            )
            shutdown.register_cleanup(client.close)

            me = await client.get_me()
            logger.info("connected to telegram", extra=fields(bot=me.username, bot_id=me.id))

            alerts: asyncio.Queue[AlertNotification] = asyncio.Queue()
            server = WebhookServer(alerts, host=host, port=port)
            await server.start()
            shutdown.register_cleanup(server.stop)

            bot = Bot(
                store,
                client,
                settings.telegram.admin,
                send_timeout=settings.send_timeout,
            )
            logger.info("bot running", extra=fields(admin=settings.telegram.admin))
            await bot.run(shutdown.event, alerts)

            if not alerts.empty():
                logger.info("dropping unsent notifications", extra=fields(count=alerts.qsize()))

        return EXIT_SUCCESS
    except KeyboardInterrupt:
        logger.info("interrupted by user")
        return EXIT_INTERRUPTED
    except BotError as e:
        logger.error("bot failed", extra=fields(err=e))
        return EXIT_ERROR
    except Exception as e:
        logger.exception("bot failed", extra=fields(err=e))
        return EXIT_ERROR


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = validate_config()
    if settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    if args.listen_addr is not None:
        try:
            parse_listen_addr(args.listen_addr)
        except ValueError:
            parser.error(f"invalid --listen-addr: {args.listen_addr}")

    configure_logging(args.log_level or settings.log_level)

    if args.config_check:
        print("Configuration is valid!")
        print()
        print_config_summary(settings)
        sys.exit(EXIT_SUCCESS)

    exit_code = asyncio.run(run_bot(settings, args.listen_addr))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
