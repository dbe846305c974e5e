"""Entry point for the Mail to Telegram gateway."""

import argparse
import asyncio
import signal
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

import structlog

from mail_to_telegram import __version__
from mail_to_telegram.config import Settings
from mail_to_telegram.logging import setup_logging


logger = structlog.get_logger()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line options. Options left out fall back to the environment."""
    parser = argparse.ArgumentParser(
        prog="mail-to-telegram",
        description="SMTP server that forwards all emails as Telegram messages",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-a",
        "--api-token",
        dest="telegram_bot_token",
        help="Telegram Bot API token (default: TELEGRAM_BOT_TOKEN)",
    )
    parser.add_argument(
        "-t",
        "--thread-count",
        dest="thread_count",
        type=int,
        help="Worker threads for blocking calls (default: THREAD_COUNT or min(cpus, 4))",
    )
    parser.add_argument(
        "-s",
        "--standard-chat-id",
        dest="telegram_standard_chat_id",
        type=int,
        help=(
            "Chat id used when none can be parsed from the recipient "
            "(<chat_id>@telegram-bot.com). Default: TELEGRAM_STANDARD_CHAT_ID"
        ),
    )
    parser.add_argument(
        "--host",
        dest="listen_address",
        help="Address the SMTP server listens on (default: 0.0.0.0:17333)",
    )
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> Settings:
    """Build settings with command line options taking precedence."""
    overrides = {key: value for key, value in vars(args).items() if value is not None}
    return Settings(**overrides)


async def main(settings: Settings) -> None:
    """Main entry point for the gateway."""
    setup_logging(settings.log_level, settings.log_format)

    logger.info(
        "Starting Mail to Telegram gateway",
        version=__version__,
        listen_address=settings.listen_address,
        standard_chat_id=settings.telegram_standard_chat_id,
        queue_capacity=settings.queue_capacity,
        http_port=settings.http_port if settings.http_enabled else None,
    )

    loop = asyncio.get_running_loop()
    loop.set_default_executor(ThreadPoolExecutor(max_workers=settings.executor_workers))

    # Import here to avoid circular dependencies
    from mail_to_telegram.gateway import MailToTelegramGateway
    from mail_to_telegram.http.server import create_http_server

    gateway = await MailToTelegramGateway.create(settings)
    await gateway.start()

    http_server = None
    http_task = None
    if settings.http_enabled:
        http_server, http_task = await create_http_server(settings, gateway)

    shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        """Handle shutdown signals."""
        logger.info("Received shutdown signal", signal=signal.Signals(sig).name)
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, lambda s, f: loop.call_soon_threadsafe(signal_handler, s))

    logger.info("Mail to Telegram gateway started successfully")

    try:
        await shutdown_event.wait()
    finally:
        logger.info("Shutting down Mail to Telegram gateway")

        if http_server is not None:
            http_server.should_exit = True
            await http_task

        await gateway.stop()

        logger.info("Mail to Telegram gateway stopped")


def run(argv: Optional[Sequence[str]] = None) -> None:
    """Run the application with proper async handling."""
    args = parse_args(argv)
    try:
        settings = load_settings(args)
        asyncio.run(main(settings))
    except Exception as e:
        logger.error("Fatal error", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
