"""Wiring of the SMTP listener, relay queue and relay worker."""

import asyncio
from typing import Optional

import structlog

from mail_to_telegram.config import Settings
from mail_to_telegram.relay.queue import relay_channel
from mail_to_telegram.relay.resolver import DestinationResolver
from mail_to_telegram.relay.worker import RelayWorker
from mail_to_telegram.smtp.server import SMTPServer
from mail_to_telegram.telegram.client import TelegramClient
from mail_to_telegram.telegram.errors import AuthenticationError, TelegramAPIError


logger = structlog.get_logger()


class StartupError(Exception):
    """The gateway cannot start with the given configuration."""

    pass


async def create_telegram_client(settings: Settings) -> TelegramClient:
    """Create the Telegram client and validate the bot token.

    Raises:
        StartupError: If no token is configured or Telegram rejects it
    """
    if not settings.telegram_bot_token:
        raise StartupError(
            "No Telegram Bot API token supplied with --api-token or the "
            "TELEGRAM_BOT_TOKEN environment variable"
        )

    try:
        return await TelegramClient.connect(
            settings.telegram_bot_token,
            api_url=settings.telegram_api_url,
            timeout=settings.api_timeout,
            parse_mode=settings.telegram_parse_mode,
        )
    except AuthenticationError as e:
        raise StartupError("TELEGRAM_BOT_TOKEN incorrect") from e
    except TelegramAPIError as e:
        raise StartupError(f"Could not validate Telegram bot token: {e}") from e


class MailToTelegramGateway:
    """The SMTP listener and the relay worker sharing one relay queue."""

    def __init__(self, settings: Settings, client: TelegramClient) -> None:
        """Build the gateway.

        Args:
            settings: Application settings
            client: Validated Telegram client, owned by the gateway from now on
        """
        self.settings = settings
        self.client = client

        sender, receiver = relay_channel(settings.queue_capacity)
        self.resolver = DestinationResolver(settings.telegram_standard_chat_id)
        self.worker = RelayWorker(
            receiver,
            client,
            self.resolver,
            delay=settings.telegram_api_delay,
        )
        self._receiver = receiver

        host, port = settings.bind_address
        self.smtp_server = SMTPServer(
            sender,
            host,
            port,
            hostname=settings.smtp_hostname,
            timeout=settings.smtp_timeout,
        )
        self._worker_task: Optional[asyncio.Task] = None

    @classmethod
    async def create(cls, settings: Settings) -> "MailToTelegramGateway":
        """Build a gateway with a freshly validated Telegram client."""
        client = await create_telegram_client(settings)
        return cls(settings, client)

    @property
    def is_ready(self) -> bool:
        return self.smtp_server.is_serving and self.worker.running

    async def start(self) -> None:
        """Start the relay worker, then open the SMTP listener."""
        self._worker_task = asyncio.create_task(self.worker.run())
        await asyncio.sleep(0)
        await self.smtp_server.start()

    async def stop(self) -> None:
        """Stop accepting mail, drain the relay queue and release resources."""
        await self.smtp_server.stop()

        if self._worker_task is not None:
            try:
                await asyncio.wait_for(self._worker_task, timeout=self.settings.shutdown_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Relay queue not drained before shutdown timeout",
                    pending=self._receiver.qsize(),
                )
                self._receiver.close()
            self._worker_task = None

        await self.client.aclose()
