"""Relay worker: drains the relay queue and delivers mails to Telegram."""

import asyncio

import structlog

from mail_to_telegram.metrics import (
    relay_deliveries_total,
    relay_queue_depth,
    relay_unresolved_recipients_total,
)
from mail_to_telegram.relay.envelope import Envelope
from mail_to_telegram.relay.queue import QueueReceiver
from mail_to_telegram.relay.resolver import DestinationResolver
from mail_to_telegram.telegram.client import TelegramClient, TelegramResponse
from mail_to_telegram.telegram.errors import TelegramAPIError


logger = structlog.get_logger()

# Telegram rejects text messages above this size
TEXT_MESSAGE_LIMIT = 4096
DOCUMENT_FILENAME = "mail.txt"
DOCUMENT_CAPTION = "The mail was too long, sent as text file"


class RelayWorker:
    """Single consumer of the relay queue.

    Every recipient of an envelope gets its own delivery attempt, made in
    recipient order and in line with the loop. A failed or unresolvable
    recipient is logged and skipped. After each envelope the worker sleeps
    for ``delay`` seconds; recipients within one envelope are not paced.
    """

    def __init__(
        self,
        receiver: QueueReceiver,
        client: TelegramClient,
        resolver: DestinationResolver,
        delay: float = 0.0,
    ) -> None:
        self._receiver = receiver
        self._client = client
        self._resolver = resolver
        self.delay = delay
        self.running = False

    async def run(self) -> None:
        """Relay envelopes until every producer has closed its handle."""
        self.running = True
        logger.info(
            "Relay worker started",
            queue_capacity=self._receiver.maxsize or None,
            delay=self.delay,
        )

        try:
            async for envelope in self._receiver:
                relay_queue_depth.set(self._receiver.qsize())
                try:
                    await self.relay(envelope)
                except Exception as e:
                    logger.error(
                        "Unexpected error while relaying mail",
                        sender=envelope.sender,
                        error=str(e),
                        exc_info=True,
                    )
                await asyncio.sleep(self.delay)
        finally:
            self.running = False

        logger.info("Relay queue closed, worker stopped")

    async def relay(self, envelope: Envelope) -> int:
        """Deliver one envelope to the chat of each recipient.

        Returns:
            Number of successful deliveries
        """
        logger.debug(
            "Relaying mail",
            sender=envelope.sender,
            recipients=list(envelope.recipients),
            size=envelope.size,
        )

        delivered = 0
        for recipient in envelope.recipients:
            chat_id = self._resolver.resolve(recipient)
            if chat_id is None:
                relay_unresolved_recipients_total.inc()
                logger.warning(
                    "Mail disregarded for recipient, no chat id in address and no fallback configured",
                    recipient=recipient,
                    sender=envelope.sender,
                )
                continue

            if await self.deliver(chat_id, envelope):
                delivered += 1

        return delivered

    async def deliver(self, chat_id: int, envelope: Envelope) -> bool:
        """Send an envelope body to a single chat.

        Bodies under TEXT_MESSAGE_LIMIT bytes are sent as a text message,
        larger ones as a ``mail.txt`` document.

        Returns:
            True if Telegram accepted the message
        """
        method = "text" if envelope.size < TEXT_MESSAGE_LIMIT else "document"

        try:
            response: TelegramResponse
            if method == "text":
                response = await self._client.send_text(chat_id, envelope.body)
            else:
                response = await self._client.send_document(
                    chat_id,
                    DOCUMENT_FILENAME,
                    envelope.body.encode("utf-8"),
                    DOCUMENT_CAPTION,
                )
        except TelegramAPIError as e:
            relay_deliveries_total.labels(method=method, status="failed").inc()
            logger.error(
                "Mail send over Telegram failed",
                chat_id=chat_id,
                method=method,
                error=str(e),
            )
            return False
        except Exception as e:
            relay_deliveries_total.labels(method=method, status="failed").inc()
            logger.error(
                "Unexpected error while sending mail to Telegram",
                chat_id=chat_id,
                method=method,
                error=str(e),
                exc_info=True,
            )
            return False

        if not response.ok:
            relay_deliveries_total.labels(method=method, status="failed").inc()
            logger.error(
                "Telegram rejected mail",
                chat_id=chat_id,
                method=method,
                status_code=response.status_code,
                description=response.description,
            )
            return False

        relay_deliveries_total.labels(method=method, status="success").inc()
        logger.info(
            "Mail successfully sent to Telegram",
            chat_id=chat_id,
            method=method,
        )
        return True
