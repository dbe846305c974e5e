"""aiosmtpd handler that turns completed mails into relay envelopes."""

import structlog
from aiosmtpd.smtp import SMTP as SMTPProtocol
from aiosmtpd.smtp import Envelope as SMTPEnvelope
from aiosmtpd.smtp import Session as SMTPSession

from mail_to_telegram.metrics import (
    relay_queue_depth,
    smtp_commands_total,
    smtp_envelopes_received_total,
    smtp_message_size_bytes,
)
from mail_to_telegram.relay.envelope import Envelope
from mail_to_telegram.relay.queue import QueueClosedError, QueueSender


logger = structlog.get_logger()

OK = "250 OK"
INTERNAL_ERROR = "451 Aborted: local error in processing"


def _close_transport(server: SMTPProtocol) -> None:
    # Scheduled from handle_DATA, runs after aiosmtpd has written the reply
    if server.transport is not None:
        server.transport.close()


class RelayHandler:
    """SMTP command handler implementing the aiosmtpd interface.

    One instance exists per connection and owns that connection's producer
    handle on the relay queue. MAIL and RCPT capture the sender and the
    recipients in order, aiosmtpd collects the DATA lines without a size cap,
    and DATA completion decodes the body and queues it for relay.
    """

    def __init__(self, queue: QueueSender) -> None:
        """Initialize the handler.

        Args:
            queue: Producer handle owned by this connection
        """
        self.queue = queue

    async def handle_HELO(
        self,
        server: SMTPProtocol,
        session: SMTPSession,
        envelope: SMTPEnvelope,
        hostname: str,
    ) -> str:
        session.host_name = hostname
        smtp_commands_total.labels(command="HELO", status="success").inc()

        logger.info(
            "HELO command received",
            peer=session.peer,
            hostname=hostname,
        )
        return f"250 {server.hostname}"

    async def handle_EHLO(
        self,
        server: SMTPProtocol,
        session: SMTPSession,
        envelope: SMTPEnvelope,
        hostname: str,
        responses: list[str],
    ) -> list[str]:
        """Handle EHLO command.

        Args:
            server: SMTP server instance
            session: Current session
            envelope: Current envelope
            hostname: Client-provided hostname
            responses: Capability lines prepared by aiosmtpd

        Returns:
            List of SMTP response strings
        """
        session.host_name = hostname
        smtp_commands_total.labels(command="EHLO", status="success").inc()

        logger.info(
            "EHLO command received",
            peer=session.peer,
            hostname=hostname,
        )
        return responses

    async def handle_MAIL(
        self,
        server: SMTPProtocol,
        session: SMTPSession,
        envelope: SMTPEnvelope,
        address: str,
        mail_options: list[str],
    ) -> str:
        envelope.mail_from = address
        envelope.mail_options.extend(mail_options)
        smtp_commands_total.labels(command="MAIL", status="success").inc()

        logger.debug("Mail transaction started", peer=session.peer, sender=address)
        return OK

    async def handle_RCPT(
        self,
        server: SMTPProtocol,
        session: SMTPSession,
        envelope: SMTPEnvelope,
        address: str,
        rcpt_options: list[str],
    ) -> str:
        envelope.rcpt_tos.append(address)
        envelope.rcpt_options.extend(rcpt_options)
        smtp_commands_total.labels(command="RCPT", status="success").inc()

        logger.debug("Recipient added", peer=session.peer, recipient=address)
        return OK

    async def handle_DATA(
        self,
        server: SMTPProtocol,
        session: SMTPSession,
        envelope: SMTPEnvelope,
    ) -> str:
        """Queue the completed mail for relay.

        A body that is not valid UTF-8 is dropped while still answering 250.
        If the relay queue is closed the client gets a 451 and the connection
        is closed once the reply is written.

        Args:
            server: SMTP server instance
            session: Current session
            envelope: Envelope holding sender, recipients and content

        Returns:
            SMTP response string
        """
        raw = envelope.original_content or b""
        smtp_message_size_bytes.observe(len(raw))

        try:
            body = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            smtp_commands_total.labels(command="DATA", status="success").inc()
            smtp_envelopes_received_total.labels(status="dropped_undecodable").inc()
            logger.warning(
                "Mail body is not valid UTF-8, dropping mail",
                peer=session.peer,
                sender=envelope.mail_from,
                error=str(e),
            )
            return OK

        mail = Envelope(
            sender=envelope.mail_from or "",
            recipients=tuple(envelope.rcpt_tos),
            body=body,
        )

        logger.info(
            "Mail received, queueing for Telegram relay",
            peer=session.peer,
            sender=mail.sender,
            recipients=list(mail.recipients),
            size=len(raw),
        )
        logger.debug("Full mail", body=body)

        try:
            await self.queue.send(mail)
        except QueueClosedError as e:
            smtp_commands_total.labels(command="DATA", status="error").inc()
            smtp_envelopes_received_total.labels(status="rejected").inc()
            logger.error(
                "Relay queue closed, mail rejected",
                peer=session.peer,
                sender=e.envelope.sender,
                recipients=list(e.envelope.recipients),
            )
            server.loop.call_soon(_close_transport, server)
            return INTERNAL_ERROR

        smtp_commands_total.labels(command="DATA", status="success").inc()
        smtp_envelopes_received_total.labels(status="queued").inc()
        relay_queue_depth.set(self.queue.qsize())
        return OK

    async def handle_exception(self, error: Exception) -> str:
        """Log an unexpected error raised while serving a command.

        Returns:
            SMTP response string sent to the client
        """
        logger.error(
            "Unexpected error in SMTP session",
            error=str(error),
            exc_info=error,
        )
        return f"500 Error: ({error.__class__.__name__}) {error}"

    def close(self) -> None:
        """Release the producer handle of this connection."""
        self.queue.close()

