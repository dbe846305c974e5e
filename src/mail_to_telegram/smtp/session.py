"""Per-connection SMTP protocol built on aiosmtpd."""

import asyncio
import sys
import time
from typing import Any, Optional

import structlog
from aiosmtpd.smtp import SMTP

from mail_to_telegram.metrics import (
    smtp_active_connections,
    smtp_connection_duration_seconds,
    smtp_connections_total,
)
from mail_to_telegram.smtp.handler import RelayHandler


logger = structlog.get_logger()


class RelaySMTP(SMTP):
    """aiosmtpd protocol serving one client connection.

    aiosmtpd runs the command loop in its own task per connection and writes
    the replies in command order. Every connection gets its own
    :class:`RelayHandler`, and its producer handle is released when the
    connection is lost.
    """

    # Stream reader limit and DATA line limit. Command lines are still bounded
    # by aiosmtpd's command_size_limit.
    line_length_limit = sys.maxsize

    def __init__(
        self,
        handler: RelayHandler,
        *,
        sessions: Optional[set["RelaySMTP"]] = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the protocol.

        Args:
            handler: Handler owning this connection's producer handle
            sessions: Set of live sessions kept by the listener
            **kwargs: Passed on to aiosmtpd's SMTP
        """
        kwargs.setdefault("data_size_limit", None)
        kwargs.setdefault("decode_data", False)
        kwargs.setdefault("enable_SMTPUTF8", True)
        super().__init__(handler, **kwargs)
        self.sessions = sessions if sessions is not None else set()
        self.connection_closed: asyncio.Future = self.loop.create_future()
        self._started = time.monotonic()

    @property
    def peer(self) -> Any:
        return self.session.peer if self.session is not None else None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        super().connection_made(transport)
        self._started = time.monotonic()
        self.sessions.add(self)
        smtp_active_connections.inc()

        logger.info("SMTP connection established", peer=self.peer)

    def connection_lost(self, error: Optional[Exception]) -> None:
        super().connection_lost(error)
        if self.connection_closed.done():
            return

        self.event_handler.close()
        self.sessions.discard(self)
        smtp_active_connections.dec()
        smtp_connection_duration_seconds.observe(time.monotonic() - self._started)

        if error:
            smtp_connections_total.labels(status="failed").inc()
            logger.warning(
                "SMTP connection closed with error",
                peer=self.peer,
                error=str(error) or type(error).__name__,
            )
        else:
            smtp_connections_total.labels(status="closed").inc()
            logger.info("SMTP connection closed", peer=self.peer)
        self.connection_closed.set_result(None)

    def abort(self) -> None:
        """Drop the connection without waiting for pending replies."""
        if self.transport is not None:
            self.transport.abort()
