"""SMTP listener that serves each accepted connection with its own aiosmtpd protocol."""

import asyncio
from typing import Optional

import structlog

from mail_to_telegram.relay.queue import QueueSender
from mail_to_telegram.smtp.handler import RelayHandler
from mail_to_telegram.smtp.session import RelaySMTP


logger = structlog.get_logger()


class SMTPServer:
    """Accepts SMTP connections on the running event loop.

    The protocol factory only builds a :class:`RelaySMTP` with a fresh
    producer handle; aiosmtpd then serves the connection in its own task, so
    a slow client never delays other connections. Errors inside one
    connection are handled by aiosmtpd and the handler and do not affect the
    listener or other connections.
    """

    def __init__(
        self,
        queue: QueueSender,
        host: str,
        port: int,
        *,
        hostname: str = "mail-to-telegram",
        timeout: float = 300,
    ) -> None:
        """Initialize the server.

        Args:
            queue: Root producer handle, cloned for every connection
            host: Bind address
            port: Bind port (0 picks a free port)
            hostname: Name announced in the greeting
            timeout: Seconds a connection may stay idle
        """
        self.queue = queue
        self.host = host
        self.port = port
        self.hostname = hostname
        self.timeout = timeout
        self._server: Optional[asyncio.Server] = None
        self._sessions: set[RelaySMTP] = set()

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def sockname(self) -> Optional[tuple]:
        """Address actually bound, once started."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    def factory(self) -> RelaySMTP:
        """Build the protocol for one accepted connection."""
        return RelaySMTP(
            RelayHandler(self.queue.clone()),
            sessions=self._sessions,
            hostname=self.hostname,
            timeout=self.timeout,
        )

    async def start(self) -> None:
        """Bind the listener and start accepting connections."""
        loop = asyncio.get_running_loop()
        self._server = await loop.create_server(self.factory, host=self.host, port=self.port)
        logger.info(
            "SMTP server started",
            host=self.host,
            port=self.port,
            sockname=self.sockname,
        )

    async def stop(self) -> None:
        """Stop accepting, drop open connections and release the root producer handle."""
        if self._server is not None:
            self._server.close()

        sessions = list(self._sessions)
        for session in sessions:
            session.abort()
        if sessions:
            await asyncio.gather(
                *(session.connection_closed for session in sessions),
                return_exceptions=True,
            )

        if self._server is not None:
            await self._server.wait_closed()
            self._server = None

        self.queue.close()
        logger.info("SMTP server stopped", dropped_sessions=len(sessions))
