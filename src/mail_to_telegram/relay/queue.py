"""Hand-off channel between SMTP sessions and the relay worker.

Many sessions produce envelopes through cloned :class:`QueueSender` handles
while a single :class:`QueueReceiver` drains them in FIFO order. The channel
is an anyio memory object stream: a bounded stream makes producers wait while
it is full and entries are never dropped. Once every sender is closed the
receiver sees end of stream, and once the receiver is closed every send fails
with :class:`QueueClosedError`.
"""

import math
from typing import Optional

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from mail_to_telegram.relay.envelope import Envelope


class QueueClosedError(Exception):
    """The receiving side of the relay queue is gone."""

    def __init__(self, envelope: Envelope) -> None:
        super().__init__("Relay queue is closed")
        self.envelope = envelope


class QueueSender:
    """Producer handle. Clone one per producer and close it when done."""

    def __init__(self, stream: MemoryObjectSendStream[Envelope]) -> None:
        self._stream = stream
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def clone(self) -> "QueueSender":
        """Create another producer handle on the same queue.

        Raises:
            anyio.ClosedResourceError: If this handle was closed
        """
        return QueueSender(self._stream.clone())

    def qsize(self) -> int:
        return self._stream.statistics().current_buffer_used

    async def send(self, envelope: Envelope) -> None:
        """Append an envelope, waiting while the queue is full.

        Raises:
            QueueClosedError: If the receiver has been closed, before or while waiting
            anyio.ClosedResourceError: If this handle was closed
        """
        try:
            await self._stream.send(envelope)
        except anyio.BrokenResourceError:
            raise QueueClosedError(envelope) from None

    def close(self) -> None:
        """Release this handle. Closing twice is a no-op."""
        self._closed = True
        self._stream.close()

    def __enter__(self) -> "QueueSender":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class QueueReceiver:
    """The single consumer handle of a relay queue."""

    def __init__(self, stream: MemoryObjectReceiveStream[Envelope]) -> None:
        self._stream = stream

    @property
    def maxsize(self) -> int:
        """Queue capacity, 0 when unbounded."""
        max_buffer_size = self._stream.statistics().max_buffer_size
        return 0 if max_buffer_size == math.inf else int(max_buffer_size)

    def qsize(self) -> int:
        return self._stream.statistics().current_buffer_used

    async def recv(self) -> Optional[Envelope]:
        """Wait for the next envelope.

        Returns:
            The oldest queued envelope, or None once the queue is empty and
            every sender has been closed, or once this handle was closed.
        """
        try:
            return await self._stream.receive()
        except (anyio.EndOfStream, anyio.ClosedResourceError):
            return None

    def close(self) -> None:
        """Stop receiving. Blocked and later senders get QueueClosedError."""
        self._stream.close()

    def __aiter__(self) -> "QueueReceiver":
        return self

    async def __anext__(self) -> Envelope:
        envelope = await self.recv()
        if envelope is None:
            raise StopAsyncIteration
        return envelope


def relay_channel(maxsize: int = 0) -> tuple[QueueSender, QueueReceiver]:
    """Create a relay queue.

    Args:
        maxsize: Maximum number of queued envelopes, 0 or less for unbounded

    Returns:
        Tuple of (first sender handle, the receiver handle)
    """
    send_stream, receive_stream = anyio.create_memory_object_stream[Envelope](
        maxsize if maxsize > 0 else math.inf
    )
    return QueueSender(send_stream), QueueReceiver(receive_stream)
