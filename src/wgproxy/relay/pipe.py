"""
Duplex pipe between one TCP stream and one connected UDP socket.

One TCP read is forwarded as exactly one UDP datagram, and one received
datagram is written to the stream in full. No framing is added in either
direction.

A pipe and its clones are handles over the same shared sockets. Each
handle drives one direction; the sockets are closed once every handle
has been closed.
"""

import asyncio
import socket
from dataclasses import dataclass, field

from wgproxy.models.enums import Direction
from wgproxy.relay.exceptions import (
    RelayError,
    StreamClosed,
    TimeoutExpired,
    TransportError,
)


# Largest UDP payload over IPv4; bounds a single read in both directions.
BUFFER_SIZE = 65507


@dataclass
class DirectionStats:
    """Traffic moved in one direction."""

    units: int = 0
    bytes: int = 0


@dataclass
class _SharedSockets:
    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter
    udp_sock: socket.socket
    refs: int = 1
    closed: bool = False
    stats: dict[Direction, DirectionStats] = field(
        default_factory=lambda: {d: DirectionStats() for d in Direction}
    )


class DuplexPipe:
    """
    Handle over a shared TCP stream and connected UDP socket.

    Use try_clone() to get a second handle for the other direction.
    Neither handle closes the sockets while the other is still open.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        udp_sock: socket.socket,
        timeout: float | None = None,
    ):
        """
        Initialize duplex pipe.

        Args:
            reader: Reader side of the accepted TCP connection.
            writer: Writer side of the accepted TCP connection.
            udp_sock: UDP socket already connected to the remote target.
            timeout: Per-read timeout in seconds, None to block indefinitely.

        Raises:
            ValueError: If the UDP socket has no fixed remote peer.
        """
        try:
            udp_sock.getpeername()
        except OSError as e:
            raise ValueError("UDP socket must be connected before relaying") from e

        udp_sock.setblocking(False)
        self._shared = _SharedSockets(reader, writer, udp_sock)
        self.timeout = timeout
        self._closed = False

    @classmethod
    def _from_shared(
        cls, shared: _SharedSockets, timeout: float | None
    ) -> "DuplexPipe":
        pipe = cls.__new__(cls)
        pipe._shared = shared
        pipe.timeout = timeout
        pipe._closed = False
        return pipe

    def try_clone(self) -> "DuplexPipe":
        """
        Create another handle over the same sockets.

        Raises:
            TransportError: If this handle or the shared sockets are closed.
        """
        self._check_open(None)
        self._shared.refs += 1
        return self._from_shared(self._shared, self.timeout)

    @property
    def closed(self) -> bool:
        """Whether this handle can no longer forward."""
        return self._closed or self._shared.closed

    def stats(self, direction: Direction) -> DirectionStats:
        """Traffic forwarded so far in a direction, across all handles."""
        return self._shared.stats[direction]

    def _check_open(self, direction: Direction | None) -> _SharedSockets:
        if self.closed:
            raise TransportError(
                "pipe is closed", direction.value if direction else None
            )
        return self._shared

    async def _read(self, aw, direction: Direction) -> bytes:
        if self.timeout is None:
            return await aw
        try:
            return await asyncio.wait_for(aw, self.timeout)
        except asyncio.TimeoutError:
            raise TimeoutExpired(direction.value, self.timeout) from None

    async def forward_stream_to_datagram(self) -> int:
        """
        Read one chunk from the TCP stream and send it as one UDP datagram.

        Returns:
            Number of bytes forwarded.

        Raises:
            StreamClosed: The TCP peer sent EOF.
            TimeoutExpired: The read exceeded the timeout.
            TransportError: Any other read or send failure.
        """
        direction = Direction.STREAM_TO_DATAGRAM
        shared = self._check_open(direction)
        loop = asyncio.get_running_loop()

        try:
            data = await self._read(shared.reader.read(BUFFER_SIZE), direction)
            if not data:
                raise StreamClosed(direction.value)
            await loop.sock_sendall(shared.udp_sock, data)
        except RelayError:
            raise
        except (OSError, ValueError) as e:
            raise TransportError(str(e) or type(e).__name__, direction.value) from e

        stats = shared.stats[direction]
        stats.units += 1
        stats.bytes += len(data)
        return len(data)

    async def forward_datagram_to_stream(self) -> int:
        """
        Receive one UDP datagram and write its payload to the TCP stream.

        Returns:
            Number of bytes forwarded.

        Raises:
            TimeoutExpired: The receive exceeded the timeout.
            TransportError: Any receive or write failure.
        """
        direction = Direction.DATAGRAM_TO_STREAM
        shared = self._check_open(direction)
        loop = asyncio.get_running_loop()

        try:
            data = await self._read(
                loop.sock_recv(shared.udp_sock, BUFFER_SIZE), direction
            )
            if shared.writer.is_closing():
                raise TransportError("stream is closing", direction.value)
            shared.writer.write(data)
            await shared.writer.drain()
        except RelayError:
            raise
        except (OSError, ValueError) as e:
            raise TransportError(str(e) or type(e).__name__, direction.value) from e

        stats = shared.stats[direction]
        stats.units += 1
        stats.bytes += len(data)
        return len(data)

    async def close(self) -> None:
        """
        Release this handle.

        The shared sockets are closed when the last handle is released.
        Calling close() twice on the same handle is a no-op.
        """
        if self._closed:
            return
        self._closed = True

        shared = self._shared
        shared.refs -= 1
        if shared.refs > 0 or shared.closed:
            return

        shared.closed = True
        shared.udp_sock.close()
        shared.writer.close()
        try:
            await asyncio.wait_for(shared.writer.wait_closed(), timeout=1.0)
        except OSError:
            pass
