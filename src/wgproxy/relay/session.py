"""
Per-connection relay session.

Takes one accepted TCP stream through PortBinding and Relaying to Closed.
Every failure is scoped to the session: handle() reports it in the returned
SessionOutcome and never raises for I/O errors, so the listener and sibling
sessions are unaffected.
"""

import asyncio
import itertools
import socket
from dataclasses import dataclass, field

from wgproxy.config import ProxyConfig
from wgproxy.models.enums import CloseReason, Direction, SessionState
from wgproxy.relay import port_allocator
from wgproxy.relay.exceptions import (
    BindFailure,
    PortExhausted,
    StreamClosed,
    TimeoutExpired,
    TransportError,
)
from wgproxy.relay.pipe import DirectionStats, DuplexPipe
from wgproxy.utils.logger import (
    format_traceback,
    full_tracebacks_enabled,
    get_logger,
)

logger = get_logger(__name__)


@dataclass
class SessionOutcome:
    """Result of one relay session, suitable for logging by the caller."""

    session_id: int
    peer: str
    state: SessionState = SessionState.ACCEPTED
    reason: CloseReason | None = None
    error: str | None = None
    udp_port: int | None = None
    tcp_to_udp: DirectionStats = field(default_factory=DirectionStats)
    udp_to_tcp: DirectionStats = field(default_factory=DirectionStats)

    def close(self, reason: CloseReason, error: BaseException | None = None) -> None:
        self.state = SessionState.CLOSED
        self.reason = reason
        if error is not None:
            self.error = str(error) or type(error).__name__


class SessionHandler:
    """
    Relays accepted TCP connections to a fixed UDP target.

    One handler serves every connection of a listener; each call to handle()
    is an independent session with its own UDP socket.
    """

    def __init__(
        self,
        udp_target: tuple[str, int],
        udp_host: str,
        udp_low_port: int,
        udp_high_port: int,
        timeout: float | None = None,
    ):
        """
        Initialize session handler.

        Args:
            udp_target: (host, port) of the remote UDP endpoint.
            udp_host: Local address for the per-session UDP sockets.
            udp_low_port: First local UDP port to try.
            udp_high_port: Last local UDP port to try (inclusive).
            timeout: Per-read timeout for both sides, None to block.
        """
        self.udp_target = udp_target
        self.udp_host = udp_host
        self.udp_low_port = udp_low_port
        self.udp_high_port = udp_high_port
        self.timeout = timeout
        self._session_ids = itertools.count(1)

    @classmethod
    def from_config(cls, cfg: ProxyConfig) -> "SessionHandler":
        """Build a handler from a validated ProxyConfig."""
        return cls(
            udp_target=cfg.get_udp_target(),
            udp_host=cfg.UDP_BIND_HOST,
            udp_low_port=cfg.UDP_LOW_PORT,
            udp_high_port=cfg.UDP_HIGH_PORT,
            timeout=cfg.get_socket_timeout(),
        )

    async def _bind_udp(self) -> socket.socket:
        """Acquire a free local port and connect it to the target."""
        sock = await asyncio.to_thread(
            port_allocator.acquire,
            self.udp_host,
            self.udp_low_port,
            self.udp_high_port,
        )
        sock.setblocking(False)
        loop = asyncio.get_running_loop()
        try:
            await loop.sock_connect(sock, self.udp_target)
        except OSError as e:
            sock.close()
            host, port = self.udp_target
            raise BindFailure(f"Cannot connect UDP socket to {host}:{port}: {e}") from e
        except asyncio.CancelledError:
            sock.close()
            raise
        return sock

    @staticmethod
    async def _pump(forward) -> None:
        """Repeat one forwarding step until it raises."""
        while True:
            await forward()

    async def _relay(self, pipe: DuplexPipe, log_prefix: str) -> None:
        """
        Run both directions until either stops.

        Always raises: the error of the first direction to stop.
        """
        reverse = pipe.try_clone()
        tcp_to_udp = asyncio.create_task(
            self._pump(pipe.forward_stream_to_datagram),
            name=f"{log_prefix} {Direction.STREAM_TO_DATAGRAM.value}",
        )
        udp_to_tcp = asyncio.create_task(
            self._pump(reverse.forward_datagram_to_stream),
            name=f"{log_prefix} {Direction.DATAGRAM_TO_STREAM.value}",
        )
        tasks = [tcp_to_udp, udp_to_tcp]

        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await reverse.close()

        for t in tasks:
            if t in done:
                raise t.exception()

    async def handle(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> SessionOutcome:
        """
        Relay one accepted TCP connection until either direction stops.

        Args:
            reader: Reader side of the accepted connection.
            writer: Writer side of the accepted connection.

        Returns:
            The closed session's outcome.
        """
        peer = writer.get_extra_info("peername")
        outcome = SessionOutcome(session_id=next(self._session_ids), peer=str(peer))
        log_prefix = f"[Session {outcome.session_id} {peer}]"
        logger.info(f"{log_prefix} New connection.")

        udp_sock = None
        pipe = None

        try:
            outcome.state = SessionState.PORT_BINDING
            udp_sock = await self._bind_udp()
            outcome.udp_port = udp_sock.getsockname()[1]
            logger.info(
                f"{log_prefix} Bound UDP {self.udp_host}:{outcome.udp_port} "
                f"-> {self.udp_target[0]}:{self.udp_target[1]}."
            )

            pipe = DuplexPipe(reader, writer, udp_sock, self.timeout)
            udp_sock = None
            outcome.state = SessionState.RELAYING
            logger.debug(f"{log_prefix} Relaying started.")
            await self._relay(pipe, log_prefix)

        except PortExhausted as e:
            logger.error(f"{log_prefix} {e}")
            outcome.close(CloseReason.PORT_EXHAUSTED, e)
        except BindFailure as e:
            logger.error(f"{log_prefix} {e}")
            outcome.close(CloseReason.BIND_FAILURE, e)
        except TimeoutExpired as e:
            logger.info(f"{log_prefix} {e}")
            outcome.close(CloseReason.TIMEOUT, e)
        except StreamClosed as e:
            logger.debug(f"{log_prefix} {e}")
            outcome.close(CloseReason.STREAM_CLOSED, e)
        except TransportError as e:
            logger.warning(f"{log_prefix} Transport error: {e}")
            if full_tracebacks_enabled():
                logger.debug(format_traceback(e))
            outcome.close(CloseReason.TRANSPORT_ERROR, e)
        except asyncio.CancelledError:
            outcome.close(CloseReason.CANCELLED)
            raise
        except Exception as e:
            logger.exception(f"{log_prefix} Unexpected error in session: {e}")
            outcome.close(CloseReason.TRANSPORT_ERROR, e)

        finally:
            if udp_sock is not None:
                udp_sock.close()
            if pipe is not None:
                outcome.tcp_to_udp = pipe.stats(Direction.STREAM_TO_DATAGRAM)
                outcome.udp_to_tcp = pipe.stats(Direction.DATAGRAM_TO_STREAM)
                await pipe.close()
            else:
                writer.close()
                try:
                    await asyncio.wait_for(writer.wait_closed(), timeout=1.0)
                except OSError:
                    pass
            reason = outcome.reason.value if outcome.reason else "unknown"
            logger.info(
                f"{log_prefix} Closed ({reason}): "
                f"tcp->udp {outcome.tcp_to_udp.units} datagrams "
                f"/ {outcome.tcp_to_udp.bytes} bytes, "
                f"udp->tcp {outcome.udp_to_tcp.units} datagrams "
                f"/ {outcome.udp_to_tcp.bytes} bytes."
            )

        return outcome
