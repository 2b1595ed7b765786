"""
TCP listener for the relay.

Accepts TCP connections and hands each one to its own SessionHandler task.
A failing session never stops the listener or its sibling sessions.
"""

import asyncio

from wgproxy.config import ProxyConfig
from wgproxy.relay.session import SessionHandler
from wgproxy.utils.logger import get_logger

logger = get_logger(__name__)


class RelayServer:
    """Accept loop that spawns one relay session per TCP connection."""

    def __init__(self, cfg: ProxyConfig):
        """
        Initialize relay server.

        Args:
            cfg: Validated relay configuration.
        """
        self.config = cfg
        self.handler = SessionHandler.from_config(cfg)
        self._server: asyncio.Server | None = None
        self._sessions: set[asyncio.Task] = set()
        self._stopped = asyncio.Event()

    @property
    def active_sessions(self) -> int:
        """Number of sessions still running."""
        return len(self._sessions)

    async def _on_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        task = asyncio.current_task()
        self._sessions.add(task)
        try:
            await self.handler.handle(reader, writer)
        except asyncio.CancelledError:
            logger.debug(f"Session for {writer.get_extra_info('peername')} cancelled.")
            raise
        finally:
            self._sessions.discard(task)

    async def start(self) -> list[tuple]:
        """
        Bind the TCP listener.

        Returns:
            The bound socket addresses (ephemeral ports resolved).
        """
        host, port = self.config.get_tcp_listen()
        self._server = await asyncio.start_server(self._on_connection, host, port)
        addrs = [sock.getsockname() for sock in self._server.sockets]
        logger.info(
            "Listening for connections on " + ", ".join(str(a) for a in addrs)
        )
        return addrs

    async def serve_forever(self) -> None:
        """
        Accept connections until cancelled.

        The listener is already accepting after start(); this returns once
        close() is called. Unlike asyncio.Server.serve_forever(), cancelling
        it does not wait for open connections.
        """
        if self._server is None:
            await self.start()
        await self._stopped.wait()

    async def close(self) -> None:
        """Stop accepting and cancel every running session."""
        self._stopped.set()
        if self._server is not None:
            self._server.close()
        sessions = list(self._sessions)
        for task in sessions:
            task.cancel()
        await asyncio.gather(*sessions, return_exceptions=True)
        if self._server is not None:
            try:
                await asyncio.wait_for(self._server.wait_closed(), timeout=2.0)
            except OSError:
                pass
        logger.info("Relay server stopped.")


async def run_server(cfg: ProxyConfig) -> None:
    """
    Start the relay and serve until cancelled.

    Args:
        cfg: Validated relay configuration.
    """
    server = RelayServer(cfg)
    logger.info(
        f"udp_target: {cfg.UDP_TARGET}, "
        f"udp_bind_host_range: {cfg.get_bind_range()}, "
        f"socket_timeout: {cfg.get_socket_timeout()}"
    )
    try:
        await server.start()
        await server.serve_forever()
    except asyncio.CancelledError:
        logger.info("Relay server task cancelled.")
        raise
    finally:
        await server.close()
