"""
Shared fixtures for the relay tests.

Everything runs on loopback: a plain UDP socket stands in for the remote
target (e.g. WireGuard) and asyncio streams stand in for accepted TCP
connections.
"""

import asyncio
import socket

import pytest
import pytest_asyncio

from wgproxy.relay.pipe import DuplexPipe

LOOPBACK = "127.0.0.1"


def find_free_udp_range(count: int, start: int = 31000, stop: int = 60000) -> int:
    """Return the first port of `count` consecutive free UDP ports."""
    for base in range(start, stop, count + 7):
        socks = []
        try:
            for port in range(base, base + count):
                sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
                socks.append(sock)
                sock.bind((LOOPBACK, port))
        except OSError:
            continue
        finally:
            for sock in socks:
                sock.close()
        return base
    raise RuntimeError(f"no {count} consecutive free UDP ports")


def occupy_udp_port(port: int) -> socket.socket:
    """Bind a UDP socket to a port so the relay cannot use it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind((LOOPBACK, port))
    return sock


async def recv_datagram(sock: socket.socket, timeout: float = 2.0) -> tuple[bytes, tuple]:
    """Receive one datagram from a non-blocking UDP socket."""
    loop = asyncio.get_running_loop()
    return await asyncio.wait_for(loop.sock_recvfrom(sock, 65535), timeout)


@pytest.fixture
def udp_target():
    """Non-blocking UDP socket acting as the remote relay target."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind((LOOPBACK, 0))
    sock.setblocking(False)
    yield sock
    sock.close()


@pytest.fixture
def blockers():
    """Collects sockets that occupy ports for the duration of a test."""
    socks: list[socket.socket] = []
    yield socks
    for sock in socks:
        sock.close()


@pytest_asyncio.fixture
async def tcp_pair():
    """
    A connected TCP stream pair.

    Yields ((server_reader, server_writer), (client_reader, client_writer)).
    """
    accepted = asyncio.get_running_loop().create_future()

    async def on_connection(reader, writer):
        accepted.set_result((reader, writer))

    server = await asyncio.start_server(on_connection, LOOPBACK, 0)
    port = server.sockets[0].getsockname()[1]
    client_reader, client_writer = await asyncio.open_connection(LOOPBACK, port)
    server_side = await asyncio.wait_for(accepted, 2.0)

    yield server_side, (client_reader, client_writer)

    for writer in (client_writer, server_side[1]):
        writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), timeout=1.0)
        except OSError:
            pass
    server.close()
    try:
        await asyncio.wait_for(server.wait_closed(), timeout=1.0)
    except OSError:
        pass


@pytest.fixture
def make_pipe(tcp_pair, udp_target):
    """Factory for a DuplexPipe over tcp_pair and a socket connected to udp_target."""
    created: list[socket.socket] = []

    def factory(timeout: float | None = None) -> DuplexPipe:
        (reader, writer), _ = tcp_pair
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind((LOOPBACK, 0))
        sock.connect(udp_target.getsockname())
        created.append(sock)
        return DuplexPipe(reader, writer, sock, timeout)

    yield factory
    for sock in created:
        sock.close()
