"""
First-fit UDP port allocation.

Every session scans the configured range from the low end upward and keeps
the first port that binds. There is no memory of earlier allocations, so a
busy range is rescanned from the start on each new connection.
"""

import socket

from wgproxy.relay.exceptions import BindFailure, PortExhausted
from wgproxy.utils.logger import get_logger

logger = get_logger(__name__)


def _resolve(host: str) -> tuple[int, str]:
    """Resolve the bind host once; returns (family, address)."""
    try:
        infos = socket.getaddrinfo(host, None, type=socket.SOCK_DGRAM)
    except socket.gaierror as e:
        raise BindFailure(f"Cannot resolve UDP bind host {host}: {e}") from e
    family, _, _, _, sockaddr = infos[0]
    return family, sockaddr[0]


def acquire(host: str, low_port: int, high_port: int) -> socket.socket:
    """
    Bind a UDP socket to the lowest free port in [low_port, high_port].

    Args:
        host: Local address to bind to.
        low_port: First port to try.
        high_port: Last port to try (inclusive).

    Returns:
        A bound (blocking, unconnected) UDP socket owned by the caller.

    Raises:
        PortExhausted: Every port in the range failed to bind.
        BindFailure: The bind host cannot be resolved.
    """
    family, address = _resolve(host)

    for port in range(low_port, high_port + 1):
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.bind((address, port))
        except OSError as e:
            sock.close()
            logger.debug(f"UDP port {host}:{port} unavailable: {e}")
            continue
        return sock

    raise PortExhausted(host, low_port, high_port)
