"""
TCP-to-UDP relay core.

Each accepted TCP connection is paired with its own UDP socket, bound to the
first free port of a configured range and connected to a fixed target.
"""

from wgproxy.relay.exceptions import (
    BindFailure,
    PortExhausted,
    RelayError,
    StreamClosed,
    TimeoutExpired,
    TransportError,
)
from wgproxy.relay.pipe import BUFFER_SIZE, DuplexPipe
from wgproxy.relay.port_allocator import acquire
from wgproxy.relay.server import RelayServer, run_server
from wgproxy.relay.session import SessionHandler, SessionOutcome

__all__ = [
    "BUFFER_SIZE",
    "BindFailure",
    "DuplexPipe",
    "PortExhausted",
    "RelayError",
    "RelayServer",
    "SessionHandler",
    "SessionOutcome",
    "StreamClosed",
    "TimeoutExpired",
    "TransportError",
    "acquire",
    "run_server",
]
