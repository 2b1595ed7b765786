"""
Enumeration types for wgproxy.

This module defines the enumeration types used for session lifecycle
tracking and logging configuration.
"""

from enum import Enum


# =============================================================================
# Session-Related Enums
# =============================================================================


class SessionState(str, Enum):
    """
    Relay session lifecycle state.

    State transitions:
        ACCEPTED -> PORT_BINDING -> RELAYING -> CLOSED
        PORT_BINDING -> CLOSED (no free port, or connect failure)
    """

    ACCEPTED = "accepted"  # TCP stream handed to the handler
    PORT_BINDING = "port_binding"  # Searching the range for a free UDP port
    RELAYING = "relaying"  # Both directions running
    CLOSED = "closed"  # Terminal, no further I/O


class CloseReason(str, Enum):
    """Why a relay session reached the CLOSED state."""

    BIND_FAILURE = "bind_failure"  # UDP connect to target failed
    PORT_EXHAUSTED = "port_exhausted"  # No free UDP port in range
    TIMEOUT = "timeout"  # A read exceeded the socket timeout
    TRANSPORT_ERROR = "transport_error"  # Any other I/O failure
    STREAM_CLOSED = "stream_closed"  # TCP peer sent EOF
    CANCELLED = "cancelled"  # Server shutdown


class Direction(str, Enum):
    """Forwarding direction inside a duplex pipe."""

    STREAM_TO_DATAGRAM = "tcp->udp"
    DATAGRAM_TO_STREAM = "udp->tcp"


# =============================================================================
# Configuration Enums
# =============================================================================


class LogLevel(str, Enum):
    """
    Logging verbosity levels.

    Levels (from most to least verbose):
        - FULL: Debug messages plus tracebacks for every session error
        - DEBUG: Debug messages and above
        - INFO: Informational messages and above
        - WARNING: Only warnings and errors
    """

    FULL = "full"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
