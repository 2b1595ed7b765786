"""Relay session exception classes."""


class RelayError(Exception):
    """Base exception for relay sessions."""

    pass


class BindFailure(RelayError):
    """Binding or connecting the session's UDP socket failed."""

    pass


class PortExhausted(BindFailure):
    """No free UDP port in the configured range."""

    def __init__(self, host: str, low_port: int, high_port: int):
        self.host = host
        self.low_port = low_port
        self.high_port = high_port
        super().__init__(
            f"No free UDP port on {host} in range {low_port}-{high_port}, "
            "increase the range?"
        )


class TimeoutExpired(RelayError):
    """A blocking read exceeded the configured socket timeout."""

    def __init__(self, direction: str, timeout: float):
        self.direction = direction
        self.timeout = timeout
        super().__init__(f"{direction} read timed out after {timeout}s")


class TransportError(RelayError):
    """Any other I/O failure on a read or write."""

    def __init__(self, message: str, direction: str | None = None):
        self.direction = direction
        if direction:
            message = f"{direction}: {message}"
        super().__init__(message)


class StreamClosed(TransportError):
    """The TCP peer closed its side of the stream."""

    def __init__(self, direction: str | None = None):
        super().__init__("stream closed by peer", direction)
