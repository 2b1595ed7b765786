"""
Relay configuration for wgproxy.

This module defines the configuration dataclass for the relay daemon,
providing a centralized place for all configurable parameters.

Configuration can be modified at runtime by importing the global config
instance and updating its attributes before starting the server.

Usage:
    from wgproxy.config import config

    # Modify configuration before starting
    config.UDP_TARGET = "10.0.0.1:51820"
    config.SOCKET_TIMEOUT_SECONDS = 30
"""

from dataclasses import dataclass

from wgproxy.models.enums import LogLevel

MIN_PORT = 1
MAX_PORT = 65535


class ConfigError(ValueError):
    """Invalid relay configuration value."""

    pass


# =============================================================================
# Parsing Helpers
# =============================================================================


def _parse_port(value: str, what: str, allow_zero: bool = False) -> int:
    value = value.strip()
    if not value.isdigit():
        raise ConfigError(f"{what} invalid: {value!r}")
    port = int(value)
    low = 0 if allow_zero else MIN_PORT
    if not low <= port <= MAX_PORT:
        raise ConfigError(f"{what} out of range ({low}-{MAX_PORT}): {port}")
    return port


def _split_host(value: str, what: str) -> tuple[str, str]:
    """Split "host:rest" at the last colon; IPv6 hosts may be bracketed."""
    value = value.strip()
    if value.startswith("["):
        end = value.find("]")
        if end == -1 or value[end + 1 : end + 2] != ":":
            raise ConfigError(f"{what} invalid: {value!r}")
        return value[1:end], value[end + 2 :]

    host, sep, rest = value.rpartition(":")
    if not sep or not host:
        raise ConfigError(f"{what} invalid, expected host:port: {value!r}")
    return host, rest


def parse_host_port(
    value: str, what: str = "address", allow_zero: bool = False
) -> tuple[str, int]:
    """
    Parse a "host:port" string.

    Args:
        value: Address such as "127.0.0.1:51820" or "[::1]:51820".
        what: Name used in error messages.
        allow_zero: Accept port 0 (let the OS pick), for listeners only.

    Returns:
        (host, port) tuple.

    Raises:
        ConfigError: If the string is malformed or the port is out of range.
    """
    host, port = _split_host(value, what)
    return host, _parse_port(port, f"{what} port", allow_zero)


def parse_bind_range(value: str) -> tuple[str, int, int]:
    """
    Parse a "host:low-high" UDP bind range.

    Returns:
        (host, low_port, high_port) tuple with low_port <= high_port.

    Raises:
        ConfigError: If the string is malformed or the range is inverted.
    """
    host, ports = _split_host(value, "udp_bind_host_range")
    low, sep, high = ports.partition("-")
    if not sep:
        raise ConfigError(f"udp_bind_host_range port range invalid: {ports!r}")

    low_port = _parse_port(low, "udp_bind_host_range low port")
    high_port = _parse_port(high, "udp_bind_host_range high port")
    if low_port > high_port:
        raise ConfigError(
            f"udp_bind_host_range low port {low_port} is above high port {high_port}"
        )
    return host, low_port, high_port


# =============================================================================
# Configuration Dataclass
# =============================================================================


@dataclass
class ProxyConfig:
    """
    Relay daemon configuration.

    Attributes:
        TCP_LISTEN: host:port the TCP listener binds to.
        UDP_TARGET: host:port of the remote UDP endpoint (e.g. WireGuard).
        UDP_BIND_HOST: Local address the per-session UDP sockets bind to.
        UDP_LOW_PORT: Lowest local UDP port to try (inclusive).
        UDP_HIGH_PORT: Highest local UDP port to try (inclusive).
        SOCKET_TIMEOUT_SECONDS: Read timeout for both sides, 0 disables it.
        LOG_LEVEL: Logging verbosity level.
    """

    # -------------------------------------------------------------------------
    # Network Configuration
    # -------------------------------------------------------------------------

    TCP_LISTEN: str = "127.0.0.1:5555"
    UDP_TARGET: str = "127.0.0.1:51820"
    UDP_BIND_HOST: str = "127.0.0.1"
    UDP_LOW_PORT: int = 30000
    UDP_HIGH_PORT: int = 40000

    # -------------------------------------------------------------------------
    # Timing Configuration
    # -------------------------------------------------------------------------

    SOCKET_TIMEOUT_SECONDS: float = 0

    # -------------------------------------------------------------------------
    # Logging Configuration
    # -------------------------------------------------------------------------

    LOG_LEVEL: LogLevel = LogLevel.INFO

    def get_tcp_listen(self) -> tuple[str, int]:
        """Get the TCP listener (host, port)."""
        return parse_host_port(self.TCP_LISTEN, "tcp_host", allow_zero=True)

    def get_udp_target(self) -> tuple[str, int]:
        """Get the remote UDP target (host, port)."""
        return parse_host_port(self.UDP_TARGET, "udp_target")

    def get_socket_timeout(self) -> float | None:
        """Get the socket timeout in seconds, or None to block indefinitely."""
        if not self.SOCKET_TIMEOUT_SECONDS:
            return None
        return float(self.SOCKET_TIMEOUT_SECONDS)

    def get_bind_range(self) -> str:
        """Get the UDP bind range in host:low-high form, for display."""
        host = self.UDP_BIND_HOST
        if ":" in host:
            host = f"[{host}]"
        return f"{host}:{self.UDP_LOW_PORT}-{self.UDP_HIGH_PORT}"

    def set_bind_range(self, value: str) -> None:
        """Set UDP_BIND_HOST, UDP_LOW_PORT and UDP_HIGH_PORT from host:low-high."""
        self.UDP_BIND_HOST, self.UDP_LOW_PORT, self.UDP_HIGH_PORT = parse_bind_range(
            value
        )

    def validate(self) -> None:
        """
        Check every field, raising ConfigError on the first problem.

        The relay core assumes a validated configuration.
        """
        self.get_tcp_listen()
        self.get_udp_target()

        if not self.UDP_BIND_HOST:
            raise ConfigError("udp bind host is empty")
        for what, port in (
            ("low", self.UDP_LOW_PORT),
            ("high", self.UDP_HIGH_PORT),
        ):
            if not MIN_PORT <= port <= MAX_PORT:
                raise ConfigError(
                    f"udp {what} port out of range ({MIN_PORT}-{MAX_PORT}): {port}"
                )
        if self.UDP_LOW_PORT > self.UDP_HIGH_PORT:
            raise ConfigError(
                f"udp low port {self.UDP_LOW_PORT} is above "
                f"high port {self.UDP_HIGH_PORT}"
            )

        if self.SOCKET_TIMEOUT_SECONDS < 0:
            raise ConfigError(
                f"socket timeout must not be negative: {self.SOCKET_TIMEOUT_SECONDS}"
            )

        try:
            self.LOG_LEVEL = LogLevel(self.LOG_LEVEL)
        except ValueError:
            raise ConfigError(f"invalid log level: {self.LOG_LEVEL!r}") from None


# Global config instance
config = ProxyConfig()
