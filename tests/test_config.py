"""Configuration parsing and validation tests."""

import pytest

from wgproxy.config import ConfigError, ProxyConfig, parse_bind_range, parse_host_port
from wgproxy.models.enums import LogLevel


class TestParseHostPort:
    """Test parse_host_port."""

    def test_ipv4(self):
        assert parse_host_port("127.0.0.1:51820") == ("127.0.0.1", 51820)

    def test_hostname(self):
        assert parse_host_port("vpn.example.com:443") == ("vpn.example.com", 443)

    def test_bracketed_ipv6(self):
        assert parse_host_port("[::1]:5555") == ("::1", 5555)

    @pytest.mark.parametrize(
        "value",
        ["127.0.0.1", ":5555", "127.0.0.1:", "127.0.0.1:abc", "127.0.0.1:70000", "[::1]5555"],
    )
    def test_invalid(self, value):
        with pytest.raises(ConfigError):
            parse_host_port(value)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_host_port("nope")


class TestParseBindRange:
    """Test parse_bind_range."""

    def test_default_range(self):
        assert parse_bind_range("127.0.0.1:30000-40000") == ("127.0.0.1", 30000, 40000)

    def test_whitespace_around_ports(self):
        assert parse_bind_range("0.0.0.0: 30000 - 30010") == ("0.0.0.0", 30000, 30010)

    def test_single_port(self):
        assert parse_bind_range("127.0.0.1:30000-30000") == ("127.0.0.1", 30000, 30000)

    def test_ipv6_host(self):
        assert parse_bind_range("[::1]:30000-30010") == ("::1", 30000, 30010)

    @pytest.mark.parametrize(
        "value",
        ["127.0.0.1", "127.0.0.1:30000", "127.0.0.1:x-40000", "127.0.0.1:30000-", "127.0.0.1:0-10"],
    )
    def test_invalid(self, value):
        with pytest.raises(ConfigError):
            parse_bind_range(value)

    def test_inverted_range(self):
        with pytest.raises(ConfigError, match="above high port"):
            parse_bind_range("127.0.0.1:40000-30000")


class TestProxyConfig:
    """Test ProxyConfig."""

    def test_defaults(self):
        cfg = ProxyConfig()
        cfg.validate()

        assert cfg.get_tcp_listen() == ("127.0.0.1", 5555)
        assert cfg.get_udp_target() == ("127.0.0.1", 51820)
        assert cfg.get_bind_range() == "127.0.0.1:30000-40000"
        assert cfg.get_socket_timeout() is None
        assert cfg.LOG_LEVEL == LogLevel.INFO

    def test_socket_timeout(self):
        assert ProxyConfig(SOCKET_TIMEOUT_SECONDS=5).get_socket_timeout() == 5.0

    def test_set_bind_range(self):
        cfg = ProxyConfig()
        cfg.set_bind_range("[::1]:31000-31005")

        assert cfg.UDP_BIND_HOST == "::1"
        assert cfg.UDP_LOW_PORT == 31000
        assert cfg.UDP_HIGH_PORT == 31005
        assert cfg.get_bind_range() == "[::1]:31000-31005"

    def test_validate_negative_timeout(self):
        with pytest.raises(ConfigError, match="negative"):
            ProxyConfig(SOCKET_TIMEOUT_SECONDS=-1).validate()

    def test_validate_inverted_range(self):
        with pytest.raises(ConfigError):
            ProxyConfig(UDP_LOW_PORT=40000, UDP_HIGH_PORT=30000).validate()

    def test_validate_port_out_of_range(self):
        with pytest.raises(ConfigError):
            ProxyConfig(UDP_HIGH_PORT=70000).validate()

    def test_validate_bad_target(self):
        with pytest.raises(ConfigError):
            ProxyConfig(UDP_TARGET="localhost").validate()

    def test_validate_coerces_log_level(self):
        cfg = ProxyConfig(LOG_LEVEL="debug")
        cfg.validate()
        assert cfg.LOG_LEVEL is LogLevel.DEBUG

    def test_listener_accepts_ephemeral_port(self):
        cfg = ProxyConfig(TCP_LISTEN="127.0.0.1:0")
        cfg.validate()

        assert cfg.get_tcp_listen() == ("127.0.0.1", 0)

    def test_udp_target_rejects_port_zero(self):
        with pytest.raises(ConfigError, match="out of range"):
            ProxyConfig(UDP_TARGET="127.0.0.1:0").validate()

    def test_bind_range_rejects_port_zero(self):
        with pytest.raises(ConfigError):
            ProxyConfig(UDP_LOW_PORT=0, UDP_HIGH_PORT=10).validate()

    def test_validate_bad_log_level(self):
        with pytest.raises(ConfigError, match="invalid log level"):
            ProxyConfig(LOG_LEVEL="chatty").validate()


class TestParseHostPortZero:
    """Test port 0 handling in parse_host_port."""

    def test_zero_rejected_by_default(self):
        with pytest.raises(ConfigError):
            parse_host_port("127.0.0.1:0")

    def test_zero_allowed_for_listener(self):
        assert parse_host_port("127.0.0.1:0", allow_zero=True) == ("127.0.0.1", 0)
