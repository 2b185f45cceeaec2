"""
Unit tests for configuration.
"""

import pytest

from healthresponder.config import (
    DEFAULT_POOL_SIZE,
    QUEUE_CAPACITY,
    ServerConfig,
    parse_bool,
    resolve_pool_size,
)


class TestResolvePoolSize:
    """Tests for the worker count rules."""

    @pytest.mark.parametrize("raw,cpus,expected", [
        ("8", 2, 8),
        (" 3 ", 2, 3),
        ("0", 2, 1),
        ("abc", 6, 6),
        ("-2", 6, 6),
        ("1_0", 6, 6),
        ("", 6, 6),
        (None, 6, 6),
        (None, None, DEFAULT_POOL_SIZE),
        ("abc", None, DEFAULT_POOL_SIZE),
        (None, 0, 1),
    ])
    def test_resolution(self, raw, cpus, expected):
        assert resolve_pool_size(raw, cpus) == expected


class TestParseBool:
    """Tests for SHOW_FAVICON style flags."""

    @pytest.mark.parametrize("raw", ["false", "FALSE", "0", "no", "off", " Off "])
    def test_false_values(self, raw):
        assert parse_bool(raw) is False

    @pytest.mark.parametrize("raw", ["true", "1", "yes", "ON"])
    def test_true_values(self, raw):
        assert parse_bool(raw, default=False) is True

    @pytest.mark.parametrize("raw", [None, "", "maybe", "nope"])
    def test_unknown_keeps_default(self, raw):
        assert parse_bool(raw) is True
        assert parse_bool(raw, default=False) is False


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()
        assert config.host == "0.0.0.0"
        assert config.port == 8080
        assert config.queue_capacity == QUEUE_CAPACITY == 100
        assert config.max_header_size == 8192
        assert config.max_body_size == 1024 * 1024
        assert config.header_timeout == 5.0
        assert config.body_timeout == 5.0
        assert config.show_favicon is True
        assert config.pool_size >= 1

    def test_from_env(self):
        config = ServerConfig.from_env({
            "PORT": "3000",
            "HOST": "127.0.0.1",
            "THREAD_POOL_SIZE": "3",
            "SHOW_FAVICON": "false",
            "LOG_LEVEL": "DEBUG",
        })
        assert config.port == 3000
        assert config.host == "127.0.0.1"
        assert config.pool_size == 3
        assert config.show_favicon is False
        assert config.log_level == "DEBUG"

    def test_from_env_empty(self):
        config = ServerConfig.from_env({})
        assert config.port == 8080
        assert config.show_favicon is True
        assert config.pool_size >= 1

    def test_from_env_invalid_port(self):
        with pytest.raises(ValueError, match="Invalid PORT"):
            ServerConfig.from_env({"PORT": "http"})

    def test_from_env_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("PORT", "9123")
        assert ServerConfig.from_env().port == 9123

    def test_validate_accepts_defaults(self):
        ServerConfig(pool_size=1).validate()
        ServerConfig(port=0, pool_size=1).validate()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 65536},
        {"pool_size": 0},
        {"queue_capacity": 0},
        {"max_header_size": 4},
        {"max_body_size": -1},
        {"header_timeout": 0},
        {"body_timeout": -1.0},
        {"io_timeout": 0},
    ])
    def test_validate_rejects(self, overrides):
        config = ServerConfig(pool_size=1)
        for name, value in overrides.items():
            setattr(config, name, value)
        with pytest.raises(ValueError):
            config.validate()
