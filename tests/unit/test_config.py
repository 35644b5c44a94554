"""
Unit tests for server configuration.
"""

import os
import socket

import pytest

from fileserver.config import ServerConfig


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 8080
        assert config.buffer_size == 8192
        assert config.recv_timeout == 5.0
        assert config.max_target_length == 1024
        assert config.backlog == socket.SOMAXCONN
        assert config.allow_outside_root is False
        config.validate()

    def test_effective_workers(self):
        assert ServerConfig(workers=3).effective_workers == 3
        assert ServerConfig().effective_workers == (os.cpu_count() or 1)

    @pytest.mark.parametrize("overrides,message", [
        ({"port": -1}, "port"),
        ({"port": 65536}, "port"),
        ({"workers": 0}, "workers"),
        ({"buffer_size": 512}, "buffer_size"),
        ({"recv_timeout": 0}, "recv_timeout"),
        ({"max_target_length": 0}, "max_target_length"),
        ({"log_level": "LOUD"}, "log_level"),
        ({"log_format": "xml"}, "log_format"),
    ])
    def test_invalid_values(self, docroot, overrides: dict, message: str):
        config = ServerConfig(root_dir=str(docroot), **overrides)

        with pytest.raises(ValueError, match=message):
            config.validate()

    def test_root_must_be_directory(self, docroot):
        with pytest.raises(ValueError, match="root_dir"):
            ServerConfig(root_dir=str(docroot / "index.html")).validate()
        with pytest.raises(ValueError, match="root_dir"):
            ServerConfig(root_dir=str(docroot / "missing")).validate()

    def test_port_zero_allowed(self, docroot):
        ServerConfig(port=0, root_dir=str(docroot)).validate()

    def test_log_level_case_insensitive(self, docroot):
        config = ServerConfig(root_dir=str(docroot), log_level="debug")
        config.validate()

        assert config.log_level_number == 10

    def test_from_env(self, monkeypatch, docroot):
        monkeypatch.setenv("FILESERVER_HOST", "127.0.0.1")
        monkeypatch.setenv("FILESERVER_PORT", "9000")
        monkeypatch.setenv("FILESERVER_ROOT", str(docroot))
        monkeypatch.setenv("FILESERVER_WORKERS", "6")
        monkeypatch.setenv("FILESERVER_TIMEOUT", "2.5")
        monkeypatch.setenv("FILESERVER_LOG_LEVEL", "debug")
        monkeypatch.setenv("FILESERVER_LOG_FORMAT", "JSON")

        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.port == 9000
        assert config.root_dir == str(docroot)
        assert config.workers == 6
        assert config.recv_timeout == 2.5
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        config.validate()

    def test_from_env_defaults(self, monkeypatch):
        for name in ("HOST", "PORT", "ROOT", "WORKERS", "TIMEOUT", "LOG_LEVEL", "LOG_FORMAT"):
            monkeypatch.delenv(f"FILESERVER_{name}", raising=False)

        config = ServerConfig.from_env()

        assert config == ServerConfig()

    def test_from_env_bad_number(self, monkeypatch):
        monkeypatch.setenv("FILESERVER_PORT", "eighty")

        with pytest.raises(ValueError):
            ServerConfig.from_env()
