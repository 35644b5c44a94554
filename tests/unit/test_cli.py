"""
Unit tests for the command-line entry point.
"""

import argparse

import pytest

from fileserver import __main__ as cli
from fileserver.core.socket_server import BindFailure


class TestParsePort:
    @pytest.mark.parametrize("value,expected", [("1", 1), ("8080", 8080), ("65535", 65535)])
    def test_valid(self, value: str, expected: int):
        assert cli.parse_port(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "80a", "8.0", "0", "-1", "65536", "99999"])
    def test_invalid(self, value: str):
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_port(value)


class TestParseRoot:
    def test_directory(self, docroot):
        assert cli.parse_root(str(docroot)) == str(docroot)

    def test_file_rejected(self, docroot):
        with pytest.raises(argparse.ArgumentTypeError, match="not an existing directory"):
            cli.parse_root(str(docroot / "index.html"))

    def test_missing_rejected(self, docroot):
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_root(str(docroot / "nope"))


class TestMain:
    """Tests for main()."""

    def test_bad_port_exits_2(self, docroot, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["http", str(docroot)])

        assert exc_info.value.code == 2
        assert "port must be a number" in capsys.readouterr().err

    def test_out_of_range_port_exits_2(self, docroot):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["70000", str(docroot)])

        assert exc_info.value.code == 2

    def test_bad_root_exits_2(self, docroot, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["8080", str(docroot / "missing")])

        assert exc_info.value.code == 2
        assert "not an existing directory" in capsys.readouterr().err

    def test_missing_arguments_exit_2(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])

        assert exc_info.value.code == 2

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--version"])

        assert exc_info.value.code == 0
        assert "fileserver 1.0.0" in capsys.readouterr().out

    def test_options_reach_config(self, docroot):
        args = cli.build_parser().parse_args([
            "9000", str(docroot),
            "-H", "127.0.0.1",
            "-w", "3",
            "-l", "debug",
            "--log-format", "json",
            "--allow-outside-root",
        ])
        config = cli.config_from_args(args)

        assert config.port == 9000
        assert config.root_dir == str(docroot)
        assert config.host == "127.0.0.1"
        assert config.workers == 3
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        assert config.allow_outside_root is True

    def test_bind_failure_exits_1(self, docroot, monkeypatch, capsys):
        def fail(self):
            raise BindFailure("Cannot bind to 0.0.0.0:8080: address in use")

        monkeypatch.setattr(cli.FileServer, "run", fail)

        assert cli.main(["8080", str(docroot)]) == 1
        assert "address in use" in capsys.readouterr().err

    def test_clean_stop_exits_0(self, docroot, monkeypatch):
        monkeypatch.setattr(cli.FileServer, "run", lambda self: None)

        assert cli.main(["8080", str(docroot)]) == 0


class TestEnvironmentDefaults:
    """FILESERVER_* variables seed the options; flags override them."""

    @pytest.fixture
    def captured(self, monkeypatch):
        configs = []
        monkeypatch.setattr(cli.FileServer, "run", lambda self: configs.append(self.config))
        return configs

    def test_workers_from_env(self, docroot, monkeypatch, captured):
        monkeypatch.setenv("FILESERVER_WORKERS", "8")

        assert cli.main(["8080", str(docroot)]) == 0
        assert captured[0].workers == 8

    def test_flag_overrides_env(self, docroot, monkeypatch, captured):
        monkeypatch.setenv("FILESERVER_WORKERS", "8")
        monkeypatch.setenv("FILESERVER_HOST", "10.0.0.1")

        assert cli.main(["8080", str(docroot), "-w", "2", "-H", "127.0.0.1"]) == 0
        assert captured[0].workers == 2
        assert captured[0].host == "127.0.0.1"

    def test_settings_without_a_flag_come_from_env(self, docroot, monkeypatch, captured):
        monkeypatch.setenv("FILESERVER_TIMEOUT", "2.5")
        monkeypatch.setenv("FILESERVER_LOG_FORMAT", "JSON")

        assert cli.main(["8080", str(docroot)]) == 0
        assert captured[0].recv_timeout == 2.5
        assert captured[0].log_format == "json"

    def test_positionals_beat_env(self, docroot, monkeypatch, captured):
        monkeypatch.setenv("FILESERVER_PORT", "9999")
        monkeypatch.setenv("FILESERVER_ROOT", "/nonexistent")

        assert cli.main(["8080", str(docroot)]) == 0
        assert captured[0].port == 8080
        assert captured[0].root_dir == str(docroot)

    def test_unparseable_env_exits_1(self, docroot, monkeypatch, capsys):
        monkeypatch.setenv("FILESERVER_WORKERS", "lots")

        assert cli.main(["8080", str(docroot)]) == 1
        assert "FILESERVER_" in capsys.readouterr().err
