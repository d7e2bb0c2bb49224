"""
Unit tests for ServerConfig and the CLI mapping onto it.
"""

import os

import pytest

from procinspect.__main__ import build_parser, config_from_args
from procinspect.config import ServerConfig


@pytest.fixture
def clean_env(monkeypatch):
    """Remove any PROCINSPECT_* variables from the environment."""
    for name in list(os.environ):
        if name.startswith("PROCINSPECT_"):
            monkeypatch.delenv(name)
    return monkeypatch


class TestServerConfig:
    """Tests for defaults and validation."""

    def test_defaults(self):
        config = ServerConfig()
        assert config.host == "0.0.0.0"
        assert config.port == 7878
        assert config.access_key == "debugger"
        assert config.proc_root == "/proc"
        assert config.ps_command == ("ps", "-eo", "pid,comm,%cpu,rss")
        config.validate()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 65536},
        {"access_key": ""},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"queue_size": 0},
        {"timeout": 0},
        {"ps_timeout": -1},
        {"max_read_size": 0},
        {"max_request_line": 0},
        {"log_format": "xml"},
        {"ps_command": ()},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_no_timeout_allowed(self):
        ServerConfig(timeout=None).validate()


class TestFromEnv:
    """Tests for environment loading."""

    def test_defaults_without_env(self, clean_env):
        assert ServerConfig.from_env() == ServerConfig()

    def test_reads_env(self, clean_env):
        clean_env.setenv("PROCINSPECT_HOST", "127.0.0.1")
        clean_env.setenv("PROCINSPECT_PORT", "9000")
        clean_env.setenv("PROCINSPECT_ACCESS_KEY", "s3cret")
        clean_env.setenv("PROCINSPECT_PROC_ROOT", "/host/proc")
        clean_env.setenv("PROCINSPECT_WORKERS", "2")
        clean_env.setenv("PROCINSPECT_TIMEOUT", "none")
        clean_env.setenv("PROCINSPECT_LOG_FORMAT", "json")

        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.port == 9000
        assert config.access_key == "s3cret"
        assert config.proc_root == "/host/proc"
        assert config.max_workers == 2
        assert config.min_workers == 2
        assert config.timeout is None
        assert config.log_format == "json"
        config.validate()

    def test_bad_number(self, clean_env):
        clean_env.setenv("PROCINSPECT_PORT", "eighty")
        with pytest.raises(ValueError):
            ServerConfig.from_env()


class TestCLI:
    """Tests for argparse flags overriding the environment."""

    def test_flags_override_env(self, clean_env):
        clean_env.setenv("PROCINSPECT_PORT", "9000")
        clean_env.setenv("PROCINSPECT_ACCESS_KEY", "from-env")

        args = build_parser().parse_args(["--port", "9100", "--log-level", "DEBUG"])
        config = config_from_args(args)

        assert config.port == 9100
        assert config.access_key == "from-env"
        assert config.log_level == "DEBUG"

    def test_all_flags(self, clean_env):
        args = build_parser().parse_args([
            "-H", "127.0.0.1", "-p", "0", "-w", "2",
            "--proc-root", "/tmp/p", "--access-key", "k",
            "--timeout", "3", "--log-format", "json",
        ])
        config = config_from_args(args)

        assert (config.host, config.port) == ("127.0.0.1", 0)
        assert (config.min_workers, config.max_workers) == (2, 2)
        assert config.proc_root == "/tmp/p"
        assert config.access_key == "k"
        assert config.timeout == 3.0
        assert config.log_format == "json"

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--version"])
        assert "procinspect 1.0.0" in capsys.readouterr().out
