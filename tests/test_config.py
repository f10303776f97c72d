"""Tests for portsniper configuration."""

import logging

import pytest
from textual.logging import TextualHandler

from portsniper.app import build_parser, settings_from_args
from portsniper.config import Settings, configure_logging


def test_defaults():
    settings = Settings()

    assert settings.poll_rate == 2.0
    assert settings.port_interval == 3.0
    assert settings.command_timeout == 10.0
    assert settings.log_level == "WARNING"
    assert settings.log_file is None


class TestFromEnv:
    """Tests for Settings.from_env."""

    def test_reads_prefixed_variables(self):
        settings = Settings.from_env(
            {
                "PORTSNIPER_POLL_RATE": "0.5",
                "PORTSNIPER_PORT_INTERVAL": "5",
                "PORTSNIPER_COMMAND_TIMEOUT": "2.5",
                "PORTSNIPER_LOG_LEVEL": "debug",
                "PORTSNIPER_LOG_FILE": "/tmp/portsniper.log",
            }
        )

        assert settings == Settings(
            poll_rate=0.5,
            port_interval=5.0,
            command_timeout=2.5,
            log_level="DEBUG",
            log_file="/tmp/portsniper.log",
        )

    def test_empty_environment_gives_defaults(self):
        assert Settings.from_env({}) == Settings()

    def test_bad_number_falls_back_to_default(self, caplog):
        with caplog.at_level(logging.WARNING, logger="portsniper.config"):
            settings = Settings.from_env({"PORTSNIPER_POLL_RATE": "fast"})

        assert settings.poll_rate == 2.0
        assert "PORTSNIPER_POLL_RATE" in caplog.text


class TestCommandLine:
    """Tests for command line overrides."""

    def test_flags_override_base(self):
        args = build_parser().parse_args(["--poll-rate", "1", "--log-level", "info"])
        settings = settings_from_args(args, Settings(port_interval=9.0))

        assert settings.poll_rate == 1.0
        assert settings.log_level == "INFO"
        assert settings.port_interval == 9.0

    def test_actions_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--list", "--stats"])


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_routes_to_textual(self):
        configure_logging(Settings(log_level="DEBUG"))
        root = logging.getLogger()

        assert root.level == logging.DEBUG
        assert any(isinstance(h, TextualHandler) for h in root.handlers)

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "portsniper.log"
        configure_logging(Settings(log_file=str(log_file)))

        logging.getLogger("portsniper.test").warning("listing failed")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "listing failed" in log_file.read_text()

    def test_unknown_level_falls_back_to_warning(self):
        configure_logging(Settings(log_level="LOUD"))

        assert logging.getLogger().level == logging.WARNING
