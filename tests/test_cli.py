"""Tests for the command-line entry point."""

import logging

import pytest

from meshgate.cli import build_parser, log_event, main
from meshgate.events import ErrorReceived, LogLevel, LogLine


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        """Test a bare port."""
        args = build_parser().parse_args(["/dev/ttyACM0"])
        assert args.port == "/dev/ttyACM0"
        assert args.config is None
        assert args.stats_interval is None
        assert args.verbose is False

    def test_actions(self):
        """Test action options."""
        args = build_parser().parse_args(
            ["COM3", "--listen", "1", "--send-test", "2", "--reset-stats", "--stats-interval", "200"]
        )
        assert args.listen == 1
        assert args.send_test == 2
        assert args.reset_stats is True
        assert args.stats_interval == 200

    def test_invalid_test_target(self):
        """Test SendTest targets are limited to 0, 1 and 2."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["COM3", "--send-test", "3"])


class TestLogEvent:
    """Tests for the console event sink."""

    def test_log_line_levels(self, caplog):
        """Test LogLine severity maps to logging levels."""
        with caplog.at_level(logging.DEBUG, logger="meshgate.console"):
            log_event(LogLine(level=LogLevel.WARNING, text="careful"))
            log_event(LogLine(level=LogLevel.DEBUG, text="RX: 1 TX: 0"))

        levels = {r.getMessage(): r.levelno for r in caplog.records}
        assert levels["careful"] == logging.WARNING
        assert levels["RX: 1 TX: 0"] == logging.DEBUG

    def test_device_error(self, caplog):
        """Test device errors are logged as errors."""
        with caplog.at_level(logging.INFO, logger="meshgate.console"):
            log_event(ErrorReceived(text="bad freq"))
        assert caplog.records[-1].levelno == logging.ERROR
        assert "bad freq" in caplog.records[-1].getMessage()


class TestMain:
    """Tests for main()."""

    def test_missing_config_exits(self, tmp_path):
        """Test a missing config file exits with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path / "missing.yaml")])
        assert exc_info.value.code == 1

    def test_invalid_config_exits(self, tmp_path):
        """Test an invalid config file exits with status 1."""
        path = tmp_path / "config.yaml"
        path.write_text("session:\n  handshake_attempts: 0\n")
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(path)])
        assert exc_info.value.code == 1

    def test_no_port_exits(self, tmp_path):
        """Test running without any port exits with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--preferences", str(tmp_path / "prefs.yaml")])
        assert exc_info.value.code == 1
