"""Tests for configuration loading and persisted preferences."""

import pytest
import yaml

from meshgate.config import AppConfig, SessionConfig, clamp_stats_interval, load_config
from meshgate.exceptions import ConfigError
from meshgate.preferences import STATS_INTERVAL_KEY, PreferenceStore


class TestSessionConfig:
    """Tests for SessionConfig defaults and validation."""

    def test_defaults(self):
        """Test timing defaults."""
        config = SessionConfig()
        assert config.stats_interval_ms == 1000
        assert config.info_interval == 5.0
        assert config.handshake_attempts == 5
        assert config.handshake_timeout == 1.5
        assert config.handshake_backoff == 0.2
        assert config.handshake_poll_interval == 0.1
        assert config.status_interval == 0.1
        assert config.confirm_delay == 0.2
        assert config.activity_window == 30.0

    @pytest.mark.parametrize("value,expected", [(1, 10), (10, 10), (500, 500), (99999, 10000)])
    def test_stats_interval_clamped(self, value, expected):
        """Test the stats interval is clamped rather than rejected."""
        assert SessionConfig(stats_interval_ms=value).stats_interval_ms == expected
        assert clamp_stats_interval(value) == expected

    def test_invalid_attempts(self):
        """Test at least one handshake attempt is required."""
        with pytest.raises(ValueError):
            SessionConfig(handshake_attempts=0)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_full_file(self, tmp_path):
        """Test both sections are read."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "serial:\n  port: /dev/ttyACM0\n  baudrate: 9600\n"
            "session:\n  stats_interval_ms: 250\n  handshake_attempts: 3\n"
        )
        config = load_config(path)
        assert config.serial.port == "/dev/ttyACM0"
        assert config.serial.baudrate == 9600
        assert config.session.stats_interval_ms == 250
        assert config.session.handshake_attempts == 3

    def test_empty_file(self, tmp_path):
        """Test an empty file gives defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == AppConfig()

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_all_errors_reported(self, tmp_path):
        """Test every invalid value is listed."""
        path = tmp_path / "config.yaml"
        path.write_text("serial:\n  baudrate: -1\nsession:\n  handshake_timeout: 0\n  bogus: 1\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        message = str(exc_info.value)
        assert "serial.baudrate" in message
        assert "session.handshake_timeout" in message
        assert "session.bogus" in message

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML raises ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("serial: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_non_mapping_root(self, tmp_path):
        """Test a list at the root is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config(path)


class TestPreferenceStore:
    """Tests for PreferenceStore."""

    def test_missing_file_uses_default(self, tmp_path):
        """Test the default interval without a file."""
        assert PreferenceStore(tmp_path / "prefs.yaml").stats_interval_ms == 1000

    def test_store_and_reload(self, tmp_path):
        """Test a stored interval survives a new store instance."""
        path = tmp_path / "sub" / "prefs.yaml"
        PreferenceStore(path).set_stats_interval(300)
        assert yaml.safe_load(path.read_text()) == {STATS_INTERVAL_KEY: 300}
        assert PreferenceStore(path).stats_interval_ms == 300

    def test_store_clamps(self, tmp_path):
        """Test stored values are clamped."""
        store = PreferenceStore(tmp_path / "prefs.yaml")
        assert store.set_stats_interval(1) == 10
        assert store.stats_interval_ms == 10

    def test_load_clamps(self, tmp_path):
        """Test out-of-range stored values are clamped on load."""
        path = tmp_path / "prefs.yaml"
        path.write_text(f"{STATS_INTERVAL_KEY}: 50000\n")
        assert PreferenceStore(path).stats_interval_ms == 10000

    @pytest.mark.parametrize("content", ["[broken", f"{STATS_INTERVAL_KEY}: fast\n", "- 1\n"])
    def test_corrupt_file_uses_default(self, tmp_path, content):
        """Test unreadable preferences fall back to the default."""
        path = tmp_path / "prefs.yaml"
        path.write_text(content)
        assert PreferenceStore(path).stats_interval_ms == 1000
