"""Persisted user preferences."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from meshgate.config import clamp_stats_interval
from meshgate.protocol.constants import ProtocolConstants

logger = logging.getLogger(__name__)

STATS_INTERVAL_KEY = "stats_update_rate_ms"


class PreferenceStore:
    """
    Stats polling interval persisted to a small YAML file.

    A missing or unreadable file yields the default interval. Values are
    clamped to 10-10000 ms on load and on store.

    Example:
        >>> prefs = PreferenceStore(Path("~/.config/meshgate/prefs.yaml").expanduser())
        >>> prefs.stats_interval_ms
        1000
        >>> prefs.set_stats_interval(5)
        10
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._stats_interval_ms = self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def stats_interval_ms(self) -> int:
        return self._stats_interval_ms

    def set_stats_interval(self, interval_ms: int) -> int:
        """
        Clamp, remember and persist a stats interval.

        Returns:
            The interval actually stored.
        """
        self._stats_interval_ms = clamp_stats_interval(interval_ms)
        self._save()
        return self._stats_interval_ms

    def _load(self) -> int:
        default = ProtocolConstants.DEFAULT_STATS_INTERVAL_MS
        try:
            with open(self._path) as f:
                raw = yaml.safe_load(f)
        except FileNotFoundError:
            return default
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring unreadable preferences %s: %s", self._path, e)
            return default

        value = raw.get(STATS_INTERVAL_KEY) if isinstance(raw, dict) else None
        if isinstance(value, bool) or not isinstance(value, int):
            if value is not None:
                logger.warning("Ignoring invalid %s=%r in %s", STATS_INTERVAL_KEY, value, self._path)
            return default
        return clamp_stats_interval(value)

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w") as f:
            yaml.safe_dump({STATS_INTERVAL_KEY: self._stats_interval_ms}, f)
