"""
Configuration loading and validation.

A YAML file with two optional sections:

    serial:
      port: /dev/ttyACM0
      baudrate: 115200
    session:
      stats_interval_ms: 1000
      handshake_attempts: 5

Every value has a default, so an empty file is valid. Unknown keys are
rejected so typos do not silently fall back to defaults.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from meshgate.exceptions import ConfigError
from meshgate.protocol.constants import ProtocolConstants


def clamp_stats_interval(interval_ms: int) -> int:
    """Clamp a stats polling interval to the supported range."""
    return max(
        ProtocolConstants.MIN_STATS_INTERVAL_MS,
        min(ProtocolConstants.MAX_STATS_INTERVAL_MS, int(interval_ms)),
    )


class SerialConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    port: str | None = None
    baudrate: int = Field(default=ProtocolConstants.DEFAULT_BAUD_RATE, gt=0)


class SessionConfig(BaseModel):
    """
    LinkSession timing and retry parameters.

    Durations are in seconds except stats_interval_ms.

    Attributes:
        stats_interval_ms: GetStats cadence, clamped to 10-10000 ms.
        info_interval: Target cadence of background GetInfo requests.
        handshake_attempts: GetInfo attempts on connect.
        handshake_timeout: Wait per attempt.
        handshake_backoff: Pause before each retry.
        handshake_poll_interval: How often the wait checks for a reply.
        status_interval: Derived-status refresh cadence.
        confirm_delay: Delay of the GetInfo that confirms saved settings.
        connect_settle_delay: Pause after opening the port.
        activity_window: Seconds a slot stays "recently active".
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    stats_interval_ms: int = ProtocolConstants.DEFAULT_STATS_INTERVAL_MS
    info_interval: float = Field(default=ProtocolConstants.INFO_INTERVAL, gt=0)
    handshake_attempts: int = Field(default=ProtocolConstants.HANDSHAKE_ATTEMPTS, ge=1)
    handshake_timeout: float = Field(default=ProtocolConstants.HANDSHAKE_TIMEOUT, gt=0)
    handshake_backoff: float = Field(default=ProtocolConstants.HANDSHAKE_BACKOFF, ge=0)
    handshake_poll_interval: float = Field(
        default=ProtocolConstants.HANDSHAKE_POLL_INTERVAL, gt=0
    )
    status_interval: float = Field(default=ProtocolConstants.STATUS_INTERVAL, gt=0)
    confirm_delay: float = Field(default=ProtocolConstants.CONFIRM_DELAY, ge=0)
    connect_settle_delay: float = Field(
        default=ProtocolConstants.CONNECT_SETTLE_DELAY, ge=0
    )
    activity_window: float = Field(default=ProtocolConstants.ACTIVITY_WINDOW, gt=0)

    @field_validator("stats_interval_ms")
    @classmethod
    def _clamp_stats_interval(cls, value: int) -> int:
        return clamp_stats_interval(value)


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    serial: SerialConfig = SerialConfig()
    session: SessionConfig = SessionConfig()


def load_config(path: Path) -> AppConfig:
    """
    Load and validate configuration from a YAML file.

    Args:
        path: Configuration file path.

    Returns:
        The validated AppConfig.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the file is not valid YAML or fails validation. The
            message lists every problem found.
    """
    with open(path) as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"configuration root must be a mapping, got {type(raw).__name__}")

    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigError(f"configuration validation failed: {'; '.join(errors)}") from e
