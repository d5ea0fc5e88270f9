"""
Presentation events emitted by LinkSession.

The session never renders anything itself; it pushes these immutable
events to a sink callable supplied by the caller (a CLI printer, a UI
adapter, or a list in tests).
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Union

from pydantic import BaseModel, ConfigDict

from meshgate.models.messages import InfoReply, RxPacket, Stats
from meshgate.models.state import DeviceSettings, DeviceSnapshot, DeviceStatus


class LogLevel(str, Enum):
    """Severity of a LogLine, mirroring the console colours of the web client."""

    DEBUG = "debug"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class ConnectionChanged(_Event):
    """The link opened or closed."""

    connected: bool
    port: str


class InfoUpdated(_Event):
    """
    An InfoReply was applied to the snapshot.

    Attributes:
        info: The decoded reply.
        snapshot: Snapshot after applying it.
        form: Current settings form.
        form_updated: False when the form was dirty and left untouched.
    """

    info: InfoReply
    snapshot: DeviceSnapshot
    form: DeviceSettings
    form_updated: bool


class StatsUpdated(_Event):
    stats: Stats
    snapshot: DeviceSnapshot


class PacketReceived(_Event):
    packet: RxPacket
    timestamp: float


class ErrorReceived(_Event):
    """Device-reported error text."""

    text: str


class LogLine(_Event):
    level: LogLevel
    text: str


class StatusUpdated(_Event):
    status: DeviceStatus


class HandshakeTimedOut(_Event):
    """Every GetInfo attempt of the connect handshake went unanswered."""

    attempts: int


class FormChanged(_Event):
    """The settings form was edited, saved or reverted."""

    form: DeviceSettings
    dirty: bool


SessionEvent = Union[
    ConnectionChanged,
    InfoUpdated,
    StatsUpdated,
    PacketReceived,
    ErrorReceived,
    LogLine,
    StatusUpdated,
    HandshakeTimedOut,
    FormChanged,
]

EventSink = Callable[[SessionEvent], None]
