"""
meshgate - host-side link to a dual-protocol LoRa mesh gateway.

Talks to a MeshCore/Meshtastic bridging gateway over its USB serial port:
framing and decoding of the binary link protocol, the connect handshake,
background stats polling, and the settings the gateway accepts.

Example:
    >>> from meshgate import LinkSession
    >>> from meshgate.transport import AsyncSerialTransport
    >>>
    >>> async def main():
    ...     session = LinkSession(AsyncSerialTransport("/dev/ttyACM0"), sink=print)
    ...     async with session:
    ...         await session.set_stats_interval(500)
    ...         await asyncio.sleep(30)
"""

from meshgate.config import AppConfig, SessionConfig, load_config
from meshgate.events import (
    ConnectionChanged,
    ErrorReceived,
    EventSink,
    FormChanged,
    HandshakeTimedOut,
    InfoUpdated,
    LogLevel,
    LogLine,
    PacketReceived,
    SessionEvent,
    StatsUpdated,
    StatusUpdated,
)
from meshgate.exceptions import (
    ConfigError,
    ConnectionError,
    DecodeError,
    FrameSyncError,
    FrameTooLargeError,
    HandshakeTimeout,
    MeshGateError,
    ProtocolError,
    TransportError,
)
from meshgate.models import (
    DebugLog,
    DecodeFailure,
    DeviceSettings,
    DeviceSnapshot,
    DeviceStatus,
    ErrorMessage,
    InfoReply,
    RxPacket,
    Stats,
)
from meshgate.preferences import PreferenceStore
from meshgate.protocol import FrameCodec, MessageDecoder
from meshgate.session import LinkSession, SessionState
from meshgate.transport import AbstractTransport, AsyncSerialTransport

__version__ = "0.1.0"
__all__ = [
    # Session
    "LinkSession",
    "SessionState",
    "FrameCodec",
    "MessageDecoder",
    # Config
    "AppConfig",
    "SessionConfig",
    "load_config",
    "PreferenceStore",
    # Models
    "InfoReply",
    "Stats",
    "RxPacket",
    "ErrorMessage",
    "DebugLog",
    "DecodeFailure",
    "DeviceSnapshot",
    "DeviceSettings",
    "DeviceStatus",
    # Events
    "SessionEvent",
    "EventSink",
    "ConnectionChanged",
    "InfoUpdated",
    "StatsUpdated",
    "PacketReceived",
    "ErrorReceived",
    "LogLine",
    "LogLevel",
    "StatusUpdated",
    "HandshakeTimedOut",
    "FormChanged",
    # Exceptions
    "MeshGateError",
    "ProtocolError",
    "FrameSyncError",
    "DecodeError",
    "FrameTooLargeError",
    "TransportError",
    "ConnectionError",
    "HandshakeTimeout",
    "ConfigError",
    # Transport
    "AbstractTransport",
    "AsyncSerialTransport",
    # Version
    "__version__",
]
