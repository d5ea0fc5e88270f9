"""
Data models for gateway messages and session state.

Messages are immutable Pydantic models produced by the decoder; state
models are owned and updated by LinkSession.
"""

from meshgate.models.messages import (
    DebugLog,
    DecodeFailure,
    ErrorMessage,
    InfoReply,
    Message,
    RxPacket,
    SlotConfig,
    SlotCounters,
    Stats,
)
from meshgate.models.state import (
    DeviceSettings,
    DeviceSnapshot,
    DeviceStatus,
    ReceivedPacket,
    SlotState,
)

__all__ = [
    # Messages
    "DebugLog",
    "DecodeFailure",
    "ErrorMessage",
    "InfoReply",
    "Message",
    "RxPacket",
    "SlotConfig",
    "SlotCounters",
    "Stats",
    # State
    "DeviceSettings",
    "DeviceSnapshot",
    "DeviceStatus",
    "ReceivedPacket",
    "SlotState",
]
