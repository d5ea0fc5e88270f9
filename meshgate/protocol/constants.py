"""
Link protocol command ids, response tags and constants.

Based on the gateway firmware's USB command handler and the web client that
shipped with it.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Final


class CommandCode(IntEnum):
    """
    Host-to-device command ids.

    The first six are the original command set; 0x07-0x0A were added by
    later firmware for per-slot configuration and are treated as canonical.
    """

    GET_INFO = 0x01
    """Request an InfoReply."""

    GET_STATS = 0x02
    """Request a Stats reply."""

    SET_FREQUENCY = 0x03
    """Legacy frequency setter (u32 Hz). Firmware only logs the request."""

    SET_PROTOCOL = 0x04
    """Legacy protocol mode select (0/1 = slot, 2 = auto-switch)."""

    RESET_STATS = 0x05
    """Zero all per-slot counters."""

    SEND_TEST = 0x06
    """Transmit a test message (slot index, or 2 for every TX slot)."""

    SET_SWITCH_INTERVAL = 0x07
    """Auto-switch interval in ms (u16 LE); 0 selects manual mode."""

    SET_PROTOCOL_PARAMS = 0x08
    """Per-slot parameters: slot (u8), frequency (u32 LE), bandwidth code (u8)."""

    SET_RX_PROTOCOL = 0x09
    """Select the listening slot (u8)."""

    SET_TX_PROTOCOLS = 0x0A
    """Select transmit slots (u8 bitmask, bit n = slot n)."""


class ResponseTag(IntEnum):
    """Device-to-host response tags."""

    INFO_REPLY = 0x81
    STATS = 0x82
    RX_PACKET = 0x83
    ERROR = 0x84
    DEBUG_LOG = 0x85


class ProtocolSlot(IntEnum):
    """Radio protocols the gateway bridges, by slot index."""

    MESHCORE = 0
    MESHTASTIC = 1


class Platform(IntEnum):
    """Hardware platform ids reported in the extended InfoReply."""

    LORA32U4II = 0
    RAK4631 = 1


PLATFORM_NAMES: Final[dict[int, str]] = {
    Platform.LORA32U4II: "LoRa32u4II",
    Platform.RAK4631: "RAK4631",
}

SLOT_NAMES: Final[dict[int, str]] = {
    ProtocolSlot.MESHCORE: "MeshCore",
    ProtocolSlot.MESHTASTIC: "Meshtastic",
}

BANDWIDTH_KHZ: Final[tuple[float, ...]] = (
    7.8,
    10.4,
    15.6,
    20.8,
    31.25,
    41.7,
    62.5,
    125.0,
    250.0,
    500.0,
)
"""LoRa bandwidth in kHz, indexed by the one-byte bandwidth code."""

SEND_TEST_ALL: Final[int] = 2
"""SendTest target meaning every configured transmit slot."""


class ProtocolConstants:
    """Link protocol constants and session timing defaults."""

    # ===== Framing =====

    HEADER_SIZE: Final[int] = 2
    """Tag byte plus length byte."""

    MAX_PAYLOAD: Final[int] = 64
    """Largest payload either side accepts in one frame."""

    RESYNC_WINDOW: Final[int] = 100
    """Bytes scanned for a plausible header before the buffer is dropped."""

    # ===== Payload layouts =====

    SLOT_COUNT: Final[int] = 2
    """Protocol slots reported by InfoReply and Stats."""

    INFO_LEGACY_SIZE: Final[int] = 12
    """fw(2) + freq(4) * 2 + interval(1) + protocol(1)."""

    INFO_EXTENDED_SIZE: Final[int] = 17
    """fw(2) + freq(4) * 2 + interval(2) + rx(1) + bw(1) * 2 + mode(1) + platform(1).

    Firmware sends an 18-byte payload; the trailing byte is padding.
    """

    STATS_LEGACY_SIZE: Final[int] = 20
    """(rx, tx) u32 per slot + conversion errors u32."""

    STATS_EXTENDED_SIZE: Final[int] = 24
    """Legacy layout + parse errors u32."""

    RX_PACKET_HEADER_SIZE: Final[int] = 5
    """protocol(1) + rssi(2) + snr(1) + length(1)."""

    MAX_BANDWIDTH_CODE: Final[int] = len(BANDWIDTH_KHZ) - 1

    # ===== Session timing (seconds unless noted) =====

    DEFAULT_STATS_INTERVAL_MS: Final[int] = 1000
    MIN_STATS_INTERVAL_MS: Final[int] = 10
    """USB CDC copes with 100 requests per second."""

    MAX_STATS_INTERVAL_MS: Final[int] = 10000

    INFO_INTERVAL: Final[float] = 5.0
    """Target cadence of background GetInfo requests."""

    HANDSHAKE_ATTEMPTS: Final[int] = 5
    HANDSHAKE_TIMEOUT: Final[float] = 1.5
    HANDSHAKE_BACKOFF: Final[float] = 0.2
    HANDSHAKE_POLL_INTERVAL: Final[float] = 0.1

    STATUS_INTERVAL: Final[float] = 0.1
    CONFIRM_DELAY: Final[float] = 0.2
    """Delay before the GetInfo that confirms saved settings."""

    CONNECT_SETTLE_DELAY: Final[float] = 0.15
    """Pause after opening the port before the first GetInfo."""

    ACTIVITY_WINDOW: Final[float] = 30.0
    """A slot counts as recently active if it was heard within this window."""

    # ===== Serial =====

    DEFAULT_BAUD_RATE: Final[int] = 115200
    READ_CHUNK_SIZE: Final[int] = 256

    # ===== Defaults before the first InfoReply =====

    DEFAULT_FREQUENCIES: Final[tuple[int, ...]] = (910_525_000, 906_875_000)
    DEFAULT_BANDWIDTHS: Final[tuple[int, ...]] = (6, 8)


RESPONSE_TAGS: Final[frozenset[int]] = frozenset(int(tag) for tag in ResponseTag)
"""Tags the framer accepts as the start of a frame."""


def slot_name(slot: int) -> str:
    """Display name for a protocol slot index."""
    return SLOT_NAMES.get(slot, f"Protocol {slot}")


def platform_name(platform_id: int | None) -> str | None:
    """Display name for a platform id, None when unknown."""
    if platform_id is None:
        return None
    return PLATFORM_NAMES.get(platform_id)


def is_valid_slot(slot: int) -> bool:
    """Check that a slot index addresses one of the reported slots."""
    return 0 <= slot < ProtocolConstants.SLOT_COUNT
