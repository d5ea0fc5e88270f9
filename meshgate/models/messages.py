"""
Typed messages decoded from gateway responses.

One model per response tag, implemented as immutable Pydantic models with
range validation matching the wire widths. DecodeFailure is the value the
decoder returns instead of raising when a payload does not fit its tag.
"""

from __future__ import annotations

from typing import Annotated, Union

from pydantic import BaseModel, ConfigDict, Field

from meshgate.protocol.constants import (
    BANDWIDTH_KHZ,
    ResponseTag,
    platform_name,
    slot_name,
)

U8 = Annotated[int, Field(ge=0, le=0xFF)]
U32 = Annotated[int, Field(ge=0, le=0xFFFFFFFF)]


class SlotConfig(BaseModel):
    """
    Radio configuration of one protocol slot as reported by InfoReply.

    Example:
        >>> cfg = SlotConfig(frequency_hz=910_525_000, bandwidth=6)
        >>> cfg.frequency_mhz
        910.525
        >>> cfg.bandwidth_khz
        62.5
    """

    model_config = ConfigDict(frozen=True)

    frequency_hz: U32
    bandwidth: int | None = Field(default=None, ge=0, le=0xFF)
    """Bandwidth code; None when the reply uses the legacy layout."""

    @property
    def frequency_mhz(self) -> float:
        return self.frequency_hz / 1_000_000

    @property
    def bandwidth_khz(self) -> float | None:
        if self.bandwidth is None or self.bandwidth >= len(BANDWIDTH_KHZ):
            return None
        return BANDWIDTH_KHZ[self.bandwidth]


class SlotCounters(BaseModel):
    """Packet counters of one protocol slot."""

    model_config = ConfigDict(frozen=True)

    rx: U32
    tx: U32


class InfoReply(BaseModel):
    """
    Device configuration (response tag 0x81).

    Attributes:
        firmware_major: Firmware major version.
        firmware_minor: Firmware minor version.
        slots: Per-slot frequency and bandwidth.
        current_protocol: Slot the radio is listening on.
        switch_interval: Auto-switch interval (ms; legacy layout sends one byte).
        desired_mode: Requested protocol mode (extended layout only).
        platform_id: Hardware platform id (extended layout only).
    """

    model_config = ConfigDict(frozen=True)

    tag: int = Field(default=int(ResponseTag.INFO_REPLY), frozen=True)
    firmware_major: U8
    firmware_minor: U8
    slots: tuple[SlotConfig, ...]
    current_protocol: U8
    switch_interval: int = Field(ge=0, le=0xFFFF)
    desired_mode: int | None = Field(default=None, ge=0, le=0xFF)
    platform_id: int | None = Field(default=None, ge=0, le=0xFF)

    @property
    def firmware_version(self) -> str:
        return f"{self.firmware_major}.{self.firmware_minor}"

    @property
    def platform_name(self) -> str | None:
        return platform_name(self.platform_id)

    @property
    def is_extended(self) -> bool:
        """True if the reply carried bandwidths and a platform id."""
        return self.platform_id is not None

    def __repr__(self) -> str:
        freqs = ", ".join(f"{s.frequency_mhz:.3f}" for s in self.slots)
        return (
            f"InfoReply(fw={self.firmware_version}, "
            f"protocol={self.current_protocol}, freqs=[{freqs}] MHz)"
        )


class Stats(BaseModel):
    """
    Packet and error counters (response tag 0x82).

    Attributes:
        slots: Per-slot rx/tx counters.
        conversion_errors: Packets that failed cross-protocol conversion.
        parse_errors: Packets that failed parsing (extended layout only).
    """

    model_config = ConfigDict(frozen=True)

    tag: int = Field(default=int(ResponseTag.STATS), frozen=True)
    slots: tuple[SlotCounters, ...]
    conversion_errors: U32
    parse_errors: int | None = Field(default=None, ge=0, le=0xFFFFFFFF)


class RxPacket(BaseModel):
    """
    Packet heard on air (response tag 0x83).

    Example:
        >>> pkt = RxPacket(protocol=1, rssi=-92, snr=7, data=b"\\x01\\x02")
        >>> pkt.protocol_name
        'Meshtastic'
    """

    model_config = ConfigDict(frozen=True)

    tag: int = Field(default=int(ResponseTag.RX_PACKET), frozen=True)
    protocol: U8
    rssi: int = Field(ge=-32768, le=32767, description="dBm")
    snr: int = Field(ge=-128, le=127, description="dB")
    data: bytes = b""

    @property
    def protocol_name(self) -> str:
        return slot_name(self.protocol)

    def __repr__(self) -> str:
        return (
            f"RxPacket({self.protocol_name}, rssi={self.rssi}dBm, "
            f"snr={self.snr}dB, len={len(self.data)})"
        )


class ErrorMessage(BaseModel):
    """Device-reported error text (response tag 0x84)."""

    model_config = ConfigDict(frozen=True)

    tag: int = Field(default=int(ResponseTag.ERROR), frozen=True)
    text: str = ""


class DebugLog(BaseModel):
    """Device diagnostic line (response tag 0x85)."""

    model_config = ConfigDict(frozen=True)

    tag: int = Field(default=int(ResponseTag.DEBUG_LOG), frozen=True)
    text: str = ""

    @property
    def is_stats_chatter(self) -> bool:
        """Periodic firmware counter dumps ("RX: .. TX: ..") rather than events."""
        return "RX:" in self.text or "TX:" in self.text


class DecodeFailure(BaseModel):
    """
    A frame whose payload could not be decoded.

    Returned by MessageDecoder.decode() in place of a message; never a
    partially filled message.
    """

    model_config = ConfigDict(frozen=True)

    tag: U8
    reason: str
    payload_length: int = Field(ge=0)

    def __str__(self) -> str:
        return f"tag 0x{self.tag:02X} ({self.payload_length} bytes): {self.reason}"


Message = Union[InfoReply, Stats, RxPacket, ErrorMessage, DebugLog]
"""Any successfully decoded response."""
