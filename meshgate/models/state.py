"""
Session-side state models.

DeviceSnapshot is the canonical last-known copy of the gateway's
configuration and counters; LinkSession updates it only from decoded
InfoReply, Stats and RxPacket messages. DeviceSettings holds the
user-editable values (the settings form), which device updates overwrite
only while the form is clean. DeviceStatus is derived display state,
recomputed from the snapshot on every status tick.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from meshgate.models.messages import RxPacket
from meshgate.protocol.constants import (
    ProtocolConstants,
    is_valid_slot,
    platform_name,
    slot_name,
)

BandwidthCode = Annotated[int, Field(ge=0, le=ProtocolConstants.MAX_BANDWIDTH_CODE)]
FrequencyHz = Annotated[int, Field(ge=0, le=0xFFFFFFFF)]


class SlotState(BaseModel):
    """
    Last-known state of one protocol slot.

    Attributes:
        frequency_hz: Radio frequency in Hz.
        bandwidth: Bandwidth code, None until an extended InfoReply arrives.
        rx_count: Packets received on this slot.
        tx_count: Packets transmitted on this slot.
        last_seen: Scheduler time of the last RxPacket on this slot.
    """

    frequency_hz: int
    bandwidth: int | None = None
    rx_count: int = 0
    tx_count: int = 0
    last_seen: float | None = None

    @property
    def frequency_mhz(self) -> float:
        return self.frequency_hz / 1_000_000


class ReceivedPacket(BaseModel):
    """An RxPacket with the scheduler time it arrived."""

    model_config = ConfigDict(frozen=True)

    packet: RxPacket
    timestamp: float


class DeviceSnapshot(BaseModel):
    """
    Canonical copy of device configuration and counters.

    Attributes:
        firmware_major: Firmware major version, None before the first InfoReply.
        firmware_minor: Firmware minor version.
        slots: Per-slot configuration and counters.
        current_protocol: Slot the device is listening on.
        switch_interval: Auto-switch interval reported by the device.
        desired_mode: Protocol mode reported by extended firmware.
        platform_id: Hardware platform id reported by extended firmware.
        conversion_errors: Cross-protocol conversion failures.
        parse_errors: Parse failures (extended Stats only).
        last_packet: Most recent packet heard.
        last_activity: Scheduler time of the most recent packet.
        protocol_switches: Listen-protocol changes seen this connection.
        connected_at: Scheduler time the connection was opened.
    """

    firmware_major: int | None = None
    firmware_minor: int | None = None
    slots: list[SlotState]
    current_protocol: int = 0
    switch_interval: int | None = None
    desired_mode: int | None = None
    platform_id: int | None = None
    conversion_errors: int = 0
    parse_errors: int | None = None
    last_packet: ReceivedPacket | None = None
    last_activity: float | None = None
    protocol_switches: int = 0
    connected_at: float | None = None

    @classmethod
    def initial(cls) -> DeviceSnapshot:
        """Snapshot with the firmware's default radio configuration."""
        return cls(
            slots=[
                SlotState(frequency_hz=freq, bandwidth=bw)
                for freq, bw in zip(
                    ProtocolConstants.DEFAULT_FREQUENCIES,
                    ProtocolConstants.DEFAULT_BANDWIDTHS,
                )
            ]
        )

    @property
    def firmware_version(self) -> str | None:
        if self.firmware_major is None:
            return None
        return f"{self.firmware_major}.{self.firmware_minor}"

    @property
    def platform_name(self) -> str | None:
        return platform_name(self.platform_id)

    @property
    def current_protocol_name(self) -> str:
        return slot_name(self.current_protocol)


class DeviceSettings(BaseModel):
    """
    User-editable gateway settings (the settings form).

    Example:
        >>> settings = DeviceSettings.default()
        >>> settings.normalized().tx_mask
        2
    """

    model_config = ConfigDict(frozen=True)

    listen_protocol: int = 0
    tx_mask: int = Field(default=0, ge=0, le=0xFF)
    frequencies: tuple[FrequencyHz, ...] = ProtocolConstants.DEFAULT_FREQUENCIES
    bandwidths: tuple[BandwidthCode, ...] = ProtocolConstants.DEFAULT_BANDWIDTHS

    @field_validator("listen_protocol")
    @classmethod
    def _check_listen_protocol(cls, value: int) -> int:
        if not is_valid_slot(value):
            raise ValueError(f"Listen protocol must be a valid slot, got {value}")
        return value

    @model_validator(mode="after")
    def _check_slot_counts(self) -> DeviceSettings:
        count = ProtocolConstants.SLOT_COUNT
        if len(self.frequencies) != count or len(self.bandwidths) != count:
            raise ValueError(f"Settings need exactly {count} frequencies and bandwidths")
        if self.tx_mask >> count:
            raise ValueError(f"TX mask 0x{self.tx_mask:02X} selects unknown slots")
        return self

    @classmethod
    def default(cls) -> DeviceSettings:
        return cls()

    @classmethod
    def from_snapshot(cls, snapshot: DeviceSnapshot, tx_mask: int = 0) -> DeviceSettings:
        """
        Build settings mirroring the device snapshot.

        The device does not report its transmit selection, so the TX mask is
        carried over from the caller and normalized against the listen slot.
        """
        defaults = ProtocolConstants.DEFAULT_BANDWIDTHS
        return cls(
            listen_protocol=snapshot.current_protocol,
            tx_mask=tx_mask,
            frequencies=tuple(slot.frequency_hz for slot in snapshot.slots),
            bandwidths=tuple(
                slot.bandwidth
                if slot.bandwidth is not None
                and slot.bandwidth <= ProtocolConstants.MAX_BANDWIDTH_CODE
                else defaults[index]
                for index, slot in enumerate(snapshot.slots)
            ),
        ).normalized()

    def with_slot(self, slot: int, frequency_hz: int, bandwidth: int) -> DeviceSettings:
        """Copy with one slot's radio parameters replaced."""
        frequencies = list(self.frequencies)
        bandwidths = list(self.bandwidths)
        frequencies[slot] = frequency_hz
        bandwidths[slot] = bandwidth
        return self.updated(frequencies=tuple(frequencies), bandwidths=tuple(bandwidths))

    def updated(self, **changes: object) -> DeviceSettings:
        """Validated copy with the given fields replaced."""
        return DeviceSettings.model_validate({**self.model_dump(), **changes})

    def normalized(self) -> DeviceSettings:
        """
        Copy whose TX mask never includes the listen slot.

        When exactly one other slot exists it is selected automatically, so
        the gateway always has somewhere to forward to.
        """
        count = ProtocolConstants.SLOT_COUNT
        mask = self.tx_mask & ~(1 << self.listen_protocol)
        others = [slot for slot in range(count) if slot != self.listen_protocol]
        if len(others) == 1:
            mask = 1 << others[0]
        if mask == self.tx_mask:
            return self
        return self.updated(tx_mask=mask)

    def tx_slots(self) -> list[int]:
        return [slot for slot in range(ProtocolConstants.SLOT_COUNT) if self.tx_mask & (1 << slot)]


class DeviceStatus(BaseModel):
    """
    Derived display state, computed purely from already received data.

    Attributes:
        activity: "Processing Packet", "Listening" or "Listening (<protocol>)".
        uptime_seconds: Whole seconds since connect, None when disconnected.
        uptime: Formatted uptime ("42s", "3m 5s", "2h 14m" or "--").
        last_activity: Age of the last packet ("12s ago" ... or "--").
        protocol_switches: Listen-protocol changes seen this connection.
        recently_active: Per slot, heard within the activity window.
        platform: Platform name, None when unknown.
    """

    model_config = ConfigDict(frozen=True)

    activity: str
    uptime_seconds: int | None = None
    uptime: str = "--"
    last_activity: str = "--"
    protocol_switches: int = 0
    recently_active: tuple[bool, ...] = ()
    platform: str | None = None
