"""
Outbound command builders.

Each builder validates its arguments against the firmware's accepted ranges
and returns a Command; Command.encode() produces the wire frame. The
extended command set (0x07-0x0A) is canonical; SET_FREQUENCY and
SET_PROTOCOL are kept as the legacy subset.
"""

from __future__ import annotations

from dataclasses import dataclass

from meshgate.protocol.constants import (
    SEND_TEST_ALL,
    CommandCode,
    ProtocolConstants,
    is_valid_slot,
)
from meshgate.protocol.encoding import encode_uint16, encode_uint32, encode_uint8
from meshgate.protocol.frame_codec import encode_frame


@dataclass(frozen=True)
class Command:
    """
    An outbound command: same wire shape as a Frame.

    Attributes:
        command_id: Command id byte.
        payload: Command arguments.
    """

    command_id: int
    payload: bytes = b""

    @property
    def command(self) -> CommandCode | int:
        """Get command as CommandCode if recognized, else raw int."""
        try:
            return CommandCode(self.command_id)
        except ValueError:
            return self.command_id

    def encode(self) -> bytes:
        """Wire bytes for this command."""
        return encode_frame(self.command_id, self.payload)

    def __repr__(self) -> str:
        cmd = self.command
        name = cmd.name if isinstance(cmd, CommandCode) else f"0x{self.command_id:02X}"
        if self.payload:
            return f"Command({name}, payload={self.payload.hex()})"
        return f"Command({name})"


def _check_slot(slot: int) -> None:
    if not is_valid_slot(slot):
        raise ValueError(
            f"Protocol slot must be 0-{ProtocolConstants.SLOT_COUNT - 1}, got {slot}"
        )


def get_info() -> Command:
    """Build GET_INFO (0x01)."""
    return Command(CommandCode.GET_INFO)


def get_stats() -> Command:
    """Build GET_STATS (0x02)."""
    return Command(CommandCode.GET_STATS)


def reset_stats() -> Command:
    """Build RESET_STATS (0x05)."""
    return Command(CommandCode.RESET_STATS)


def set_frequency(frequency_hz: int) -> Command:
    """
    Build the legacy SET_FREQUENCY (0x03) command.

    Args:
        frequency_hz: Frequency in Hz (u32).
    """
    return Command(CommandCode.SET_FREQUENCY, encode_uint32(frequency_hz))


def set_protocol(mode: int) -> Command:
    """
    Build the legacy SET_PROTOCOL (0x04) command.

    Args:
        mode: Slot index, or 2 for auto-switch.
    """
    if not (is_valid_slot(mode) or mode == SEND_TEST_ALL):
        raise ValueError(f"Protocol mode must be a slot index or 2, got {mode}")
    return Command(CommandCode.SET_PROTOCOL, encode_uint8(mode))


def send_test(target: int) -> Command:
    """
    Build SEND_TEST (0x06).

    Args:
        target: Slot index, or SEND_TEST_ALL (2) for every transmit slot.
    """
    if not (is_valid_slot(target) or target == SEND_TEST_ALL):
        raise ValueError(f"Test target must be a slot index or 2, got {target}")
    return Command(CommandCode.SEND_TEST, encode_uint8(target))


def set_switch_interval(interval_ms: int) -> Command:
    """
    Build SET_SWITCH_INTERVAL (0x07).

    Args:
        interval_ms: Auto-switch interval in ms; 0 selects manual mode.
    """
    return Command(CommandCode.SET_SWITCH_INTERVAL, encode_uint16(interval_ms))


def set_protocol_params(slot: int, frequency_hz: int, bandwidth: int) -> Command:
    """
    Build SET_PROTOCOL_PARAMS (0x08).

    Payload: slot (u8) + frequency (u32 LE) + bandwidth code (u8).

    Args:
        slot: Protocol slot index.
        frequency_hz: Frequency in Hz. Range is validated by the device.
        bandwidth: Bandwidth code 0-9.

    Raises:
        ValueError: If slot or bandwidth code is out of range.
    """
    _check_slot(slot)
    if not 0 <= bandwidth <= ProtocolConstants.MAX_BANDWIDTH_CODE:
        raise ValueError(
            f"Bandwidth code must be 0-{ProtocolConstants.MAX_BANDWIDTH_CODE}, got {bandwidth}"
        )
    payload = encode_uint8(slot) + encode_uint32(frequency_hz) + encode_uint8(bandwidth)
    return Command(CommandCode.SET_PROTOCOL_PARAMS, payload)


def set_rx_protocol(slot: int) -> Command:
    """Build SET_RX_PROTOCOL (0x09)."""
    _check_slot(slot)
    return Command(CommandCode.SET_RX_PROTOCOL, encode_uint8(slot))


def set_tx_protocols(bitmask: int) -> Command:
    """
    Build SET_TX_PROTOCOLS (0x0A).

    Args:
        bitmask: Bit n selects slot n for transmission.
    """
    if bitmask >> ProtocolConstants.SLOT_COUNT:
        raise ValueError(f"TX bitmask 0x{bitmask:02X} selects unknown slots")
    return Command(CommandCode.SET_TX_PROTOCOLS, encode_uint8(bitmask))
