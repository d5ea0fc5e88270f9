"""
Little-endian integer helpers for the link protocol.

Every multi-byte field on the wire is little-endian. Signed fields are sent
as their two's-complement bit pattern and folded back here by subtracting
the full range of the field's width.

For example:
- RSSI bytes FF FF decode to 65535 unsigned, which folds to -1
- SNR byte F6 decodes to 246 unsigned, which folds to -10
"""

from __future__ import annotations

from typing import Final

_UINT8_MAX: Final[int] = 0xFF
_UINT16_MAX: Final[int] = 0xFFFF
_UINT32_MAX: Final[int] = 0xFFFFFFFF


def to_signed(value: int, bits: int) -> int:
    """
    Fold an unsigned value into its two's-complement signed form.

    Args:
        value: Unsigned value in range 0 to 2**bits - 1.
        bits: Field width in bits.

    Returns:
        Signed value in range -2**(bits-1) to 2**(bits-1) - 1.

    Example:
        >>> to_signed(0xFFFF, 16)
        -1
        >>> to_signed(0x7F, 8)
        127
    """
    half = 1 << (bits - 1)
    return value if value < half else value - (1 << bits)


def encode_uint8(value: int) -> bytes:
    """Encode an unsigned byte."""
    if not 0 <= value <= _UINT8_MAX:
        raise ValueError(f"Byte value must be 0-255, got {value}")
    return bytes([value])


def encode_uint16(value: int) -> bytes:
    """
    Encode a 16-bit unsigned value as 2 little-endian bytes.

    Raises:
        ValueError: If value is not in range 0-65535.

    Example:
        >>> encode_uint16(0x1234)
        b'4\\x12'
    """
    if not 0 <= value <= _UINT16_MAX:
        raise ValueError(f"Word value must be 0-65535, got {value}")
    return bytes([value & 0xFF, (value >> 8) & 0xFF])


def encode_uint32(value: int) -> bytes:
    """
    Encode a 32-bit unsigned value as 4 little-endian bytes.

    Raises:
        ValueError: If value is not in range 0-4294967295.
    """
    if not 0 <= value <= _UINT32_MAX:
        raise ValueError(f"Value must be 0-4294967295, got {value}")
    return bytes(
        [
            value & 0xFF,
            (value >> 8) & 0xFF,
            (value >> 16) & 0xFF,
            (value >> 24) & 0xFF,
        ]
    )


def decode_uint16(data: bytes | bytearray | memoryview, offset: int = 0) -> int:
    """Decode a little-endian 16-bit unsigned value at offset."""
    return data[offset] | (data[offset + 1] << 8)


def decode_uint32(data: bytes | bytearray | memoryview, offset: int = 0) -> int:
    """Decode a little-endian 32-bit unsigned value at offset."""
    return (
        data[offset]
        | (data[offset + 1] << 8)
        | (data[offset + 2] << 16)
        | (data[offset + 3] << 24)
    )


def decode_int16(data: bytes | bytearray | memoryview, offset: int = 0) -> int:
    """Decode a little-endian two's-complement 16-bit value at offset."""
    return to_signed(decode_uint16(data, offset), 16)


def decode_int8(data: bytes | bytearray | memoryview, offset: int = 0) -> int:
    """Decode a two's-complement byte at offset."""
    return to_signed(data[offset], 8)
