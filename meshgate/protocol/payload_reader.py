"""
PayloadReader - position-tracking reader over a frame payload.

The decoder walks each payload field by field. The reader keeps the cursor,
checks bounds before every read and raises DecodeError with the offending
offset, so layout code reads top to bottom without index arithmetic.

Example:
    >>> reader = PayloadReader(bytes([0x01, 0x34, 0x12, 0xFF]))
    >>> reader.read_byte()
    1
    >>> reader.read_uint16()
    4660
    >>> reader.read_int8()
    -1
"""

from __future__ import annotations

from meshgate.exceptions import DecodeError
from meshgate.protocol.encoding import decode_int16, decode_int8, decode_uint16, decode_uint32


class PayloadReader:
    """
    Bounds-checked little-endian reader over a payload.

    Attributes:
        position: Current read offset in bytes.
        remaining: Bytes left to read.
    """

    __slots__ = ("_data", "_position", "_tag")

    def __init__(self, data: bytes | bytearray | memoryview, tag: int | None = None) -> None:
        """
        Initialize the reader.

        Args:
            data: Payload bytes.
            tag: Response tag the payload belongs to, attached to errors.
        """
        self._data = bytes(data)
        self._position = 0
        self._tag = tag

    @property
    def position(self) -> int:
        """Current offset in bytes (0-indexed)."""
        return self._position

    @property
    def remaining(self) -> int:
        """Number of bytes remaining to read."""
        return len(self._data) - self._position

    def is_at_end(self) -> bool:
        """Check if the reader has consumed all data."""
        return self._position >= len(self._data)

    def has_bytes(self, count: int) -> bool:
        """Check if at least `count` bytes are available."""
        return self.remaining >= count

    def _take(self, count: int, operation: str) -> int:
        if self._position + count > len(self._data):
            raise DecodeError(
                f"Cannot {operation}: need {count} bytes, have {self.remaining}",
                tag=self._tag,
                offset=self._position,
            )
        start = self._position
        self._position += count
        return start

    def skip(self, count: int) -> None:
        """Skip forward by `count` bytes."""
        self._take(count, "skip")

    def read_byte(self) -> int:
        """Read an unsigned byte."""
        start = self._take(1, "read byte")
        return self._data[start]

    def read_int8(self) -> int:
        """Read a two's-complement signed byte."""
        start = self._take(1, "read int8")
        return decode_int8(self._data, start)

    def read_uint16(self) -> int:
        """Read a little-endian unsigned 16-bit value."""
        start = self._take(2, "read uint16")
        return decode_uint16(self._data, start)

    def read_int16(self) -> int:
        """Read a little-endian two's-complement 16-bit value."""
        start = self._take(2, "read int16")
        return decode_int16(self._data, start)

    def read_uint32(self) -> int:
        """Read a little-endian unsigned 32-bit value."""
        start = self._take(4, "read uint32")
        return decode_uint32(self._data, start)

    def read_bytes(self, count: int) -> bytes:
        """Read exactly `count` raw bytes."""
        start = self._take(count, f"read {count} bytes")
        return self._data[start : start + count]

    def read_rest(self) -> bytes:
        """Read every remaining byte (possibly none)."""
        start = self._position
        self._position = len(self._data)
        return self._data[start:]

    def __repr__(self) -> str:
        return f"PayloadReader(position={self._position}, remaining={self.remaining})"
