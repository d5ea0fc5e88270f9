"""Tests for little-endian encoding helpers and PayloadReader."""

import pytest

from meshgate.exceptions import DecodeError
from meshgate.protocol.encoding import (
    decode_int8,
    decode_int16,
    decode_uint16,
    decode_uint32,
    encode_uint8,
    encode_uint16,
    encode_uint32,
    to_signed,
)
from meshgate.protocol.payload_reader import PayloadReader


class TestEncoding:
    """Tests for integer encode/decode helpers."""

    def test_encode_uint16(self):
        """Test low byte first."""
        assert encode_uint16(0x1234) == b"\x34\x12"

    def test_encode_uint32(self):
        """Test low byte first."""
        assert encode_uint32(0x36458248) == b"\x48\x82\x45\x36"

    def test_encode_ranges(self):
        """Test out-of-range values are rejected."""
        with pytest.raises(ValueError):
            encode_uint8(256)
        with pytest.raises(ValueError):
            encode_uint16(-1)
        with pytest.raises(ValueError):
            encode_uint32(1 << 32)

    def test_decode_unsigned(self):
        """Test decoding at an offset."""
        data = b"\x00\x48\x82\x45\x36"
        assert decode_uint32(data, 1) == 910_525_000
        assert decode_uint16(data, 1) == 0x8248

    def test_decode_signed(self):
        """Test two's-complement folding."""
        assert decode_int16(b"\xff\xff") == -1
        assert decode_int16(b"\xa4\xff") == -92
        assert decode_int8(b"\xf6") == -10
        assert decode_int8(b"\x7f") == 127

    def test_to_signed_boundaries(self):
        """Test the sign boundary."""
        assert to_signed(0x7FFF, 16) == 32767
        assert to_signed(0x8000, 16) == -32768
        assert to_signed(0x80, 8) == -128


class TestPayloadReader:
    """Tests for PayloadReader."""

    def test_sequential_reads(self):
        """Test reads advance the cursor."""
        reader = PayloadReader(b"\x01\x34\x12\xa4\xff\xf9\x48\x82\x45\x36")
        assert reader.read_byte() == 1
        assert reader.read_uint16() == 0x1234
        assert reader.read_int16() == -92
        assert reader.read_int8() == -7
        assert reader.read_uint32() == 910_525_000
        assert reader.is_at_end()

    def test_position_and_remaining(self):
        """Test cursor bookkeeping."""
        reader = PayloadReader(b"abcdef")
        reader.skip(2)
        assert reader.position == 2
        assert reader.remaining == 4
        assert reader.has_bytes(4)
        assert not reader.has_bytes(5)

    def test_read_bytes_and_rest(self):
        """Test raw byte reads."""
        reader = PayloadReader(b"abcdef")
        assert reader.read_bytes(2) == b"ab"
        assert reader.read_rest() == b"cdef"
        assert reader.read_rest() == b""

    def test_read_past_end_raises(self):
        """Test overruns raise DecodeError with tag and offset."""
        reader = PayloadReader(b"\x01\x02\x03", tag=0x82)
        reader.read_byte()
        with pytest.raises(DecodeError) as exc_info:
            reader.read_uint32()
        assert exc_info.value.tag == 0x82
        assert exc_info.value.offset == 1
        assert reader.position == 1
