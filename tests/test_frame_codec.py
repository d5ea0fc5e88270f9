"""Tests for frame encoding and the resynchronizing frame decoder."""

import pytest

from meshgate.exceptions import FrameTooLargeError
from meshgate.protocol.constants import ResponseTag
from meshgate.protocol.frame_codec import Frame, FrameCodec, encode_frame

STATS_FRAME = bytes([0x82, 20]) + bytes(range(20))
LOG_FRAME = bytes([0x85, 2]) + b"hi"


class TestEncodeFrame:
    """Tests for encode_frame()."""

    def test_empty_payload(self):
        """Test a command with no payload."""
        assert encode_frame(0x01) == bytes([0x01, 0x00])

    def test_with_payload(self):
        """Test tag, length, then payload."""
        assert encode_frame(0x09, b"\x01") == bytes([0x09, 0x01, 0x01])

    def test_max_payload(self):
        """Test a 64-byte payload is accepted."""
        assert len(encode_frame(0x85, bytes(64))) == 66

    def test_payload_too_large(self):
        """Test payloads over 64 bytes are rejected."""
        with pytest.raises(FrameTooLargeError) as exc_info:
            encode_frame(0x85, bytes(65))
        assert exc_info.value.length == 65
        assert exc_info.value.maximum == 64

    def test_payload_too_large_is_value_error(self):
        """Test FrameTooLargeError can be caught as ValueError."""
        with pytest.raises(ValueError):
            encode_frame(0x85, bytes(200))

    def test_tag_out_of_range(self):
        """Test tags must fit in a byte."""
        with pytest.raises(ValueError):
            encode_frame(0x100)


class TestFrame:
    """Tests for the Frame dataclass."""

    def test_response_tag_known(self):
        """Test known tags map to ResponseTag."""
        assert Frame(0x83, b"").response_tag == ResponseTag.RX_PACKET

    def test_response_tag_unknown(self):
        """Test unknown tags stay raw ints."""
        assert Frame(0x42, b"").response_tag == 0x42

    def test_repr(self):
        """Test string representation."""
        assert repr(Frame(0x85, b"hi")) == "Frame(DEBUG_LOG, payload=2 bytes)"


class TestFrameCodec:
    """Tests for FrameCodec.feed()."""

    @pytest.fixture
    def codec(self):
        """Create a FrameCodec instance."""
        return FrameCodec()

    def test_single_frame(self, codec):
        """Test one complete frame."""
        frames, leftover = codec.feed(STATS_FRAME)
        assert frames == [Frame(0x82, bytes(range(20)))]
        assert leftover == b""

    def test_two_frames_one_chunk(self, codec):
        """Test back-to-back frames in arrival order."""
        frames, _ = codec.feed(LOG_FRAME + STATS_FRAME)
        assert [f.tag for f in frames] == [0x85, 0x82]

    def test_partial_frame_kept(self, codec):
        """Test an incomplete frame is held verbatim."""
        frames, leftover = codec.feed(STATS_FRAME[:7])
        assert frames == []
        assert leftover == STATS_FRAME[:7]
        assert codec.pending == STATS_FRAME[:7]

    def test_byte_at_a_time(self, codec):
        """Test feeding byte by byte yields the same frames."""
        stream = LOG_FRAME + STATS_FRAME + LOG_FRAME
        frames = []
        for i in range(len(stream)):
            frames.extend(codec.feed(stream[i : i + 1]).frames)
        assert frames == FrameCodec().feed(stream).frames
        assert len(frames) == 3

    def test_arbitrary_split(self, codec):
        """Test an uneven split across two feeds."""
        stream = LOG_FRAME + STATS_FRAME
        first = codec.feed(stream[:5]).frames
        second = codec.feed(stream[5:]).frames
        assert [f.tag for f in first + second] == [0x85, 0x82]

    def test_empty_payload_frame(self, codec):
        """Test a zero-length payload frame."""
        frames, _ = codec.feed(bytes([0x84, 0x00]))
        assert frames == [Frame(0x84, b"")]

    def test_empty_feed(self, codec):
        """Test feeding nothing is harmless."""
        assert codec.feed(b"") == ([], b"")

    def test_ascii_noise_before_frame(self, codec):
        """Test boot text in front of a frame is skipped."""
        frames, leftover = codec.feed(b"LoRa init OK\r\n" + LOG_FRAME)
        assert frames == [Frame(0x85, b"hi")]
        assert leftover == b""
        assert codec.bytes_discarded == len(b"LoRa init OK\r\n")
        assert codec.resync_count == 1

    def test_invalid_length_triggers_resync(self, codec):
        """Test a known tag with length over 64 is treated as noise."""
        frames, _ = codec.feed(bytes([0x81, 0xC8]) + LOG_FRAME)
        assert frames == [Frame(0x85, b"hi")]
        assert codec.bytes_discarded == 2

    def test_resync_skips_implausible_candidate(self, codec):
        """Test a tag byte followed by an illegal length is not a candidate."""
        frames, _ = codec.feed(b"x" + bytes([0x83, 0xFF]) + LOG_FRAME)
        assert frames == [Frame(0x85, b"hi")]
        assert codec.bytes_discarded == 3

    def test_noise_without_header_dropped(self, codec):
        """Test a buffer with no plausible header is dropped entirely."""
        frames, leftover = codec.feed(b"hello world\r\n")
        assert frames == []
        assert leftover == b""
        assert codec.bytes_discarded == 13

    def test_window_exhausted_drops_buffer(self):
        """Test a header beyond the resync window is not found."""
        codec = FrameCodec(resync_window=10)
        frames, leftover = codec.feed(b"z" * 20 + LOG_FRAME)
        assert frames == []
        assert leftover == b""

    def test_tag_at_end_kept_for_next_chunk(self, codec):
        """Test a trailing tag byte survives resync until its length arrives."""
        frames, leftover = codec.feed(b"noise" + bytes([0x85]))
        assert frames == []
        assert leftover == bytes([0x85])

        frames, _ = codec.feed(bytes([0x02]) + b"hi")
        assert frames == [Frame(0x85, b"hi")]

    def test_resync_always_progresses(self, codec):
        """Test garbage of every byte value never stalls the decoder."""
        garbage = bytes(range(256)) * 3
        codec.feed(garbage)
        frames, _ = codec.feed(bytes(70) + LOG_FRAME)
        assert Frame(0x85, b"hi") in frames

    def test_reset(self, codec):
        """Test reset drops pending bytes and counters."""
        codec.feed(b"junk" + STATS_FRAME[:3])
        codec.reset()
        assert codec.pending == b""
        assert codec.bytes_discarded == 0
        assert codec.resync_count == 0

    def test_encode(self, codec):
        """Test the codec encodes outbound frames."""
        assert codec.encode(0x02) == bytes([0x02, 0x00])
