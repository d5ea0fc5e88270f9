"""
Link protocol framing.

Command and response frames share one shape:

    [TAG][LEN][PAYLOAD...]

- TAG: 1 byte, command id (outbound) or response tag (inbound)
- LEN: 1 byte, payload length, at most 64
- PAYLOAD: LEN bytes, tag-specific layout

The device prints free-text diagnostics on the same serial channel as the
binary protocol. The decoding side therefore treats any header whose tag is
not a known response tag, or whose length exceeds 64, as a loss of
synchronization: it scans a bounded window for the next plausible header,
drops everything before it, and carries on. Resync is lossy and always
makes forward progress.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import NamedTuple

from meshgate.exceptions import FrameSyncError, FrameTooLargeError
from meshgate.protocol.constants import RESPONSE_TAGS, ProtocolConstants, ResponseTag

logger = logging.getLogger(__name__)


class FrameParseResult(Enum):
    """Outcome of inspecting the header at the front of the buffer."""

    SUCCESS = auto()
    """Complete frame available."""

    INCOMPLETE_FRAME = auto()
    """Header or payload not fully received yet."""

    UNKNOWN_TAG = auto()
    """First byte is not a recognized response tag."""

    INVALID_LENGTH = auto()
    """Length byte exceeds the protocol maximum."""


@dataclass(frozen=True)
class Frame:
    """
    One complete [tag, length, payload] unit.

    Attributes:
        tag: Response tag or command id.
        payload: Payload bytes (at most 64).
    """

    tag: int
    payload: bytes

    @property
    def response_tag(self) -> ResponseTag | int:
        """Get tag as ResponseTag if recognized, else raw int."""
        try:
            return ResponseTag(self.tag)
        except ValueError:
            return self.tag

    def __repr__(self) -> str:
        tag = self.response_tag
        name = tag.name if isinstance(tag, ResponseTag) else f"0x{self.tag:02X}"
        return f"Frame({name}, payload={len(self.payload)} bytes)"


class FeedResult(NamedTuple):
    """Frames extracted by one feed() call plus the bytes kept for the next."""

    frames: list[Frame]
    leftover: bytes


def encode_frame(tag: int, payload: bytes = b"") -> bytes:
    """
    Encode a tag and payload into wire bytes.

    Args:
        tag: Command id or response tag (0-255).
        payload: Payload bytes.

    Returns:
        [tag, len(payload), payload...]

    Raises:
        ValueError: If tag is not a byte value.
        FrameTooLargeError: If payload exceeds the protocol maximum.

    Example:
        >>> encode_frame(0x01)
        b'\\x01\\x00'
    """
    if not 0 <= tag <= 0xFF:
        raise ValueError(f"Tag must be 0-255, got {tag}")
    if len(payload) > ProtocolConstants.MAX_PAYLOAD:
        raise FrameTooLargeError(len(payload), ProtocolConstants.MAX_PAYLOAD)
    return bytes([tag, len(payload)]) + bytes(payload)


def _is_plausible_header(buffer: bytearray, position: int) -> bool:
    """A recognized tag followed by a legal length, or by nothing yet."""
    if buffer[position] not in RESPONSE_TAGS:
        return False
    if position + 1 >= len(buffer):
        return True
    return buffer[position + 1] <= ProtocolConstants.MAX_PAYLOAD


class FrameCodec:
    """
    Stateful encoder/decoder for the gateway link.

    The codec owns the inbound accumulation buffer. Bytes are appended with
    feed(); every complete frame at the front of the buffer is returned and
    the remainder is kept verbatim, so feeding a stream in arbitrary chunks
    yields the same frames as feeding it in one piece.

    Attributes:
        pending: Bytes buffered but not yet part of a complete frame.
        bytes_discarded: Total bytes dropped by resync since creation/reset.
        resync_count: Number of resync operations since creation/reset.

    Example:
        >>> codec = FrameCodec()
        >>> frames, leftover = codec.feed(b"boot ok\\r\\n\\x85\\x02hi\\x82")
        >>> frames
        [Frame(DEBUG_LOG, payload=2 bytes)]
        >>> leftover
        b'\\x82'
    """

    def __init__(self, resync_window: int = ProtocolConstants.RESYNC_WINDOW) -> None:
        self._buffer = bytearray()
        self._resync_window = resync_window
        self._bytes_discarded = 0
        self._resync_count = 0

    @property
    def pending(self) -> bytes:
        """Bytes held for the next feed()."""
        return bytes(self._buffer)

    @property
    def bytes_discarded(self) -> int:
        return self._bytes_discarded

    @property
    def resync_count(self) -> int:
        return self._resync_count

    def encode(self, tag: int, payload: bytes = b"") -> bytes:
        """Encode an outbound frame. See encode_frame()."""
        return encode_frame(tag, payload)

    def reset(self) -> None:
        """Drop buffered bytes and counters (new connection)."""
        self._buffer.clear()
        self._bytes_discarded = 0
        self._resync_count = 0

    def feed(self, data: bytes | bytearray | memoryview) -> FeedResult:
        """
        Append received bytes and extract every complete frame.

        Never raises on malformed input: unrecognized or over-length headers
        trigger resync, which is logged at debug level only.

        Args:
            data: Newly received bytes (may be empty).

        Returns:
            FeedResult of (frames in arrival order, bytes kept for next call).
        """
        self._buffer.extend(data)
        frames: list[Frame] = []

        while True:
            result = self._check_header()

            if result == FrameParseResult.INCOMPLETE_FRAME:
                break

            if result != FrameParseResult.SUCCESS:
                error = FrameSyncError(
                    f"Resync after {result.name}",
                    tag=self._buffer[0],
                    length=self._buffer[1],
                )
                logger.debug("%s", error)
                if not self._resync():
                    break
                continue

            end = ProtocolConstants.HEADER_SIZE + self._buffer[1]
            frames.append(
                Frame(
                    tag=self._buffer[0],
                    payload=bytes(self._buffer[ProtocolConstants.HEADER_SIZE : end]),
                )
            )
            del self._buffer[:end]

        return FeedResult(frames, bytes(self._buffer))

    def _check_header(self) -> FrameParseResult:
        if len(self._buffer) < ProtocolConstants.HEADER_SIZE:
            return FrameParseResult.INCOMPLETE_FRAME

        tag, length = self._buffer[0], self._buffer[1]
        if tag not in RESPONSE_TAGS:
            return FrameParseResult.UNKNOWN_TAG
        if length > ProtocolConstants.MAX_PAYLOAD:
            return FrameParseResult.INVALID_LENGTH
        if len(self._buffer) < ProtocolConstants.HEADER_SIZE + length:
            return FrameParseResult.INCOMPLETE_FRAME
        return FrameParseResult.SUCCESS

    def _resync(self) -> bool:
        """
        Drop bytes up to the next plausible header within the window.

        Returns:
            True if a candidate header was found and parsing can resume,
            False if the whole buffer was dropped.
        """
        limit = min(len(self._buffer), self._resync_window + 1)
        for position in range(1, limit):
            if _is_plausible_header(self._buffer, position):
                self._discard(position)
                return True

        self._discard(len(self._buffer))
        return False

    def _discard(self, count: int) -> None:
        del self._buffer[:count]
        self._bytes_discarded += count
        self._resync_count += 1
        logger.debug(
            "Resync discarded %d bytes (%d pending)", count, len(self._buffer)
        )

    def __repr__(self) -> str:
        return (
            f"FrameCodec(pending={len(self._buffer)}, "
            f"discarded={self._bytes_discarded}, resyncs={self._resync_count})"
        )
