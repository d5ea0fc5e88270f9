"""
Response payload decoding.

Maps a frame's (tag, payload) to one of the five typed messages. All
multi-byte integers are little-endian. A payload shorter than its tag's
minimum, or an RxPacket whose declared data length runs past the payload,
yields a DecodeFailure; the decoder never returns a partially filled
message and never raises for bad input.

Layouts:

    InfoReply (legacy, 12-16 bytes)
        fw_major u8, fw_minor u8, freq[0] u32, freq[1] u32,
        switch_interval u8, current_protocol u8
    InfoReply (extended, >= 17 bytes)
        fw_major u8, fw_minor u8, freq[0] u32, freq[1] u32,
        switch_interval u16, rx_protocol u8, bw[0] u8, bw[1] u8,
        desired_mode u8, platform_id u8
    Stats (20 bytes, 24 with parse errors)
        rx[0] u32, rx[1] u32, tx[0] u32, tx[1] u32, conversion_errors u32
        [, parse_errors u32]
    RxPacket (>= 5 bytes)
        protocol u8, rssi i16, snr i8, length u8, data[length]
    Error / DebugLog
        UTF-8 text, possibly empty
"""

from __future__ import annotations

import logging

from meshgate.exceptions import DecodeError
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
from meshgate.protocol.constants import ProtocolConstants, ResponseTag
from meshgate.protocol.frame_codec import Frame
from meshgate.protocol.payload_reader import PayloadReader

logger = logging.getLogger(__name__)


class MessageDecoder:
    """
    Decoder for gateway response payloads.

    Stateless; one instance can be shared.

    Example:
        >>> decoder = MessageDecoder()
        >>> decoder.decode(0x85, b"Stats reset")
        DebugLog(tag=133, text='Stats reset')
        >>> decoder.decode(0x82, bytes(19))
        DecodeFailure(tag=130, reason='Stats payload needs 20 bytes, got 19', payload_length=19)
    """

    def __init__(self, slot_count: int = ProtocolConstants.SLOT_COUNT) -> None:
        self._slot_count = slot_count

    @property
    def info_legacy_size(self) -> int:
        return 2 + 4 * self._slot_count + 2

    @property
    def info_extended_size(self) -> int:
        return 2 + 4 * self._slot_count + 2 + 1 + self._slot_count + 2

    @property
    def stats_legacy_size(self) -> int:
        return 4 * 2 * self._slot_count + 4

    @property
    def stats_extended_size(self) -> int:
        return self.stats_legacy_size + 4

    def decode_frame(self, frame: Frame) -> Message | DecodeFailure:
        """Decode a Frame produced by FrameCodec."""
        return self.decode(frame.tag, frame.payload)

    def decode(self, tag: int, payload: bytes) -> Message | DecodeFailure:
        """
        Decode one response payload.

        Args:
            tag: Response tag.
            payload: Frame payload.

        Returns:
            The typed message, or DecodeFailure describing why not.
        """
        try:
            if tag == ResponseTag.INFO_REPLY:
                return self._decode_info(payload)
            if tag == ResponseTag.STATS:
                return self._decode_stats(payload)
            if tag == ResponseTag.RX_PACKET:
                return self._decode_rx_packet(payload)
            if tag == ResponseTag.ERROR:
                return ErrorMessage(text=_decode_text(payload))
            if tag == ResponseTag.DEBUG_LOG:
                return DebugLog(text=_decode_text(payload))
            raise DecodeError(f"Unknown response tag 0x{tag:02X}", tag=tag)
        except DecodeError as e:
            logger.debug("Decode failed: %s", e)
            return DecodeFailure(
                tag=tag & 0xFF,
                reason=e.args[0],
                payload_length=len(payload),
            )

    def _require(self, tag: int, payload: bytes, minimum: int, name: str) -> None:
        if len(payload) < minimum:
            raise DecodeError(
                f"{name} payload needs {minimum} bytes, got {len(payload)}",
                tag=tag,
            )

    def _decode_info(self, payload: bytes) -> InfoReply:
        self._require(ResponseTag.INFO_REPLY, payload, self.info_legacy_size, "InfoReply")
        reader = PayloadReader(payload, ResponseTag.INFO_REPLY)

        firmware_major = reader.read_byte()
        firmware_minor = reader.read_byte()
        frequencies = [reader.read_uint32() for _ in range(self._slot_count)]

        if len(payload) < self.info_extended_size:
            switch_interval = reader.read_byte()
            current_protocol = reader.read_byte()
            return InfoReply(
                firmware_major=firmware_major,
                firmware_minor=firmware_minor,
                slots=tuple(SlotConfig(frequency_hz=f) for f in frequencies),
                current_protocol=current_protocol,
                switch_interval=switch_interval,
            )

        switch_interval = reader.read_uint16()
        current_protocol = reader.read_byte()
        bandwidths = [reader.read_byte() for _ in range(self._slot_count)]
        desired_mode = reader.read_byte()
        platform_id = reader.read_byte()

        return InfoReply(
            firmware_major=firmware_major,
            firmware_minor=firmware_minor,
            slots=tuple(
                SlotConfig(frequency_hz=f, bandwidth=bw)
                for f, bw in zip(frequencies, bandwidths)
            ),
            current_protocol=current_protocol,
            switch_interval=switch_interval,
            desired_mode=desired_mode,
            platform_id=platform_id,
        )

    def _decode_stats(self, payload: bytes) -> Stats:
        self._require(ResponseTag.STATS, payload, self.stats_legacy_size, "Stats")
        reader = PayloadReader(payload, ResponseTag.STATS)

        rx = [reader.read_uint32() for _ in range(self._slot_count)]
        tx = [reader.read_uint32() for _ in range(self._slot_count)]
        conversion_errors = reader.read_uint32()
        parse_errors = reader.read_uint32() if reader.has_bytes(4) else None

        return Stats(
            slots=tuple(SlotCounters(rx=r, tx=t) for r, t in zip(rx, tx)),
            conversion_errors=conversion_errors,
            parse_errors=parse_errors,
        )

    def _decode_rx_packet(self, payload: bytes) -> RxPacket:
        self._require(
            ResponseTag.RX_PACKET,
            payload,
            ProtocolConstants.RX_PACKET_HEADER_SIZE,
            "RxPacket",
        )
        reader = PayloadReader(payload, ResponseTag.RX_PACKET)

        protocol = reader.read_byte()
        rssi = reader.read_int16()
        snr = reader.read_int8()
        length = reader.read_byte()
        if length > reader.remaining:
            raise DecodeError(
                f"RxPacket declares {length} data bytes, only {reader.remaining} present",
                tag=ResponseTag.RX_PACKET,
                offset=reader.position,
            )

        return RxPacket(
            protocol=protocol,
            rssi=rssi,
            snr=snr,
            data=reader.read_bytes(length),
        )


def _decode_text(payload: bytes) -> str:
    return payload.decode("utf-8", errors="replace")


DEFAULT_DECODER: MessageDecoder = MessageDecoder()
"""Default MessageDecoder instance for convenience."""


def decode(tag: int, payload: bytes) -> Message | DecodeFailure:
    """Decode using the module-level decoder. See MessageDecoder.decode()."""
    return DEFAULT_DECODER.decode(tag, payload)
