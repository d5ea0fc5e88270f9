"""
Protocol layer for the gateway link.

This module contains the low-level protocol handling:
- Command ids, response tags and protocol constants
- Little-endian integer encoding
- Frame encoding and resynchronizing frame decoding
- Command builders
- Response payload decoding
"""

from meshgate.protocol.commands import (
    Command,
    get_info,
    get_stats,
    reset_stats,
    send_test,
    set_frequency,
    set_protocol,
    set_protocol_params,
    set_rx_protocol,
    set_switch_interval,
    set_tx_protocols,
)
from meshgate.protocol.constants import (
    BANDWIDTH_KHZ,
    SEND_TEST_ALL,
    CommandCode,
    Platform,
    ProtocolConstants,
    ProtocolSlot,
    ResponseTag,
)
from meshgate.protocol.decoder import DEFAULT_DECODER, MessageDecoder, decode
from meshgate.protocol.encoding import (
    decode_int8,
    decode_int16,
    decode_uint16,
    decode_uint32,
    encode_uint8,
    encode_uint16,
    encode_uint32,
)
from meshgate.protocol.frame_codec import (
    FeedResult,
    Frame,
    FrameCodec,
    FrameParseResult,
    encode_frame,
)
from meshgate.protocol.payload_reader import PayloadReader

__all__ = [
    # Constants
    "BANDWIDTH_KHZ",
    "SEND_TEST_ALL",
    "CommandCode",
    "Platform",
    "ProtocolConstants",
    "ProtocolSlot",
    "ResponseTag",
    # Encoding
    "encode_uint8",
    "encode_uint16",
    "encode_uint32",
    "decode_int8",
    "decode_int16",
    "decode_uint16",
    "decode_uint32",
    "PayloadReader",
    # Framing
    "Frame",
    "FrameCodec",
    "FrameParseResult",
    "FeedResult",
    "encode_frame",
    # Commands
    "Command",
    "get_info",
    "get_stats",
    "reset_stats",
    "send_test",
    "set_frequency",
    "set_protocol",
    "set_protocol_params",
    "set_rx_protocol",
    "set_switch_interval",
    "set_tx_protocols",
    # Decoding
    "DEFAULT_DECODER",
    "MessageDecoder",
    "decode",
]
