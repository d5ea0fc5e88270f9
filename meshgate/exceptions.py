"""
Exception hierarchy for meshgate.

All exceptions inherit from MeshGateError. The hierarchy separates failures
the link recovers from on its own (frame sync, payload decoding) from the
ones that end a session (transport) or need the caller's attention
(configuration, connection state).

Decode and resync failures never cross the codec/decoder boundary as
exceptions: FrameCodec.feed() absorbs them and MessageDecoder.decode()
turns them into DecodeFailure values. They exist as types so the internals
can raise them and so callers can log them uniformly.
"""

from __future__ import annotations


class MeshGateError(Exception):
    """
    Base exception for all meshgate errors.

    Catch this to handle every library-specific failure with a single
    except clause.
    """

    pass


class ProtocolError(MeshGateError):
    """
    Link protocol violation.

    Raised for malformed wire data such as unknown tags, over-length
    frames, or payloads that do not match their tag's layout.
    """

    pass


class FrameSyncError(ProtocolError):
    """
    The framer lost synchronization with the byte stream.

    Raised when a header names an unrecognized tag or claims a length above
    the protocol maximum. Recovered by resync; only ever logged.
    """

    def __init__(
        self,
        message: str = "Frame synchronization lost",
        *,
        tag: int | None = None,
        length: int | None = None,
    ) -> None:
        super().__init__(message)
        self.tag = tag
        self.length = length

    def __str__(self) -> str:
        base = super().__str__()
        if self.tag is not None and self.length is not None:
            return f"{base} (tag=0x{self.tag:02X}, length={self.length})"
        return base


class DecodeError(ProtocolError):
    """
    A frame payload could not be decoded into a typed message.

    Typical causes are a payload shorter than the tag's minimum or an inner
    length field that exceeds the remaining payload bytes.
    """

    def __init__(
        self,
        message: str,
        *,
        tag: int | None = None,
        offset: int | None = None,
    ) -> None:
        super().__init__(message)
        self.tag = tag
        self.offset = offset

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.tag is not None:
            parts.append(f"tag=0x{self.tag:02X}")
        if self.offset is not None:
            parts.append(f"offset={self.offset}")
        return " ".join(parts) if len(parts) > 1 else parts[0]


class FrameTooLargeError(ProtocolError, ValueError):
    """
    Outbound payload exceeds the protocol-wide maximum.

    The encoder raises this instead of emitting a frame the receiving side
    would treat as corruption.
    """

    def __init__(self, length: int, maximum: int) -> None:
        self.length = length
        self.maximum = maximum
        super().__init__(f"Payload of {length} bytes exceeds maximum of {maximum}")


class TransportError(MeshGateError):
    """
    Transport-level error.

    Raised for low-level byte-stream issues:
    - Serial port cannot be opened
    - Read or write failures
    - End of stream
    """

    pass


class ConnectionError(MeshGateError):  # noqa: A001 - intentionally shadows builtin
    """
    Session connection state error.

    Raised when an operation needs a connected session and there is none,
    or when connect() is called on a session that is already connecting.
    """

    pass


class HandshakeTimeout(MeshGateError):
    """
    The device did not answer GetInfo within the bounded retry budget.

    LinkSession reports this condition as a warning event and keeps the
    link up; the type is available for callers that drive a handshake
    themselves.
    """

    def __init__(
        self,
        message: str = "Device info not received",
        *,
        attempts: int | None = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts

    def __str__(self) -> str:
        base = super().__str__()
        if self.attempts is not None:
            return f"{base} (after {self.attempts} attempts)"
        return base


class ConfigError(MeshGateError, ValueError):
    """Invalid configuration file or values."""

    pass
