"""
Mock transport for testing.

Lets LinkSession run without hardware. Inbound bytes are fed by the test
(or generated from a response callback as commands are written), and every
write is recorded for verification.

Example:
    >>> from meshgate.transport import MockTransport
    >>> from meshgate import LinkSession
    >>>
    >>> mock = MockTransport()
    >>> mock.set_response_callback(lambda data: INFO_FRAME if data == b"\\x01\\x00" else None)
    >>>
    >>> session = LinkSession(mock, sink=events.append)
    >>> await session.connect()
"""

from __future__ import annotations

import asyncio
from typing import Callable

from meshgate.exceptions import TransportError
from meshgate.protocol.constants import ProtocolConstants
from meshgate.transport.abc import AbstractTransport

_EOF = object()


class MockTransport(AbstractTransport):
    """
    Mock transport for testing without hardware.

    Attributes:
        written_data: List of all frames written to the transport.
        open_count: Number of successful open() calls.
        close_count: Number of close() calls.
        open_error: Raised by the next open() when set.
        close_error: Raised by every close() when set (after closing).
        write_error: Raised by every write() when set.

    Example:
        >>> mock = MockTransport()
        >>> async with mock:
        ...     mock.feed(b"\\x85\\x02hi")
        ...     await mock.write(b"\\x02\\x00")
        ...     assert await mock.read_chunk() == b"\\x85\\x02hi"
        ...     assert mock.written_data == [b"\\x02\\x00"]
    """

    def __init__(self, port_name: str = "mock://gateway") -> None:
        """
        Initialize the mock transport.

        Args:
            port_name: Identifier for the mock transport.
        """
        self._port_name = port_name
        self._is_open = False
        self._inbound: asyncio.Queue[object] = asyncio.Queue()
        self._written_data: list[bytes] = []
        self._response_callback: Callable[[bytes], bytes | None] | None = None
        self.open_count = 0
        self.close_count = 0
        self.open_error: Exception | None = None
        self.close_error: Exception | None = None
        self.write_error: Exception | None = None

    @property
    def is_open(self) -> bool:
        """Check if the mock transport is open."""
        return self._is_open

    @property
    def port_name(self) -> str:
        """Get the mock port name."""
        return self._port_name

    @property
    def written_data(self) -> list[bytes]:
        """Get all data written to the transport."""
        return self._written_data.copy()

    @property
    def last_written(self) -> bytes | None:
        """Get the most recently written data."""
        return self._written_data[-1] if self._written_data else None

    def feed(self, *chunks: bytes) -> None:
        """
        Queue inbound chunks, each delivered by one read_chunk() call.

        Args:
            *chunks: Byte chunks as the device would deliver them.
        """
        for chunk in chunks:
            if chunk:
                self._inbound.put_nowait(bytes(chunk))

    def feed_eof(self) -> None:
        """Make the next read fail as if the device disappeared."""
        self._inbound.put_nowait(_EOF)

    def fail(self, error: Exception) -> None:
        """Make the next read raise error."""
        self._inbound.put_nowait(error)

    def set_response_callback(
        self,
        callback: Callable[[bytes], bytes | None] | None,
    ) -> None:
        """
        Set a callback to generate device replies.

        The callback receives each written frame and returns bytes to feed
        back, or None for no reply.

        Args:
            callback: Function that takes written bytes and returns a reply.
        """
        self._response_callback = callback

    def written_commands(self) -> list[int]:
        """Command id byte of every written frame."""
        return [frame[0] for frame in self._written_data if frame]

    def count_written(self, command_id: int) -> int:
        """Number of written frames with the given command id."""
        return self.written_commands().count(command_id)

    def clear_written(self) -> None:
        """Clear only the written data history."""
        self._written_data.clear()

    async def open(self) -> None:
        """Open the mock transport."""
        if self.open_error is not None:
            error, self.open_error = self.open_error, None
            raise error
        if self._is_open:
            raise TransportError("Mock transport already open")
        self._is_open = True
        self.open_count += 1

    async def close(self) -> None:
        """Close the mock transport."""
        self._is_open = False
        self.close_count += 1
        if self.close_error is not None:
            raise self.close_error

    async def write(self, data: bytes) -> None:
        """
        Record a written frame and optionally feed back a reply.

        Args:
            data: Bytes to write.

        Raises:
            TransportError: If transport is not open.
        """
        if not self._is_open:
            raise TransportError("Mock transport not open")
        if self.write_error is not None:
            raise self.write_error

        self._written_data.append(bytes(data))

        if self._response_callback:
            response = self._response_callback(bytes(data))
            if response is not None:
                self.feed(response)

    async def read_chunk(self, max_size: int = ProtocolConstants.READ_CHUNK_SIZE) -> bytes:
        """
        Wait for the next fed chunk.

        Chunks longer than max_size are split across reads.

        Raises:
            TransportError: If transport is not open, or on fed EOF.
        """
        if not self._is_open:
            raise TransportError("Mock transport not open")

        item = await self._inbound.get()
        if item is _EOF:
            raise TransportError("Mock transport reached end of stream")
        if isinstance(item, Exception):
            raise item

        assert isinstance(item, bytes)
        if len(item) > max_size:
            self._push_front(item[max_size:])
            item = item[:max_size]
        return item

    def discard_buffers(self) -> None:
        """Drop every queued inbound chunk."""
        while not self._inbound.empty():
            self._inbound.get_nowait()

    def _push_front(self, chunk: bytes) -> None:
        rest = []
        while not self._inbound.empty():
            rest.append(self._inbound.get_nowait())
        self._inbound.put_nowait(chunk)
        for item in rest:
            self._inbound.put_nowait(item)
