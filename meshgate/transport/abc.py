"""
Abstract transport interface for the gateway link.

Transports move raw bytes to and from the gateway; framing happens above
them in FrameCodec. The transport layer is responsible for:
- Opening/closing the physical connection
- Writing whole command frames
- Delivering inbound bytes in arbitrary chunks
- Buffer management

Implementations:
- AsyncSerialTransport: pyserial-asyncio based USB CDC serial port
- MockTransport: in-memory transport for tests
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from meshgate.protocol.constants import ProtocolConstants

if TYPE_CHECKING:
    from types import TracebackType


class AbstractTransport(ABC):
    """
    Abstract base class for gateway transports.

    Transports support the async context manager protocol:

        async with AsyncSerialTransport("/dev/ttyACM0") as transport:
            await transport.write(get_info().encode())
            chunk = await transport.read_chunk()

    Attributes:
        is_open: Whether the transport connection is currently open.
        port_name: Identifier for the transport (e.g., serial port name).
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """
        Check if the transport connection is currently open.

        Returns:
            True if connected and ready for I/O, False otherwise.
        """
        ...

    @property
    @abstractmethod
    def port_name(self) -> str:
        """
        Get the transport identifier.

        Returns:
            Port name or identifier string (e.g., "/dev/ttyACM0", "COM3").
        """
        ...

    @abstractmethod
    async def open(self) -> None:
        """
        Open the transport connection.

        Raises:
            TransportError: If the connection cannot be established.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """
        Close the transport connection.

        Safe to call multiple times. After closing, the transport can be
        reopened with open().

        Raises:
            TransportError: If releasing the connection fails. The transport
                is considered closed regardless.
        """
        ...

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """
        Write one complete frame.

        Args:
            data: Bytes to send.

        Raises:
            TransportError: If the transport is not open or write fails.
        """
        ...

    @abstractmethod
    async def read_chunk(self, max_size: int = ProtocolConstants.READ_CHUNK_SIZE) -> bytes:
        """
        Wait for inbound bytes.

        Chunk boundaries carry no meaning; a frame may arrive split across
        chunks or several frames in one chunk.

        Args:
            max_size: Largest chunk to return.

        Returns:
            At least one byte.

        Raises:
            TransportError: If the transport is not open, the read fails, or
                the stream has ended.
        """
        ...

    @abstractmethod
    def discard_buffers(self) -> None:
        """Discard any pending data in input and output buffers."""
        ...

    async def __aenter__(self) -> AbstractTransport:
        """Async context manager entry - opens the transport."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context manager exit - closes the transport."""
        await self.close()
