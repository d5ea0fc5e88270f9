"""
Async serial transport using pyserial-asyncio.

The gateway enumerates as a USB CDC serial device. Serial configuration:
- Baud rate: 115200 (ignored by native USB CDC, required by the API)
- Data bits: 8
- Parity: None
- Stop bits: 1
- Flow control: None

Example:
    >>> transport = AsyncSerialTransport("/dev/ttyACM0")
    >>> async with transport:
    ...     await transport.write(get_info().encode())
    ...     chunk = await transport.read_chunk()
"""

from __future__ import annotations

import asyncio

import serial
import serial_asyncio

from meshgate.exceptions import TransportError
from meshgate.protocol.constants import ProtocolConstants
from meshgate.transport.abc import AbstractTransport


class AsyncSerialTransport(AbstractTransport):
    """
    Async serial transport using pyserial-asyncio.

    Attributes:
        port_name: Serial port path (e.g., "/dev/ttyACM0", "COM3").
        is_open: Whether the port is currently open.
    """

    def __init__(
        self,
        port: str,
        baudrate: int = ProtocolConstants.DEFAULT_BAUD_RATE,
    ) -> None:
        """
        Initialize the async serial transport.

        Args:
            port: Serial port path (e.g., "/dev/ttyACM0", "COM3").
            baudrate: Baud rate (default: 115200).
        """
        self._port = port
        self._baudrate = baudrate
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._serial_instance: serial.Serial | None = None

    @property
    def is_open(self) -> bool:
        """Check if the serial port is currently open."""
        return (
            self._writer is not None
            and not self._writer.is_closing()
            and self._reader is not None
        )

    @property
    def port_name(self) -> str:
        """Get the serial port path."""
        return self._port

    @property
    def baudrate(self) -> int:
        """Get the configured baud rate."""
        return self._baudrate

    async def open(self) -> None:
        """
        Open the serial port connection (8N1, no flow control).

        Raises:
            TransportError: If the port cannot be opened.
        """
        if self.is_open:
            return

        try:
            self._reader, self._writer = await serial_asyncio.open_serial_connection(
                url=self._port,
                baudrate=self._baudrate,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                bytesize=serial.EIGHTBITS,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
            )
            transport = self._writer.transport
            if hasattr(transport, "serial"):
                self._serial_instance = transport.serial

        except serial.SerialException as e:
            raise TransportError(f"Failed to open serial port {self._port}: {e}") from e
        except OSError as e:
            raise TransportError(f"OS error opening {self._port}: {e}") from e

    async def close(self) -> None:
        """
        Close the serial port connection.

        Resources are released even if closing fails.

        Raises:
            TransportError: If the underlying port reported an error on close.
        """
        writer = self._writer
        self._reader = None
        self._writer = None
        self._serial_instance = None

        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Error closing {self._port}: {e}") from e

    async def write(self, data: bytes) -> None:
        """
        Write data to the serial port.

        Args:
            data: Bytes to transmit.

        Raises:
            TransportError: If the port is not open or write fails.
        """
        if not self.is_open:
            raise TransportError("Serial port is not open")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Write failed: {e}") from e

    async def read_chunk(self, max_size: int = ProtocolConstants.READ_CHUNK_SIZE) -> bytes:
        """
        Wait for the next chunk of inbound bytes.

        Args:
            max_size: Largest chunk to return.

        Returns:
            Between 1 and max_size bytes.

        Raises:
            TransportError: If the port is not open, the read fails, or the
                device went away.
        """
        if not self.is_open:
            raise TransportError("Serial port is not open")

        try:
            data = await self._reader.read(max_size)
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Read failed: {e}") from e

        if not data:
            raise TransportError(f"Serial port {self._port} closed by device")
        return data

    def discard_buffers(self) -> None:
        """
        Discard any pending data in the serial port's input and output buffers.

        Data already buffered by the asyncio layer is not affected.
        """
        if self._serial_instance is not None and self._serial_instance.is_open:
            self._serial_instance.reset_input_buffer()
            self._serial_instance.reset_output_buffer()

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"AsyncSerialTransport({self._port!r}, baudrate={self._baudrate}, {status})"
