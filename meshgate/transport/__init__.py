"""
Transport layer for the gateway link.

Available transports:
- AsyncSerialTransport: pyserial-asyncio based serial port
- MockTransport: Mock transport for testing
"""

from meshgate.transport.abc import AbstractTransport
from meshgate.transport.mock import MockTransport
from meshgate.transport.serial_async import AsyncSerialTransport

__all__ = [
    "AbstractTransport",
    "AsyncSerialTransport",
    "MockTransport",
]
