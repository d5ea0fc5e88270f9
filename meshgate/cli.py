"""Command-line monitor for the gateway."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from meshgate.config import AppConfig, load_config
from meshgate.events import (
    ConnectionChanged,
    ErrorReceived,
    HandshakeTimedOut,
    InfoUpdated,
    LogLevel,
    LogLine,
    PacketReceived,
    SessionEvent,
    StatsUpdated,
)
from meshgate.exceptions import ConfigError
from meshgate.preferences import PreferenceStore
from meshgate.protocol.constants import SEND_TEST_ALL
from meshgate.session import LinkSession
from meshgate.transport import AsyncSerialTransport

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES = Path("~/.config/meshgate/preferences.yaml")

_LOG_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}

console = logging.getLogger("meshgate.console")


def log_event(event: SessionEvent) -> None:
    """Event sink that writes session events to the console logger."""
    if isinstance(event, LogLine):
        console.log(_LOG_LEVELS[event.level], "%s", event.text)
    elif isinstance(event, ErrorReceived):
        console.error("Device error: %s", event.text)
    elif isinstance(event, PacketReceived):
        console.debug("Packet data: %s", event.packet.data.hex())
    elif isinstance(event, InfoUpdated):
        slots = ", ".join(
            f"{slot.frequency_mhz:.3f} MHz" for slot in event.snapshot.slots
        )
        console.debug("Info: fw %s, listening on slot %d, %s",
                      event.info.firmware_version, event.info.current_protocol, slots)
    elif isinstance(event, StatsUpdated):
        counts = ", ".join(f"rx={s.rx_count} tx={s.tx_count}" for s in event.snapshot.slots)
        console.debug("Stats: %s, conversion errors=%d", counts, event.snapshot.conversion_errors)
    elif isinstance(event, HandshakeTimedOut):
        console.debug("Handshake gave up after %d attempts", event.attempts)
    elif isinstance(event, ConnectionChanged):
        console.debug("Link %s: %s", "up" if event.connected else "down", event.port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meshgate",
        description="Monitor and configure a MeshCore/Meshtastic LoRa gateway",
    )
    parser.add_argument("port", nargs="?", help="Serial port (overrides serial.port)")
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--preferences",
        type=Path,
        default=DEFAULT_PREFERENCES,
        help=f"Preferences file (default: {DEFAULT_PREFERENCES})",
    )
    parser.add_argument("-b", "--baudrate", type=int, help="Serial baud rate")
    parser.add_argument(
        "--stats-interval",
        type=int,
        metavar="MS",
        help="Stats polling interval in ms (10-10000, saved to preferences)",
    )
    parser.add_argument(
        "--listen",
        type=int,
        choices=(0, 1),
        help="Switch the listening protocol slot and save settings",
    )
    parser.add_argument(
        "--send-test",
        type=int,
        choices=(0, 1, SEND_TEST_ALL),
        metavar="TARGET",
        help="Send a test message (slot 0/1, or 2 for all TX slots)",
    )
    parser.add_argument("--reset-stats", action="store_true", help="Reset device counters")
    parser.add_argument(
        "--duration",
        type=float,
        help="Disconnect after this many seconds (default: run until interrupted)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


async def run(args: argparse.Namespace, config: AppConfig) -> int:
    """Connect, apply the requested actions, and monitor until stopped."""
    port = args.port or config.serial.port
    if not port:
        logger.error("No serial port given (pass PORT or set serial.port)")
        return 1

    transport = AsyncSerialTransport(port, baudrate=args.baudrate or config.serial.baudrate)
    preferences = PreferenceStore(args.preferences.expanduser())
    stop = asyncio.Event()

    def sink(event: SessionEvent) -> None:
        log_event(event)
        if isinstance(event, ConnectionChanged) and not event.connected:
            stop.set()

    session = LinkSession(
        transport,
        sink=sink,
        config=config.session,
        preferences=preferences,
    )

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop.set)
        except NotImplementedError:
            logger.debug("Signal handlers unavailable on this platform")

    if not await session.connect():
        return 1

    try:
        if args.stats_interval is not None:
            await session.set_stats_interval(args.stats_interval)
        if args.listen is not None:
            session.update_form(listen_protocol=args.listen)
            await session.save_settings()
        if args.reset_stats:
            await session.reset_stats()
        if args.send_test is not None:
            await session.send_test(args.send_test)

        try:
            await asyncio.wait_for(stop.wait(), timeout=args.duration)
        except asyncio.TimeoutError:
            logger.info("Monitor duration elapsed")
    finally:
        await session.disconnect()

    logger.info("Gateway monitor stopped")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Entry point for the meshgate command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = AppConfig()
    if args.config is not None:
        try:
            config = load_config(args.config)
        except FileNotFoundError:
            logger.error("Configuration file not found: %s", args.config)
            sys.exit(1)
        except ConfigError as e:
            logger.error("Configuration error: %s", e)
            sys.exit(1)

    sys.exit(asyncio.run(run(args, config)))
