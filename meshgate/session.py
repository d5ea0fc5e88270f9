"""
Gateway link session.

LinkSession owns one transport connection and everything that happens on
it: the read loop feeding FrameCodec and MessageDecoder, the connect
handshake, background polling, the device snapshot, the settings form and
the events pushed to the presentation sink.

Lifecycle:
    DISCONNECTED -> connect() -> CONNECTING -> CONNECTED
    CONNECTED -> disconnect() / transport failure -> DISCONNECTED

All state changes happen on the event loop between awaits, so handlers,
timers and user commands never interleave within a single update.

Example:
    >>> from meshgate import LinkSession
    >>> from meshgate.transport import AsyncSerialTransport
    >>>
    >>> async def main():
    ...     session = LinkSession(AsyncSerialTransport("/dev/ttyACM0"), sink=print)
    ...     await session.connect()
    ...     await session.send_test(0)
    ...     await session.disconnect()
"""

from __future__ import annotations

import asyncio
import logging
import math
from enum import Enum, auto
from typing import TYPE_CHECKING

from meshgate.config import SessionConfig, clamp_stats_interval
from meshgate.events import (
    ConnectionChanged,
    ErrorReceived,
    EventSink,
    FormChanged,
    HandshakeTimedOut,
    InfoUpdated,
    LogLevel,
    LogLine,
    PacketReceived,
    SessionEvent,
    StatsUpdated,
    StatusUpdated,
)
from meshgate.exceptions import ConnectionError, HandshakeTimeout, TransportError
from meshgate.models.messages import (
    DebugLog,
    DecodeFailure,
    ErrorMessage,
    InfoReply,
    RxPacket,
    Stats,
)
from meshgate.models.state import DeviceSettings, DeviceSnapshot, DeviceStatus, ReceivedPacket
from meshgate.protocol import commands
from meshgate.protocol.commands import Command
from meshgate.protocol.constants import is_valid_slot, slot_name
from meshgate.protocol.decoder import MessageDecoder
from meshgate.protocol.frame_codec import Frame, FrameCodec
from meshgate.scheduler import AsyncioScheduler
from meshgate.status import compute_status

if TYPE_CHECKING:
    from types import TracebackType

    from meshgate.preferences import PreferenceStore
    from meshgate.scheduler import AbstractScheduler, TimerHandle
    from meshgate.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)

EMPTY_ERROR_TEXT = "Error from device (no details)"


class SessionState(Enum):
    """Link session connection states."""

    DISCONNECTED = auto()
    """No transport connection."""

    CONNECTING = auto()
    """Opening the transport."""

    CONNECTED = auto()
    """Transport open; handshake and polling run in this state."""


class LinkSession:
    """
    Host-side session with one gateway.

    Attributes:
        state: Current connection state.
        snapshot: Copy of the last-known device state.
        form: Current settings form.
        form_dirty: True while the user has unsaved edits.
        stats_interval_ms: Current stats polling interval.
    """

    def __init__(
        self,
        transport: AbstractTransport,
        codec: FrameCodec | None = None,
        decoder: MessageDecoder | None = None,
        sink: EventSink | None = None,
        *,
        scheduler: AbstractScheduler | None = None,
        config: SessionConfig | None = None,
        preferences: PreferenceStore | None = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            transport: Byte transport to the gateway.
            codec: Frame codec (a fresh FrameCodec by default).
            decoder: Payload decoder (a MessageDecoder by default).
            sink: Callable receiving every SessionEvent.
            scheduler: Time source (real time by default).
            config: Timing and retry parameters.
            preferences: Store the stats interval is loaded from and saved to.
        """
        self._transport = transport
        self._codec = codec or FrameCodec()
        self._decoder = decoder or MessageDecoder()
        self._sink = sink
        self._scheduler = scheduler or AsyncioScheduler()
        self._config = config or SessionConfig()
        self._preferences = preferences

        if preferences is not None:
            self._stats_interval_ms = preferences.stats_interval_ms
        else:
            self._stats_interval_ms = self._config.stats_interval_ms

        self._state = SessionState.DISCONNECTED
        self._snapshot = DeviceSnapshot.initial()
        self._form = DeviceSettings.default().normalized()
        self._form_dirty = False
        self._info_received = False
        self._ready_announced = False
        self._last_protocol: int | None = None

        self._generation = 0
        self._read_task: asyncio.Task[None] | None = None
        self._teardown: asyncio.Future[None] | None = None
        self._stats_timer: TimerHandle | None = None
        self._status_timer: TimerHandle | None = None
        self._confirm_timer: TimerHandle | None = None
        self._stats_ticks = 0
        self._info_every = 1

    # ===== Properties =====

    @property
    def state(self) -> SessionState:
        """Get the current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == SessionState.CONNECTED

    @property
    def info_received(self) -> bool:
        """True once an InfoReply has arrived on this connection."""
        return self._info_received

    @property
    def snapshot(self) -> DeviceSnapshot:
        """Copy of the last-known device state."""
        return self._snapshot.model_copy(deep=True)

    @property
    def form(self) -> DeviceSettings:
        return self._form

    @property
    def form_dirty(self) -> bool:
        return self._form_dirty

    @property
    def stats_interval_ms(self) -> int:
        return self._stats_interval_ms

    @property
    def transport(self) -> AbstractTransport:
        """Get the underlying transport."""
        return self._transport

    def status(self) -> DeviceStatus:
        """Derived status as of now."""
        return compute_status(
            self._snapshot,
            self._scheduler.now(),
            connected=self.is_connected,
            activity_window=self._config.activity_window,
        )

    # ===== Lifecycle =====

    async def connect(self) -> bool:
        """
        Open the transport and bring the session up.

        Runs the GetInfo handshake, requests Stats once, then starts the
        stats poll and status refresh timers. Handshake exhaustion is
        reported as a HandshakeTimedOut event and the link stays up;
        background GetInfo polling keeps asking.

        Returns:
            True if the transport opened, False if opening failed or
            disconnect() was called while the port was opening.

        Raises:
            ConnectionError: If the session is not disconnected.
        """
        if self._teardown is not None:
            await asyncio.shield(self._teardown)

        if self._state != SessionState.DISCONNECTED:
            raise ConnectionError(
                f"Cannot connect: session is in {self._state.name} state"
            )

        self._state = SessionState.CONNECTING
        self._generation += 1
        generation = self._generation
        port = self._transport.port_name
        logger.info("Connecting to gateway on %s", port)
        self._log(LogLevel.INFO, f"Connecting to gateway on {port}...")

        try:
            await self._transport.open()
        except TransportError as e:
            if generation == self._generation:
                self._state = SessionState.DISCONNECTED
            logger.error("Failed to open %s: %s", port, e)
            self._log(LogLevel.ERROR, f"Connection failed: {e}")
            return False

        if generation != self._generation:
            # disconnect() ran while the port was opening
            logger.info("Connect to %s cancelled by disconnect", port)
            await self._close_transport()
            self._log(LogLevel.INFO, "Connection cancelled")
            return False

        self._reset_connection_state()
        self._state = SessionState.CONNECTED
        self._read_task = asyncio.create_task(self._read_loop())
        self._emit(ConnectionChanged(connected=True, port=port))
        self._log(LogLevel.SUCCESS, "Connected to gateway")

        await self._scheduler.sleep(self._config.connect_settle_delay)
        await self._handshake(generation)

        if not self._is_live(generation):
            return True

        await self._send(commands.get_stats())
        if self._is_live(generation) and self._stats_timer is None:
            self._start_polling()
        return True

    async def disconnect(self) -> None:
        """
        Tear the session down.

        Idempotent. Stops every timer, stops the read loop, and closes the
        transport; close errors are logged and swallowed. Returns only after
        the transport is closed, so an immediate connect() is safe. The
        teardown runs to completion even if the caller is cancelled.
        """
        if self._teardown is None:
            if self._state == SessionState.DISCONNECTED:
                return
            self._begin_teardown()
        assert self._teardown is not None
        await asyncio.shield(self._teardown)

    def _begin_teardown(self) -> None:
        self._teardown = asyncio.ensure_future(self._shutdown())

    async def _shutdown(self) -> None:
        try:
            was_connected = self._state == SessionState.CONNECTED
            self._state = SessionState.DISCONNECTED
            self._generation += 1
            self._stop_timers()
            self._info_received = False
            self._form_dirty = False

            read_task, self._read_task = self._read_task, None
            if read_task is not None and read_task is not asyncio.current_task():
                read_task.cancel()
                await asyncio.wait({read_task})

            await self._close_transport()
            self._codec.reset()
        finally:
            self._teardown = None

        if was_connected:
            logger.info("Disconnected from %s", self._transport.port_name)
            self._emit(ConnectionChanged(connected=False, port=self._transport.port_name))
            self._log(LogLevel.INFO, "Disconnected")

    async def _close_transport(self) -> None:
        try:
            await self._transport.close()
        except Exception as e:
            logger.warning("Error closing transport %s: %s", self._transport.port_name, e)

    def _is_live(self, generation: int) -> bool:
        """True while the connection started as generation is still up."""
        return self._state == SessionState.CONNECTED and self._generation == generation

    def _reset_connection_state(self) -> None:
        self._codec.reset()
        self._info_received = False
        self._form_dirty = False
        self._ready_announced = False
        self._last_protocol = None
        self._stats_ticks = 0
        self._snapshot = DeviceSnapshot.initial()
        self._snapshot.connected_at = self._scheduler.now()

    async def _handshake(self, generation: int) -> bool:
        """
        Request device info until it arrives or the attempt budget runs out.

        Args:
            generation: Connection the handshake belongs to; it stops as soon
                as that connection is torn down.

        Returns:
            True if an InfoReply arrived.
        """
        cfg = self._config
        polls = max(1, math.ceil(round(cfg.handshake_timeout / cfg.handshake_poll_interval, 6)))

        for attempt in range(1, cfg.handshake_attempts + 1):
            if attempt > 1:
                await self._scheduler.sleep(cfg.handshake_backoff)
            if not self._is_live(generation):
                return False
            if self._info_received:
                return True

            logger.debug("GetInfo attempt %d/%d", attempt, cfg.handshake_attempts)
            if attempt == 1:
                self._log(LogLevel.INFO, "Requesting device info...")
            else:
                self._log(
                    LogLevel.INFO,
                    f"Retrying device info request ({attempt}/{cfg.handshake_attempts})...",
                )
            await self._send(commands.get_info())

            for _ in range(polls):
                await self._scheduler.sleep(cfg.handshake_poll_interval)
                if self._info_received or not self._is_live(generation):
                    break

            if not self._is_live(generation):
                return False
            if self._info_received:
                return True

        logger.warning(
            "%s; falling back to background polling",
            HandshakeTimeout(attempts=cfg.handshake_attempts),
        )
        self._emit(HandshakeTimedOut(attempts=cfg.handshake_attempts))
        self._log(
            LogLevel.WARNING,
            "Warning: Device info not received immediately. Will retry via background polling.",
        )
        return False

    # ===== Polling =====

    def _start_polling(self) -> None:
        interval_ms = clamp_stats_interval(self._stats_interval_ms)
        self._info_every = max(1, math.floor(self._config.info_interval * 1000 / interval_ms))
        self._stats_ticks = 0
        self._stats_timer = self._scheduler.schedule_periodic(
            interval_ms / 1000, self._poll_stats
        )
        if self._status_timer is None:
            self._status_timer = self._scheduler.schedule_periodic(
                self._config.status_interval, self._refresh_status
            )
        logger.debug(
            "Polling stats every %d ms, info every %d polls", interval_ms, self._info_every
        )

    def _stop_timers(self) -> None:
        for timer in (self._stats_timer, self._status_timer, self._confirm_timer):
            if timer is not None:
                timer.cancel()
        self._stats_timer = None
        self._status_timer = None
        self._confirm_timer = None

    async def _poll_stats(self) -> None:
        if self._state != SessionState.CONNECTED:
            return
        await self._send(commands.get_stats())
        self._stats_ticks += 1
        if self._stats_ticks >= self._info_every:
            self._stats_ticks = 0
            await self._send(commands.get_info())

    def _refresh_status(self) -> None:
        if self._state == SessionState.CONNECTED:
            self._emit(StatusUpdated(status=self.status()))

    # ===== Read path =====

    async def _read_loop(self) -> None:
        while self._state == SessionState.CONNECTED:
            try:
                chunk = await self._transport.read_chunk()
            except TransportError as e:
                self._on_transport_failure(e)
                return

            frames, _ = self._codec.feed(chunk)
            for frame in frames:
                self._handle_frame(frame)

    def _handle_frame(self, frame: Frame) -> None:
        message = self._decoder.decode_frame(frame)
        if isinstance(message, DecodeFailure):
            logger.warning("Dropped undecodable frame %s", message)
        elif isinstance(message, InfoReply):
            self._apply_info(message)
        elif isinstance(message, Stats):
            self._apply_stats(message)
        elif isinstance(message, RxPacket):
            self._apply_packet(message)
        elif isinstance(message, ErrorMessage):
            self._emit(ErrorReceived(text=message.text or EMPTY_ERROR_TEXT))
        elif isinstance(message, DebugLog):
            level = LogLevel.DEBUG if message.is_stats_chatter else LogLevel.INFO
            self._log(level, message.text)

    def _apply_info(self, info: InfoReply) -> None:
        self._info_received = True
        snapshot = self._snapshot

        if self._last_protocol is not None and info.current_protocol != self._last_protocol:
            snapshot.protocol_switches += 1
            logger.info(
                "Listen protocol changed: %s -> %s",
                slot_name(self._last_protocol),
                slot_name(info.current_protocol),
            )
        self._last_protocol = info.current_protocol

        snapshot.firmware_major = info.firmware_major
        snapshot.firmware_minor = info.firmware_minor
        snapshot.current_protocol = info.current_protocol
        snapshot.switch_interval = info.switch_interval
        if info.is_extended:
            snapshot.desired_mode = info.desired_mode
            snapshot.platform_id = info.platform_id
        for slot_state, slot_config in zip(snapshot.slots, info.slots):
            slot_state.frequency_hz = slot_config.frequency_hz
            if slot_config.bandwidth is not None:
                slot_state.bandwidth = slot_config.bandwidth

        form_updated = not self._form_dirty
        if form_updated:
            self._form = DeviceSettings.from_snapshot(snapshot, tx_mask=self._form.tx_mask)

        self._emit(
            InfoUpdated(
                info=info,
                snapshot=snapshot.model_copy(deep=True),
                form=self._form,
                form_updated=form_updated,
            )
        )

        if not self._ready_announced:
            self._ready_announced = True
            logger.info("Device ready: firmware %s", info.firmware_version)
            self._log(
                LogLevel.SUCCESS,
                f"Device ready: Firmware v{info.firmware_version} | "
                f"Mode: Manual ({slot_name(info.current_protocol)})",
            )

    def _apply_stats(self, stats: Stats) -> None:
        snapshot = self._snapshot
        for slot_state, counters in zip(snapshot.slots, stats.slots):
            slot_state.rx_count = counters.rx
            slot_state.tx_count = counters.tx
        snapshot.conversion_errors = stats.conversion_errors
        if stats.parse_errors is not None:
            snapshot.parse_errors = stats.parse_errors
        self._emit(StatsUpdated(stats=stats, snapshot=snapshot.model_copy(deep=True)))

    def _apply_packet(self, packet: RxPacket) -> None:
        now = self._scheduler.now()
        snapshot = self._snapshot
        snapshot.last_packet = ReceivedPacket(packet=packet, timestamp=now)
        snapshot.last_activity = now
        if is_valid_slot(packet.protocol):
            snapshot.slots[packet.protocol].last_seen = now

        self._emit(PacketReceived(packet=packet, timestamp=now))
        self._log(
            LogLevel.INFO,
            f"{packet.protocol_name} packet: RSSI={packet.rssi}dBm "
            f"SNR={packet.snr}dB Len={len(packet.data)}",
        )

    # ===== Write path =====

    async def _send(self, command: Command) -> bool:
        """
        Write one command. A write failure ends the session.

        Returns:
            True if the command was written.
        """
        if self._state != SessionState.CONNECTED or self._teardown is not None:
            logger.debug("Not sending %r: session is %s", command, self._state.name)
            return False
        try:
            await self._transport.write(command.encode())
        except TransportError as e:
            self._on_transport_failure(e)
            return False
        logger.debug("Sent %r", command)
        return True

    def _on_transport_failure(self, error: TransportError) -> None:
        if self._state == SessionState.DISCONNECTED or self._teardown is not None:
            return
        logger.error("Transport error on %s: %s", self._transport.port_name, error)
        self._log(LogLevel.ERROR, f"Connection lost: {error}")
        self._begin_teardown()

    def _ensure_connected(self) -> None:
        if self._state != SessionState.CONNECTED:
            raise ConnectionError("Not connected to a gateway")

    # ===== Settings form =====

    def update_form(self, **changes: object) -> DeviceSettings:
        """
        Edit the settings form and mark it dirty.

        Args:
            **changes: DeviceSettings fields to replace.

        Returns:
            The updated form.

        Raises:
            pydantic.ValidationError: If a value is out of range.
        """
        self._form = self._form.updated(**changes)
        self.mark_form_dirty()
        return self._form

    def update_slot(self, slot: int, frequency_hz: int, bandwidth: int) -> DeviceSettings:
        """Edit one slot's radio parameters in the form."""
        self._form = self._form.with_slot(slot, frequency_hz, bandwidth)
        self.mark_form_dirty()
        return self._form

    def mark_form_dirty(self) -> None:
        """Protect the form from being overwritten by incoming InfoReply."""
        self._form_dirty = True
        self._emit(FormChanged(form=self._form, dirty=True))

    async def save_settings(
        self, settings: DeviceSettings | None = None
    ) -> DeviceSettings | None:
        """
        Send the settings form to the device.

        Sends SetRxProtocol, SetTxProtocols, SetSwitchInterval(0) and one
        SetProtocolParams per slot, in that order, then clears the dirty
        flag and schedules a confirming GetInfo. If a write fails the session
        is torn down and nothing is reported as saved.

        Args:
            settings: Settings to send instead of the current form.

        Returns:
            The settings sent, with the TX mask normalized, or None if a
            write failed.

        Raises:
            ConnectionError: If not connected.
        """
        self._ensure_connected()
        form = (settings or self._form).normalized()
        self._form = form

        batch = [
            commands.set_rx_protocol(form.listen_protocol),
            commands.set_tx_protocols(form.tx_mask),
            commands.set_switch_interval(0),
        ]
        batch.extend(
            commands.set_protocol_params(slot, frequency_hz, bandwidth)
            for slot, (frequency_hz, bandwidth) in enumerate(zip(form.frequencies, form.bandwidths))
        )

        self._log(LogLevel.INFO, f"Setting RX protocol to {slot_name(form.listen_protocol)}...")
        self._log(LogLevel.INFO, f"Setting TX protocols (bitmask: 0x{form.tx_mask:02X})...")
        for command in batch:
            if not await self._send(command):
                logger.warning("Settings save stopped at %r", command)
                self._log(LogLevel.ERROR, "Settings not saved: write failed")
                return None

        self._form_dirty = False
        self._emit(FormChanged(form=form, dirty=False))
        self._log(LogLevel.SUCCESS, "Settings saved")

        if self._confirm_timer is not None:
            self._confirm_timer.cancel()
        if self._state == SessionState.CONNECTED:
            self._confirm_timer = self._scheduler.call_later(
                self._config.confirm_delay, self._confirm_settings
            )
        return form

    async def _confirm_settings(self) -> None:
        self._confirm_timer = None
        await self._send(commands.get_info())

    async def cancel_settings(self) -> None:
        """Discard form edits and re-read the device configuration."""
        self._form_dirty = False
        self._emit(FormChanged(form=self._form, dirty=False))
        self._log(LogLevel.INFO, "Settings cancelled - form reset to device state")
        if self._state == SessionState.CONNECTED:
            await self._send(commands.get_info())

    # ===== Device commands =====

    async def request_info(self) -> None:
        """Send GetInfo."""
        self._ensure_connected()
        await self._send(commands.get_info())

    async def request_stats(self) -> None:
        """Send GetStats."""
        self._ensure_connected()
        await self._send(commands.get_stats())

    async def reset_stats(self) -> None:
        """Ask the device to zero its counters."""
        self._ensure_connected()
        if await self._send(commands.reset_stats()):
            self._log(LogLevel.INFO, "Statistics reset")

    async def send_test(self, target: int) -> None:
        """
        Ask the device to transmit a test message.

        Args:
            target: Slot index, or SEND_TEST_ALL for every transmit slot.
        """
        self._ensure_connected()
        command = commands.send_test(target)
        if await self._send(command):
            name = "all TX protocols" if not is_valid_slot(target) else slot_name(target)
            self._log(LogLevel.INFO, f"Test message sent via {name}")

    async def set_stats_interval(self, interval_ms: int) -> int:
        """
        Change the stats polling interval.

        The value is clamped to 10-10000 ms, persisted when a preference
        store is attached, and applied immediately if polling is running.

        Returns:
            The interval in effect.
        """
        self._stats_interval_ms = clamp_stats_interval(interval_ms)
        if self._preferences is not None:
            self._preferences.set_stats_interval(self._stats_interval_ms)

        if self._stats_timer is not None:
            self._stats_timer.cancel()
            self._stats_timer = None
            self._start_polling()
        self._log(LogLevel.INFO, f"Stats update rate set to {self._stats_interval_ms} ms")
        return self._stats_interval_ms

    # ===== Events =====

    def _emit(self, event: SessionEvent) -> None:
        if self._sink is not None:
            self._sink(event)

    def _log(self, level: LogLevel, text: str) -> None:
        self._emit(LogLine(level=level, text=text))

    # ===== Context manager =====

    async def __aenter__(self) -> LinkSession:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    def __repr__(self) -> str:
        return f"LinkSession({self._transport.port_name!r}, {self._state.name})"
