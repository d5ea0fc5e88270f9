"""
Derived gateway status.

Pure functions of the snapshot and the current scheduler time; nothing
here talks to the device.
"""

from __future__ import annotations

from typing import Final

from meshgate.models.state import DeviceSnapshot, DeviceStatus
from meshgate.protocol.constants import ProtocolConstants

PROCESSING_WINDOW: Final[float] = 2.0
"""A packet younger than this shows as being processed."""

LISTENING_WINDOW: Final[float] = 10.0
"""A packet younger than this shows plain "Listening"."""


def format_uptime(seconds: int) -> str:
    """
    Format a duration as "2h 14m", "3m 5s" or "42s".

    Example:
        >>> format_uptime(3725)
        '1h 2m'
    """
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_age(seconds: float) -> str:
    """Format how long ago something happened ("12s ago", "4m ago", "2h ago")."""
    whole = max(0, int(seconds))
    if whole < 60:
        return f"{whole}s ago"
    if whole < 3600:
        return f"{whole // 60}m ago"
    return f"{whole // 3600}h ago"


def activity_label(snapshot: DeviceSnapshot, now: float) -> str:
    """Activity text from the age of the last packet."""
    if snapshot.last_packet is not None:
        age = now - snapshot.last_packet.timestamp
        if age < PROCESSING_WINDOW:
            return "Processing Packet"
        if age < LISTENING_WINDOW:
            return "Listening"
    return f"Listening ({snapshot.current_protocol_name})"


def compute_status(
    snapshot: DeviceSnapshot,
    now: float,
    connected: bool = True,
    activity_window: float = ProtocolConstants.ACTIVITY_WINDOW,
) -> DeviceStatus:
    """
    Derive display status from a snapshot.

    Args:
        snapshot: Current device snapshot.
        now: Current scheduler time.
        connected: Whether the link is open; uptime is blank otherwise.
        activity_window: Seconds a slot stays "recently active" after a packet.

    Returns:
        A DeviceStatus.
    """
    uptime_seconds = None
    uptime = "--"
    if connected and snapshot.connected_at is not None:
        uptime_seconds = max(0, int(now - snapshot.connected_at))
        uptime = format_uptime(uptime_seconds)

    last_activity = "--"
    if snapshot.last_activity is not None:
        last_activity = format_age(now - snapshot.last_activity)

    return DeviceStatus(
        activity=activity_label(snapshot, now),
        uptime_seconds=uptime_seconds,
        uptime=uptime,
        last_activity=last_activity,
        protocol_switches=snapshot.protocol_switches,
        recently_active=tuple(
            slot.last_seen is not None and now - slot.last_seen < activity_window
            for slot in snapshot.slots
        ),
        platform=snapshot.platform_name,
    )
