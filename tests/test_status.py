"""Tests for derived status."""

import pytest

from meshgate.models.messages import RxPacket
from meshgate.models.state import DeviceSnapshot, ReceivedPacket
from meshgate.status import activity_label, compute_status, format_age, format_uptime


@pytest.fixture
def snapshot():
    """Snapshot of a session connected at t=100."""
    snapshot = DeviceSnapshot.initial()
    snapshot.connected_at = 100.0
    return snapshot


def with_packet(snapshot, protocol, timestamp):
    packet = RxPacket(protocol=protocol, rssi=-90, snr=4)
    snapshot.last_packet = ReceivedPacket(packet=packet, timestamp=timestamp)
    snapshot.last_activity = timestamp
    snapshot.slots[protocol].last_seen = timestamp
    return snapshot


class TestFormatting:
    """Tests for uptime and age formatting."""

    @pytest.mark.parametrize(
        "seconds,expected",
        [(0, "0s"), (42, "42s"), (185, "3m 5s"), (3725, "1h 2m"), (8040, "2h 14m")],
    )
    def test_format_uptime(self, seconds, expected):
        """Test uptime formats."""
        assert format_uptime(seconds) == expected

    @pytest.mark.parametrize(
        "seconds,expected",
        [(0.4, "0s ago"), (12.9, "12s ago"), (240, "4m ago"), (7300, "2h ago")],
    )
    def test_format_age(self, seconds, expected):
        """Test age formats."""
        assert format_age(seconds) == expected


class TestActivity:
    """Tests for the activity label."""

    def test_no_packets(self, snapshot):
        """Test idle label names the listening protocol."""
        assert activity_label(snapshot, 150.0) == "Listening (MeshCore)"

    def test_recent_packet(self, snapshot):
        """Test a packet under 2 s old."""
        assert activity_label(with_packet(snapshot, 1, 149.0), 150.0) == "Processing Packet"

    def test_older_packet(self, snapshot):
        """Test a packet between 2 and 10 s old."""
        assert activity_label(with_packet(snapshot, 1, 145.0), 150.0) == "Listening"

    def test_stale_packet(self, snapshot):
        """Test a packet over 10 s old."""
        snapshot.current_protocol = 1
        assert activity_label(with_packet(snapshot, 1, 120.0), 150.0) == "Listening (Meshtastic)"


class TestComputeStatus:
    """Tests for compute_status()."""

    def test_uptime(self, snapshot):
        """Test uptime since connect."""
        status = compute_status(snapshot, 285.5)
        assert status.uptime_seconds == 185
        assert status.uptime == "3m 5s"

    def test_disconnected(self, snapshot):
        """Test uptime is blank when disconnected."""
        status = compute_status(snapshot, 285.5, connected=False)
        assert status.uptime_seconds is None
        assert status.uptime == "--"

    def test_last_activity(self, snapshot):
        """Test the age of the last packet."""
        status = compute_status(with_packet(snapshot, 0, 140.0), 152.0)
        assert status.last_activity == "12s ago"
        assert compute_status(DeviceSnapshot.initial(), 1.0).last_activity == "--"

    def test_recently_active_window(self, snapshot):
        """Test the 30 s activity window per slot."""
        with_packet(snapshot, 0, 100.0)
        assert compute_status(snapshot, 129.0).recently_active == (True, False)
        assert compute_status(snapshot, 131.0).recently_active == (False, False)
        assert compute_status(snapshot, 131.0, activity_window=60).recently_active == (True, False)

    def test_switches_and_platform(self, snapshot):
        """Test counters and platform pass through."""
        snapshot.protocol_switches = 3
        snapshot.platform_id = 0
        status = compute_status(snapshot, 101.0)
        assert status.protocol_switches == 3
        assert status.platform == "LoRa32u4II"
