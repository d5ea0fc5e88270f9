"""Tests for message and state models."""

import pytest
from pydantic import ValidationError

from meshgate.models.messages import DecodeFailure, InfoReply, RxPacket, SlotConfig
from meshgate.models.state import DeviceSettings, DeviceSnapshot


class TestMessages:
    """Tests for decoded message models."""

    def test_slot_config_units(self):
        """Test MHz and kHz helpers."""
        slot = SlotConfig(frequency_hz=906_875_000, bandwidth=8)
        assert slot.frequency_mhz == pytest.approx(906.875)
        assert slot.bandwidth_khz == 250.0

    def test_unknown_bandwidth_code(self):
        """Test a code outside the table has no kHz value."""
        assert SlotConfig(frequency_hz=0, bandwidth=12).bandwidth_khz is None

    def test_messages_are_frozen(self):
        """Test messages cannot be modified."""
        packet = RxPacket(protocol=0, rssi=-80, snr=5)
        with pytest.raises(ValidationError):
            packet.rssi = -10

    def test_rssi_range(self):
        """Test RSSI is limited to the i16 range."""
        with pytest.raises(ValidationError):
            RxPacket(protocol=0, rssi=40000, snr=0)

    def test_info_repr(self):
        """Test string representation."""
        info = InfoReply(
            firmware_major=1,
            firmware_minor=3,
            slots=(SlotConfig(frequency_hz=910_525_000), SlotConfig(frequency_hz=906_875_000)),
            current_protocol=0,
            switch_interval=0,
        )
        assert "fw=1.3" in repr(info)
        assert "910.525" in repr(info)

    def test_decode_failure_str(self):
        """Test DecodeFailure formatting."""
        failure = DecodeFailure(tag=0x82, reason="too short", payload_length=3)
        assert str(failure) == "tag 0x82 (3 bytes): too short"


class TestDeviceSnapshot:
    """Tests for DeviceSnapshot."""

    def test_initial_defaults(self):
        """Test firmware default frequencies before any InfoReply."""
        snapshot = DeviceSnapshot.initial()
        assert [s.frequency_hz for s in snapshot.slots] == [910_525_000, 906_875_000]
        assert [s.bandwidth for s in snapshot.slots] == [6, 8]
        assert snapshot.firmware_version is None
        assert snapshot.platform_name is None
        assert snapshot.current_protocol_name == "MeshCore"


class TestDeviceSettings:
    """Tests for the settings form model."""

    def test_normalize_auto_selects_other_slot(self):
        """Test the TX mask becomes the single non-listening slot."""
        assert DeviceSettings(listen_protocol=0, tx_mask=0).normalized().tx_mask == 0b10
        assert DeviceSettings(listen_protocol=1, tx_mask=0b10).normalized().tx_mask == 0b01

    def test_normalize_unchanged_returns_self(self):
        """Test an already valid mask is kept."""
        settings = DeviceSettings(listen_protocol=0, tx_mask=0b10)
        assert settings.normalized() is settings

    def test_tx_slots(self):
        """Test selected slot list."""
        assert DeviceSettings(tx_mask=0b11).tx_slots() == [0, 1]

    def test_invalid_listen_protocol(self):
        """Test listen protocol must be a slot."""
        with pytest.raises(ValidationError):
            DeviceSettings(listen_protocol=2)

    def test_invalid_bandwidth(self):
        """Test bandwidth codes are limited to 0-9."""
        with pytest.raises(ValidationError):
            DeviceSettings(bandwidths=(6, 10))

    def test_wrong_slot_count(self):
        """Test exactly two slots are required."""
        with pytest.raises(ValidationError):
            DeviceSettings(frequencies=(910_525_000,))

    def test_tx_mask_unknown_slot(self):
        """Test TX mask bits beyond the slot count are rejected."""
        with pytest.raises(ValidationError):
            DeviceSettings(tx_mask=0b100)

    def test_with_slot(self):
        """Test replacing one slot's parameters."""
        settings = DeviceSettings().with_slot(1, 915_000_000, 7)
        assert settings.frequencies == (910_525_000, 915_000_000)
        assert settings.bandwidths == (6, 7)

    def test_from_snapshot(self):
        """Test the form mirrors the snapshot and keeps the TX mask normalized."""
        snapshot = DeviceSnapshot.initial()
        snapshot.current_protocol = 1
        snapshot.slots[0].frequency_hz = 915_000_000
        snapshot.slots[1].bandwidth = None

        settings = DeviceSettings.from_snapshot(snapshot, tx_mask=0b10)

        assert settings.listen_protocol == 1
        assert settings.frequencies[0] == 915_000_000
        assert settings.bandwidths == (6, 8)
        assert settings.tx_mask == 0b01
