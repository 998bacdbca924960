"""
Unit tests for wireless link implementations.
Tests the link interface, the scan record type and the socketpair mock.
"""

import pytest

from dhcpcd_tray.daemon.adapter import EventKind, Interface
from dhcpcd_tray.wifi.adapter import MockWirelessLink, ScanRecord, WirelessLink


class TestScanRecord:
    """Test ScanRecord value type."""

    def test_scan_record_creation(self):
        """Test creating a ScanRecord object."""
        record = ScanRecord(
            ssid="TestNet",
            bssid="aa:bb:cc:dd:ee:01",
            strength=-50,
            frequency=2437,
            flags="[WPA2-PSK-CCMP][ESS]")
        assert record.ssid == "TestNet"
        assert record.strength == -50
        assert record.frequency == 2437
        assert record.security == "WPA2"

    def test_scan_record_equality(self):
        """Test records compare on ssid, bssid and strength."""
        rec1 = ScanRecord("Test", "b1", -50, frequency=2412)
        rec2 = ScanRecord("Test", "b1", -50, frequency=5180)
        rec3 = ScanRecord("Test", "b1", -51)
        assert rec1 == rec2
        assert rec1 != rec3

    def test_scan_record_repr(self):
        """Test ScanRecord string representation."""
        repr_str = repr(ScanRecord("MyNet", "b1", -42))
        assert "MyNet" in repr_str
        assert "-42" in repr_str

    @pytest.mark.parametrize("flags,security", [
        ("[WPA2-PSK-CCMP][ESS]", "WPA2"),
        ("[RSN-SAE-CCMP][ESS]", "WPA2"),
        ("[WPA-PSK-TKIP][ESS]", "WPA"),
        ("[WEP][ESS]", "WEP"),
        ("[ESS]", "Open"),
        ("", "Open"),
    ])
    def test_security_from_flags(self, flags, security):
        assert ScanRecord("Net", "b1", -60, flags=flags).security == security


class TestWirelessLinkInterface:
    """Test WirelessLink abstract interface."""

    def test_wireless_link_is_abstract(self):
        """Test that WirelessLink cannot be instantiated directly."""
        with pytest.raises(TypeError):
            WirelessLink()

    def test_wireless_link_requires_all_methods(self):
        """Test that all abstract methods must be implemented."""
        class PartialLink(WirelessLink):
            def open(self):
                return 3

            def close(self):
                pass

        with pytest.raises(TypeError):
            PartialLink()


class TestMockWirelessLink:
    """Test the mock link implementation."""

    @pytest.fixture
    def link(self):
        link = MockWirelessLink(
            interface=Interface(name="wlan0", wireless=True),
            scans=[ScanRecord("TestNet1", "b1", -40)])
        yield link
        link.close()

    def test_closed_until_opened(self, link):
        assert link.fileno() == -1
        fd = link.open()
        assert fd == link.fileno()
        assert fd >= 0

    def test_open_errors_consumed_in_order(self, link):
        link.open_errors.append(ConnectionRefusedError())
        with pytest.raises(ConnectionRefusedError):
            link.open()
        assert link.open() >= 0

    def test_push_scan_replaces_results(self, link):
        link.open()
        link.push_scan([ScanRecord("TestNet2", "b2", -60)])

        events = link.dispatch()
        assert [e.kind for e in events] == [EventKind.SCAN]
        assert link.scan_results() == [ScanRecord("TestNet2", "b2", -60)]

    def test_scan_results_is_a_copy(self, link):
        results = link.scan_results()
        results.clear()
        assert len(link.scan_results()) == 1

    def test_rescan_counts_requests(self, link):
        assert link.rescan() is False
        link.open()
        assert link.rescan() is True
        assert link.rescan_count == 2

    def test_hangup_closes_on_dispatch(self, link):
        link.open()
        link.hangup()
        assert link.dispatch() == []
        assert link.fileno() == -1

    def test_interface_can_be_cleared(self, link):
        assert link.interface().name == "wlan0"
        link.set_interface(None)
        assert link.interface() is None
