"""
Unit tests for scan diffing and notification suppression.
"""

import pytest
from freezegun import freeze_time

from dhcpcd_tray.daemon.adapter import Interface
from dhcpcd_tray.loop.mainloop import MainLoop
from dhcpcd_tray.view.adapter import RecordingTrayView
from dhcpcd_tray.view.notifier import Notifier
from dhcpcd_tray.wifi.adapter import ScanRecord
from dhcpcd_tray.wifi.scan_tracker import (
    NEW_AP_ICON,
    NEW_AP_TITLE,
    NEW_APS_TITLE,
    ScanTracker,
    access_point_message,
    new_access_points,
)


def rec(ssid, bssid, strength=-50):
    return ScanRecord(ssid=ssid, bssid=bssid, strength=strength)


WLAN0 = Interface(name="wlan0", type="link", up=True, wireless=True)


class TestNewAccessPoints:
    """Test BSSID membership diff."""

    def test_one_new_bssid(self):
        previous = [rec("A", "b1"), rec("B", "b2")]
        current = [rec("B", "b2"), rec("C", "b3")]
        new = new_access_points(previous, current)
        assert [r.bssid for r in new] == ["b3"]
        assert access_point_message(new) == (NEW_AP_TITLE, "C")

    def test_nothing_new(self):
        previous = [rec("A", "b1")]
        assert new_access_points(previous, [rec("A", "b1")]) == []
        assert access_point_message([]) is None

    def test_several_new_in_encounter_order(self):
        new = new_access_points([], [rec("Z", "b9"), rec("M", "b5")])
        assert access_point_message(new) == (NEW_APS_TITLE, "Z\nM")

    def test_same_ssid_new_bssid_is_new(self):
        """Test membership is by BSSID, not SSID."""
        new = new_access_points([rec("Home", "b1")], [rec("Home", "b7")])
        assert [r.bssid for r in new] == ["b7"]


class TestNotifier:
    """Test repeated-text suppression."""

    @pytest.fixture
    def view(self):
        return RecordingTrayView()

    @pytest.fixture
    def notifier(self, view):
        return Notifier(view)

    def test_identical_text_suppressed(self, notifier, view):
        assert notifier.notify("New Access Point", "Cafe", NEW_AP_ICON) is True
        assert notifier.notify("New Access Point", "Cafe", NEW_AP_ICON) is False
        assert len(view.notifications) == 1

    def test_different_text_replaces_pending(self, notifier, view):
        notifier.notify("New Access Point", "Cafe", NEW_AP_ICON)
        notifier.notify("New Access Point", "Library", NEW_AP_ICON)

        assert [n[1] for n in view.notifications] == ["Cafe", "Library"]
        assert view.closed_notifications == 1
        assert view.calls[-2:] == [
            ('close_notification',),
            ('notify', "New Access Point", "Library", NEW_AP_ICON),
        ]

    def test_no_close_without_pending(self, notifier, view):
        notifier.notify("t", "one", "i")
        notifier.notification_closed()
        notifier.notify("t", "two", "i")
        assert view.closed_notifications == 0

    def test_suppression_is_against_last_shown_only(self, notifier, view):
        notifier.notify("t", "one", "i")
        notifier.notify("t", "two", "i")
        assert notifier.notify("t", "one", "i") is True
        assert len(view.notifications) == 3

    def test_none_body_ignored(self, notifier, view):
        assert notifier.notify("t", None, "i") is False
        assert view.notifications == []

    def test_notifiers_do_not_share_state(self, view):
        first, second = Notifier(view), Notifier(view)
        first.notify("t", "same", "i")
        assert second.notify("t", "same", "i") is True

    def test_expires_after_timeout(self, view):
        with freeze_time("2024-01-15 12:00:00") as frozen:
            loop = MainLoop()
            notifier = Notifier(view, loop, timeout=5)
            notifier.notify("t", "body", "i")

            frozen.tick(4)
            loop.run_timers()
            assert notifier.pending is True

            frozen.tick(1)
            loop.run_timers()
            assert notifier.pending is False
            assert view.closed_notifications == 1
            loop.close()


class TestScanTracker:
    """Test per-interface scan sets."""

    @pytest.fixture
    def view(self):
        return RecordingTrayView()

    @pytest.fixture
    def tracker(self, view):
        return ScanTracker(Notifier(view))

    def test_first_scan_creates_set_silently(self, tracker, view):
        new = tracker.update(WLAN0, [rec("A", "b1")])
        assert new == []
        assert "wlan0" in tracker
        assert view.notifications == []

    def test_second_scan_notifies_singular(self, tracker, view):
        tracker.update(WLAN0, [rec("A", "b1"), rec("B", "b2")])
        new = tracker.update(WLAN0, [rec("B", "b2"), rec("C", "b3")])

        assert [r.bssid for r in new] == ["b3"]
        assert view.notifications == [(NEW_AP_TITLE, "C", NEW_AP_ICON)]
        assert [r.bssid for r in tracker.get("wlan0").scans] == ["b2", "b3"]

    def test_plural_title(self, tracker, view):
        tracker.update(WLAN0, [])
        tracker.update(WLAN0, [rec("C", "b3"), rec("D", "b4")])
        assert view.notifications == [(NEW_APS_TITLE, "C\nD", NEW_AP_ICON)]

    def test_unchanged_scan_does_not_notify(self, tracker, view):
        tracker.update(WLAN0, [rec("A", "b1")])
        tracker.update(WLAN0, [rec("A", "b1", -30)])
        assert view.notifications == []

    def test_discard_and_clear(self, tracker):
        tracker.update(WLAN0, [])
        assert tracker.discard("wlan0") is True
        assert tracker.discard("wlan0") is False
        tracker.update(WLAN0, [])
        tracker.clear()
        assert len(tracker) == 0

    def test_has_wireless(self, tracker):
        assert tracker.has_wireless() is False
        tracker.update(Interface(name="eth0"), [])
        assert tracker.has_wireless() is False
        tracker.update(WLAN0, [])
        assert tracker.has_wireless() is True
