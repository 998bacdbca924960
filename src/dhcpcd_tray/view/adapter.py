"""
Tray view interface for abstraction over the GUI toolkit.
The core pushes status, scan lists and notifications through this interface
and never touches icons, menus or timers of the presentation layer.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..status.aggregator import NetworkState
from ..wifi.adapter import ScanRecord


class TrayView(ABC):
    """Abstract base class for tray presentations."""

    @abstractmethod
    def on_status_changed(self, state: NetworkState, tooltip: str) -> None:
        """
        Show the aggregate network state.

        Args:
            state: OFFLINE, CARRIER or ONLINE; drives the icon animation
            tooltip: Newline-joined interface messages
        """

    @abstractmethod
    def on_scan_updated(self, interface: str, scans: List[ScanRecord]) -> None:
        """
        Replace the access point list shown for an interface.

        Args:
            interface: Interface name
            scans: Processed scan list, sorted by SSID
        """

    @abstractmethod
    def on_connection_lost(self, message: str) -> None:
        """Reset menus and preferences; dhcpcd is unreachable."""

    @abstractmethod
    def on_connection_restored(self, version: str) -> None:
        """dhcpcd is reachable again."""

    @abstractmethod
    def show_notification(self, title: str, body: str, icon: str) -> None:
        """Pop up a desktop notification."""

    @abstractmethod
    def close_notification(self) -> None:
        """Close the notification currently shown, if any."""


class RecordingTrayView(TrayView):
    """Mock view that records every call for testing."""

    def __init__(self):
        self.calls: List[Tuple] = []
        self.state: Optional[NetworkState] = None
        self.tooltip: Optional[str] = None
        self.scans = {}
        self.notifications: List[Tuple[str, str, str]] = []
        self.closed_notifications = 0
        self.connected = False

    def on_status_changed(self, state, tooltip):
        self.calls.append(('status', state, tooltip))
        self.state = state
        self.tooltip = tooltip

    def on_scan_updated(self, interface, scans):
        self.calls.append(('scan', interface, list(scans)))
        self.scans[interface] = list(scans)

    def on_connection_lost(self, message):
        self.calls.append(('lost', message))
        self.connected = False
        self.scans.clear()

    def on_connection_restored(self, version):
        self.calls.append(('restored', version))
        self.connected = True

    def show_notification(self, title, body, icon):
        self.calls.append(('notify', title, body, icon))
        self.notifications.append((title, body, icon))

    def close_notification(self):
        self.calls.append(('close_notification',))
        self.closed_notifications += 1

    def calls_named(self, name: str) -> List[Tuple]:
        """Return recorded calls of one kind (for testing)."""
        return [call for call in self.calls if call[0] == name]
