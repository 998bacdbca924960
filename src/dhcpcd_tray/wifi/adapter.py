"""
Wireless link interface for abstraction over the wpa_supplicant control socket.
Allows test doubles to be injected in CI environments.
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, List, Optional

from ..daemon.adapter import DaemonEvent, EventKind, Interface, _SocketPairMixin


class ScanRecord:
    """One access point seen in a scan pass."""

    def __init__(
            self,
            ssid: str,
            bssid: str,
            strength: int,
            frequency: int = 0,
            flags: str = ""):
        """
        Args:
            ssid: Network SSID, may be empty for hidden networks
            bssid: Access point MAC address, unique per radio
            strength: Signal level (dBm as reported by the supplicant)
            frequency: Channel frequency in MHz
            flags: Raw capability flags, e.g. "[WPA2-PSK-CCMP][ESS]"
        """
        self.ssid = ssid
        self.bssid = bssid
        self.strength = strength
        self.frequency = frequency
        self.flags = flags

    @property
    def security(self) -> str:
        """Security type parsed from the supplicant flags."""
        if 'WPA2' in self.flags or 'RSN' in self.flags:
            return 'WPA2'
        elif 'WPA' in self.flags:
            return 'WPA'
        elif 'WEP' in self.flags:
            return 'WEP'
        else:
            return 'Open'

    def __eq__(self, other) -> bool:
        if not isinstance(other, ScanRecord):
            return NotImplemented
        return (self.ssid, self.bssid, self.strength) == \
            (other.ssid, other.bssid, other.strength)

    def __repr__(self) -> str:
        return (f"ScanRecord(ssid={self.ssid!r}, bssid={self.bssid!r}, "
                f"strength={self.strength})")


class WirelessLink(ABC):
    """Abstract base class for supplicant connections bound to one interface."""

    @abstractmethod
    def open(self) -> int:
        """
        Connect to the supplicant.

        Returns:
            The connection descriptor

        Raises:
            OSError: If the supplicant is not reachable
        """

    @abstractmethod
    def close(self) -> None:
        """Close the connection. Safe to call when already closed."""

    @abstractmethod
    def fileno(self) -> int:
        """Return the connection descriptor, or -1 if not connected."""

    @abstractmethod
    def dispatch(self) -> List[DaemonEvent]:
        """
        Read and decode pending supplicant events.

        Produces SCAN events when results are ready and STATUS events
        ("down") when the supplicant goes away.

        Raises:
            BlockingIOError: If nothing is pending
            OSError: On a read error
        """

    @abstractmethod
    def scan_results(self) -> List[ScanRecord]:
        """Return the raw scan results; may hold duplicates and blank SSIDs."""

    @abstractmethod
    def interface(self) -> Optional[Interface]:
        """Return the interface this link is bound to, if still known."""

    @abstractmethod
    def rescan(self) -> bool:
        """
        Ask the supplicant for a new scan.

        Returns:
            True if the request was accepted
        """


class MockWirelessLink(_SocketPairMixin, WirelessLink):
    """Mock supplicant link for testing without wpa_supplicant."""

    def __init__(
            self,
            interface: Optional[Interface] = None,
            scans: Optional[List[ScanRecord]] = None):
        self._init_pair()
        self._interface = interface
        self._scans = list(scans or [])
        self.open_errors: Deque[Optional[OSError]] = deque()
        self.rescan_count = 0

    def open(self) -> int:
        if self.open_errors:
            error = self.open_errors.popleft()
            if error is not None:
                raise error
        return self._connect_pair()

    def scan_results(self) -> List[ScanRecord]:
        return list(self._scans)

    def set_scans(self, scans: List[ScanRecord]) -> None:
        self._scans = list(scans)

    def push_scan(self, scans: List[ScanRecord]) -> None:
        """Replace the results and signal that a scan completed."""
        self.set_scans(scans)
        self.push(DaemonEvent(EventKind.SCAN))

    def interface(self) -> Optional[Interface]:
        return self._interface

    def set_interface(self, interface: Optional[Interface]) -> None:
        self._interface = interface

    def rescan(self) -> bool:
        self.rescan_count += 1
        return self._sock is not None
