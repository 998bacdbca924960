"""
Per-interface scan sets and new access point detection.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..daemon.adapter import Interface
from .adapter import ScanRecord

logger = logging.getLogger(__name__)

NEW_AP_TITLE = "New Access Point"
NEW_APS_TITLE = "New Access Points"
NEW_AP_ICON = "network-wireless"


@dataclass
class ScanSet:
    """Latest processed scan list for one wireless interface."""
    interface: Interface
    scans: List[ScanRecord] = field(default_factory=list)
    menus: List[object] = field(default_factory=list)


def new_access_points(
        previous: List[ScanRecord],
        current: List[ScanRecord]) -> List[ScanRecord]:
    """Records of `current` whose BSSID is not in `previous`, in order."""
    known = {record.bssid for record in previous}
    return [record for record in current if record.bssid not in known]


def access_point_message(new: List[ScanRecord]) -> Optional[Tuple[str, str]]:
    """
    Build the notification for newly seen access points.

    Returns:
        (title, body) or None when nothing is new
    """
    if not new:
        return None
    title = NEW_AP_TITLE if len(new) == 1 else NEW_APS_TITLE
    return title, "\n".join(record.ssid for record in new)


class ScanTracker:
    """
    Holds the scan set of every monitored wireless interface.

    update() is the only place a stored scan list is replaced.
    """

    def __init__(self, notifier=None):
        self.notifier = notifier
        self._sets: Dict[str, ScanSet] = {}

    def update(self, interface: Interface, scans: List[ScanRecord]) -> List[ScanRecord]:
        """
        Store `scans` for `interface` and announce new access points.

        The first scan for an interface only creates its set.

        Returns:
            Records not present in the previous scan
        """
        scan_set = self._sets.get(interface.name)
        if scan_set is None:
            self._sets[interface.name] = ScanSet(interface, list(scans))
            logger.debug(f"{interface.name}: tracking {len(scans)} access points")
            return []

        new = new_access_points(scan_set.scans, scans)
        scan_set.interface = interface
        scan_set.scans = list(scans)

        message = access_point_message(new)
        if message and self.notifier is not None:
            title, body = message
            self.notifier.notify(title, body, NEW_AP_ICON)
        return new

    def get(self, name: str) -> Optional[ScanSet]:
        return self._sets.get(name)

    def discard(self, name: str) -> bool:
        """Drop the scan set of one interface."""
        return self._sets.pop(name, None) is not None

    def clear(self) -> None:
        self._sets.clear()

    def has_wireless(self) -> bool:
        """True if any tracked interface is wireless."""
        return any(s.interface.wireless for s in self._sets.values())

    def __contains__(self, name: str) -> bool:
        return name in self._sets

    def __len__(self) -> int:
        return len(self._sets)

    def names(self) -> List[str]:
        return list(self._sets)
