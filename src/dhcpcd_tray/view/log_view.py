"""
Headless tray view.
Writes status, scan lists and notifications to the log instead of a tray icon.
Useful for: running on a console, debugging, CI.
"""

import logging
from typing import List, Optional

from .adapter import TrayView
from ..status.aggregator import NetworkState
from ..wifi.adapter import ScanRecord

logger = logging.getLogger(__name__)


class LoggingTrayView(TrayView):
    """TrayView that logs everything it is told."""

    def __init__(self, notifier=None):
        """
        Args:
            notifier: Notifier to tell when a notification is closed
        """
        self.notifier = notifier
        self.state: Optional[NetworkState] = None
        self.tooltip = ""
        self._notification: Optional[str] = None

    def on_status_changed(self, state: NetworkState, tooltip: str) -> None:
        if state != self.state:
            logger.info(f"Tray icon: {state.value}")
        self.state = state
        self.tooltip = tooltip
        for line in tooltip.splitlines():
            logger.debug(f"Tooltip: {line}")

    def on_scan_updated(self, interface: str, scans: List[ScanRecord]) -> None:
        logger.info(f"{interface}: {len(scans)} access points")
        for record in scans:
            logger.debug(
                f"  {record.ssid:<32} {record.strength:>5} {record.security}")

    def on_connection_lost(self, message: str) -> None:
        logger.warning(message)

    def on_connection_restored(self, version: str) -> None:
        logger.info(f"dhcpcd {version} available")

    def show_notification(self, title: str, body: str, icon: str) -> None:
        self._notification = title
        logger.info(f"Notification [{icon}] {title}: {body!r}")

    def close_notification(self) -> None:
        if self._notification is not None:
            logger.debug(f"Closed notification {self._notification}")
            self._notification = None
            if self.notifier is not None:
                self.notifier.notification_closed()
