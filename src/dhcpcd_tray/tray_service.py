"""
Main tray service.
Coordinates the event loop, the dhcpcd connection, wireless scans and the view.
"""

import logging
from typing import Any, Dict, Optional

from .config import DEFAULTS
from .daemon.adapter import DaemonClient
from .daemon.connection import DaemonController
from .loop.mainloop import MainLoop
from .loop.watch_registry import WatchRegistry
from .status.aggregator import StatusAggregator
from .view.adapter import TrayView
from .view.notifier import Notifier

logger = logging.getLogger(__name__)


class TrayService:
    """
    dhcpcd tray core.

    Lifecycle:
    1. start(): connect to dhcpcd (or arm the retry timer) and start the
       periodic rescan timer
    2. run(): drive the event loop until shutdown()
    3. shutdown(): close every connection and stop the loop
    """

    def __init__(
        self,
        client: DaemonClient,
        view: TrayView,
        settings: Optional[Dict[str, Any]] = None,
        loop: Optional[MainLoop] = None,
    ):
        """
        Initialize tray service.

        Args:
            client: dhcpcd control socket client
            view: Tray presentation
            settings: Loaded settings (see config.load_settings)
            loop: Event loop (optional)
        """
        self.settings = dict(DEFAULTS, **(settings or {}))
        self.view = view
        self.loop = loop or MainLoop()
        self.registry = WatchRegistry(self.loop)
        self.notifier = Notifier(
            view, self.loop, self.settings['notification_timeout'])
        self.aggregator = StatusAggregator(view)
        self.daemon = DaemonController(
            client,
            self.loop,
            self.registry,
            self.aggregator,
            self.notifier,
            view,
            retry_interval=self.settings['retry_interval'],
        )
        self._rescan_handle: Optional[int] = None

        logger.info("TrayService initialized")

    def start(self) -> bool:
        """
        Connect to dhcpcd and arm the rescan timer.

        Returns:
            True if dhcpcd was reachable straight away
        """
        logger.info("Connecting ...")
        connected = self.daemon.start()
        interval = self.settings['rescan_interval']
        if interval and self._rescan_handle is None:
            self._rescan_handle = self.loop.timeout_add(interval, self._rescan)
        return connected

    def _rescan(self) -> bool:
        requested = self.daemon.rescan()
        if requested:
            logger.debug(f"Requested rescan on {requested} interface(s)")
        return True

    def run(self) -> None:
        self.loop.run()

    def shutdown(self) -> None:
        """Close connections and stop the loop."""
        if self._rescan_handle is not None:
            self.loop.source_remove(self._rescan_handle)
            self._rescan_handle = None
        self.notifier.close()
        self.daemon.stop()
        self.loop.quit()
        logger.info("TrayService shut down")

    def get_status(self) -> Dict[str, Any]:
        """Get service status for diagnostics."""
        return {
            'network': self.aggregator.get_status(),
            'dhcpcd': self.daemon.get_status(),
            'watches': self.registry.fds(),
            'loop': self.loop.get_status(),
        }
