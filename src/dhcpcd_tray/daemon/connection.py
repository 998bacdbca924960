"""
Connection lifecycle controllers for dhcpcd and its wpa_supplicant links.
Each controller opens its connection, watches it, dispatches its events and
reopens it after a fixed delay whenever it fails or is lost.
"""

import logging
import os
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..loop.mainloop import MainLoop
from ..loop.watch_registry import WatchRegistry
from ..status.aggregator import (
    CONNECTION_LOST_MESSAGE,
    NOT_RUNNING_MESSAGE,
    StatusAggregator,
)
from ..wifi.adapter import WirelessLink
from ..wifi.scan import process_scans
from ..wifi.scan_tracker import ScanTracker
from .adapter import GONE_REASONS, QUIET_REASONS, DaemonClient, DaemonEvent, EventKind

logger = logging.getLogger(__name__)

# Seconds between reopen attempts
DEFAULT_RETRY_INTERVAL = 10.0

NETWORK_EVENT_TITLE = "Network event"
ICON_UP = "network-transmit-receive"
ICON_DOWN = "network-offline"


class ConnectionState(Enum):
    """Connection lifecycle states."""
    CLOSED = "closed"           # Not connected; a retry may be armed
    OPENING = "opening"         # Open attempt in progress
    WATCHING = "watching"       # Descriptor registered, events flowing


class ConnectionController(ABC):
    """
    Open/watch/dispatch/retry state machine for one connection.

    Retries use a single fixed interval and never give up: the tray runs
    for the whole session and must survive daemon restarts.

    Subclasses provide _open() and _close() for their link, and
    handle_event() for what dispatch produces.
    """

    def __init__(
        self,
        name: str,
        loop: MainLoop,
        registry: WatchRegistry,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        on_state_change: Optional[Callable[[ConnectionState], None]] = None,
    ):
        self.name = name
        self.loop = loop
        self.registry = registry
        self.retry_interval = retry_interval
        self.on_state_change = on_state_change

        self.state = ConnectionState.CLOSED
        self.fd: Optional[int] = None
        self.last_errno = 0
        self.retry_handle: Optional[int] = None

    # Link hooks

    @abstractmethod
    def _open(self) -> int:
        """Open the link and return its descriptor; raises OSError."""

    @abstractmethod
    def _close(self) -> None:
        """Close the link. Safe to call when already closed."""

    @abstractmethod
    def _fileno(self) -> int:
        """Return the link descriptor, or -1 if not connected."""

    @abstractmethod
    def _dispatch(self) -> List[DaemonEvent]:
        """Read pending events from the link."""

    @abstractmethod
    def handle_event(self, event: DaemonEvent) -> None:
        """Route one dispatched event."""

    def on_watching(self) -> None:
        """Called once the descriptor is registered."""

    def on_lost(self) -> None:
        """Called after the watch is released, before any retry is armed."""

    def should_retry(self) -> bool:
        return True

    # State machine

    def _set_state(self, state: ConnectionState) -> None:
        if state == self.state:
            return
        logger.debug(f"{self.name}: {self.state.value} -> {state.value}")
        self.state = state
        if self.on_state_change:
            self.on_state_change(state)

    def start(self) -> bool:
        """Open now, or arm the retry timer on failure."""
        return self.try_open()

    def try_open(self) -> bool:
        """
        Attempt to open and watch the connection.

        Returns:
            True if the connection is now being watched
        """
        if self.state != ConnectionState.CLOSED:
            return self.state == ConnectionState.WATCHING

        self._set_state(ConnectionState.OPENING)
        try:
            fd = self._open()
        except OSError as e:
            self.record_failure(e)
            self._set_state(ConnectionState.CLOSED)
            self.schedule_retry()
            return False

        if not self.registry.watch(fd, self._on_ready, self):
            logger.error(f"{self.name}: cannot watch fd {fd}")
            self._close()
            self._set_state(ConnectionState.CLOSED)
            self.schedule_retry()
            return False

        self.fd = fd
        self.record_success()
        self._set_state(ConnectionState.WATCHING)
        self.on_watching()
        return True

    def record_failure(self, error: OSError) -> None:
        """Log an open failure once per distinct errno."""
        code = error.errno or 0
        if code != self.last_errno:
            reason = os.strerror(code) if code else str(error)
            logger.error(f"{self.name}: open failed: {reason}")
            self.last_errno = code
        else:
            logger.debug(f"{self.name}: open failed again (errno {code})")

    def record_success(self) -> None:
        if self.last_errno:
            logger.info(f"{self.name}: connected after errno {self.last_errno}")
        self.last_errno = 0

    def schedule_retry(self) -> bool:
        """Arm the one-shot retry timer unless one is already armed."""
        if self.retry_handle is not None or not self.should_retry():
            return False
        self.retry_handle = self.loop.timeout_add(self.retry_interval, self._retry)
        logger.debug(f"{self.name}: retry in {self.retry_interval}s")
        return True

    def cancel_retry(self) -> None:
        if self.retry_handle is not None:
            self.loop.source_remove(self.retry_handle)
            self.retry_handle = None

    def _retry(self) -> bool:
        self.retry_handle = None
        self.try_open()
        return False

    def connection_lost(self) -> None:
        """
        Tear down a watched connection and arm the retry timer.

        The watch is released before the retry is armed so no callback can
        fire against the dead descriptor.
        """
        if self.state != ConnectionState.WATCHING:
            return
        self.registry.unwatch(fd=self.fd, owner=self)
        self.fd = None
        self._close()
        self._set_state(ConnectionState.CLOSED)
        self.on_lost()
        self.schedule_retry()

    def stop(self) -> None:
        """Close for good: no retry."""
        self.cancel_retry()
        if self.state == ConnectionState.WATCHING:
            self.registry.unwatch(fd=self.fd, owner=self)
            self.fd = None
        self._close()
        self._set_state(ConnectionState.CLOSED)

    # Dispatch

    def _on_ready(self, fd: int) -> None:
        if self._fileno() == -1:
            logger.warning(f"{self.name}: connection lost")
            self.connection_lost()
            return

        try:
            events = self._dispatch()
        except BlockingIOError:
            events = []
        except OSError as e:
            logger.warning(f"{self.name}: read failed: {e}")
            self.connection_lost()
            return

        for event in events:
            self.handle_event(event)
            if self.state != ConnectionState.WATCHING:
                return

        if self._fileno() == -1:
            logger.warning(f"{self.name}: connection lost")
            self.connection_lost()

    def get_status(self) -> Dict[str, object]:
        return {
            'state': self.state.value,
            'fd': self.fd,
            'last_errno': self.last_errno,
            'retry_pending': self.retry_handle is not None,
        }


class WirelessController(ConnectionController):
    """Lifecycle of one wpa_supplicant link; feeds the scan pipeline."""

    def __init__(
        self,
        link: WirelessLink,
        loop: MainLoop,
        registry: WatchRegistry,
        tracker: ScanTracker,
        view,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        on_state_change=None,
    ):
        iface = link.interface()
        name = f"wpa {iface.name}" if iface else "wpa"
        super().__init__(name, loop, registry, retry_interval, on_state_change)
        self.link = link
        self.tracker = tracker
        self.view = view
        self.iface_name = iface.name if iface else None

    def _open(self) -> int:
        return self.link.open()

    def _close(self) -> None:
        self.link.close()

    def _fileno(self) -> int:
        return self.link.fileno()

    def _dispatch(self) -> List[DaemonEvent]:
        return self.link.dispatch()

    def on_watching(self) -> None:
        self.link.rescan()

    def should_retry(self) -> bool:
        iface = self.link.interface()
        if iface is None or iface.reason in GONE_REASONS:
            logger.info(f"{self.name}: interface has gone, not reopening")
            return False
        return True

    def on_lost(self) -> None:
        self.discard_scans()

    def discard_scans(self) -> None:
        if self.iface_name and self.tracker.discard(self.iface_name):
            self.view.on_scan_updated(self.iface_name, [])

    def handle_event(self, event: DaemonEvent) -> None:
        if event.kind == EventKind.SCAN:
            self.handle_scan()
        elif event.kind == EventKind.STATUS:
            self.handle_status(event.status)

    def handle_status(self, status: Optional[str]) -> None:
        logger.info(f"{self.name}: WPA status {status}")
        if status == "down":
            self.connection_lost()

    def handle_scan(self) -> None:
        # The link may have been reopened under a new descriptor
        fd = self.link.fileno()
        if fd == -1:
            logger.error(f"{self.name}: no fd for scan results")
            self.connection_lost()
            return
        if fd != self.fd:
            if not self.registry.watch(fd, self._on_ready, self):
                self.connection_lost()
                return
            self.fd = fd

        iface = self.link.interface()
        if iface is None:
            logger.error(f"{self.name}: no interface for scan results")
            return
        self.iface_name = iface.name
        logger.info(f"{iface.name}: Received scan results")

        try:
            raw = self.link.scan_results()
        except OSError as e:
            logger.warning(f"{iface.name}: {e}")
            raw = []
        scans = process_scans(raw)
        self.tracker.update(iface, scans)
        self.view.on_scan_updated(iface.name, scans)

    def rescan(self) -> bool:
        if self.state != ConnectionState.WATCHING:
            return False
        return self.link.rescan()


class DaemonController(ConnectionController):
    """
    Lifecycle of the dhcpcd connection.

    Owns the wireless sub-controllers and their scan sets, which only live
    while dhcpcd itself is connected.
    """

    def __init__(
        self,
        client: DaemonClient,
        loop: MainLoop,
        registry: WatchRegistry,
        aggregator: StatusAggregator,
        notifier,
        view,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        on_state_change=None,
    ):
        super().__init__("dhcpcd", loop, registry, retry_interval, on_state_change)
        self.client = client
        self.aggregator = aggregator
        self.notifier = notifier
        self.view = view
        self.tracker = ScanTracker(notifier)
        self.wireless: Dict[int, WirelessController] = {}
        self.last_status: Optional[str] = None
        self.privileged = True

    def _open(self) -> int:
        try:
            fd = self.client.open(privileged=True)
            self.privileged = True
        except PermissionError as e:
            logger.info(f"dhcpcd: privileged open refused ({e}), "
                        f"falling back to unprivileged socket")
            fd = self.client.open(privileged=False)
            self.privileged = False
        return fd

    def _close(self) -> None:
        self.client.close()

    def _fileno(self) -> int:
        return self.client.fileno()

    def _dispatch(self) -> List[DaemonEvent]:
        return self.client.dispatch()

    def on_watching(self) -> None:
        self.start_wireless()

    def start_wireless(self) -> None:
        """
        Bring up a controller for every wireless link the client reports.

        Controllers whose link is no longer reported are stopped and
        dropped; closed controllers with no retry armed are reopened.
        """
        links = {id(link): link for link in self.client.wireless_links()}
        for key in [k for k in self.wireless if k not in links]:
            self.wireless.pop(key).stop()

        for key, link in links.items():
            controller = self.wireless.get(key)
            if controller is None:
                controller = WirelessController(
                    link, self.loop, self.registry, self.tracker, self.view,
                    self.retry_interval)
                self.wireless[key] = controller
                controller.start()
            elif controller.state == ConnectionState.CLOSED and \
                    controller.retry_handle is None:
                logger.info(f"{controller.name}: reopening")
                controller.start()

    def stop_departed(self, name: str) -> int:
        """Stop and drop the controllers bound to interface `name`."""
        gone = [k for k, c in self.wireless.items() if c.iface_name == name]
        for key in gone:
            self.wireless.pop(key).stop()
        return len(gone)

    def stop_wireless(self) -> None:
        for controller in self.wireless.values():
            controller.stop()
        self.wireless.clear()
        self.tracker.clear()

    def on_lost(self) -> None:
        self.stop_wireless()
        if self.last_status != "down":
            self._announce_down()

    def _announce_down(self) -> None:
        message = CONNECTION_LOST_MESSAGE if self.last_status else NOT_RUNNING_MESSAGE
        self.last_status = "down"
        self.aggregator.reset(message)
        self.view.on_connection_lost(message)

    def stop(self) -> None:
        self.stop_wireless()
        super().stop()

    def handle_event(self, event: DaemonEvent) -> None:
        if event.kind == EventKind.STATUS:
            self.handle_status(event.status)
        elif event.kind == EventKind.INTERFACE:
            self.handle_interface(event.interface)
        else:
            logger.debug(f"dhcpcd: ignoring {event.kind.value} event")

    def handle_status(self, status: Optional[str]) -> None:
        logger.info(f"Status changed to {status}")
        if status == "down":
            self._announce_down()
            self.connection_lost()
            return

        last = self.last_status
        if last is None or last == "down":
            logger.info(f"Connected to dhcpcd-{self.client.version()}")
            self.view.on_connection_restored(self.client.version())
            refresh = True
        else:
            refresh = last == "opened"
        self.last_status = status
        self.aggregator.update(self.client.interfaces(), show_messages=refresh)

    def handle_interface(self, iface) -> None:
        if iface is None:
            return
        if iface.reason not in QUIET_REASONS and iface.message:
            logger.info(iface.message)
            if self.aggregator.is_new_message(iface):
                icon = ICON_UP if iface.up else ICON_DOWN
                self.notifier.notify(NETWORK_EVENT_TITLE, iface.message, icon)

        if iface.reason == "DEPARTED":
            self.stop_departed(iface.name)
            if self.tracker.discard(iface.name):
                self.view.on_scan_updated(iface.name, [])
        elif iface.wireless:
            # A wireless interface may have just arrived
            self.start_wireless()

        self.aggregator.update(self.client.interfaces())

    def rescan(self) -> int:
        """Request a scan on every wireless link whose interface is tracked."""
        requested = 0
        if not self.tracker.has_wireless():
            return requested
        for controller in self.wireless.values():
            if controller.iface_name in self.tracker and controller.rescan():
                requested += 1
        return requested

    def get_status(self) -> Dict[str, object]:
        status = super().get_status()
        status['privileged'] = self.privileged
        status['last_status'] = self.last_status
        status['wireless'] = {c.name: c.get_status() for c in self.wireless.values()}
        status['scan_sets'] = self.tracker.names()
        return status
