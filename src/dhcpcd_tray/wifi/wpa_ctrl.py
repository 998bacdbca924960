"""
wpa_supplicant control socket link.
Talks to <ctrl_dir>/<ifname> directly: one attached socket receives events,
a second one carries SCAN / SCAN_RESULTS requests.
"""

import errno
import itertools
import logging
import os
import re
import socket
import tempfile
from typing import List, Optional, Tuple

from ..daemon.adapter import DaemonEvent, EventKind, Interface
from .adapter import ScanRecord, WirelessLink

logger = logging.getLogger(__name__)

DEFAULT_CTRL_DIR = "/var/run/wpa_supplicant"

_PRIORITY = re.compile(r"^<\d+>")
_local_ids = itertools.count()

# Unsolicited event -> status reported to the controller
_STATUS_EVENTS = {
    "CTRL-EVENT-TERMINATING": "down",
    "CTRL-EVENT-CONNECTED": "connected",
    "CTRL-EVENT-DISCONNECTED": "disconnected",
}


def parse_event(message: str) -> Optional[DaemonEvent]:
    """Decode one unsolicited control socket message."""
    message = _PRIORITY.sub("", message.strip())
    if message.startswith("CTRL-EVENT-SCAN-RESULTS"):
        return DaemonEvent(EventKind.SCAN)
    for prefix, status in _STATUS_EVENTS.items():
        if message.startswith(prefix):
            return DaemonEvent(EventKind.STATUS, status=status)
    return None


def parse_scan_results(text: str) -> List[ScanRecord]:
    """
    Parse a SCAN_RESULTS reply.

    Format: header line, then bssid / frequency / signal level / flags / ssid
    separated by tabs. Malformed rows are skipped.
    """
    records = []
    for line in text.split('\n')[1:]:  # Skip header
        if not line.strip():
            continue

        parts = line.split('\t')
        if len(parts) < 4:
            continue

        try:
            frequency = int(parts[1])
            signal_level = int(parts[2])  # dBm value
        except ValueError:
            logger.debug(f"Skipping malformed scan row: {line!r}")
            continue

        ssid = parts[4] if len(parts) > 4 else ""
        records.append(ScanRecord(ssid, parts[0], signal_level, frequency, parts[3]))
    return records


class WpaCtrlLink(WirelessLink):
    """WirelessLink over the wpa_supplicant control interface."""

    def __init__(
            self,
            interface: Interface,
            ctrl_dir: str = DEFAULT_CTRL_DIR,
            timeout: float = 2.0):
        """
        Args:
            interface: dhcpcd interface the supplicant manages
            ctrl_dir: Directory holding the supplicant control sockets
            timeout: Seconds to wait for a request reply
        """
        self._interface = interface
        self.ctrl_path = os.path.join(ctrl_dir, interface.name)
        self.timeout = timeout
        self._ctrl: Optional[Tuple[socket.socket, str]] = None
        self._monitor: Optional[Tuple[socket.socket, str]] = None

    def _connect(self) -> Tuple[socket.socket, str]:
        local = os.path.join(
            tempfile.gettempdir(),
            f"dhcpcd_tray_{os.getpid()}-{next(_local_ids)}")
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
        try:
            sock.bind(local)
            sock.connect(self.ctrl_path)
        except OSError:
            sock.close()
            _unlink(local)
            raise
        sock.settimeout(self.timeout)
        return sock, local

    def _request(self, conn: Tuple[socket.socket, str], command: str) -> str:
        sock, _ = conn
        sock.send(command.encode())
        return sock.recv(65536).decode('utf-8', errors='replace')

    def open(self) -> int:
        self.close()
        try:
            self._ctrl = self._connect()
            self._monitor = self._connect()
            reply = self._request(self._monitor, "ATTACH").strip()
        except OSError:
            self.close()
            raise
        if reply != "OK":
            self.close()
            raise OSError(errno.EIO, f"ATTACH to {self.ctrl_path} failed: {reply}")

        sock, _ = self._monitor
        sock.setblocking(False)
        logger.info(f"{self._interface.name}: attached to wpa_supplicant")
        return sock.fileno()

    def close(self) -> None:
        for conn in (self._monitor, self._ctrl):
            if conn is not None:
                sock, local = conn
                sock.close()
                _unlink(local)
        self._ctrl = self._monitor = None

    def fileno(self) -> int:
        if self._monitor is None:
            return -1
        return self._monitor[0].fileno()

    def dispatch(self) -> List[DaemonEvent]:
        if self._monitor is None:
            return []
        sock, _ = self._monitor
        events = []
        while True:
            try:
                data = sock.recv(4096)
            except BlockingIOError:
                break
            if not data:
                break
            event = parse_event(data.decode('utf-8', errors='replace'))
            if event is not None:
                events.append(event)
        return events

    def scan_results(self) -> List[ScanRecord]:
        if self._ctrl is None:
            return []
        return parse_scan_results(self._request(self._ctrl, "SCAN_RESULTS"))

    def interface(self) -> Optional[Interface]:
        return self._interface

    def set_interface(self, interface: Interface) -> None:
        self._interface = interface

    def rescan(self) -> bool:
        if self._ctrl is None:
            return False
        try:
            reply = self._request(self._ctrl, "SCAN")
        except OSError as e:
            logger.warning(f"{self._interface.name}: scan request failed: {e}")
            return False
        if 'FAIL' in reply:
            logger.debug(f"{self._interface.name}: scan refused: {reply.strip()}")
            return False
        return True


def _unlink(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
