"""
dhcpcd client interface for abstraction over the daemon control socket.
Allows test doubles to be injected in CI environments.
"""

import socket
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Deque, List, Optional, Sequence

if TYPE_CHECKING:
    from ..wifi.adapter import WirelessLink

# Reasons dhcpcd reports for routine lease maintenance
QUIET_REASONS = ("RENEW", "STOP", "STOPPED")

# Reasons after which an interface is gone for good
GONE_REASONS = ("DEPARTED", "STOPPED")


@dataclass
class Interface:
    """One dhcpcd interface record.

    dhcpcd reports several records per interface name: one of type "link"
    for the carrier, and one per configured protocol ("ipv4", "ipv6", ...).
    """
    name: str
    type: str = "link"
    up: bool = False
    reason: str = ""
    wireless: bool = False
    ssid: Optional[str] = None
    message: Optional[str] = None

    @property
    def is_link(self) -> bool:
        return self.type == "link"


class EventKind(Enum):
    """Kinds of events a client dispatch can produce."""
    STATUS = "status"
    INTERFACE = "interface"
    SCAN = "scan"


@dataclass
class DaemonEvent:
    """A decoded control socket event."""
    kind: EventKind
    status: Optional[str] = None
    interface: Optional[Interface] = None


class DaemonClient(ABC):
    """Abstract base class for dhcpcd control socket clients."""

    @abstractmethod
    def open(self, privileged: bool = True) -> int:
        """
        Connect to the dhcpcd control socket.

        Args:
            privileged: Use the privileged socket; False selects the
                unprivileged socket with read-only capability

        Returns:
            The connection descriptor

        Raises:
            PermissionError: If the privileged socket is not accessible
            OSError: If dhcpcd is not reachable
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
        Read and decode whatever is pending on the connection.

        Closes the connection (fileno() becomes -1) on end of stream.

        Raises:
            BlockingIOError: If nothing is pending
            OSError: On a read error
        """

    @abstractmethod
    def interfaces(self) -> List[Interface]:
        """Return the current interface records."""

    @abstractmethod
    def version(self) -> str:
        """Return the daemon version string."""

    @abstractmethod
    def wireless_links(self) -> Sequence["WirelessLink"]:
        """Return one supplicant link per wireless interface."""


class _SocketPairMixin:
    """In-process connection backed by a socketpair, so it can be selected."""

    def _init_pair(self) -> None:
        self._sock: Optional[socket.socket] = None
        self._peer: Optional[socket.socket] = None
        self._pending: Deque[DaemonEvent] = deque()

    def _connect_pair(self) -> int:
        self._sock, self._peer = socket.socketpair()
        self._sock.setblocking(False)
        return self._sock.fileno()

    def close(self) -> None:
        for sock in (self._sock, self._peer):
            if sock is not None:
                sock.close()
        self._sock = self._peer = None

    def fileno(self) -> int:
        return self._sock.fileno() if self._sock is not None else -1

    def push(self, event: DaemonEvent) -> None:
        """Queue an event and make the descriptor readable."""
        self._pending.append(event)
        if self._peer is not None:
            self._peer.send(b"\0")

    def hangup(self) -> None:
        """Close the far end, as the daemon does when it exits."""
        if self._peer is not None:
            self._peer.close()
            self._peer = None

    def dispatch(self) -> List[DaemonEvent]:
        if self._sock is None:
            return []
        data = self._sock.recv(4096)
        events = list(self._pending)
        self._pending.clear()
        if not data:
            self.close()
        return events


class MockDaemonClient(_SocketPairMixin, DaemonClient):
    """Mock dhcpcd client for testing without a running daemon."""

    def __init__(
            self,
            interfaces: Optional[List[Interface]] = None,
            links: Optional[List["WirelessLink"]] = None,
            daemon_version: str = "10.0.6"):
        self._init_pair()
        self._interfaces = list(interfaces or [])
        self._links = list(links or [])
        self._version = daemon_version
        self.open_errors: Deque[Optional[OSError]] = deque()
        self.open_calls: List[bool] = []

    def open(self, privileged: bool = True) -> int:
        self.open_calls.append(privileged)
        if self.open_errors:
            error = self.open_errors.popleft()
            if error is not None:
                raise error
        return self._connect_pair()

    def interfaces(self) -> List[Interface]:
        return list(self._interfaces)

    def set_interfaces(self, interfaces: List[Interface]) -> None:
        self._interfaces = list(interfaces)

    def set_links(self, links: List["WirelessLink"]) -> None:
        self._links = list(links)

    def version(self) -> str:
        return self._version

    def wireless_links(self) -> Sequence["WirelessLink"]:
        return list(self._links)
