"""
Aggregate network status across all dhcpcd interfaces.
Folds per-interface up/carrier state into one state and a tooltip.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional

logger = logging.getLogger(__name__)

NOT_RUNNING_MESSAGE = "dhcpcd not running"
CONNECTION_LOST_MESSAGE = "Connection to dhcpcd lost"


class NetworkState(Enum):
    """Aggregate state; the view maps each to an icon animation."""
    OFFLINE = "offline"     # Static offline icon
    CARRIER = "carrier"     # Link is up, no address yet
    ONLINE = "online"       # At least one protocol is configured


@dataclass
class AggregateStatus:
    """Derived online/carrier flags, recomputed on every event."""
    online: bool = False
    carrier: bool = False

    @property
    def carrier_only(self) -> bool:
        return self.carrier and not self.online

    @property
    def state(self) -> NetworkState:
        if self.online:
            return NetworkState.ONLINE
        if self.carrier:
            return NetworkState.CARRIER
        return NetworkState.OFFLINE


class StatusAggregator:
    """
    Tracks the aggregate status and pushes it to the view.

    The view is told about the state and tooltip on every update; whether
    the state actually changed is available through `changed` so the view
    can restart its animation only on transitions.
    """

    def __init__(self, view):
        self.view = view
        self.status = AggregateStatus()
        self.changed = False
        self._last_messages: Dict[str, str] = {}

    @property
    def state(self) -> NetworkState:
        return self.status.state

    def update(self, interfaces: Iterable, show_messages: bool = False) -> AggregateStatus:
        """
        Recompute the aggregate from the full interface list.

        Args:
            interfaces: Every current dhcpcd interface record
            show_messages: Also log each interface message

        Returns:
            The new aggregate status
        """
        online = carrier = False
        messages = []
        for iface in interfaces:
            if iface.is_link:
                if iface.up:
                    carrier = True
            elif iface.up:
                online = True

            if iface.message:
                if show_messages:
                    logger.info(iface.message)
                messages.append(iface.message)
            elif show_messages:
                logger.info(f"{iface.name}: {iface.reason}")

        new_status = AggregateStatus(online=online, carrier=carrier)
        self.changed = new_status != self.status
        if self.changed:
            logger.info(
                f"Network state {self.status.state.value} -> "
                f"{new_status.state.value}")
        self.status = new_status
        self.view.on_status_changed(new_status.state, "\n".join(messages))
        return new_status

    def reset(self, tooltip: str) -> None:
        """dhcpcd went away: force offline and show `tooltip`."""
        self.changed = self.status.state != NetworkState.OFFLINE
        self.status = AggregateStatus()
        self._last_messages.clear()
        self.view.on_status_changed(NetworkState.OFFLINE, tooltip)

    def is_new_message(self, iface) -> bool:
        """
        True if `iface.message` differs from the last message seen for the
        same interface record. Records the message.
        """
        if not iface.message:
            return False
        key = f"{iface.name}/{iface.type}"
        new = self._last_messages.get(key) != iface.message
        self._last_messages[key] = iface.message
        return new

    def get_status(self) -> Dict[str, Optional[object]]:
        return {
            'state': self.status.state.value,
            'online': self.status.online,
            'carrier': self.status.carrier,
        }
