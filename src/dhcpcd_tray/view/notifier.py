"""
Desktop notification gate.
Suppresses repeats of the notification text last shown.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class Notifier:
    """
    Shows notifications through a TrayView, one at a time.

    A body identical to the last shown body is dropped; any other body
    closes the pending notification before the new one is shown. With a
    loop and timeout, a shown notification is closed after `timeout`
    seconds.
    """

    def __init__(self, view, loop=None, timeout: Optional[float] = None):
        self.view = view
        self.loop = loop
        self.timeout = timeout
        self.last_text: Optional[str] = None
        self.pending = False
        self._expire_handle: Optional[int] = None

    def notify(self, title: str, body: Optional[str], icon: str) -> bool:
        """
        Returns:
            True if the notification was shown
        """
        if body is None:
            return False
        if body == self.last_text:
            logger.debug(f"Suppressed repeated notification: {title}")
            return False
        self.last_text = body

        self.close()
        self.view.show_notification(title, body, icon)
        self.pending = True
        if self.loop is not None and self.timeout:
            self._expire_handle = self.loop.timeout_add(self.timeout, self._expire)
        return True

    def _expire(self) -> bool:
        self._expire_handle = None
        self.close()
        return False

    def close(self) -> None:
        """Close the pending notification, if any."""
        if self._expire_handle is not None:
            self.loop.source_remove(self._expire_handle)
            self._expire_handle = None
        if self.pending:
            self.pending = False
            self.view.close_notification()

    def notification_closed(self) -> None:
        """The view reports the notification was closed."""
        self.pending = False
