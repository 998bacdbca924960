"""
Registry of descriptor watches.
Maps a descriptor, or the object that owns it, to a live main loop watch.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .mainloop import MainLoop

logger = logging.getLogger(__name__)


@dataclass
class Watch:
    """A live registration of `fd` on the main loop on behalf of `owner`."""
    owner: Any
    fd: int
    handle: int


class WatchRegistry:
    """
    At most one watch per descriptor and per owner.

    Entries are keyed by fd; owners have a secondary index since owner
    based removal is the common path when a connection goes away.
    """

    def __init__(self, loop: MainLoop):
        self.loop = loop
        self._by_fd: Dict[int, Watch] = {}
        self._by_owner: Dict[int, Watch] = {}    # id(owner) -> watch

    def find(self, fd: Optional[int] = None, owner: Any = None) -> Optional[Watch]:
        """Return the watch matching fd, else the one matching owner."""
        if fd is not None and fd in self._by_fd:
            return self._by_fd[fd]
        if owner is not None:
            return self._by_owner.get(id(owner))
        return None

    def watch(self, fd: int, on_ready: Callable[[int], None], owner: Any) -> bool:
        """
        Register `on_ready` for readiness on `fd`.

        Re-registering the same fd is a no-op. A watch held by `owner` on
        another fd is released first.

        Returns:
            False if the main loop refused the descriptor
        """
        existing = self.find(fd, owner)
        if existing is not None:
            if existing.fd == fd:
                return True
            self._release(existing)

        try:
            handle = self.loop.add_watch(fd, on_ready)
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"Error creating watch for fd {fd}: {e}")
            return False

        entry = Watch(owner=owner, fd=fd, handle=handle)
        self._by_fd[fd] = entry
        self._by_owner[id(owner)] = entry
        return True

    def unwatch(self, fd: Optional[int] = None, owner: Any = None) -> bool:
        """Remove the watch matching fd or owner. Returns False if none."""
        entry = self.find(fd, owner)
        if entry is None:
            return False
        self._release(entry)
        return True

    def _release(self, entry: Watch) -> None:
        self._by_fd.pop(entry.fd, None)
        if self._by_owner.get(id(entry.owner)) is entry:
            del self._by_owner[id(entry.owner)]
        self.loop.source_remove(entry.handle)
        logger.debug(f"Released watch on fd {entry.fd}")

    def __len__(self) -> int:
        return len(self._by_fd)

    def __contains__(self, fd: int) -> bool:
        return fd in self._by_fd

    def fds(self):
        return sorted(self._by_fd)
