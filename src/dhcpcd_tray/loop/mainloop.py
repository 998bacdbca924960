"""
Single-threaded event loop for descriptor watches and timers.
Multiplexes readiness with selectors and runs GLib-style timeout callbacks.
"""

import heapq
import itertools
import logging
import selectors
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Called with the ready descriptor
ReadyCallback = Callable[[int], None]

# Return True to keep a timer armed, anything else removes it
TimerCallback = Callable[[], Optional[bool]]


@dataclass(order=True)
class _Timer:
    """A scheduled timeout; ordered by deadline then creation."""
    deadline: float
    handle: int
    interval: float = field(compare=False)
    callback: TimerCallback = field(compare=False)


class MainLoop:
    """
    Cooperative event loop.

    Every watch and timer is identified by an integer handle, so a single
    `source_remove()` releases either kind. Callbacks run on the calling
    thread only; nothing here is thread-safe.
    """

    def __init__(self, selector: Optional[selectors.BaseSelector] = None):
        self._selector = selector or selectors.DefaultSelector()
        self._handles = itertools.count(1)
        self._watches: Dict[int, int] = {}          # handle -> fd
        self._timers: Dict[int, _Timer] = {}
        self._timer_queue: List[_Timer] = []
        self._running = False

    # Descriptor watches

    def add_watch(self, fd: int, callback: ReadyCallback) -> int:
        """
        Watch a descriptor for readability, error or hangup.

        Returns:
            Handle for source_remove()

        Raises:
            ValueError: If fd is not a valid descriptor
            KeyError: If fd is already watched
            OSError: If the kernel refuses the registration
        """
        handle = next(self._handles)
        self._selector.register(fd, selectors.EVENT_READ, (handle, callback))
        self._watches[handle] = fd
        logger.debug(f"Watching fd {fd} (handle {handle})")
        return handle

    def has_source(self, handle: int) -> bool:
        return handle in self._watches or handle in self._timers

    # Timers

    def timeout_add(self, seconds: float, callback: TimerCallback) -> int:
        """
        Run callback after `seconds`, and again every `seconds` for as
        long as it returns True.
        """
        handle = next(self._handles)
        timer = _Timer(time.monotonic() + seconds, handle, seconds, callback)
        self._timers[handle] = timer
        heapq.heappush(self._timer_queue, timer)
        return handle

    def source_remove(self, handle: int) -> bool:
        """Release a watch or timer. Unknown handles are ignored."""
        fd = self._watches.pop(handle, None)
        if fd is not None:
            try:
                self._selector.unregister(fd)
            except (KeyError, ValueError) as e:
                logger.debug(f"fd {fd} already gone from selector: {e}")
            return True
        # Timers are dropped lazily from the heap
        return self._timers.pop(handle, None) is not None

    def _next_timeout(self) -> Optional[float]:
        while self._timer_queue and \
                self._timer_queue[0].handle not in self._timers:
            heapq.heappop(self._timer_queue)
        if not self._timer_queue:
            return None
        return max(0.0, self._timer_queue[0].deadline - time.monotonic())

    def run_timers(self) -> int:
        """
        Fire every timer that was due on entry. Returns how many fired.

        Timers armed or re-armed by these callbacks wait for the next call,
        even when their deadline has already passed.
        """
        fired = 0
        now = time.monotonic()
        due = []
        while self._timer_queue and self._timer_queue[0].deadline <= now:
            due.append(heapq.heappop(self._timer_queue))
        for timer in due:
            if self._timers.get(timer.handle) is not timer:
                continue
            fired += 1
            if timer.callback():
                # Re-check: the callback may have removed its own handle
                if timer.handle in self._timers:
                    timer.deadline = now + timer.interval
                    heapq.heappush(self._timer_queue, timer)
            else:
                self._timers.pop(timer.handle, None)
        return fired

    # Dispatch

    def iterate(self, block: bool = True) -> bool:
        """
        Run one loop iteration: wait for readiness (or the next timer),
        dispatch ready descriptors in reported order, then due timers.

        Returns:
            True if any callback ran
        """
        timeout = self._next_timeout() if block else 0.0
        if block and timeout is None and not self._watches:
            return False

        events = self._selector.select(timeout)

        dispatched = False
        for key, _mask in events:
            handle, callback = key.data
            # An earlier callback in this batch may have removed the watch
            if handle not in self._watches:
                continue
            dispatched = True
            callback(key.fd)

        return self.run_timers() > 0 or dispatched

    def run(self) -> None:
        """Iterate until quit() is called or nothing is left to wait on."""
        self._running = True
        logger.info("Main loop started")
        while self._running:
            if not self._watches and self._next_timeout() is None:
                logger.info("Main loop has no sources left")
                break
            self.iterate(block=True)
        self._running = False
        logger.info("Main loop stopped")

    def quit(self) -> None:
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def close(self) -> None:
        """Drop every source and close the selector."""
        self._watches.clear()
        self._timers.clear()
        self._timer_queue.clear()
        self._selector.close()

    def get_status(self) -> Dict[str, int]:
        return {
            'watches': len(self._watches),
            'timers': len(self._timers),
        }
