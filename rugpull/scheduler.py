"""Deferred-callback sources for the round loop.

The controller only ever asks for "now" and "call this after N seconds".
VirtualScheduler drives that from a manual clock (tests, offline runs);
ThreadingScheduler drives it from threading.Timer like the deck games do.
"""

import heapq
import itertools
import threading
import time
from collections.abc import Callable


class Handle:
    """Cancellable reference to a scheduled callback."""

    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False
        self._timer: threading.Timer | None = None

    def cancel(self):
        self.cancelled = True
        if self._timer:
            self._timer.cancel()


class VirtualScheduler:
    """Manual clock. Time moves only when advance() is called."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list[tuple[float, int, Handle]] = []
        self._seq = itertools.count()
        self.lock = threading.RLock()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle:
        handle = Handle(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def cancel_all(self):
        for _, _, handle in self._queue:
            handle.cancel()
        self._queue.clear()

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running every callback that falls due.

        Callbacks scheduled by callbacks run in the same pass if they are
        due before the target time.
        """
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = when
            handle.callback()
        self._now = target


class ThreadingScheduler:
    """Wall-clock scheduler on daemon threading.Timer threads.

    Every callback runs under `lock`; hold the same lock for anything else
    that touches the controller (key presses).
    """

    def __init__(self, lock=None):
        self.lock = lock or threading.RLock()
        self._handles: set[Handle] = set()
        self._handles_lock = threading.Lock()

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle:
        handle = Handle(self.now() + delay, callback)

        def _run():
            with self.lock:
                # stays registered until it holds the lock
                with self._handles_lock:
                    self._handles.discard(handle)
                if not handle.cancelled:
                    callback()

        timer = threading.Timer(max(0.0, delay), _run)
        timer.daemon = True
        handle._timer = timer
        with self._handles_lock:
            self._handles.add(handle)
        timer.start()
        return handle

    def cancel_all(self):
        """Cancel everything still pending. Call on shutdown."""
        with self._handles_lock:
            for handle in self._handles:
                handle.cancel()
            self._handles.clear()
