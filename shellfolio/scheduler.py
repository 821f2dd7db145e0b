"""Cooperative timers for one session.

A session runs on a single thread: the connection loop waits for input with a
timeout of ``time_until_next()`` and calls ``run_due()`` after every wake-up.
The intro animation and the arcade tick are the only users.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Tuple

LOGGER = logging.getLogger(__name__)


class TimerHandle:
    def __init__(self, callback: Callable[[], None], interval: Optional[float]):
        self.callback = callback
        self.interval = interval
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback, None)
        self._push(self.clock() + max(0.0, delay), handle)
        return handle

    def call_repeating(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` every ``interval`` seconds until cancelled."""
        handle = TimerHandle(callback, interval)
        self._push(self.clock() + interval, handle)
        LOGGER.debug("Scheduled repeating timer every %.3fs", interval)
        return handle

    def _push(self, when: float, handle: TimerHandle) -> None:
        heapq.heappush(self._queue, (when, next(self._counter), handle))

    def time_until_next(self) -> Optional[float]:
        """Seconds until the next live timer, or None if nothing is pending."""
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)
        if not self._queue:
            return None
        return max(0.0, self._queue[0][0] - self.clock())

    def run_due(self) -> int:
        """Run every timer whose deadline has passed. Returns how many ran."""
        ran = 0
        now = self.clock()
        while self._queue and self._queue[0][0] <= now:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            if handle.interval is not None:
                following = when + handle.interval
                if following <= now:
                    following = now + handle.interval
                self._push(following, handle)
            handle.callback()
            ran += 1
        return ran

    def __len__(self) -> int:
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)
