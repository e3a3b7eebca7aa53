from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List

logger = logging.getLogger(__name__)


@dataclass(order=True)
class _Pending:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)


class TimerQueue:
    """Cooperative fire-once timers driven by an external clock.

    The host advances time (frame updates, a game loop, or a test) and due
    callbacks run on the caller's thread in due order; callbacks that share a
    due time run in the order they were scheduled. Nothing here is ever
    cancelled: callers that need supersession check a token when they fire.

    Usage:
        timers = TimerQueue()
        timers.after(0.5, do_capture)
        timers.advance(0.5)   # do_capture runs here
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._heap: List[_Pending] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def after(self, delay: float, callback: Callable[[], None]) -> None:
        due = self._now + max(0.0, float(delay))
        heapq.heappush(self._heap, _Pending(due, next(self._seq), callback))
        logger.debug("Timer scheduled at t=%.3f (delay=%.3f)", due, delay)

    @property
    def pending(self) -> int:
        return len(self._heap)

    def advance(self, seconds: float) -> int:
        """Move the clock forward and fire everything that became due.

        Callbacks scheduled while firing run too when they fall inside the
        window. Returns how many callbacks ran.
        """
        target = self._now + max(0.0, float(seconds))
        fired = 0
        while self._heap and self._heap[0].due <= target:
            item = heapq.heappop(self._heap)
            self._now = item.due
            fired += 1
            try:
                item.callback()
            except Exception:  # pragma: no cover - callbacks are external
                logger.exception("Timer callback failed")
        self._now = target
        return fired

    def run_due(self) -> int:
        """Fire callbacks due at the current time without moving the clock."""
        return self.advance(0.0)

    def run_all(self, limit: int = 1000) -> int:
        """Drain the queue, jumping the clock to each due time in turn."""
        fired = 0
        while self._heap and fired < limit:
            fired += self.advance(self._heap[0].due - self._now)
        return fired
