"""Scheduling primitives used to drive segmentation and timer ticks.

The engines never sleep. Periodic ticks and one-shot delays are registered
with a scheduler whose callbacks only enqueue events on the controller.
`ThreadingScheduler` runs callbacks on one background thread;
`ManualScheduler` is advanced explicitly, which keeps tests deterministic.
"""

import heapq
import itertools
import logging
import threading
import time
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ScheduledHandle:
    """Handle returned by a scheduler; `cancel()` prevents further runs."""

    def __init__(self, callback: Callable[[], None], interval_ms: Optional[int]):
        self.callback = callback
        self.interval_ms = interval_ms
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    """Base scheduler: a millisecond clock plus delayed and periodic calls."""

    def now(self) -> int:
        raise NotImplementedError

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledHandle:
        raise NotImplementedError

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> ScheduledHandle:
        raise NotImplementedError

    def shutdown(self) -> None:
        pass


class _HeapScheduler(Scheduler):
    """Shared heap bookkeeping for both scheduler implementations."""

    def __init__(self):
        self._heap: List[Tuple[int, int, ScheduledHandle]] = []
        self._sequence = itertools.count()

    def _push(self, due_ms: int, handle: ScheduledHandle) -> None:
        heapq.heappush(self._heap, (due_ms, next(self._sequence), handle))

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledHandle:
        handle = ScheduledHandle(callback, None)
        self._schedule(self.now() + max(0, int(delay_ms)), handle)
        return handle

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> ScheduledHandle:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        handle = ScheduledHandle(callback, int(interval_ms))
        self._schedule(self.now() + handle.interval_ms, handle)
        return handle

    def _schedule(self, due_ms: int, handle: ScheduledHandle) -> None:
        self._push(due_ms, handle)

    def _run_handle(self, due_ms: int, handle: ScheduledHandle) -> None:
        if handle.cancelled:
            return
        if handle.interval_ms is not None:
            self._schedule(due_ms + handle.interval_ms, handle)
        try:
            handle.callback()
        except Exception as e:
            logger.error(f"Scheduled callback failed: {e}", exc_info=True)


class ManualScheduler(_HeapScheduler):
    """Fake clock advanced by hand; callbacks run on the caller's thread."""

    def __init__(self, start_ms: int = 0):
        super().__init__()
        self._now = start_ms

    def now(self) -> int:
        return self._now

    def advance(self, delta_ms: int) -> None:
        """Move the clock forward, running every callback that falls due."""
        self.advance_to(self._now + delta_ms)

    def advance_to(self, target_ms: int) -> None:
        while self._heap and self._heap[0][0] <= target_ms:
            due_ms, _, handle = heapq.heappop(self._heap)
            self._now = max(self._now, due_ms)
            self._run_handle(due_ms, handle)
        self._now = max(self._now, target_ms)

    def pending(self) -> int:
        return sum(1 for _, _, handle in self._heap if not handle.cancelled)


class ThreadingScheduler(_HeapScheduler):
    """Wall-clock scheduler running callbacks on one daemon thread."""

    def __init__(self):
        super().__init__()
        self._condition = threading.Condition()
        self._stopped = False
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.name = "SessionSchedulerThread"
        self._thread.start()
        logger.info("ThreadingScheduler started")

    def now(self) -> int:
        return int(time.time() * 1000)

    def _schedule(self, due_ms: int, handle: ScheduledHandle) -> None:
        with self._condition:
            self._push(due_ms, handle)
            self._condition.notify()

    def _run(self) -> None:
        while True:
            with self._condition:
                while not self._stopped:
                    if not self._heap:
                        self._condition.wait()
                        continue
                    wait_ms = self._heap[0][0] - self.now()
                    if wait_ms <= 0:
                        break
                    self._condition.wait(wait_ms / 1000.0)
                if self._stopped:
                    return
                due_ms, _, handle = heapq.heappop(self._heap)
            self._run_handle(due_ms, handle)

    def shutdown(self) -> None:
        with self._condition:
            self._stopped = True
            self._condition.notify_all()
        self._thread.join(2.0)
        if self._thread.is_alive():
            logger.warning("Scheduler thread did not terminate cleanly.")
        logger.info("ThreadingScheduler stopped")
