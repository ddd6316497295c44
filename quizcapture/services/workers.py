"""Runners for the fire-and-forget calls made by the session core."""

import asyncio
import logging
import queue
import threading
import time
from typing import Any, Awaitable, Callable, NamedTuple, Optional

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[Any], None]
FailureCallback = Callable[[Exception], None]


class CallTask(NamedTuple):
    """A task to be processed by a worker thread."""
    name: str
    call: Callable[[], Awaitable[Any]]
    on_success: SuccessCallback
    on_failure: FailureCallback


async def _execute(task: CallTask) -> None:
    try:
        result = await task.call()
    except Exception as e:
        logger.warning(f"Call '{task.name}' failed: {e}")
        task.on_failure(e)
        return
    task.on_success(result)


class InlineCallRunner:
    """Runs each call to completion on the submitting thread."""

    def submit(self, name: str, call: Callable[[], Awaitable[Any]],
               on_success: SuccessCallback, on_failure: FailureCallback) -> None:
        logger.debug(f"Running call '{name}' inline")
        asyncio.run(_execute(CallTask(name, call, on_success, on_failure)))

    def shutdown(self, timeout: float = 0.0) -> bool:
        return True


class AsyncCallRunner:
    """Manages a pool of worker threads, each driving its own asyncio loop."""

    def __init__(self, name: str = "calls", max_concurrent_threads: int = 2):
        self.name = name
        self.max_concurrent_threads = max_concurrent_threads
        self.task_queue: "queue.Queue[Optional[CallTask]]" = queue.Queue()
        self.worker_threads = []
        self.shutdown_event = threading.Event()
        self._start_workers()

    def _start_workers(self) -> None:
        for i in range(self.max_concurrent_threads):
            thread = threading.Thread(target=self._worker_loop)
            thread.name = f"worker_{self.name}_{i}"
            thread.daemon = True
            thread.start()
            self.worker_threads.append(thread)
        logger.info(f"Started {len(self.worker_threads)} {self.name} call workers")

    def _worker_loop(self) -> None:
        thread_name = threading.current_thread().name
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            while True:
                task = self.task_queue.get()
                if task is None:
                    logger.debug(f"Worker {thread_name} received sentinel, exiting.")
                    self.task_queue.task_done()
                    break
                try:
                    loop.run_until_complete(_execute(task))
                except Exception as e:
                    logger.error(f"Unhandled exception in call '{task.name}' on {thread_name}: {e}",
                                 exc_info=True)
                finally:
                    self.task_queue.task_done()
        finally:
            loop.close()
            logger.debug(f"Worker thread {thread_name} closed its event loop.")

    def submit(self, name: str, call: Callable[[], Awaitable[Any]],
               on_success: SuccessCallback, on_failure: FailureCallback) -> None:
        if self.shutdown_event.is_set():
            logger.warning(f"[{self.name}] Rejecting call '{name}' after shutdown")
            return
        self.task_queue.put(CallTask(name, call, on_success, on_failure))

    def shutdown(self, timeout: float = 30.0) -> bool:
        """Let queued calls finish, then stop the workers."""
        logger.info(f"[{self.name}] Shutting down call runner...")
        self.shutdown_event.set()

        drained = False
        start_time = time.time()
        while time.time() - start_time < timeout:
            if self.task_queue.unfinished_tasks == 0:
                drained = True
                break
            time.sleep(0.05)
        if not drained:
            logger.warning(
                f"[{self.name}] Timeout reached with {self.task_queue.unfinished_tasks} calls pending.")

        for _ in self.worker_threads:
            self.task_queue.put(None)
        for thread in self.worker_threads:
            thread.join(2.0)
            if thread.is_alive():
                logger.warning(f"Worker thread {thread.name} did not terminate cleanly.")

        logger.info(f"[{self.name}] Call runner shutdown complete.")
        return drained
