"""
Sequential Processing Queue

Runs one document parse at a time in FIFO order on a background thread.
enqueue() never blocks on parsing: it appends the id and, if no drain thread
is running, starts one. The drain thread exits once the queue is empty; the
next enqueue() starts a fresh one.

The deque and the draining flag are only touched while holding the lock.
"""

import threading
from collections import deque
from typing import Any, Callable

from studyscribe.logging_config import debug_log, error


class SequentialProcessingQueue:
    """
    FIFO work queue with a single consumer.

    Example:
        queue = SequentialProcessingQueue(parsing_service.parse_document)
        queue.enqueue(7)
        queue.enqueue(8)   # runs after 7 finishes
    """

    def __init__(self, processor: Callable[[int], Any], name: str = "parse-queue"):
        """
        Args:
            processor: Called with one item id at a time; exceptions are logged
            name: Thread name for the drain loop
        """
        self._processor = processor
        self._name = name
        self._queue: deque[int] = deque()
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._draining = False

    def enqueue(self, item_id: int) -> None:
        """Append an item and make sure a drain loop is running."""
        with self._lock:
            self._queue.append(item_id)
            debug_log(f"[PARSE QUEUE] Enqueued {item_id} ({len(self._queue)} pending)")
            if self._draining:
                return
            self._draining = True

        thread = threading.Thread(target=self._drain, name=self._name, daemon=True)
        try:
            thread.start()
        except RuntimeError:
            with self._lock:
                self._draining = False
                self._idle.notify_all()
            raise

    def pending(self) -> list[int]:
        """Snapshot of ids waiting to be processed (excludes the one in flight)."""
        with self._lock:
            return list(self._queue)

    @property
    def is_draining(self) -> bool:
        with self._lock:
            return self._draining

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """
        Block until the queue is empty and no item is in flight.

        Returns:
            False if the timeout expired first
        """
        with self._idle:
            return self._idle.wait_for(
                lambda: not self._draining and not self._queue, timeout=timeout
            )

    def _drain(self) -> None:
        while True:
            with self._lock:
                if not self._queue:
                    self._draining = False
                    self._idle.notify_all()
                    return
                item_id = self._queue.popleft()

            try:
                self._processor(item_id)
            except Exception as e:
                error(f"[PARSE QUEUE] Processing error for item {item_id}: {e}")
