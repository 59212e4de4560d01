"""
Tests for SequentialProcessingQueue.

Tests cover:
- FIFO order
- Never more than one item in flight
- Failure isolation between items
- Drain loop restart after going idle
"""

import logging
import threading
import time

from studyscribe.extraction.processing_queue import SequentialProcessingQueue


class RecordingProcessor:
    """Processor that records order and detects overlapping calls."""

    def __init__(self, delay=0.0, fail_on=()):
        self.processed = []
        self.delay = delay
        self.fail_on = set(fail_on)
        self.max_in_flight = 0
        self._in_flight = 0
        self._lock = threading.Lock()

    def __call__(self, item_id):
        with self._lock:
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            time.sleep(self.delay)
            if item_id in self.fail_on:
                raise RuntimeError(f"cannot parse {item_id}")
            self.processed.append(item_id)
        finally:
            with self._lock:
                self._in_flight -= 1


class TestSequentialProcessingQueue:

    def test_processes_in_enqueue_order(self):
        processor = RecordingProcessor(delay=0.01)
        queue = SequentialProcessingQueue(processor)

        for item_id in (3, 1, 2):
            queue.enqueue(item_id)

        assert queue.wait_until_idle(timeout=5)
        assert processor.processed == [3, 1, 2]

    def test_never_processes_concurrently(self):
        processor = RecordingProcessor(delay=0.02)
        queue = SequentialProcessingQueue(processor)

        threads = [threading.Thread(target=queue.enqueue, args=(i,)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert queue.wait_until_idle(timeout=5)
        assert sorted(processor.processed) == list(range(6))
        assert processor.max_in_flight == 1

    def test_failure_does_not_block_next_item(self):
        processor = RecordingProcessor(fail_on={1})
        queue = SequentialProcessingQueue(processor)

        queue.enqueue(1)
        queue.enqueue(2)

        assert queue.wait_until_idle(timeout=5)
        assert processor.processed == [2]
        assert not queue.is_draining

    def test_failure_is_logged_with_queue_prefix(self, caplog):
        queue = SequentialProcessingQueue(RecordingProcessor(fail_on={7}))

        with caplog.at_level(logging.ERROR, logger="StudyScribe"):
            queue.enqueue(7)
            assert queue.wait_until_idle(timeout=5)

        messages = [r.getMessage() for r in caplog.records if r.name == "StudyScribe"]
        assert messages == ["[PARSE QUEUE] Processing error for item 7: cannot parse 7"]

    def test_restarts_after_idle(self):
        processor = RecordingProcessor()
        queue = SequentialProcessingQueue(processor)

        queue.enqueue(1)
        assert queue.wait_until_idle(timeout=5)
        queue.enqueue(2)
        assert queue.wait_until_idle(timeout=5)

        assert processor.processed == [1, 2]

    def test_pending_snapshot(self):
        release = threading.Event()
        started = threading.Event()

        def blocking_processor(item_id):
            started.set()
            release.wait(timeout=5)

        queue = SequentialProcessingQueue(blocking_processor)
        queue.enqueue(1)
        assert started.wait(timeout=5)
        queue.enqueue(2)
        queue.enqueue(3)

        assert queue.pending() == [2, 3]
        assert queue.is_draining
        assert not queue.wait_until_idle(timeout=0.05)

        release.set()
        assert queue.wait_until_idle(timeout=5)
        assert queue.pending() == []

    def test_idle_queue(self):
        queue = SequentialProcessingQueue(RecordingProcessor())
        assert queue.wait_until_idle(timeout=0)
        assert not queue.is_draining
