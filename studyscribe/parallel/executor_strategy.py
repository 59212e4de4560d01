"""
Execution strategies for StudyScribe background jobs.

AIJobService hands each generation job to a strategy instead of creating
threads itself, so the same job code runs:

    # Production: jobs run on worker threads, submit() returns at once
    strategy = ThreadPoolStrategy(max_workers=4)

    # Tests: jobs run inline, events are complete when submit() returns
    strategy = SequentialStrategy()
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, TypeVar

from studyscribe.config import AI_MAX_CONCURRENT_JOBS

R = TypeVar('R')


class ExecutorStrategy(ABC):
    """
    Interface shared by all execution strategies.

    Attributes:
        max_workers: Number of jobs that may run at once (1 for sequential).
    """

    max_workers: int

    @abstractmethod
    def submit(self, fn: Callable[..., R], *args, **kwargs) -> Future:
        """
        Schedule fn(*args, **kwargs).

        Returns:
            Future holding the job's return value or exception.
        """

    @abstractmethod
    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        """
        Stop accepting jobs and release workers.

        Args:
            wait: If True, block until running jobs finish.
            cancel_futures: If True, drop jobs that have not started yet.
        """

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
        return False


class ThreadPoolStrategy(ExecutorStrategy):
    """
    Runs jobs on a bounded thread pool.

    Generation jobs spend almost all their time waiting on the Ollama HTTP
    stream, so threads are enough to keep several jobs in flight.

    Args:
        max_workers: Concurrent jobs. Defaults to AI_MAX_CONCURRENT_JOBS.
    """

    def __init__(self, max_workers: int | None = None):
        if max_workers is None:
            max_workers = AI_MAX_CONCURRENT_JOBS

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="studyscribe-job"
        )
        self.max_workers = max_workers

    def submit(self, fn: Callable[..., R], *args, **kwargs) -> Future:
        return self._executor.submit(fn, *args, **kwargs)

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)


class SequentialStrategy(ExecutorStrategy):
    """
    Runs each job inline on the calling thread.

    Used by tests: when submit() returns, the job has emitted all its events
    and the returned Future is already resolved.

    Example:
        service = AIJobService(store, settings, emit, client=stub,
                               strategy=SequentialStrategy())
    """

    def __init__(self):
        self.max_workers = 1

    def submit(self, fn: Callable[..., R], *args, **kwargs) -> Future:
        """Execute fn now and wrap the outcome in a completed Future."""
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        pass
