"""
Execution strategies for background jobs.

    ExecutorStrategy   - interface used by AIJobService
    ThreadPoolStrategy - bounded worker threads (production)
    SequentialStrategy - inline execution (tests)
"""

from .executor_strategy import (
    ExecutorStrategy,
    SequentialStrategy,
    ThreadPoolStrategy,
)

__all__ = [
    'ExecutorStrategy',
    'ThreadPoolStrategy',
    'SequentialStrategy',
]
