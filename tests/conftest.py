"""
Shared test setup.

STUDYSCRIBE_HOME must point at a scratch directory before studyscribe.config
is imported, otherwise the suite would write logs and settings into the
user's real app data directory.
"""

import os
import sys
import tempfile
from pathlib import Path

os.environ.setdefault("STUDYSCRIBE_HOME", tempfile.mkdtemp(prefix="studyscribe-tests-"))

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest  # noqa: E402


class ScriptedClient:
    """
    Stand-in for OllamaClient.

    Each generate() call consumes the next scripted response:
    - a list of strings is returned as a plain iterator of increments
    - an exception instance is raised from generate() itself
    - a callable is invoked and its result returned (for mid-stream failures)
    The last response repeats once the script runs out.
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        index = min(len(self.requests), len(self.responses)) - 1
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response()
        return iter(response)

    @property
    def call_count(self) -> int:
        return len(self.requests)


class EventRecorder:
    """Observer that keeps every StreamEvent it receives."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    @property
    def terminal_events(self):
        return [e for e in self.events if e.done]

    @property
    def increments(self):
        return [e for e in self.events if not e.done]


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def scripted_client():
    return ScriptedClient
