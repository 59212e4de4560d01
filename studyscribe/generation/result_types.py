"""
Result Types for AI Generation Jobs

GenerationOutcome is what a job runner hands back to its caller after the
terminal event has been emitted. The observer learns the same facts from the
event stream; the outcome exists for callers that run jobs inline (tests,
scripts) and want timing information.
"""

from __future__ import annotations

from dataclasses import dataclass, field

GENERIC_FAILURE_MESSAGE = "Unknown error during AI generation"


@dataclass
class GenerationOutcome:
    """
    Result of one generation job.

    Attributes:
        success: True if the result was persisted
        text: Final generated text (empty on failure)
        error_message: Failure description sent in the terminal event
        chunk_count: Number of chunks processed (1 for single-pass jobs)
        result_id: Identifier of the persisted record, when the store returns one
        attempts: Generation attempts made (quiz jobs)
        timing: Milliseconds per phase
    """
    success: bool = True
    text: str = ""
    error_message: str | None = None
    chunk_count: int = 0
    result_id: int | None = None
    attempts: int = 0
    timing: dict = field(default_factory=dict)

    def __post_init__(self):
        """Failed outcomes always carry a message."""
        if not self.success and not self.error_message:
            self.error_message = GENERIC_FAILURE_MESSAGE

    def fail(self, message: str | None) -> None:
        self.success = False
        self.text = ""
        self.error_message = message or GENERIC_FAILURE_MESSAGE

    @property
    def total_time_ms(self) -> float:
        return sum(self.timing.values())
