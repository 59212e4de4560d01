"""
Progress events for AI generation jobs.

Every job reports to exactly one observer through StreamEvent:
- Non-terminal events carry one text increment (done=False)
- Exactly one terminal event (done=True) ends the job; it carries `error`
  on failure and, for quiz jobs, the new quiz's `result_id` on success
- Chunked jobs set chunk_index/total_chunks; chunk_index == total_chunks
  marks the combining phase
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from studyscribe.logging_config import debug_log


class OperationType(str, Enum):
    """Kinds of generation job."""
    SUMMARY = "summary"
    KEY_POINTS = "key_points"
    KEY_TERMS = "key_terms"
    QUIZ = "quiz"


@dataclass(frozen=True)
class StreamEvent:
    document_id: int
    operation_type: OperationType
    chunk: str
    done: bool
    chunk_index: int | None = None
    total_chunks: int | None = None
    error: str | None = None
    result_id: int | None = None

    @property
    def is_combining(self) -> bool:
        """True for increments of the reduce phase of a chunked job."""
        return self.chunk_index is not None and self.chunk_index == self.total_chunks

    def to_dict(self) -> dict[str, Any]:
        """Wire shape for the host application; optional fields are omitted when unset."""
        payload = {
            "documentId": self.document_id,
            "operationType": self.operation_type.value,
            "chunk": self.chunk,
            "done": self.done,
        }
        if self.chunk_index is not None:
            payload["chunkIndex"] = self.chunk_index
            payload["totalChunks"] = self.total_chunks
        if self.error is not None:
            payload["error"] = self.error
        if self.result_id is not None:
            payload["resultId"] = self.result_id
        return payload


# Observer signature: receives every event of a job, in order
EventSink = Callable[[StreamEvent], None]


def safe_emit(emit: EventSink, event: StreamEvent, component: str) -> None:
    """
    Deliver an event, logging observer failures instead of failing the job.

    Args:
        emit: The job's observer
        event: Event to deliver
        component: Log prefix of the caller (e.g. "ORCHESTRATOR")
    """
    try:
        emit(event)
    except Exception as e:
        debug_log(f"[{component}] Event observer error: {e}")
