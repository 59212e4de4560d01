"""
Shared helper for consuming one streamed generation call.

Every increment is re-emitted as a non-terminal StreamEvent and accumulated.
The stream is always closed afterwards, so an exception raised mid-stream
(or by the caller) releases the HTTP connection.
"""

from studyscribe.ai.ollama_client import GenerationRequest

from .events import EventSink, OperationType, StreamEvent, safe_emit


def stream_generation(
    client,
    request: GenerationRequest,
    emit: EventSink,
    document_id: int,
    operation_type: OperationType,
    chunk_index: int | None = None,
    total_chunks: int | None = None,
    component: str = "GENERATION",
) -> str:
    """
    Run one generation call to completion.

    Args:
        client: Anything with generate(request) returning an iterable of strings
        request: The generation request
        emit: Job observer
        document_id: Document the job belongs to
        operation_type: Job kind, copied into every event
        chunk_index: Chunk position for chunked jobs (total_chunks for combining)
        total_chunks: Chunk count for chunked jobs
        component: Log prefix for observer errors

    Returns:
        The concatenated text of all increments
    """
    parts = []
    stream = client.generate(request)
    try:
        for increment in stream:
            parts.append(increment)
            safe_emit(
                emit,
                StreamEvent(
                    document_id=document_id,
                    operation_type=operation_type,
                    chunk=increment,
                    done=False,
                    chunk_index=chunk_index,
                    total_chunks=total_chunks,
                ),
                component,
            )
    finally:
        close = getattr(stream, "close", None)
        if close is not None:
            close()
    return "".join(parts)
