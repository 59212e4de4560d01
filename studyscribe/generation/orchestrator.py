"""
Chunked Generation Orchestrator for StudyScribe.

Runs long documents through a map-reduce pipeline:
1. MAP: one streamed generation per chunk, strictly in chunk order
2. REDUCE: one streamed generation over all labeled chunk results
3. PERSIST: hand the combined text to the job's persist callback
4. TERMINATE: emit exactly one done=True event

Any exception in any phase skips the remaining work and ends the job with
an error event. Per-chunk results are never persisted on their own.

Short documents skip the map phase; run_single_pass() gives them the same
terminal-event contract.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable

from studyscribe.ai.ollama_client import GenerationRequest
from studyscribe.chunking_engine import Chunk
from studyscribe.logging_config import debug_log, error, info

from .events import EventSink, OperationType, StreamEvent, safe_emit
from .prompts import fill_text
from .result_types import GenerationOutcome
from .streaming import stream_generation

CHUNKED_FAILURE_MESSAGE = "Unknown error during chunked AI generation"

# Persist callback: receives the final text, may return a record identifier
PersistCallback = Callable[[str], Any]


@dataclass
class ChunkedJob:
    """
    A long document prepared for map-reduce generation.

    Attributes:
        document_id: Document being processed
        operation_type: Job kind (summary, key_points, key_terms)
        chunks: Chunks from TextChunker, in document order
        per_chunk_prompt_template: Template applied to each chunk ({text})
        combine_prompt_template: Template applied to the joined chunk results ({text})
        model: Ollama model name
        endpoint: Ollama server URL
    """
    document_id: int
    operation_type: OperationType
    chunks: list[Chunk]
    per_chunk_prompt_template: str
    combine_prompt_template: str
    model: str
    endpoint: str
    consumed: bool = field(default=False, init=False)

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)


def format_chunk_results(chunk_results: list[str]) -> str:
    """Label each chunk result for the combine prompt."""
    return "\n\n".join(
        f"--- Chunk {i + 1} ---\n{result}" for i, result in enumerate(chunk_results)
    )


class ChunkedGenerationOrchestrator:
    """
    Map-reduce coordinator for one chunked generation job.

    Example:
        orchestrator = ChunkedGenerationOrchestrator(OllamaClient())
        outcome = orchestrator.run(job, emit=observer, persist=save_summary)
    """

    def __init__(self, client):
        """
        Args:
            client: Streaming client (OllamaClient or a test stand-in)
        """
        self.client = client

    def run(self, job: ChunkedJob, emit: EventSink, persist: PersistCallback) -> GenerationOutcome:
        """
        Process every chunk, combine, persist, then emit the terminal event.

        Args:
            job: Prepared chunked job (consumed by this call)
            emit: Observer receiving every StreamEvent of the job
            persist: Called once with the combined text, only on success

        Returns:
            GenerationOutcome mirroring the terminal event

        Raises:
            ValueError: If the job was already run
        """
        if job.consumed:
            raise ValueError(f"Chunked job for document {job.document_id} was already run")
        job.consumed = True

        total = job.total_chunks
        outcome = GenerationOutcome(chunk_count=total)

        info(
            f"[ORCHESTRATOR] Starting chunked {job.operation_type.value} generation "
            f"for document {job.document_id} ({total} chunks)"
        )

        try:
            if total == 0:
                raise ValueError("No chunks to process")

            chunk_results = self._phase_map(job, emit, outcome)
            final_text = self._phase_reduce(job, chunk_results, emit, outcome)

            start = time.time()
            outcome.result_id = persist(final_text)
            outcome.timing["persist"] = (time.time() - start) * 1000
            outcome.text = final_text

        except Exception as e:
            message = str(e) or CHUNKED_FAILURE_MESSAGE
            error(
                f"[ORCHESTRATOR] Error during chunked {job.operation_type.value} generation "
                f"for document {job.document_id}: {message}"
            )
            outcome.fail(message)
            safe_emit(emit, self._terminal_event(job, error=message), "ORCHESTRATOR")
            return outcome

        safe_emit(emit, self._terminal_event(job), "ORCHESTRATOR")
        info(
            f"[ORCHESTRATOR] Completed chunked {job.operation_type.value} generation "
            f"for document {job.document_id} in {outcome.total_time_ms / 1000:.1f}s"
        )
        return outcome

    def _phase_map(self, job: ChunkedJob, emit: EventSink, outcome: GenerationOutcome) -> list[str]:
        """MAP: one generation per chunk; chunk i finishes before chunk i+1 starts."""
        start = time.time()
        chunk_results = []

        for i, chunk in enumerate(job.chunks):
            request = GenerationRequest(
                model=job.model,
                prompt=fill_text(job.per_chunk_prompt_template, chunk.text),
                endpoint=job.endpoint,
            )
            chunk_text = stream_generation(
                self.client,
                request,
                emit,
                job.document_id,
                job.operation_type,
                chunk_index=i,
                total_chunks=job.total_chunks,
                component="ORCHESTRATOR",
            )
            chunk_results.append(chunk_text)
            debug_log(f"[ORCHESTRATOR] Chunk {i + 1}/{job.total_chunks}: {len(chunk_text)} chars")

        outcome.timing["map"] = (time.time() - start) * 1000
        return chunk_results

    def _phase_reduce(
        self,
        job: ChunkedJob,
        chunk_results: list[str],
        emit: EventSink,
        outcome: GenerationOutcome,
    ) -> str:
        """REDUCE: combine the labeled chunk results in one generation."""
        start = time.time()
        request = GenerationRequest(
            model=job.model,
            prompt=fill_text(job.combine_prompt_template, format_chunk_results(chunk_results)),
            endpoint=job.endpoint,
        )
        final_text = stream_generation(
            self.client,
            request,
            emit,
            job.document_id,
            job.operation_type,
            chunk_index=job.total_chunks,
            total_chunks=job.total_chunks,
            component="ORCHESTRATOR",
        )
        outcome.timing["reduce"] = (time.time() - start) * 1000
        debug_log(f"[ORCHESTRATOR] Combined result: {len(final_text)} chars")
        return final_text

    @staticmethod
    def _terminal_event(job: ChunkedJob, error: str | None = None) -> StreamEvent:
        return StreamEvent(
            document_id=job.document_id,
            operation_type=job.operation_type,
            chunk="",
            done=True,
            error=error,
        )


def run_single_pass(
    client,
    document_id: int,
    operation_type: OperationType,
    request: GenerationRequest,
    emit: EventSink,
    persist: PersistCallback,
) -> GenerationOutcome:
    """
    Stream one generation for a short document, persist, and terminate.

    Follows the same contract as ChunkedGenerationOrchestrator.run(): exactly
    one terminal event, persist only on success.
    """
    outcome = GenerationOutcome(chunk_count=1)
    start = time.time()

    try:
        text = stream_generation(
            client, request, emit, document_id, operation_type, component="GENERATION"
        )
        outcome.timing["generate"] = (time.time() - start) * 1000
        outcome.result_id = persist(text)
        outcome.text = text
    except Exception as e:
        message = str(e) or f"Unknown error during {operation_type.value} generation"
        error(f"[GENERATION] {operation_type.value} failed for document {document_id}: {message}")
        outcome.fail(message)
        safe_emit(
            emit,
            StreamEvent(document_id, operation_type, chunk="", done=True, error=message),
            "GENERATION",
        )
        return outcome

    safe_emit(emit, StreamEvent(document_id, operation_type, chunk="", done=True), "GENERATION")
    debug_log(f"[GENERATION] {operation_type.value} complete for document {document_id}")
    return outcome
