"""
AI Job Service

Entry point the host application calls to start generation jobs. Every
public job method returns a JobAcknowledgement right away; the job itself
runs on the configured ExecutorStrategy and reports through the event sink.

Routing:
- Summary, key points, key terms: documents longer than CHUNK_SIZE go
  through ChunkedGenerationOrchestrator, shorter ones take one streamed call
- Quiz: always one streamed call per attempt inside QuizGenerationLoop
"""

from dataclasses import dataclass
from typing import Any, Protocol

from studyscribe.ai.ollama_client import GenerationRequest, HealthStatus, OllamaClient, OllamaModel
from studyscribe.chunking_engine import TextChunker
from studyscribe.errors import NoContentError
from studyscribe.logging_config import debug_log, error, info
from studyscribe.parallel import ExecutorStrategy, ThreadPoolStrategy
from studyscribe.settings import ModelSettings, SettingsManager

from .events import EventSink, OperationType
from .orchestrator import ChunkedGenerationOrchestrator, ChunkedJob, run_single_pass
from .prompts import (
    COMBINE_KEY_POINTS_PROMPT,
    COMBINE_KEY_TERMS_PROMPT,
    COMBINE_SUMMARIES_PROMPT,
    KEY_POINTS_PROMPT,
    KEY_TERMS_PROMPT,
    fill_text,
    get_summary_prompt,
)
from .quiz_generator import QuizGenerationLoop, QuizGenerationOptions, QuizQuestion
from .result_parsers import KeyTerm, parse_key_points, parse_key_terms
from .result_types import GenerationOutcome


class DocumentStore(Protocol):
    """Storage collaborator owned by the host application."""

    def get_document_text(self, document_id: int) -> str | None: ...

    def save_summary(self, document_id: int, summary: str) -> Any: ...

    def save_key_points(self, document_id: int, key_points: list[str]) -> Any: ...

    def save_key_terms(self, document_id: int, key_terms: list[KeyTerm]) -> Any: ...

    def create_quiz(
        self,
        document_id: int,
        questions: list[QuizQuestion],
        options: QuizGenerationOptions,
    ) -> int: ...


@dataclass(frozen=True)
class JobAcknowledgement:
    """
    Immediate answer to a job request.

    success=True only means the job was accepted; its result arrives as the
    terminal StreamEvent.
    """
    success: bool
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def accepted(cls) -> "JobAcknowledgement":
        return cls(success=True)

    @classmethod
    def no_content(cls, document_id: int) -> "JobAcknowledgement":
        err = NoContentError(document_id)
        return cls(success=False, error_code=err.code, error_message=str(err))

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True}
        return {
            "success": False,
            "error": {"code": self.error_code, "message": self.error_message},
        }


class AIJobService:
    """
    Accepts generation jobs and runs them in the background.

    Example:
        service = AIJobService(store, SettingsManager(), emit=window.send_event)
        ack = service.summarize(42, style="detailed")
        if not ack.success:
            show_error(ack.error_message)
    """

    def __init__(
        self,
        store: DocumentStore,
        settings: SettingsManager,
        emit: EventSink,
        client: OllamaClient | None = None,
        strategy: ExecutorStrategy | None = None,
    ):
        """
        Args:
            store: Document text source and result sink
            settings: Supplies the Ollama model and endpoint per job
            emit: Observer receiving every StreamEvent
            client: Streaming client (defaults to OllamaClient())
            strategy: Where jobs run (defaults to ThreadPoolStrategy())
        """
        self.store = store
        self.settings = settings
        self.emit = emit
        self.client = client if client is not None else OllamaClient()
        self.strategy = strategy if strategy is not None else ThreadPoolStrategy()
        self.chunker = TextChunker()

    # -------------------------------------------------------------------------
    # Job submission
    # -------------------------------------------------------------------------

    def summarize(self, document_id: int, style: str = "brief") -> JobAcknowledgement:
        """Start a summary job. Unknown styles use the brief prompt."""

        def persist(text: str):
            return self.store.save_summary(document_id, text)

        return self._submit_text_job(
            document_id,
            OperationType.SUMMARY,
            get_summary_prompt(style),
            COMBINE_SUMMARIES_PROMPT,
            persist,
        )

    def extract_key_points(self, document_id: int) -> JobAcknowledgement:
        """Start a key-points job; the result is saved as a list of strings."""

        def persist(text: str):
            return self.store.save_key_points(document_id, parse_key_points(text))

        return self._submit_text_job(
            document_id,
            OperationType.KEY_POINTS,
            KEY_POINTS_PROMPT,
            COMBINE_KEY_POINTS_PROMPT,
            persist,
        )

    def extract_key_terms(self, document_id: int) -> JobAcknowledgement:
        """
        Start a key-terms job.

        Output that contains no JSON array fails the job; nothing is saved.
        """

        def persist(text: str):
            return self.store.save_key_terms(document_id, parse_key_terms(text))

        return self._submit_text_job(
            document_id,
            OperationType.KEY_TERMS,
            KEY_TERMS_PROMPT,
            COMBINE_KEY_TERMS_PROMPT,
            persist,
        )

    def generate_quiz(
        self,
        document_id: int,
        options: QuizGenerationOptions | None = None,
    ) -> JobAcknowledgement:
        """Start a quiz job; the terminal event carries the new quiz id."""
        options = options or QuizGenerationOptions()
        text = self._load_text(document_id)
        if text is None:
            return JobAcknowledgement.no_content(document_id)

        model_settings = self.settings.get_model_settings()

        def persist(questions: list[QuizQuestion]) -> int:
            return self.store.create_quiz(document_id, questions, options)

        info(f"[AI JOBS] Queued quiz job for document {document_id}")
        future = self.strategy.submit(
            QuizGenerationLoop(self.client).run,
            document_id,
            text,
            options,
            model_settings.model,
            model_settings.endpoint,
            self.emit,
            persist,
        )
        future.add_done_callback(self._log_unexpected_failure)
        return JobAcknowledgement.accepted()

    # -------------------------------------------------------------------------
    # Server queries
    # -------------------------------------------------------------------------

    def check_health(self) -> HealthStatus:
        return self.client.check_health(self.settings.get_model_settings().endpoint)

    def list_models(self) -> list[OllamaModel]:
        return self.client.list_models(self.settings.get_model_settings().endpoint)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the job executor; running jobs finish when wait is True."""
        debug_log("[AI JOBS] Shutting down job executor")
        self.strategy.shutdown(wait=wait)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _load_text(self, document_id: int) -> str | None:
        """Return the document text, or None if it is missing or blank."""
        text = self.store.get_document_text(document_id)
        if not text or not text.strip():
            info(f"[AI JOBS] Document {document_id} has no extracted text")
            return None
        return text

    def _submit_text_job(
        self,
        document_id: int,
        operation_type: OperationType,
        prompt_template: str,
        combine_template: str,
        persist,
    ) -> JobAcknowledgement:
        text = self._load_text(document_id)
        if text is None:
            return JobAcknowledgement.no_content(document_id)

        model_settings = self.settings.get_model_settings()
        info(
            f"[AI JOBS] Queued {operation_type.value} job for document {document_id} "
            f"({len(text)} chars, model={model_settings.model})"
        )
        future = self.strategy.submit(
            self._run_text_job,
            document_id,
            operation_type,
            text,
            prompt_template,
            combine_template,
            model_settings,
            persist,
        )
        future.add_done_callback(self._log_unexpected_failure)
        return JobAcknowledgement.accepted()

    def _run_text_job(
        self,
        document_id: int,
        operation_type: OperationType,
        text: str,
        prompt_template: str,
        combine_template: str,
        model_settings: ModelSettings,
        persist,
    ) -> GenerationOutcome:
        if self.chunker.needs_chunking(text):
            job = ChunkedJob(
                document_id=document_id,
                operation_type=operation_type,
                chunks=self.chunker.split(text),
                per_chunk_prompt_template=prompt_template,
                combine_prompt_template=combine_template,
                model=model_settings.model,
                endpoint=model_settings.endpoint,
            )
            return ChunkedGenerationOrchestrator(self.client).run(job, self.emit, persist)

        request = GenerationRequest(
            model=model_settings.model,
            prompt=fill_text(prompt_template, text),
            endpoint=model_settings.endpoint,
        )
        return run_single_pass(self.client, document_id, operation_type, request, self.emit, persist)

    @staticmethod
    def _log_unexpected_failure(future) -> None:
        """Jobs report their own failures; anything escaping them is a bug."""
        if future.cancelled():
            debug_log("[AI JOBS] Job cancelled before it started")
            return
        exc = future.exception()
        if exc is not None:
            error(f"[AI JOBS] Job raised outside its error boundary: {exc!r}")
