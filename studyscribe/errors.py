"""
Exception types for the StudyScribe AI pipeline.

Failures fall into four groups:
- Transport-transient: retried inside the Ollama client
- Transport-fatal: 4xx/5xx, timeouts, interrupted streams (never retried)
- Content-invalid: model output that fails validation (retried by the quiz loop)
- Input-missing: no document text, rejected before any network call
"""

STREAM_INTERRUPTED_MESSAGE = "Stream interrupted: partial results discarded"


class StudyScribeError(RuntimeError):
    """Base class for all StudyScribe errors."""


class GenerationError(StudyScribeError):
    """A single generation call against the model server failed."""


class TransientTransportError(GenerationError):
    """Connection refused or other network-level failure."""


class FatalTransportError(GenerationError):
    """The model server answered with an HTTP error status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GenerationTimeoutError(GenerationError):
    """The generation call exceeded its hard deadline and was aborted."""


class StreamInterruptedError(GenerationError):
    """The response stream broke after it had started."""

    def __init__(self, message: str = STREAM_INTERRUPTED_MESSAGE):
        super().__init__(message)


class ContentValidationError(StudyScribeError):
    """Model output arrived intact but does not satisfy its contract."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class RetriesExhaustedError(ContentValidationError):
    """Every content-validation attempt failed."""

    def __init__(self, attempts: int, last_reason: str):
        super().__init__(
            f"Quiz generation retries exhausted after {attempts} attempts: {last_reason}"
        )
        self.attempts = attempts
        self.last_reason = last_reason


class NoContentError(StudyScribeError):
    """The document has no extracted text to work with."""

    code = "NO_CONTENT"

    def __init__(self, document_id: int):
        super().__init__(f"Document {document_id} has no extracted text")
        self.document_id = document_id


class DocumentParseError(StudyScribeError):
    """Text extraction from a document file failed."""


class UnsupportedFileTypeError(DocumentParseError):
    """No parser exists for the document's file type."""

    def __init__(self, file_type: str):
        super().__init__(f"Unsupported file type: {file_type}")
        self.file_type = file_type
