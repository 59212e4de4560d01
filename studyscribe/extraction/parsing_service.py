"""
Document Parsing Service

Moves documents through their processing states:

    pending -> processing -> completed
                          -> failed       (extraction raised)
                          -> unsupported  (no parser for the file type)

Parses always go through a SequentialProcessingQueue so that two OCR runs
never compete for the CPU.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from studyscribe.errors import UnsupportedFileTypeError
from studyscribe.logging_config import error, info, warning

from .document_parser import DocumentParser, normalize_file_type
from .processing_queue import SequentialProcessingQueue

# Legacy Word format: recognized but never parsed
LEGACY_DOC_TYPE = "doc"


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class DocumentRecord:
    """The parts of a stored document the parser needs."""
    id: int
    file_path: str
    file_type: str
    processing_status: ProcessingStatus = ProcessingStatus.PENDING


class DocumentRepository(Protocol):
    """Storage collaborator owned by the host application."""

    def get_document(self, document_id: int) -> DocumentRecord | None: ...

    def update_processing_status(self, document_id: int, status: ProcessingStatus) -> None: ...

    def save_document_content(self, document_id: int, raw_text: str) -> None: ...

    def list_documents_by_status(self, status: ProcessingStatus) -> list[DocumentRecord]: ...


# (task_id, progress percent, message)
ProgressCallback = Callable[[str, int, str], None]


class DocumentParsingService:
    """
    Parses documents and records the outcome on the repository.

    Example:
        service = DocumentParsingService(repository, DocumentParser())
        service.reset_stale_processing_status()   # at startup
        service.queue_document(12)
    """

    def __init__(
        self,
        repository: DocumentRepository,
        parser: DocumentParser | None = None,
        notify: ProgressCallback | None = None,
    ):
        self.repository = repository
        self.parser = parser if parser is not None else DocumentParser()
        self.notify = notify
        self.queue = SequentialProcessingQueue(self.parse_document)

    def parse_document(self, document_id: int) -> ProcessingStatus | None:
        """
        Parse one document synchronously.

        Returns:
            The final status, or None if the document does not exist
        """
        doc = self.repository.get_document(document_id)
        if doc is None:
            error(f"[PARSING] Document {document_id} not found")
            return None

        file_type = normalize_file_type(doc.file_type)
        info(f"[PARSING] Parsing document {document_id} (type: {file_type})")
        self.repository.update_processing_status(document_id, ProcessingStatus.PROCESSING)

        if file_type == LEGACY_DOC_TYPE:
            warning(f"[PARSING] .doc format not supported for document {document_id}")
            return self._set_status(document_id, ProcessingStatus.UNSUPPORTED)

        try:
            text = self.parser.extract_text(doc.file_path, file_type)
        except UnsupportedFileTypeError:
            warning(f'[PARSING] Unknown file type "{file_type}" for document {document_id}')
            return self._set_status(document_id, ProcessingStatus.UNSUPPORTED)
        except Exception as e:
            error(f"[PARSING] Failed to parse document {document_id}: {e}")
            return self._set_status(document_id, ProcessingStatus.FAILED)

        try:
            self.repository.save_document_content(document_id, text)
        except Exception as e:
            error(f"[PARSING] Failed to store text for document {document_id}: {e}")
            return self._set_status(document_id, ProcessingStatus.FAILED)

        self._set_status(document_id, ProcessingStatus.COMPLETED)
        info(f"[PARSING] Document {document_id} parsed successfully")
        self._notify_complete(document_id)
        return ProcessingStatus.COMPLETED

    def queue_document(self, document_id: int) -> None:
        """Schedule a parse; returns immediately."""
        info(f"[PARSING] Queuing document {document_id} for parsing")
        self.queue.enqueue(document_id)

    def retry_document(self, document_id: int) -> None:
        """Reset a document to pending and queue it again."""
        info(f"[PARSING] Retrying document {document_id} (resetting to pending)")
        self.repository.update_processing_status(document_id, ProcessingStatus.PENDING)
        self.queue_document(document_id)

    def reset_stale_processing_status(self) -> int:
        """
        Reset documents left in "processing" by an unclean shutdown.

        Safe to call any number of times.

        Returns:
            Number of documents reset
        """
        stale = self.repository.list_documents_by_status(ProcessingStatus.PROCESSING)
        if not stale:
            info("[PARSING] No stale documents found")
            return 0

        info(f"[PARSING] Resetting {len(stale)} stale document(s) to pending")
        for doc in stale:
            self.repository.update_processing_status(doc.id, ProcessingStatus.PENDING)
        return len(stale)

    def _set_status(self, document_id: int, status: ProcessingStatus) -> ProcessingStatus:
        self.repository.update_processing_status(document_id, status)
        return status

    def _notify_complete(self, document_id: int) -> None:
        if self.notify is None:
            return
        try:
            self.notify(f"parse-{document_id}", 100, f"Document {document_id} parsed successfully")
        except Exception as e:
            warning(f"[PARSING] Progress callback failed for document {document_id}: {e}")
