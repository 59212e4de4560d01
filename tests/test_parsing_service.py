"""
Tests for DocumentParsingService and DocumentParser.

Tests cover:
- Status transitions for success, failure and unsupported types
- Queueing, retry and stale-status recovery
- File type dispatch (plain text read for real, other backends mocked)
"""

from unittest.mock import MagicMock, patch

import pytest

from studyscribe.errors import DocumentParseError, UnsupportedFileTypeError
from studyscribe.extraction import (
    DocumentParser,
    DocumentParsingService,
    DocumentRecord,
    ProcessingStatus,
)


class InMemoryRepository:
    """Repository stand-in keeping documents, statuses and saved text."""

    def __init__(self, documents=()):
        self.documents = {doc.id: doc for doc in documents}
        self.statuses = {doc.id: doc.processing_status for doc in documents}
        self.status_history = []
        self.content = {}

    def get_document(self, document_id):
        return self.documents.get(document_id)

    def update_processing_status(self, document_id, status):
        self.statuses[document_id] = status
        self.status_history.append((document_id, status))

    def save_document_content(self, document_id, raw_text):
        self.content[document_id] = raw_text

    def list_documents_by_status(self, status):
        return [self.documents[i] for i, s in self.statuses.items() if s == status]


def make_service(documents, text="extracted text", side_effect=None, notify=None):
    parser = MagicMock(spec=DocumentParser)
    parser.extract_text.return_value = text
    if side_effect is not None:
        parser.extract_text.side_effect = side_effect
    repository = InMemoryRepository(documents)
    return DocumentParsingService(repository, parser, notify=notify), repository, parser


class TestParseDocument:

    def test_success(self):
        notify = MagicMock()
        service, repo, parser = make_service(
            [DocumentRecord(1, "/docs/notes.pdf", "pdf")], notify=notify
        )

        status = service.parse_document(1)

        assert status == ProcessingStatus.COMPLETED
        parser.extract_text.assert_called_once_with("/docs/notes.pdf", "pdf")
        assert repo.content == {1: "extracted text"}
        assert repo.status_history == [
            (1, ProcessingStatus.PROCESSING),
            (1, ProcessingStatus.COMPLETED),
        ]
        notify.assert_called_once_with("parse-1", 100, "Document 1 parsed successfully")

    def test_extraction_failure_sets_failed(self):
        service, repo, _ = make_service(
            [DocumentRecord(2, "/docs/broken.pdf", "pdf")],
            side_effect=DocumentParseError("corrupted"),
        )

        assert service.parse_document(2) == ProcessingStatus.FAILED
        assert repo.statuses[2] == ProcessingStatus.FAILED
        assert repo.content == {}

    def test_legacy_doc_is_unsupported(self):
        service, repo, parser = make_service([DocumentRecord(3, "/docs/old.doc", "doc")])

        assert service.parse_document(3) == ProcessingStatus.UNSUPPORTED
        parser.extract_text.assert_not_called()

    def test_unknown_type_is_unsupported(self):
        service, repo, _ = make_service(
            [DocumentRecord(4, "/docs/slides.pptx", "pptx")],
            side_effect=UnsupportedFileTypeError("pptx"),
        )

        assert service.parse_document(4) == ProcessingStatus.UNSUPPORTED
        assert repo.statuses[4] == ProcessingStatus.UNSUPPORTED

    def test_file_type_is_normalized(self):
        service, _, parser = make_service([DocumentRecord(5, "/docs/a.TXT", ".TXT")])

        service.parse_document(5)

        parser.extract_text.assert_called_once_with("/docs/a.TXT", "txt")

    def test_missing_document(self):
        service, repo, parser = make_service([])

        assert service.parse_document(99) is None
        assert repo.status_history == []
        parser.extract_text.assert_not_called()

    def test_notify_errors_are_ignored(self):
        notify = MagicMock(side_effect=RuntimeError("window closed"))
        service, repo, _ = make_service([DocumentRecord(1, "/a.md", "md")], notify=notify)

        assert service.parse_document(1) == ProcessingStatus.COMPLETED


class TestQueueing:

    def test_queue_document_parses_in_background(self):
        docs = [DocumentRecord(i, f"/docs/{i}.txt", "txt") for i in (1, 2, 3)]
        service, repo, parser = make_service(docs)

        for doc in docs:
            service.queue_document(doc.id)

        assert service.queue.wait_until_idle(timeout=5)
        assert [c.args[0] for c in parser.extract_text.call_args_list] == [
            "/docs/1.txt", "/docs/2.txt", "/docs/3.txt",
        ]
        assert all(repo.statuses[i] == ProcessingStatus.COMPLETED for i in (1, 2, 3))

    def test_failure_does_not_stop_queue(self):
        docs = [DocumentRecord(1, "/bad.pdf", "pdf"), DocumentRecord(2, "/good.txt", "txt")]
        service, repo, _ = make_service(
            docs, side_effect=[DocumentParseError("bad"), "good text"]
        )

        service.queue_document(1)
        service.queue_document(2)

        assert service.queue.wait_until_idle(timeout=5)
        assert repo.statuses == {1: ProcessingStatus.FAILED, 2: ProcessingStatus.COMPLETED}
        assert repo.content == {2: "good text"}

    def test_retry_resets_to_pending_then_parses(self):
        doc = DocumentRecord(8, "/docs/retry.txt", "txt", ProcessingStatus.FAILED)
        service, repo, _ = make_service([doc])

        service.retry_document(8)

        assert service.queue.wait_until_idle(timeout=5)
        assert repo.status_history[0] == (8, ProcessingStatus.PENDING)
        assert repo.statuses[8] == ProcessingStatus.COMPLETED


class TestResetStaleProcessingStatus:

    def test_resets_only_processing_documents(self):
        docs = [
            DocumentRecord(1, "/a.pdf", "pdf", ProcessingStatus.PROCESSING),
            DocumentRecord(2, "/b.pdf", "pdf", ProcessingStatus.COMPLETED),
            DocumentRecord(3, "/c.pdf", "pdf", ProcessingStatus.PROCESSING),
        ]
        service, repo, _ = make_service(docs)

        assert service.reset_stale_processing_status() == 2
        assert repo.statuses == {
            1: ProcessingStatus.PENDING,
            2: ProcessingStatus.COMPLETED,
            3: ProcessingStatus.PENDING,
        }

    def test_idempotent(self):
        docs = [DocumentRecord(1, "/a.pdf", "pdf", ProcessingStatus.PROCESSING)]
        service, repo, _ = make_service(docs)

        service.reset_stale_processing_status()
        assert service.reset_stale_processing_status() == 0
        assert repo.statuses == {1: ProcessingStatus.PENDING}


class TestDocumentParser:

    def test_plain_text_is_read_as_utf8(self, tmp_path):
        path = tmp_path / "notes.md"
        path.write_text("# Café notes\nÜber alles", encoding="utf-8")

        assert DocumentParser().extract_text(path, "md") == "# Café notes\nÜber alles"

    def test_unsupported_type_raises(self, tmp_path):
        with pytest.raises(UnsupportedFileTypeError):
            DocumentParser().extract_text(tmp_path / "x.doc", "doc")

    def test_missing_file_raises_parse_error(self, tmp_path):
        with pytest.raises(DocumentParseError):
            DocumentParser().extract_text(tmp_path / "missing.txt", "txt")

    def test_supports(self):
        parser = DocumentParser()
        assert parser.supports("PDF")
        assert parser.supports(".jpeg")
        assert not parser.supports("doc")

    @patch('studyscribe.extraction.document_parser.pdfplumber.open')
    def test_pdf_text_layer(self, mock_open):
        pages = [MagicMock(), MagicMock(), MagicMock()]
        pages[0].extract_text.return_value = "Page one"
        pages[1].extract_text.return_value = None
        pages[2].extract_text.return_value = "Page three"
        mock_open.return_value.__enter__.return_value.pages = pages

        assert DocumentParser().extract_text("/docs/a.pdf", "pdf") == "Page one\nPage three"

    @patch('studyscribe.extraction.document_parser.pytesseract.image_to_string')
    @patch('studyscribe.extraction.document_parser.convert_from_path')
    @patch('studyscribe.extraction.document_parser.pdfplumber.open')
    def test_scanned_pdf_falls_back_to_ocr(self, mock_open, mock_convert, mock_ocr):
        page = MagicMock()
        page.extract_text.return_value = ""
        mock_open.return_value.__enter__.return_value.pages = [page]
        mock_convert.return_value = ["image-1", "image-2"]
        mock_ocr.side_effect = ["Scanned one", "Scanned two"]

        text = DocumentParser(ocr_dpi=150).extract_text("/docs/scan.pdf", "pdf")

        assert text == "Scanned one\nScanned two"
        mock_convert.assert_called_once_with("/docs/scan.pdf", dpi=150)

    @patch('studyscribe.extraction.document_parser.Document')
    def test_docx_paragraphs(self, mock_document):
        mock_document.return_value.paragraphs = [MagicMock(text="Intro"), MagicMock(text="Body")]

        assert DocumentParser().extract_text("/docs/a.docx", "docx") == "Intro\nBody"

    @patch('studyscribe.extraction.document_parser.pytesseract.image_to_string')
    @patch('studyscribe.extraction.document_parser.Image.open')
    def test_image_ocr(self, mock_image_open, mock_ocr):
        mock_ocr.return_value = "Whiteboard text"

        assert DocumentParser().extract_text("/docs/board.png", "png") == "Whiteboard text"
        mock_ocr.assert_called_once_with(mock_image_open.return_value.__enter__.return_value)
