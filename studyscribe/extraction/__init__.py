"""
Document text extraction.

    DocumentParser            - file type dispatch to pdfplumber, python-docx, pytesseract
    DocumentParsingService    - status tracking around parses
    SequentialProcessingQueue - one parse at a time, FIFO
"""

from .document_parser import DocumentParser, normalize_file_type
from .parsing_service import (
    DocumentParsingService,
    DocumentRecord,
    DocumentRepository,
    ProcessingStatus,
)
from .processing_queue import SequentialProcessingQueue

__all__ = [
    'DocumentParser',
    'DocumentParsingService',
    'DocumentRecord',
    'DocumentRepository',
    'ProcessingStatus',
    'SequentialProcessingQueue',
    'normalize_file_type',
]
