"""
Document Text Extraction

Turns an uploaded file into plain text, dispatching on its file type:
- pdf: pdfplumber text layer, falling back to OCR (pdf2image + pytesseract)
  when no page has any extractable text
- docx: python-docx paragraphs
- txt, csv, md: read as UTF-8
- png, jpg, jpeg, gif: pytesseract OCR on a Pillow image

Anything else raises UnsupportedFileTypeError. OCR is CPU- and memory-heavy,
which is why DocumentParsingService runs parses one at a time.
"""

from pathlib import Path

import pdfplumber
import pytesseract
from docx import Document
from pdf2image import convert_from_path
from PIL import Image

from studyscribe.config import (
    DOCX_FILE_TYPES,
    IMAGE_FILE_TYPES,
    OCR_DPI,
    PDF_FILE_TYPES,
    TEXT_FILE_TYPES,
)
from studyscribe.errors import DocumentParseError, UnsupportedFileTypeError
from studyscribe.logging_config import DEBUG_MODE, Timer, debug_log, info


def normalize_file_type(file_type: str) -> str:
    """'.PDF' -> 'pdf'"""
    return (file_type or "").strip().lower().lstrip(".")


class DocumentParser:
    """
    Extracts raw text from document files.

    Example:
        parser = DocumentParser()
        text = parser.extract_text("/docs/lecture.pdf", "pdf")
    """

    def __init__(self, ocr_dpi: int = OCR_DPI):
        self.ocr_dpi = ocr_dpi

    def supports(self, file_type: str) -> bool:
        file_type = normalize_file_type(file_type)
        return file_type in (PDF_FILE_TYPES | DOCX_FILE_TYPES | TEXT_FILE_TYPES | IMAGE_FILE_TYPES)

    def extract_text(self, file_path: str | Path, file_type: str) -> str:
        """
        Extract text from a file.

        Args:
            file_path: Location of the file on disk
            file_type: Extension without the dot ("pdf", "docx", ...)

        Returns:
            The extracted text (may be empty for blank documents)

        Raises:
            UnsupportedFileTypeError: No parser for this file type
            DocumentParseError: The file could not be read
        """
        file_type = normalize_file_type(file_type)
        path = Path(file_path)

        if file_type in PDF_FILE_TYPES:
            extract = self._extract_pdf
        elif file_type in DOCX_FILE_TYPES:
            extract = self._extract_docx
        elif file_type in TEXT_FILE_TYPES:
            extract = self._extract_plain_text
        elif file_type in IMAGE_FILE_TYPES:
            extract = self._extract_image
        else:
            raise UnsupportedFileTypeError(file_type)

        debug_log(f"[PARSER] Extracting {file_type} text from {path.name}")
        try:
            with Timer(f"{file_type.upper()} extraction ({path.name})"):
                text = extract(path)
        except DocumentParseError:
            raise
        except Exception as e:
            raise DocumentParseError(f"Failed to extract text from {path.name}: {e}") from e

        info(f"[PARSER] Extracted {len(text)} chars from {path.name}")
        return text

    def _extract_pdf(self, path: Path) -> str:
        pages = []
        with pdfplumber.open(path) as pdf:
            page_count = len(pdf.pages)
            for i, page in enumerate(pdf.pages, 1):
                if DEBUG_MODE and i % 10 == 0:
                    debug_log(f"[PARSER] Extracting page {i}/{page_count}")
                page_text = page.extract_text()
                if page_text:
                    pages.append(page_text)

        if pages:
            return "\n".join(pages)

        debug_log(f"[PARSER] {path.name} has no text layer, running OCR")
        return self._ocr_pdf(path)

    def _ocr_pdf(self, path: Path) -> str:
        images = convert_from_path(str(path), dpi=self.ocr_dpi)
        pages = []
        for i, image in enumerate(images, 1):
            with Timer(f"OCR page {i}", auto_log=DEBUG_MODE):
                pages.append(pytesseract.image_to_string(image))
        return "\n".join(pages)

    def _extract_docx(self, path: Path) -> str:
        document = Document(str(path))
        return "\n".join(paragraph.text for paragraph in document.paragraphs)

    def _extract_plain_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def _extract_image(self, path: Path) -> str:
        with Image.open(path) as image:
            return pytesseract.image_to_string(image)
