"""
Document Chunking Engine

Splits long documents into overlapping, boundary-respecting chunks for
map-reduce generation:
1. Documents at or below the chunk size stay whole
2. Longer documents are cut greedily from the front, preferring a paragraph
   break, then a sentence end, inside the last 40% of each window
3. Each following chunk starts CHUNK_OVERLAP characters before the previous
   cut so the model keeps cross-chunk context

Chunking is deterministic: the same text always yields the same chunks.
"""

from dataclasses import dataclass

from studyscribe.config import CHUNK_OVERLAP, CHUNK_SEARCH_WINDOW_FRACTION, CHUNK_SIZE
from studyscribe.logging_config import debug_log

PARAGRAPH_BREAK = "\n\n"
SENTENCE_ENDINGS = ".!?"
SENTENCE_FOLLOWERS = " \n"


@dataclass(frozen=True)
class Chunk:
    """
    A contiguous slice of the source document.

    Attributes:
        index: Zero-based position in the chunk sequence
        text: The chunk text (equal to source[start:end])
        start: Offset of the first character in the source
        end: Offset one past the last character in the source
    """
    index: int
    text: str
    start: int
    end: int

    @property
    def char_count(self) -> int:
        return len(self.text)


class TextChunker:
    """
    Boundary-aware text splitter.

    Example:
        chunker = TextChunker()
        for chunk in chunker.split(document_text):
            print(chunk.index, chunk.start, chunk.end)
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP):
        """
        Initialize the chunker.

        Args:
            chunk_size: Maximum characters per chunk (also the single-chunk threshold)
            overlap: Characters repeated at the start of each following chunk
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be non-negative and smaller than chunk_size")
        self.chunk_size = chunk_size
        self.overlap = overlap

    def needs_chunking(self, text: str) -> bool:
        """True if text is longer than one chunk."""
        return len(text) > self.chunk_size

    def split(self, text: str) -> list[Chunk]:
        """
        Split text into overlapping chunks.

        Args:
            text: Full document text

        Returns:
            Empty list for empty text, a single chunk for short text,
            otherwise chunks in document order
        """
        if not text:
            return []

        if len(text) <= self.chunk_size:
            return [Chunk(index=0, text=text, start=0, end=len(text))]

        chunks = []
        start = 0

        while start < len(text):
            # Remaining text fits in one chunk
            if start + self.chunk_size >= len(text):
                chunks.append(Chunk(len(chunks), text[start:], start, len(text)))
                break

            end = start + self.chunk_size
            split_at = self.find_split_point(text, start, end)
            chunks.append(Chunk(len(chunks), text[start:split_at], start, split_at))

            # Step back for overlap, but never behind the current chunk's start
            next_start = max(split_at - self.overlap, 0)
            if next_start <= start:
                next_start = split_at
            start = next_start

        debug_log(f"[CHUNKER] Split {len(text)} chars into {len(chunks)} chunks")
        return chunks

    def find_split_point(self, text: str, start: int, end: int) -> int:
        """
        Choose where the chunk starting at `start` should end.

        Searches backward from `end` within the last 40% of the window for,
        in order: a paragraph break (split after it), then a sentence end
        followed by whitespace or end of text (split after the punctuation).
        Falls back to a hard cut at `end`.

        Returns:
            Split offset, always strictly greater than start
        """
        search_start = start + int((end - start) * (1 - CHUNK_SEARCH_WINDOW_FRACTION))

        # 1. Paragraph break, which may not extend past the window
        paragraph_idx = text.rfind(PARAGRAPH_BREAK, search_start, end)
        if paragraph_idx != -1:
            return paragraph_idx + len(PARAGRAPH_BREAK)

        # 2. Sentence end; position i splits right after text[i - 1]
        for i in range(end, search_start, -1):
            if text[i - 1] in SENTENCE_ENDINGS:
                if i >= len(text) or text[i] in SENTENCE_FOLLOWERS:
                    return i

        # 3. Hard cut
        return end


def split_text_into_chunks(text: str) -> list[str]:
    """Split text with the default chunk size and overlap, returning plain strings."""
    return [chunk.text for chunk in TextChunker().split(text)]
