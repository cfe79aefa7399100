"""Document chunking service."""

import re
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from trustrag.core.config import settings
from trustrag.models.document import Chunk

DEFAULT_CHUNK_SIZE = 2000  # ~512 tokens
DEFAULT_OVERLAP = 200  # ~50 tokens

SENTENCE_BREAK = ". "
# Fixed-size slicing looks this far past the target for a sentence break,
# and accepts one no further back than the search window.
SENTENCE_LOOKAHEAD = 100
SENTENCE_SEARCH_WINDOW = 200

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

Span = Tuple[int, int]


class TextChunk(BaseModel):
    """A slice of normalized text with its character offsets."""

    text: str
    index: int
    start_char: int
    end_char: int

    model_config = ConfigDict(frozen=True)


def normalize_text(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _trim_span(text: str, start: int, end: int) -> Span:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    return start, end


def _paragraph_spans(text: str) -> List[Span]:
    spans = []
    position = 0
    for match in PARAGRAPH_BREAK.finditer(text):
        spans.append(_trim_span(text, position, match.start()))
        position = match.end()
    spans.append(_trim_span(text, position, len(text)))
    return [(start, end) for start, end in spans if end > start]


def _overlap_start(text: str, start: int, end: int, overlap: int) -> int:
    """
    Find where the overlap tail of ``text[start:end]`` begins.

    Prefers the character after the last sentence break in the overlap
    window; cuts hard at the window start when that break falls in the
    first half of the window.
    """
    if end - start <= overlap:
        return start

    window_start = end - overlap
    boundary = text.rfind(SENTENCE_BREAK, window_start, end)
    if boundary != -1 and boundary - window_start > overlap / 2:
        tail_start = boundary + len(SENTENCE_BREAK)
    else:
        tail_start = window_start

    while tail_start < end and text[tail_start].isspace():
        tail_start += 1
    return tail_start


def _chunk_by_paragraph(
    text: str, paragraphs: List[Span], chunk_size: int, overlap: int
) -> List[Span]:
    spans = []
    chunk_start, chunk_end = paragraphs[0]

    for paragraph_start, paragraph_end in paragraphs[1:]:
        if paragraph_end - chunk_start > chunk_size:
            spans.append((chunk_start, chunk_end))
            chunk_start = _overlap_start(text, chunk_start, chunk_end, overlap)
        chunk_end = paragraph_end

    spans.append((chunk_start, chunk_end))
    return spans


def _chunk_by_size(text: str, start: int, end: int, chunk_size: int, overlap: int) -> List[Span]:
    spans = []
    position = start

    while position < end:
        limit = min(position + chunk_size, end)
        cut = limit

        if limit < end:
            lookahead_end = min(limit + SENTENCE_LOOKAHEAD, end)
            boundary = text.rfind(SENTENCE_BREAK, position, lookahead_end)
            offset = boundary - position
            if boundary != -1 and offset > chunk_size - SENTENCE_SEARCH_WINDOW and offset + 1 > overlap:
                cut = boundary + 1

        spans.append((position, cut))
        if cut >= end:
            break
        position = cut - overlap

    return spans


def chunk_text(
    text: str, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_OVERLAP
) -> List[TextChunk]:
    """
    Split text into overlapping, paragraph-respecting chunks.

    Paragraphs (separated by blank lines) are accumulated greedily; when the
    next one would push a chunk past ``chunk_size`` the chunk is closed and
    the next one is seeded with a tail of at most ``overlap`` characters.
    Text with no blank lines is sliced at fixed size instead, stepping by
    ``chunk_size - overlap`` and preferring nearby sentence breaks.

    Args:
        text: Text to chunk.
        chunk_size: Target chunk size in characters.
        overlap: Maximum characters shared by adjacent chunks.

    Returns:
        Ordered chunks, indexed from 0. Empty for blank input.

    Raises:
        ValueError: If the size or overlap is out of range.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError("overlap must be between 0 and chunk_size")

    if not text or not text.strip():
        return []

    normalized = normalize_text(text)
    start, end = _trim_span(normalized, 0, len(normalized))

    if end - start <= chunk_size:
        spans = [(start, end)]
    else:
        paragraphs = _paragraph_spans(normalized)
        if len(paragraphs) > 1:
            spans = _chunk_by_paragraph(normalized, paragraphs, chunk_size, overlap)
        else:
            spans = _chunk_by_size(normalized, start, end, chunk_size, overlap)

    chunks = []
    for span_start, span_end in spans:
        span_start, span_end = _trim_span(normalized, span_start, span_end)
        if span_end <= span_start:
            continue
        chunks.append(
            TextChunk(
                text=normalized[span_start:span_end],
                index=len(chunks),
                start_char=span_start,
                end_char=span_end,
            )
        )
    return chunks


class ChunkingService:
    """Service for chunking documents into smaller pieces."""

    def __init__(self, chunk_size: Optional[int] = None, chunk_overlap: Optional[int] = None) -> None:
        """Initialize the chunking service."""
        self.chunk_size = chunk_size or settings.chunk_size
        self.chunk_overlap = settings.chunk_overlap if chunk_overlap is None else chunk_overlap

    def chunk_document(self, content: str, document_id: str) -> List[Chunk]:
        """
        Chunk a document into smaller pieces.

        Args:
            content: Document content to chunk.
            document_id: ID of the source document.

        Returns:
            Chunks bound to the document, in source order.
        """
        return [
            Chunk(
                document_id=document_id,
                index=piece.index,
                text=piece.text,
                start_offset=piece.start_char,
                end_offset=piece.end_char,
            )
            for piece in chunk_text(content, self.chunk_size, self.chunk_overlap)
        ]
