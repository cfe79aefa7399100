"""Per-format text extraction with a text-quality confidence estimate."""

import io
import logging
from typing import Callable, Dict, List, Optional, Tuple

import docx
import fitz  # PyMuPDF

from trustrag.core.exceptions import ParseFailureError, UnsupportedFormatError
from trustrag.models.parse import ParseMetadata, ParseResult
from trustrag.services.confidence import count_words, parse_confidence
from trustrag.services.entities import extract_entities, has_structured_data

logger = logging.getLogger(__name__)

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
MSWORD = "application/msword"
TEXT = "text/plain"

SCANNED_PDF_MIN_CHARS = 100
SCANNED_PDF_CONFIDENCE = 30
PLAIN_TEXT_CONFIDENCE = 95
FEW_WORDS = 50
REVIEW_BELOW = 70

SCANNED_PDF_WARNING = "Very little text extracted. This may be a scanned PDF that requires OCR."
LOW_PDF_CONFIDENCE_WARNING = (
    "Text extraction confidence is below threshold. Manual review recommended."
)
MINIMAL_CONTENT_WARNING = "Document appears to have minimal content. Manual review recommended."
EMPTY_TEXT_WARNING = "Document is empty."
FEW_WORDS_WARNING = "Document has very few words. Manual review recommended."


def _extract_pdf(data: bytes) -> Tuple[str, int]:
    try:
        with fitz.open(stream=data, filetype="pdf") as pdf:
            pages = [page.get_text() for page in pdf]
            return "\n".join(pages).strip(), len(pages)
    except Exception as e:
        raise ParseFailureError(f"PDF parsing failed: {str(e)}") from e


def _extract_docx(data: bytes) -> str:
    try:
        document = docx.Document(io.BytesIO(data))
    except Exception as e:
        raise ParseFailureError(f"DOCX parsing failed: {str(e)}") from e

    blocks = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            blocks.append("\t".join(cell.text for cell in row.cells))
    return "\n\n".join(block for block in blocks if block.strip()).strip()


def _metadata(text: str, word_count: int, detected_type: str, page_count: Optional[int] = None) -> ParseMetadata:
    return ParseMetadata(
        word_count=word_count,
        page_count=page_count,
        detected_type=detected_type,
        has_structured_data=has_structured_data(text),
        entities=extract_entities(text),
    )


def parse_pdf(data: bytes) -> ParseResult:
    """
    Parse a PDF's text layer.

    Near-empty output is treated as an image-only scan: fixed confidence,
    OCR warning, and no generic scoring.
    """
    text, page_count = _extract_pdf(data)
    word_count = count_words(text)

    if len(text) < SCANNED_PDF_MIN_CHARS:
        logger.warning(f"PDF yielded {len(text)} characters over {page_count} pages, likely scanned")
        return ParseResult(
            text=text,
            confidence=SCANNED_PDF_CONFIDENCE,
            warnings=[SCANNED_PDF_WARNING],
            metadata=_metadata(text, word_count, "pdf-scanned", page_count),
        )

    confidence = parse_confidence(text, word_count)
    warnings = [LOW_PDF_CONFIDENCE_WARNING] if confidence < REVIEW_BELOW else []
    return ParseResult(
        text=text,
        confidence=confidence,
        warnings=warnings,
        metadata=_metadata(text, word_count, "pdf-text", page_count),
    )


def parse_docx(data: bytes) -> ParseResult:
    """Parse a word-processor XML document."""
    text = _extract_docx(data)
    word_count = count_words(text)
    confidence = parse_confidence(text, word_count)
    warnings = [MINIMAL_CONTENT_WARNING] if confidence < REVIEW_BELOW else []
    return ParseResult(
        text=text,
        confidence=confidence,
        warnings=warnings,
        metadata=_metadata(text, word_count, "docx"),
    )


def parse_text(data: bytes) -> ParseResult:
    """Decode plain text. Only emptiness lowers its confidence."""
    text = data.decode("utf-8", errors="replace").strip()
    word_count = count_words(text)

    warnings: List[str] = []
    if not text:
        warnings.append(EMPTY_TEXT_WARNING)
    elif word_count <= FEW_WORDS:
        warnings.append(FEW_WORDS_WARNING)

    return ParseResult(
        text=text,
        confidence=PLAIN_TEXT_CONFIDENCE if text else 0,
        warnings=warnings,
        metadata=_metadata(text, word_count, "text"),
    )


class DocumentParser:
    """Routes raw bytes to the extractor for their media type."""

    def __init__(self) -> None:
        """Initialize the parser registry."""
        self.handlers: Dict[str, Callable[[bytes], ParseResult]] = {
            PDF: parse_pdf,
            DOCX: parse_docx,
            MSWORD: parse_docx,
            TEXT: parse_text,
        }

    def supports(self, mime_type: str) -> bool:
        return self._normalize(mime_type) in self.handlers

    @staticmethod
    def _normalize(mime_type: str) -> str:
        return mime_type.split(";", 1)[0].strip().lower()

    def parse(self, data: bytes, mime_type: str) -> ParseResult:
        """
        Extract text and score its quality.

        Args:
            data: Raw document bytes.
            mime_type: Declared media type.

        Returns:
            Extracted text, confidence, warnings and metadata.

        Raises:
            UnsupportedFormatError: If no parser handles the media type.
            ParseFailureError: If the extraction engine fails.
        """
        handler = self.handlers.get(self._normalize(mime_type))
        if handler is None:
            raise UnsupportedFormatError(mime_type)

        result = handler(data)
        logger.info(
            f"Parsed {mime_type}: {result.metadata.word_count} words, "
            f"{result.confidence}% confidence, {len(result.warnings)} warnings"
        )
        return result
