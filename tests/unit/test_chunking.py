"""Unit tests for document chunking."""

import pytest

from trustrag.models.document import chunk_uuid
from trustrag.services.chunking import ChunkingService, chunk_text, normalize_text


def _paragraphs(count: int) -> str:
    return "\n\n".join(
        f"Paragraph {i} describes program outcomes for the year. It has two sentences only."
        for i in range(count)
    )


def test_short_text_returns_single_trimmed_chunk() -> None:
    chunks = chunk_text("  \n A short document.  \n", chunk_size=100, overlap=10)

    assert len(chunks) == 1
    assert chunks[0].text == "A short document."
    assert chunks[0].index == 0


def test_blank_text_returns_no_chunks() -> None:
    assert chunk_text("   \n\n  ") == []


def test_chunking_is_deterministic() -> None:
    text = _paragraphs(40)

    first = chunk_text(text, chunk_size=300, overlap=50)
    second = chunk_text(text, chunk_size=300, overlap=50)

    assert first == second
    assert len(first) > 1


def test_paragraph_chunks_respect_size_and_indices() -> None:
    chunks = chunk_text(_paragraphs(40), chunk_size=300, overlap=50)

    assert [chunk.index for chunk in chunks] == list(range(len(chunks)))
    for chunk in chunks:
        assert len(chunk.text) <= 300


def test_adjacent_chunks_overlap_at_most_configured_size() -> None:
    text = _paragraphs(40)
    normalized = normalize_text(text)

    chunks = chunk_text(text, chunk_size=300, overlap=50)

    for chunk in chunks:
        assert normalized[chunk.start_char:chunk.end_char] == chunk.text
    for previous, following in zip(chunks, chunks[1:]):
        assert following.start_char > previous.start_char
        assert previous.end_char - following.start_char <= 50


def test_text_without_paragraphs_falls_back_to_fixed_slices() -> None:
    text = "word " * 1000

    chunks = chunk_text(text, chunk_size=1000, overlap=100)

    assert len(chunks) > 4
    for previous, following in zip(chunks, chunks[1:]):
        shared = previous.end_char - following.start_char
        assert 0 < shared <= 100
    assert chunks[-1].end_char == len(text.rstrip())


def test_fixed_slices_prefer_sentence_breaks() -> None:
    text = " ".join(f"Sentence number {i} is here." for i in range(100))

    chunks = chunk_text(text, chunk_size=200, overlap=20)

    assert len(chunks) > 1
    for chunk in chunks[:-1]:
        assert chunk.text.endswith(".")


def test_carriage_returns_are_normalized() -> None:
    chunks = chunk_text("first line\r\nsecond line", chunk_size=100, overlap=0)

    assert chunks[0].text == "first line\nsecond line"


@pytest.mark.parametrize("chunk_size,overlap", [(0, 0), (100, 100), (100, -1)])
def test_invalid_options_raise(chunk_size: int, overlap: int) -> None:
    with pytest.raises(ValueError):
        chunk_text("some text", chunk_size=chunk_size, overlap=overlap)


def test_service_binds_chunks_to_document() -> None:
    service = ChunkingService(chunk_size=300, chunk_overlap=50)

    chunks = service.chunk_document(_paragraphs(10), "doc-1")

    assert all(chunk.document_id == "doc-1" for chunk in chunks)
    assert chunks[1].id == chunk_uuid("doc-1", 1)
    assert chunks[0].end_offset > chunks[0].start_offset
