"""Unit tests for the resumable document pipeline."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import fitz
import pytest

from trustrag.core.exceptions import InvalidTransitionError
from trustrag.models.document import Document, DocumentStatus, utcnow
from trustrag.services.chunking import ChunkingService
from trustrag.services.parser import FEW_WORDS_WARNING, SCANNED_PDF_WARNING
from trustrag.services.pipeline import TOO_SHORT_TO_INDEX_WARNING, DocumentPipeline
from trustrag.services.sweeper import StuckDocumentSweeper

LONG_TEXT = "\n\n".join(
    f"Paragraph {i}: our literacy program served youth across the county this year."
    for i in range(40)
).encode("utf-8")


def _document(mime_type: str = "text/plain", key: str = "org-a/report.txt") -> Document:
    return Document(
        id="doc-1",
        organization_id="org-a",
        name="report.txt",
        storage_key=key,
        mime_type=mime_type,
    )


def _pipeline(
    repository, storage, embedder, index, max_retries: int = 3, dlq_service=None
) -> DocumentPipeline:
    return DocumentPipeline(
        repository=repository,
        storage=storage,
        embedder=embedder,
        index=index,
        chunking=ChunkingService(chunk_size=500, chunk_overlap=50),
        max_retries=max_retries,
        retry_delay=0,
        dlq_service=dlq_service,
    )


def _dlq() -> MagicMock:
    dlq = MagicMock()
    dlq.send_failed_document = AsyncMock()
    return dlq


class Gate:
    """Holds a call until the test releases it."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def wait(self) -> None:
        self.entered.set()
        await self.release.wait()


class GatedStorage:
    def __init__(self, inner, gate: Gate) -> None:
        self.inner = inner
        self.gate = gate

    async def get(self, key):
        await self.gate.wait()
        return await self.inner.get(key)


class GatedEmbedder:
    def __init__(self, inner, gate: Gate) -> None:
        self.inner = inner
        self.gate = gate

    async def embed(self, text):
        return (await self.embed_batch([text]))[0]

    async def embed_batch(self, texts):
        await self.gate.wait()
        return await self.inner.embed_batch(texts)


class CrashingEmbedder:
    """Raises an unexpected error, as a worker crash would."""

    async def embed(self, text):
        raise RuntimeError("worker killed")

    async def embed_batch(self, texts):
        raise RuntimeError("worker killed")


@pytest.mark.asyncio
async def test_text_document_completes_and_is_indexed(repository, index, embedder, make_storage) -> None:
    await repository.add(_document())
    storage = make_storage({"org-a/report.txt": LONG_TEXT})

    document = await _pipeline(repository, storage, embedder, index).process("doc-1")

    assert document.status == DocumentStatus.COMPLETED
    assert document.parse_confidence == 95
    assert document.completed_steps == ["parse", "chunk", "index"]
    assert document.processed_at is not None

    chunks = await repository.get_chunks("doc-1")
    assert len(chunks) > 1
    assert index.count("org-a") == len(chunks)
    assert document.metadata["vector_ids"] == [chunk.id for chunk in chunks]

    hits = await index.query("org-a", embedder.vector("literacy"), top_k=1)
    assert hits[0]["metadata"]["document_name"] == "report.txt"
    assert hits[0]["metadata"]["organization_id"] == "org-a"


@pytest.mark.asyncio
async def test_few_words_warning_does_not_force_review(repository, index, embedder, make_storage) -> None:
    await repository.add(_document())
    text = " ".join(f"word{i}" for i in range(50)).encode("utf-8")
    storage = make_storage({"org-a/report.txt": text})

    document = await _pipeline(repository, storage, embedder, index).process("doc-1")

    assert document.status == DocumentStatus.COMPLETED
    assert document.parse_confidence == 95
    assert FEW_WORDS_WARNING in document.warnings


@pytest.mark.asyncio
async def test_scanned_pdf_needs_review_and_is_not_indexed(repository, index, embedder, make_storage) -> None:
    pdf = fitz.open()
    pdf.new_page().insert_text((72, 72), "Grant application scanned cover page 001")
    data = pdf.tobytes()
    pdf.close()
    await repository.add(_document("application/pdf", "org-a/scan.pdf"))
    storage = make_storage({"org-a/scan.pdf": data})

    document = await _pipeline(repository, storage, embedder, index).process("doc-1")

    assert document.status == DocumentStatus.NEEDS_REVIEW
    assert document.parse_confidence == 30
    assert SCANNED_PDF_WARNING in document.warnings
    assert TOO_SHORT_TO_INDEX_WARNING in document.warnings
    assert document.metadata["vectorized"] is False
    assert index.count("org-a") == 0


@pytest.mark.asyncio
async def test_unsupported_format_fails_without_fetching(repository, index, embedder, make_storage) -> None:
    await repository.add(_document("image/png", "org-a/logo.png"))
    storage = make_storage({"org-a/logo.png": b"\x89PNG"})

    document = await _pipeline(repository, storage, embedder, index).process("doc-1")

    assert document.status == DocumentStatus.FAILED
    assert "Unsupported media type: image/png" in document.failure_reason
    assert storage.calls == 0


@pytest.mark.asyncio
async def test_transient_storage_errors_are_retried(repository, index, embedder, make_storage) -> None:
    await repository.add(_document())
    storage = make_storage({"org-a/report.txt": LONG_TEXT}, failures=2)

    document = await _pipeline(repository, storage, embedder, index).process("doc-1")

    assert document.status == DocumentStatus.COMPLETED
    assert storage.calls == 3


@pytest.mark.asyncio
async def test_step_fails_document_after_bounded_attempts(repository, index, embedder, make_storage) -> None:
    await repository.add(_document())
    storage = make_storage({"org-a/report.txt": LONG_TEXT}, failures=100)

    document = await _pipeline(repository, storage, embedder, index, max_retries=2).process("doc-1")

    assert document.status == DocumentStatus.FAILED
    assert document.failure_reason.startswith("parse failed:")
    assert document.failure_reason in document.warnings
    assert storage.calls == 3
    assert (await repository.get("doc-1")).status == DocumentStatus.FAILED


@pytest.mark.asyncio
async def test_embedding_outage_fails_at_index_step(repository, index, make_embedder, make_storage) -> None:
    await repository.add(_document())
    storage = make_storage({"org-a/report.txt": LONG_TEXT})
    embedder = make_embedder(fail=True)

    document = await _pipeline(repository, storage, embedder, index, max_retries=1).process("doc-1")

    assert document.status == DocumentStatus.FAILED
    assert document.failure_reason.startswith("index failed:")
    assert document.completed_steps == ["parse", "chunk"]
    assert embedder.calls == 2


@pytest.mark.asyncio
async def test_rerun_resumes_after_completed_steps(repository, index, embedder, make_storage) -> None:
    await repository.add(_document())
    storage = make_storage({"org-a/report.txt": LONG_TEXT})

    with pytest.raises(RuntimeError):
        await _pipeline(repository, storage, CrashingEmbedder(), index).process("doc-1")

    interrupted = await repository.get("doc-1")
    assert interrupted.status == DocumentStatus.PROCESSING
    assert interrupted.completed_steps == ["parse", "chunk"]

    document = await _pipeline(repository, storage, embedder, index).process("doc-1")

    assert document.status == DocumentStatus.COMPLETED
    assert storage.calls == 1
    assert index.count("org-a") > 0


@pytest.mark.asyncio
async def test_terminal_document_is_not_processed_again(repository, index, embedder, make_storage) -> None:
    await repository.add(_document())
    storage = make_storage({"org-a/report.txt": LONG_TEXT})
    pipeline = _pipeline(repository, storage, embedder, index)

    await pipeline.process("doc-1")
    document = await pipeline.process("doc-1")

    assert document.status == DocumentStatus.COMPLETED
    assert storage.calls == 1


@pytest.mark.asyncio
async def test_reprocess_replaces_vectors(repository, index, embedder, make_storage) -> None:
    await repository.add(_document())
    storage = make_storage({"org-a/report.txt": LONG_TEXT})
    pipeline = _pipeline(repository, storage, embedder, index)
    first = await pipeline.process("doc-1")

    storage.objects["org-a/report.txt"] = b"Short replacement about housing budget."
    document = await pipeline.reprocess("doc-1")

    assert storage.calls == 2
    assert document.status == DocumentStatus.COMPLETED
    assert document.completed_steps == ["parse", "chunk", "index"]
    assert len(await repository.get_chunks("doc-1")) == 1
    assert index.count("org-a") == 0
    assert first.metadata["vector_ids"]


@pytest.mark.asyncio
async def test_reprocess_rejects_documents_in_flight(repository, index, embedder, make_storage) -> None:
    document = _document()
    document.status = DocumentStatus.PROCESSING
    await repository.add(document)
    pipeline = _pipeline(repository, make_storage(), embedder, index)

    with pytest.raises(InvalidTransitionError):
        await pipeline.reprocess("doc-1")


@pytest.mark.asyncio
async def test_failed_run_is_published_to_dead_letter_queue(repository, index, embedder, make_storage) -> None:
    await repository.add(_document("image/png", "org-a/logo.png"))
    dlq = _dlq()

    document = await _pipeline(
        repository, make_storage(), embedder, index, dlq_service=dlq).process("doc-1")

    assert document.status == DocumentStatus.FAILED
    dlq.send_failed_document.assert_awaited_once()
    assert dlq.send_failed_document.await_args.args[0].failure_reason == document.failure_reason


@pytest.mark.asyncio
async def test_sweep_during_run_is_not_overwritten(repository, index, embedder, make_storage) -> None:
    await repository.add(_document())
    gate = Gate()
    storage = GatedStorage(make_storage({"org-a/report.txt": LONG_TEXT}), gate)
    dlq = _dlq()
    pipeline = _pipeline(repository, storage, embedder, index, dlq_service=dlq)
    sweeper = StuckDocumentSweeper(repository, processing_timeout_seconds=3600, dlq_service=dlq)

    run = asyncio.create_task(pipeline.process("doc-1"))
    await gate.entered.wait()
    report = await sweeper.sweep(now=utcnow() + timedelta(hours=2))
    gate.release.set()
    document = await run

    assert report.processing_failed == ["doc-1"]
    stored = await repository.get("doc-1")
    assert document.status == DocumentStatus.FAILED
    assert stored.status == DocumentStatus.FAILED
    assert stored.failure_reason == "Stuck in PROCESSING"
    assert "Document stuck in PROCESSING status for over 1 hour." in stored.warnings
    assert stored.completed_steps == []
    assert await repository.get_chunks("doc-1") == []
    assert index.count("org-a") == 0
    dlq.send_failed_document.assert_awaited_once()


@pytest.mark.asyncio
async def test_step_progress_keeps_document_out_of_sweep(repository, index, embedder, make_storage) -> None:
    document = _document()
    document.status = DocumentStatus.PROCESSING
    document.updated_at = utcnow() - timedelta(minutes=59)
    await repository.add(document)
    gate = Gate()
    storage = make_storage({"org-a/report.txt": LONG_TEXT})
    pipeline = _pipeline(repository, storage, GatedEmbedder(embedder, gate), index)
    sweeper = StuckDocumentSweeper(repository, processing_timeout_seconds=3600)

    run = asyncio.create_task(pipeline.process("doc-1"))
    await gate.entered.wait()
    in_progress = await repository.get("doc-1")
    report = await sweeper.sweep(now=utcnow() + timedelta(minutes=30))
    gate.release.set()
    document = await run

    assert in_progress.completed_steps == ["parse", "chunk"]
    assert in_progress.updated_at > utcnow() - timedelta(minutes=5)
    assert report.processing_failed == []
    assert document.status == DocumentStatus.COMPLETED
