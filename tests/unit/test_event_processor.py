"""Unit tests for upload event handling."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from trustrag.models.document import DocumentStatus
from trustrag.services.event_processor import EventProcessor
from trustrag.services.pipeline import DocumentPipeline


def _processor(repository, index, embedder, storage, dlq=None) -> EventProcessor:
    pipeline = DocumentPipeline(
        repository=repository,
        storage=storage,
        embedder=embedder,
        index=index,
        max_retries=0,
        retry_delay=0,
        dlq_service=dlq,
    )
    return EventProcessor(repository, pipeline)


def _event(**overrides) -> dict:
    event = {
        "document_id": "doc-1",
        "organization_id": "org-a",
        "storage_key": "org-a/notes.txt",
        "mime_type": "text/plain",
        "name": "notes.txt",
        "__source_ts_ms": 1714560000000,
    }
    event.update(overrides)
    return event


@pytest.mark.asyncio
async def test_event_registers_and_processes_document(repository, index, embedder, make_storage) -> None:
    storage = make_storage({"org-a/notes.txt": b"Youth literacy notes " * 20})
    processor = _processor(repository, index, embedder, storage)

    document = await processor.process_event(_event())

    assert document.status == DocumentStatus.COMPLETED
    stored = await repository.get("doc-1")
    assert stored.name == "notes.txt"
    assert stored.created_at.year == 2024


@pytest.mark.asyncio
async def test_invalid_event_is_skipped(repository, index, embedder, make_storage) -> None:
    processor = _processor(repository, index, embedder, make_storage())

    assert await processor.process_event({"document_id": "doc-1"}) is None


@pytest.mark.asyncio
async def test_failed_document_goes_to_dead_letter_queue(repository, index, embedder, make_storage) -> None:
    dlq = MagicMock()
    dlq.send_failed_document = AsyncMock()
    processor = _processor(repository, index, embedder, make_storage(), dlq)

    document = await processor.process_event(_event(mime_type="image/png"))

    assert document.status == DocumentStatus.FAILED
    dlq.send_failed_document.assert_awaited_once()
    assert dlq.send_failed_document.await_args.args[0].id == "doc-1"


@pytest.mark.asyncio
async def test_redelivered_event_does_not_reprocess(repository, index, embedder, make_storage) -> None:
    storage = make_storage({"org-a/notes.txt": b"Youth literacy notes " * 20})
    processor = _processor(repository, index, embedder, storage)

    await processor.process_event(_event())
    await processor.process_event(_event())

    assert storage.calls == 1
