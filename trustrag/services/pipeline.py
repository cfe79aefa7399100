"""Resumable document pipeline: parse -> chunk -> index."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, TypeVar

from trustrag.core.config import settings
from trustrag.core.exceptions import (
    EmbeddingUnavailableError,
    IndexUnavailableError,
    ParseFailureError,
    StaleDocumentError,
    StorageError,
    UnsupportedFormatError,
)
from trustrag.core.protocols import DocumentRepository, Embedder, ObjectStorage, VectorIndex
from trustrag.models.document import (
    Chunk,
    Document,
    DocumentStatus,
    EmbeddingMetadata,
    EmbeddingRecord,
    utcnow,
)
from trustrag.models.parse import ParseResult
from trustrag.monitoring.metrics import (
    document_processing_duration,
    documents_processed_total,
    parse_confidence,
    pipeline_step_failures_total,
)
from trustrag.services.chunking import ChunkingService
from trustrag.services.dlq import DLQService, publish_failed_document
from trustrag.services.document_state import (
    TERMINAL_STATUSES,
    status_for_parse_confidence,
    transition,
)
from trustrag.services.parser import DocumentParser
from trustrag.services.retry import retry_with_backoff

logger = logging.getLogger(__name__)

T = TypeVar("T")

STEP_PARSE = "parse"
STEP_CHUNK = "chunk"
STEP_INDEX = "index"
STEPS = (STEP_PARSE, STEP_CHUNK, STEP_INDEX)

TOO_SHORT_TO_INDEX_WARNING = "Document text too short to index for retrieval."


class StepFailedError(Exception):
    """A pipeline step exhausted its attempts."""

    def __init__(self, step: str, reason: str) -> None:
        self.step = step
        self.reason = reason
        super().__init__(f"{step} failed: {reason}")


class DocumentPipeline:
    """Processes one document through parse, chunk and index.

    Each completed step is recorded on the document together with its
    persisted output, so a retried run resumes at the first unfinished step.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        storage: ObjectStorage,
        embedder: Embedder,
        index: VectorIndex,
        parser: Optional[DocumentParser] = None,
        chunking: Optional[ChunkingService] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        min_index_chars: Optional[int] = None,
        dlq_service: Optional[DLQService] = None,
    ) -> None:
        """
        Initialize document pipeline.

        Args:
            repository: Document repository.
            storage: Object storage holding raw bytes.
            embedder: Embedding provider.
            index: Namespace-partitioned vector index.
            parser: Document parser.
            chunking: Chunking service.
            max_retries: Retries per step after the first attempt.
            retry_delay: Initial backoff delay in seconds.
            min_index_chars: Shorter extracted text is not vectorized.
            dlq_service: Dead letter queue for documents that end FAILED.
        """
        self.repository = repository
        self.storage = storage
        self.embedder = embedder
        self.index = index
        self.parser = parser or DocumentParser()
        self.chunking = chunking or ChunkingService()
        self.max_retries = settings.max_retries if max_retries is None else max_retries
        self.retry_delay = settings.retry_delay_seconds if retry_delay is None else retry_delay
        self.min_index_chars = (
            settings.min_index_chars if min_index_chars is None else min_index_chars
        )
        self.dlq_service = dlq_service

    async def _attempt(
        self,
        document: Document,
        step: str,
        func: Callable[[], Awaitable[T]],
        exceptions: tuple,
    ) -> T:
        try:
            return await retry_with_backoff(
                func,
                max_retries=self.max_retries,
                delay=self.retry_delay,
                exceptions=exceptions,
                description=f"{step} {document.id}",
            )
        except exceptions as e:
            raise StepFailedError(step, str(e)) from e

    @staticmethod
    def _mark_complete(document: Document, step: str) -> None:
        if step not in document.completed_steps:
            document.completed_steps.append(step)

    async def _parse(self, document: Document) -> None:
        if not self.parser.supports(document.mime_type):
            raise UnsupportedFormatError(document.mime_type)

        async def fetch_and_parse() -> ParseResult:
            data = await self.storage.get(document.storage_key)
            return await asyncio.to_thread(self.parser.parse, data, document.mime_type)

        result = await self._attempt(
            document, STEP_PARSE, fetch_and_parse, (StorageError, ParseFailureError))

        document.extracted_text = result.text
        document.parse_confidence = result.confidence
        document.add_warnings(result.warnings)
        document.metadata.update(result.metadata.model_dump())
        parse_confidence.observe(result.confidence)

    async def _chunk(self, document: Document) -> None:
        chunks = self.chunking.chunk_document(document.extracted_text or "", document.id)
        await self.repository.save_chunks(document.id, chunks)
        document.metadata["chunk_count"] = len(chunks)
        logger.info(f"Generated {len(chunks)} chunks for document {document.id}")

    def _records(self, document: Document, chunks: List[Chunk], vectors: List[List[float]]) -> List[EmbeddingRecord]:
        return [
            EmbeddingRecord(
                chunk_id=chunk.id,
                document_id=document.id,
                namespace=document.organization_id,
                vector=vector,
                metadata=EmbeddingMetadata(
                    organization_id=document.organization_id,
                    document_id=document.id,
                    document_name=document.name,
                    type=document.mime_type,
                    chunk_index=chunk.index,
                    text=chunk.text,
                ),
            )
            for chunk, vector in zip(chunks, vectors)
        ]

    async def _index(self, document: Document) -> None:
        text = document.extracted_text or ""
        chunks = await self.repository.get_chunks(document.id)
        if len(text) < self.min_index_chars or not chunks:
            document.add_warnings([TOO_SHORT_TO_INDEX_WARNING])
            document.metadata["vectorized"] = False
            logger.info(f"Skipping vectorization of document {document.id}: text too short")
            return

        vectors = await self._attempt(
            document,
            STEP_INDEX,
            lambda: self.embedder.embed_batch([chunk.text for chunk in chunks]),
            (EmbeddingUnavailableError,),
        )
        records = self._records(document, chunks, vectors)
        await self._attempt(
            document,
            STEP_INDEX,
            lambda: self.index.upsert_records(records),
            (IndexUnavailableError,),
        )

        document.metadata["vectorized"] = True
        document.metadata["vector_ids"] = [record.chunk_id for record in records]
        logger.info(
            f"Indexed {len(records)} vectors for document {document.id} "
            f"in namespace {document.organization_id}")

    async def _run_steps(self, document: Document) -> None:
        handlers = {
            STEP_PARSE: self._parse,
            STEP_CHUNK: self._chunk,
            STEP_INDEX: self._index,
        }
        for step in STEPS:
            if step in document.completed_steps:
                logger.debug(f"Skipping completed step {step} for document {document.id}")
                continue
            await handlers[step](document)
            self._mark_complete(document, step)
            # Step progress counts as activity for the stuck-document sweep
            document.updated_at = utcnow()
            await self.repository.save(document, expected_status=DocumentStatus.PROCESSING)

    async def _fail(self, document: Document, step: str, reason: str) -> Document:
        message = f"{step} failed: {reason}"
        document.failure_reason = message
        document.add_warnings([message])
        transition(document, DocumentStatus.FAILED)
        await self.repository.save(document, expected_status=DocumentStatus.PROCESSING)
        pipeline_step_failures_total.labels(step=step).inc()
        documents_processed_total.labels(status=DocumentStatus.FAILED.value).inc()
        logger.error(f"Document {document.id} failed: {message}")
        await publish_failed_document(self.dlq_service, document)
        return document

    async def _run(self, document: Document, start_time: float) -> Document:
        if document.status == DocumentStatus.PENDING:
            transition(document, DocumentStatus.PROCESSING)
            await self.repository.save(document, expected_status=DocumentStatus.PENDING)

        try:
            await self._run_steps(document)
        except UnsupportedFormatError as e:
            return await self._fail(document, STEP_PARSE, str(e))
        except StepFailedError as e:
            return await self._fail(document, e.step, e.reason)

        final_status = status_for_parse_confidence(document.parse_confidence or 0)
        document.failure_reason = None
        transition(document, final_status)
        await self.repository.save(document, expected_status=DocumentStatus.PROCESSING)

        documents_processed_total.labels(status=final_status.value).inc()
        document_processing_duration.observe(time.time() - start_time)
        logger.info(
            f"Processed document {document.id}: {final_status.value}, "
            f"{document.parse_confidence}% confidence, {len(document.warnings)} warnings")
        return document

    async def process(self, document_id: str) -> Document:
        """
        Run the pipeline for a document, resuming after completed steps.

        Every save is conditional on the stored status, so a run whose
        document was moved on by someone else (the stuck-document sweep,
        a concurrent worker) stops without overwriting it.

        Args:
            document_id: Document ID.

        Returns:
            The document in its final status. Already-terminal documents
            are returned unchanged.
        """
        start_time = time.time()
        document = await self.repository.get(document_id)

        if document.status in TERMINAL_STATUSES:
            logger.info(f"Document {document.id} already {document.status.value}, skipping")
            return document

        try:
            return await self._run(document, start_time)
        except StaleDocumentError as e:
            logger.warning(f"Abandoning run of document {document_id}: {str(e)}")
            return await self.repository.get(document_id)

    async def reprocess(self, document_id: str) -> Document:
        """
        Start a new processing cycle for a terminal document.

        Args:
            document_id: Document ID.

        Returns:
            The document after the new cycle.

        Raises:
            InvalidTransitionError: If the document is still in flight.
            StaleDocumentError: If another reprocess claimed the document first.
        """
        document = await self.repository.get(document_id)
        previous_status = document.status
        transition(document, DocumentStatus.PENDING)

        await retry_with_backoff(
            lambda: self.index.delete_document(document.organization_id, document.id),
            max_retries=self.max_retries,
            delay=self.retry_delay,
            exceptions=(IndexUnavailableError,),
            description=f"delete vectors {document.id}",
        )
        await self.repository.delete_chunks(document.id)

        document.completed_steps = []
        document.extracted_text = None
        document.parse_confidence = None
        document.warnings = []
        document.metadata = {}
        document.failure_reason = None
        document.processed_at = None
        await self.repository.save(document, expected_status=previous_status)

        return await self.process(document.id)
