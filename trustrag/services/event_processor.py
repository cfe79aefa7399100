"""Event processing service for document uploads."""

import logging
import time
from typing import Optional

from pydantic import ValidationError

from trustrag.core.exceptions import DocumentNotFoundError
from trustrag.core.protocols import DocumentRepository
from trustrag.models.document import Document, utcnow
from trustrag.models.event import DocumentUploadedEvent
from trustrag.services.pipeline import DocumentPipeline

logger = logging.getLogger(__name__)


class EventProcessor:
    """Turns upload events into pipeline runs."""

    def __init__(
        self,
        repository: DocumentRepository,
        pipeline: DocumentPipeline,
    ) -> None:
        """
        Initialize event processor.

        Args:
            repository: Document repository.
            pipeline: Document pipeline, which publishes FAILED documents to the DLQ.
        """
        self.repository = repository
        self.pipeline = pipeline

    def _parse_event(self, event_data: dict) -> Optional[DocumentUploadedEvent]:
        """
        Parse event data into DocumentUploadedEvent.

        Args:
            event_data: Raw event data.

        Returns:
            Parsed event or None if invalid.
        """
        filtered_data = {
            k: v for k, v in event_data.items() if not k.startswith("__")
        }
        if "ts_ms" not in filtered_data and event_data.get("__source_ts_ms"):
            filtered_data["ts_ms"] = event_data["__source_ts_ms"]

        try:
            return DocumentUploadedEvent(**filtered_data)
        except ValidationError as e:
            logger.warning(f"Invalid upload event, skipping: {e.error_count()} errors")
            return None

    async def _get_or_create(self, event: DocumentUploadedEvent) -> Document:
        try:
            return await self.repository.get(event.document_id)
        except DocumentNotFoundError:
            created_at = event.get_timestamp() if event.ts_ms else utcnow()
            document = Document(
                id=event.document_id,
                organization_id=event.organization_id,
                name=event.name,
                storage_key=event.storage_key,
                mime_type=event.mime_type,
                created_at=created_at,
                updated_at=created_at,
            )
            await self.repository.add(document)
            logger.info(
                f"Registered document {document.id} for organization {document.organization_id}")
            return document

    async def process_event(self, event_data: dict) -> Optional[Document]:
        """
        Process a document uploaded event.

        Args:
            event_data: Kafka event payload.

        Returns:
            The processed document, or None for invalid events.
        """
        event = self._parse_event(event_data)
        if not event:
            return None

        if event.ts_ms:
            lag = time.time() - event.get_timestamp().timestamp()
            logger.info(f"Received upload of document {event.document_id}, lag: {lag:.2f}s")

        await self._get_or_create(event)
        return await self.pipeline.process(event.document_id)
