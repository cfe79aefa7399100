"""Periodic sweep that fails documents stuck in an intermediate status."""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from trustrag.core.config import settings
from trustrag.core.exceptions import StaleDocumentError
from trustrag.core.protocols import DocumentRepository
from trustrag.models.document import Document, DocumentStatus, utcnow
from trustrag.monitoring.metrics import documents_swept_total
from trustrag.services.dlq import DLQService, publish_failed_document
from trustrag.services.document_state import transition

logger = logging.getLogger(__name__)

STUCK_WARNINGS: Dict[DocumentStatus, List[str]] = {
    DocumentStatus.PENDING: [
        "Document stuck in PENDING status for over {duration}.",
        "File upload may have failed or was never confirmed.",
        "Please try uploading the document again.",
    ],
    DocumentStatus.PROCESSING: [
        "Document stuck in PROCESSING status for over {duration}.",
        "Background job may have crashed or timed out.",
        "Please try reprocessing the document or contact support.",
    ],
}


class SweepReport(BaseModel):
    """Outcome of one sweep run."""

    swept_at: datetime
    pending_failed: List[str] = Field(default_factory=list)
    processing_failed: List[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.pending_failed) + len(self.processing_failed)


class StuckDocumentSweeper:
    """Marks documents stuck past a timeout as FAILED."""

    def __init__(
        self,
        repository: DocumentRepository,
        pending_timeout_seconds: Optional[float] = None,
        processing_timeout_seconds: Optional[float] = None,
        batch_size: int = 500,
        dlq_service: Optional[DLQService] = None,
    ) -> None:
        """
        Initialize the sweeper.

        Args:
            repository: Document repository.
            pending_timeout_seconds: Age after which PENDING is stuck.
            processing_timeout_seconds: Idle time after which PROCESSING is stuck.
            batch_size: Maximum documents failed per status per run.
            dlq_service: Dead letter queue for swept documents.
        """
        self.repository = repository
        self.timeouts = {
            DocumentStatus.PENDING: (
                settings.stuck_pending_timeout_seconds
                if pending_timeout_seconds is None else pending_timeout_seconds
            ),
            DocumentStatus.PROCESSING: (
                settings.stuck_processing_timeout_seconds
                if processing_timeout_seconds is None else processing_timeout_seconds
            ),
        }
        self.batch_size = batch_size
        self.dlq_service = dlq_service

    def _warnings(self, status: DocumentStatus, now: datetime) -> List[str]:
        hours = self.timeouts[status] / 3600
        duration = f"{hours:g} hour" if hours == 1 else f"{hours:g} hours"
        warnings = [line.format(duration=duration) for line in STUCK_WARNINGS[status]]
        warnings.append(f"Marked as failed by cleanup job at: {now.isoformat()}")
        return warnings

    async def _fail_stuck(self, status: DocumentStatus, now: datetime) -> List[str]:
        cutoff = now - timedelta(seconds=self.timeouts[status])
        stuck: List[Document] = await self.repository.find_stale(
            status, cutoff, limit=self.batch_size)

        failed = []
        for document in stuck:
            document.add_warnings(self._warnings(status, now))
            document.failure_reason = f"Stuck in {status.value}"
            transition(document, DocumentStatus.FAILED, now=now)
            try:
                await self.repository.save(document, expected_status=status)
            except StaleDocumentError as e:
                logger.info(f"Skipping document {document.id}, it moved on: {str(e)}")
                continue
            failed.append(document.id)
            await publish_failed_document(self.dlq_service, document)

        if failed:
            documents_swept_total.labels(status=status.value).inc(len(failed))
            logger.info(f"Marked {len(failed)} {status.value} documents as FAILED")
        return failed

    async def sweep(self, now: Optional[datetime] = None) -> SweepReport:
        """
        Fail every document stuck past its status timeout.

        Args:
            now: Reference time, defaults to the current UTC time.

        Returns:
            Report of the documents marked FAILED.
        """
        now = now or utcnow()
        report = SweepReport(
            swept_at=now,
            pending_failed=await self._fail_stuck(DocumentStatus.PENDING, now),
            processing_failed=await self._fail_stuck(DocumentStatus.PROCESSING, now),
        )
        logger.info(f"Sweep finished: {report.total} stuck documents marked FAILED")
        return report
