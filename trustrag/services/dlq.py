"""Dead Letter Queue service for failed documents and events."""

import json
import logging
import time
from typing import Optional

from aiokafka import AIOKafkaProducer

from trustrag.core.config import settings
from trustrag.core.exceptions import DLQError
from trustrag.models.document import Document

logger = logging.getLogger(__name__)


class DLQService:
    """Service for sending failed events to Dead Letter Queue."""

    def __init__(self, producer: Optional[AIOKafkaProducer] = None) -> None:
        """
        Initialize the DLQ service.

        Args:
            producer: Optional pre-built producer.
        """
        self.producer = producer
        self.enabled = settings.dlq_enabled

    async def connect(self) -> None:
        """Connect to Kafka for DLQ."""
        if not self.enabled:
            return

        try:
            self.producer = AIOKafkaProducer(
                bootstrap_servers=settings.kafka_bootstrap_servers,
                value_serializer=lambda v: json.dumps(v).encode("utf-8"),
            )
            await self.producer.start()
            logger.info("DLQ service connected")
        except Exception as e:
            logger.error(f"Failed to connect DLQ service: {str(e)}")
            raise DLQError(f"Failed to connect DLQ service: {str(e)}") from e

    async def disconnect(self) -> None:
        """Disconnect from Kafka."""
        if self.producer:
            await self.producer.stop()

    async def _send(self, message: dict) -> None:
        if not self.enabled or not self.producer:
            logger.warning("DLQ is disabled, not sending failed event")
            return

        try:
            await self.producer.send_and_wait(settings.dlq_topic, value=message)
        except Exception as e:
            logger.error(f"Failed to send event to DLQ: {str(e)}")
            raise DLQError(f"Failed to send event to DLQ: {str(e)}") from e

    async def send_failed_event(
        self,
        event_data: dict,
        error: str,
        original_topic: str,
        offset: Optional[int] = None,
        partition: Optional[int] = None,
    ) -> None:
        """
        Send an event that could not be handled to the Dead Letter Queue.

        Args:
            event_data: Original event data that failed.
            error: Error message describing the failure.
            original_topic: Original Kafka topic.
            offset: Original message offset.
            partition: Original message partition.
        """
        await self._send({
            "original_event": event_data,
            "error": error,
            "original_topic": original_topic,
            "offset": offset,
            "partition": partition,
            "timestamp": time.time(),
        })
        logger.info(
            f"Sent failed event to DLQ: topic={original_topic}, "
            f"offset={offset}, error={error[:100]}"
        )

    async def send_failed_document(self, document: Document) -> None:
        """
        Publish a document that ended its cycle FAILED.

        Args:
            document: The failed document.
        """
        await self._send({
            "document_id": document.id,
            "organization_id": document.organization_id,
            "storage_key": document.storage_key,
            "mime_type": document.mime_type,
            "error": document.failure_reason,
            "completed_steps": document.completed_steps,
            "timestamp": time.time(),
        })
        logger.info(f"Sent failed document {document.id} to DLQ")


async def publish_failed_document(dlq_service: Optional[DLQService], document: Document) -> None:
    """
    Publish a FAILED document, logging rather than raising on DLQ errors.

    The FAILED status is already persisted when this runs.

    Args:
        dlq_service: Dead letter queue, or None when not wired.
        document: The failed document.
    """
    if dlq_service is None:
        return
    try:
        await dlq_service.send_failed_document(document)
    except DLQError as e:
        logger.error(f"Failed to publish document {document.id} to DLQ: {str(e)}")
