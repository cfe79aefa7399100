"""Ingest Service: consumes upload events and runs the document pipeline."""

import asyncio
import json
import logging
from contextlib import asynccontextmanager

from aiokafka import AIOKafkaConsumer
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from trustrag.api.health import check_all_dependencies, check_readiness
from trustrag.core.config import settings
from trustrag.core.dependencies import services
from trustrag.core.exceptions import (
    DocumentNotFoundError,
    InvalidTransitionError,
    StaleDocumentError,
)
from trustrag.models.document_api import DocumentResponse, SweepResponse

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    await services.initialize()
    logger.info("Ingest Service started")
    tasks = [
        asyncio.create_task(consume_kafka_events()),
        asyncio.create_task(run_periodic_sweep()),
    ]
    yield
    for task in tasks:
        task.cancel()
    await services.shutdown()
    logger.info("Ingest Service stopped")


app = FastAPI(title="Ingest Service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def consume_kafka_events() -> None:
    """Consume document uploaded events from Kafka."""
    consumer = AIOKafkaConsumer(
        settings.kafka_topic_documents,
        bootstrap_servers=settings.kafka_bootstrap_servers,
        value_deserializer=lambda m: json.loads(m.decode("utf-8")),
        auto_offset_reset="earliest",
        enable_auto_commit=True,
        group_id="ingest-service",
    )

    await consumer.start()
    logger.info(
        f"Started consuming from topic: {settings.kafka_topic_documents}")

    try:
        async for message in consumer:
            event_data = message.value
            try:
                if isinstance(event_data, dict) and "payload" in event_data:
                    event_data = event_data["payload"]

                if not isinstance(event_data, dict):
                    logger.warning(
                        f"Event data is not a dict: {type(event_data)}, skipping"
                    )
                    continue

                await services.event_processor.process_event(event_data)
            except Exception as e:
                error_msg = str(e)
                logger.error(
                    f"Error processing message at offset {message.offset}: {error_msg}"
                )

                try:
                    await services.dlq_service.send_failed_event(
                        event_data=event_data if isinstance(event_data, dict) else {},
                        error=error_msg,
                        original_topic=settings.kafka_topic_documents,
                        offset=message.offset,
                        partition=message.partition,
                    )
                except Exception as dlq_error:
                    logger.error(
                        f"Failed to send event to DLQ: {str(dlq_error)}")
    finally:
        await consumer.stop()


async def run_periodic_sweep() -> None:
    """Fail stuck documents on a fixed interval."""
    while True:
        await asyncio.sleep(settings.sweep_interval_seconds)
        try:
            await services.sweeper.sweep()
        except Exception as e:
            logger.error(f"Periodic sweep failed: {str(e)}")


@app.get("/health")
async def health() -> dict:
    """
    Health check endpoint with dependency verification.

    Returns:
        Health status with service dependencies.
    """
    result = await check_all_dependencies(
        services.vector_db, services.database, include_kafka=True)
    return {"service": "ingest-service", **result}


@app.get("/ready")
async def readiness() -> dict:
    """
    Readiness check endpoint.

    Returns:
        Readiness status.
    """
    result = await check_readiness(
        services.vector_db, services.database, include_kafka=True)
    return {"service": "ingest-service", **result}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str) -> DocumentResponse:
    """
    Get a document's processing state.

    Args:
        document_id: Document ID.

    Returns:
        Document status, parse confidence and warnings.
    """
    try:
        document = await services.database.get(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return DocumentResponse.from_document(document)


@app.post("/documents/{document_id}/process", response_model=DocumentResponse)
async def process_document(document_id: str) -> DocumentResponse:
    """
    Run or resume the pipeline for a registered document.

    Args:
        document_id: Document ID.

    Returns:
        Document after processing.
    """
    try:
        document = await services.pipeline.process(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return DocumentResponse.from_document(document)


@app.post("/documents/{document_id}/reprocess", response_model=DocumentResponse)
async def reprocess_document(document_id: str) -> DocumentResponse:
    """
    Start a new processing cycle for a finished document.

    Args:
        document_id: Document ID.

    Returns:
        Document after reprocessing.
    """
    try:
        document = await services.pipeline.reprocess(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvalidTransitionError, StaleDocumentError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    return DocumentResponse.from_document(document)


@app.post("/sweep", response_model=SweepResponse)
async def sweep() -> SweepResponse:
    """
    Fail documents stuck in PENDING or PROCESSING.

    Returns:
        Ids of the documents marked FAILED.
    """
    report = await services.sweeper.sweep()
    return SweepResponse(total=report.total, **report.model_dump())
