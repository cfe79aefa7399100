"""Health check service for dependency verification."""

import asyncio
import time
from typing import Any, Dict, Optional

from aiokafka import AIOKafkaConsumer
from openai import AsyncOpenAI

from trustrag.core.config import settings
from trustrag.services.database import DatabaseService
from trustrag.services.vector_db import VectorDBService


def _unhealthy(error: str) -> Dict[str, Any]:
    return {"status": "unhealthy", "error": error, "latency_ms": 0}


async def check_qdrant(vector_db: VectorDBService) -> Dict[str, Any]:
    """
    Check Qdrant connectivity and count organization namespaces.

    Args:
        vector_db: VectorDBService instance.

    Returns:
        Health status dictionary.
    """
    try:
        start_time = time.time()
        if not vector_db.client:
            return _unhealthy("Not connected")

        namespaces = await vector_db.list_namespaces()
        latency_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
            "namespaces": len(namespaces),
        }
    except Exception as e:
        return _unhealthy(str(e))


async def check_openai(client: Optional[AsyncOpenAI] = None) -> Dict[str, Any]:
    """
    Check OpenAI API connectivity.

    Args:
        client: Client to probe; a new one is built from settings if omitted.

    Returns:
        Health status dictionary.
    """
    if not settings.openai_api_key:
        return {"status": "not_configured", "error": "API key not set"}

    try:
        client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        start_time = time.time()
        await client.models.list()
        latency_ms = (time.time() - start_time) * 1000

        return {"status": "healthy", "latency_ms": round(latency_ms, 2)}
    except Exception as e:
        error_msg = str(e).lower()
        if "api key" in error_msg or "authentication" in error_msg:
            return {"status": "unhealthy", "error": "Invalid API key"}
        return _unhealthy(str(e))


async def check_kafka() -> Dict[str, Any]:
    """
    Check Kafka connectivity.

    Returns:
        Health status dictionary.
    """
    try:
        start_time = time.time()
        consumer = AIOKafkaConsumer(
            bootstrap_servers=settings.kafka_bootstrap_servers,
            enable_auto_commit=False,
        )
        await consumer.start()
        latency_ms = (time.time() - start_time) * 1000
    except Exception as e:
        return _unhealthy(str(e))

    try:
        await asyncio.wait_for(consumer.stop(), timeout=1.0)
    except asyncio.TimeoutError:
        pass

    return {"status": "healthy", "latency_ms": round(latency_ms, 2)}


async def check_postgres(database: DatabaseService) -> Dict[str, Any]:
    """
    Check PostgreSQL connectivity through the service pool.

    Args:
        database: DatabaseService instance.

    Returns:
        Health status dictionary.
    """
    try:
        if not database.pool:
            return _unhealthy("Not connected")

        start_time = time.time()
        async with database.pool.acquire() as conn:
            await conn.execute("SELECT 1")
        latency_ms = (time.time() - start_time) * 1000

        return {"status": "healthy", "latency_ms": round(latency_ms, 2)}
    except Exception as e:
        return _unhealthy(str(e))
