"""Health check utilities."""

from typing import Dict, Optional

from trustrag.services.database import DatabaseService
from trustrag.services.health import (
    check_kafka,
    check_openai,
    check_postgres,
    check_qdrant,
)
from trustrag.services.vector_db import VectorDBService


async def check_all_dependencies(
    vector_db: VectorDBService,
    database: Optional[DatabaseService] = None,
    include_kafka: bool = False,
) -> Dict:
    """
    Check all service dependencies.

    Args:
        vector_db: Vector database service.
        database: Database service, checked when given.
        include_kafka: Whether to check Kafka.

    Returns:
        Dictionary with overall status and individual service statuses.
    """
    services = {
        "qdrant": await check_qdrant(vector_db),
        "openai": await check_openai(),
    }
    if database is not None:
        services["postgres"] = await check_postgres(database)
    if include_kafka:
        services["kafka"] = await check_kafka()

    # An unconfigured OpenAI key is reported but does not fail the check
    overall_status = "healthy"
    for name, status in services.items():
        if name == "openai":
            if status.get("status") == "unhealthy":
                overall_status = "unhealthy"
        elif status.get("status") != "healthy":
            overall_status = "unhealthy"

    return {"status": overall_status, "services": services}


async def check_readiness(
    vector_db: VectorDBService,
    database: Optional[DatabaseService] = None,
    include_kafka: bool = False,
) -> Dict:
    """
    Check service readiness.

    Args:
        vector_db: Vector database service.
        database: Database service, required when given.
        include_kafka: Whether Kafka is required.

    Returns:
        Readiness status dictionary.
    """
    result = {"qdrant": (await check_qdrant(vector_db)).get("status") == "healthy"}
    if database is not None:
        result["postgres"] = (await check_postgres(database)).get("status") == "healthy"
    if include_kafka:
        result["kafka"] = (await check_kafka()).get("status") == "healthy"

    return {"ready": all(result.values()), **result}
