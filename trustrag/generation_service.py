"""Generation Service: grounded drafts gated by confidence."""

import logging
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from trustrag.api.health import check_all_dependencies, check_readiness
from trustrag.core.dependencies import services
from trustrag.core.exceptions import GenerationProviderError
from trustrag.models.generation import DraftRequest
from trustrag.models.retrieval import RetrievalMatch
from trustrag.models.trust import GatedDraft

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    await services.initialize(with_database=False)
    logger.info("Generation Service started")
    yield
    await services.vector_db.disconnect()
    logger.info("Generation Service stopped")


app = FastAPI(title="Generation Service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class SearchRequest(BaseModel):
    """Search request model."""

    organization_id: str = Field(..., min_length=1)
    query: str
    top_k: Optional[int] = Field(default=None, ge=1, le=100)


class SearchResponse(BaseModel):
    """Search response model."""

    matches: List[RetrievalMatch]
    latency_ms: float


@app.post("/drafts", response_model=GatedDraft)
async def create_draft(request: DraftRequest) -> GatedDraft:
    """
    Generate a draft grounded in the organization's documents.

    Args:
        request: Draft request.

    Returns:
        Gated draft; low-confidence content is withheld.
    """
    start_time = time.time()
    try:
        gated = await services.draft_generator.draft(request)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except GenerationProviderError as e:
        raise HTTPException(status_code=502, detail=f"Generation failed: {str(e)}")

    logger.info(f"Draft generated in {(time.time() - start_time) * 1000:.2f}ms")
    return gated


@app.post("/search", response_model=SearchResponse)
async def search(request: SearchRequest) -> SearchResponse:
    """
    Search an organization's indexed chunks.

    Args:
        request: Search request.

    Returns:
        Matches ordered by relevance.
    """
    start_time = time.time()
    try:
        matches = await services.retrieval.search(
            request.organization_id, request.query, request.top_k)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return SearchResponse(matches=matches, latency_ms=(time.time() - start_time) * 1000)


@app.get("/health")
async def health() -> dict:
    """
    Health check endpoint with dependency verification.

    Returns:
        Health status with service dependencies.
    """
    result = await check_all_dependencies(services.vector_db)
    return {"service": "generation-service", **result}


@app.get("/ready")
async def readiness() -> dict:
    """
    Readiness check endpoint.

    Returns:
        Readiness status.
    """
    result = await check_readiness(services.vector_db)
    return {"service": "generation-service", **result}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
