"""Organization-scoped retrieval of ranked chunk matches."""

import asyncio
import logging
import time
from typing import Dict, List, Optional

from trustrag.core.config import settings
from trustrag.core.exceptions import EmbeddingUnavailableError, IndexUnavailableError
from trustrag.core.protocols import Embedder, VectorIndex
from trustrag.models.retrieval import RetrievalMatch
from trustrag.monitoring.metrics import retrieval_degraded_total, retrieval_latency_seconds
from trustrag.services.vector_db import validate_namespace

logger = logging.getLogger(__name__)


def _clamp_score(score: Optional[float]) -> float:
    return max(0.0, min(1.0, float(score or 0.0)))


def to_match(raw: Dict) -> Optional[RetrievalMatch]:
    """
    Convert an index hit into a retrieval match.

    Args:
        raw: Index hit with id, score and metadata.

    Returns:
        The match, or None when the hit carries no text.
    """
    metadata = raw.get("metadata") or {}
    text = metadata.get("text") or ""
    if not text:
        return None
    return RetrievalMatch(
        chunk_id=str(raw.get("id", "")),
        document_id=str(metadata.get("document_id", "")),
        document_name=metadata.get("document_name") or "Unknown",
        chunk_index=int(metadata.get("chunk_index") or 0),
        text=text,
        score=_clamp_score(raw.get("score")),
    )


class RetrievalClient:
    """Embeds a query and searches one organization's namespace.

    Retrieval is best-effort: provider failures and timeouts yield an empty
    list so generation can proceed with reduced confidence.
    """

    def __init__(
        self,
        embedder: Embedder,
        index: VectorIndex,
        top_k: Optional[int] = None,
        min_score: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        """
        Initialize retrieval client.

        Args:
            embedder: Embedding provider.
            index: Namespace-partitioned vector index.
            top_k: Default number of matches.
            min_score: Matches scoring below this are dropped.
            timeout_seconds: Budget for embedding plus search.
        """
        self.embedder = embedder
        self.index = index
        self.top_k = top_k or settings.top_k
        self.min_score = settings.min_match_score if min_score is None else min_score
        self.timeout_seconds = timeout_seconds or settings.retrieval_timeout_seconds

    async def _search(self, organization_id: str, query: str, top_k: int) -> List[RetrievalMatch]:
        vector = await self.embedder.embed(query)
        hits = await self.index.query(organization_id, vector, top_k)

        matches = [match for match in (to_match(hit) for hit in hits) if match is not None]
        matches = [match for match in matches if match.score >= self.min_score]
        matches.sort(key=lambda match: match.score, reverse=True)
        return matches[:top_k]

    async def search(
        self, organization_id: str, query: str, top_k: Optional[int] = None
    ) -> List[RetrievalMatch]:
        """
        Return the organization's chunks most similar to the query.

        Args:
            organization_id: Namespace to search; never crosses into another.
            query: Query text.
            top_k: Number of matches, defaults to the client's top_k.

        Returns:
            Matches with scores in [0, 1], highest first. Empty on failure.

        Raises:
            ValueError: If the organization id is not a valid namespace.
        """
        validate_namespace(organization_id)
        if not query or not query.strip():
            return []

        start_time = time.time()
        try:
            matches = await asyncio.wait_for(
                self._search(organization_id, query, top_k or self.top_k),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Retrieval for organization {organization_id} timed out "
                f"after {self.timeout_seconds:.1f}s")
            retrieval_degraded_total.labels(reason="timeout").inc()
            return []
        except EmbeddingUnavailableError as e:
            logger.warning(f"Embedding unavailable, continuing without context: {str(e)}")
            retrieval_degraded_total.labels(reason="embedding").inc()
            return []
        except IndexUnavailableError as e:
            logger.warning(f"Vector index unavailable, continuing without context: {str(e)}")
            retrieval_degraded_total.labels(reason="index").inc()
            return []

        retrieval_latency_seconds.observe(time.time() - start_time)
        logger.info(
            f"Found {len(matches)} relevant chunks for organization {organization_id} "
            f"(min score: {self.min_score})")
        return matches
