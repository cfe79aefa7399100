"""Qdrant vector database service with one collection per organization."""

import logging
import re
from typing import Dict, List, Optional, Set

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    NearestQuery,
    PointStruct,
    VectorParams,
)

from trustrag.core.config import settings
from trustrag.core.exceptions import IndexUnavailableError
from trustrag.models.document import EmbeddingRecord

logger = logging.getLogger(__name__)

NAMESPACE_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def validate_namespace(namespace: str) -> str:
    """
    Reject namespaces that cannot map one-to-one onto a collection name.

    Args:
        namespace: Organization id.

    Returns:
        The namespace unchanged.

    Raises:
        ValueError: If the namespace is empty or has unsupported characters.
    """
    if not namespace or not NAMESPACE_PATTERN.fullmatch(namespace):
        raise ValueError(f"Invalid namespace: {namespace!r}")
    return namespace


class VectorDBService:
    """Service for interacting with Qdrant vector database."""

    def __init__(self, client: Optional[AsyncQdrantClient] = None) -> None:
        """Initialize the vector database service."""
        self.client: Optional[AsyncQdrantClient] = client
        self.collection_prefix = settings.qdrant_collection_prefix
        self.dimensions = settings.embedding_dimensions
        self._known_collections: Set[str] = set()

    async def connect(self) -> None:
        """Connect to Qdrant."""
        try:
            self.client = AsyncQdrantClient(
                url=settings.qdrant_url,
                timeout=settings.qdrant_timeout_seconds,
            )
            await self.client.get_collections()
        except Exception as e:
            raise IndexUnavailableError(
                f"Failed to connect to Qdrant: {str(e)}") from e

    async def disconnect(self) -> None:
        """Disconnect from Qdrant."""
        if self.client:
            await self.client.close()

    def collection_for(self, namespace: str) -> str:
        """Collection holding a single organization's vectors."""
        return f"{self.collection_prefix}-{validate_namespace(namespace)}"

    def _require_client(self) -> AsyncQdrantClient:
        if not self.client:
            raise IndexUnavailableError("Client not connected")
        return self.client

    async def _ensure_collection(self, collection_name: str) -> None:
        """Ensure the collection exists."""
        if collection_name in self._known_collections:
            return

        client = self._require_client()
        if not await client.collection_exists(collection_name):
            await client.create_collection(
                collection_name=collection_name,
                vectors_config=VectorParams(
                    size=self.dimensions,
                    distance=Distance.COSINE,
                ),
            )
            logger.info(f"Created collection {collection_name}")
        self._known_collections.add(collection_name)

    async def list_namespaces(self) -> List[str]:
        """
        List organizations that have a collection.

        Returns:
            Namespace names.
        """
        client = self._require_client()
        try:
            collections = await client.get_collections()
        except Exception as e:
            raise IndexUnavailableError(
                f"Failed to list collections: {str(e)}") from e

        prefix = f"{self.collection_prefix}-"
        return [
            col.name[len(prefix):]
            for col in collections.collections
            if col.name.startswith(prefix)
        ]

    async def upsert(self, namespace: str, id: str, vector: List[float], metadata: dict) -> None:
        """
        Write one vector into an organization's collection.

        Args:
            namespace: Organization id.
            id: Chunk id.
            vector: Embedding vector.
            metadata: Payload stored with the vector.
        """
        collection_name = self.collection_for(namespace)
        client = self._require_client()
        try:
            await self._ensure_collection(collection_name)
            await client.upsert(
                collection_name=collection_name,
                points=[PointStruct(id=id, vector=vector, payload=metadata)],
            )
        except Exception as e:
            raise IndexUnavailableError(
                f"Failed to upsert vector {id}: {str(e)}") from e

    async def upsert_records(self, records: List[EmbeddingRecord]) -> None:
        """
        Write chunk vectors, grouped by namespace.

        Args:
            records: Embedding records to write.
        """
        client = self._require_client()
        by_namespace: Dict[str, List[PointStruct]] = {}
        for record in records:
            by_namespace.setdefault(record.namespace, []).append(
                PointStruct(
                    id=record.chunk_id,
                    vector=record.vector,
                    payload=record.metadata.model_dump(),
                )
            )

        for namespace, points in by_namespace.items():
            collection_name = self.collection_for(namespace)
            try:
                await self._ensure_collection(collection_name)
                await client.upsert(collection_name=collection_name, points=points)
            except Exception as e:
                raise IndexUnavailableError(
                    f"Failed to upsert {len(points)} vectors: {str(e)}") from e

    async def delete_document(self, namespace: str, document_id: str) -> None:
        """
        Delete all chunks for a document.

        Args:
            namespace: Organization id.
            document_id: ID of the document to delete.
        """
        collection_name = self.collection_for(namespace)
        client = self._require_client()
        try:
            if not await client.collection_exists(collection_name):
                return
            await client.delete(
                collection_name=collection_name,
                points_selector=FilterSelector(
                    filter=Filter(
                        must=[FieldCondition(key="document_id", match=MatchValue(value=document_id))]
                    )
                ),
            )
        except Exception as e:
            raise IndexUnavailableError(
                f"Failed to delete vectors for document {document_id}: {str(e)}") from e

    async def query(self, namespace: str, vector: List[float], top_k: int = 5) -> List[Dict]:
        """
        Search one organization's collection for similar chunks.

        Args:
            namespace: Organization id.
            vector: Query embedding vector.
            top_k: Number of results to return.

        Returns:
            List of matches with id, score and payload, best first.
        """
        collection_name = self.collection_for(namespace)
        client = self._require_client()
        try:
            if collection_name not in self._known_collections:
                if not await client.collection_exists(collection_name):
                    return []
                self._known_collections.add(collection_name)

            results = await client.query_points(
                collection_name=collection_name,
                query=NearestQuery(nearest=vector),
                limit=top_k,
                with_payload=True,
            )
        except Exception as e:
            raise IndexUnavailableError(
                f"Failed to query collection {collection_name}: {str(e)}") from e

        return [
            {
                "id": str(point.id),
                "score": point.score,
                "metadata": point.payload or {},
            }
            for point in results.points
        ]
