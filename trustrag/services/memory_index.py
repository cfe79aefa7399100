"""In-memory vector index with the same namespace contract as Qdrant."""

import math
from typing import Dict, List

from trustrag.models.document import EmbeddingRecord
from trustrag.services.vector_db import validate_namespace


def cosine_similarity(a: List[float], b: List[float]) -> float:
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / (norm_a * norm_b)


class InMemoryVectorIndex:
    """Dictionary-backed index for development and tests.

    Each namespace is its own dictionary; a query only ever sees the
    vectors of the namespace it names.
    """

    def __init__(self) -> None:
        self._namespaces: Dict[str, Dict[str, dict]] = {}

    async def upsert(self, namespace: str, id: str, vector: List[float], metadata: dict) -> None:
        points = self._namespaces.setdefault(validate_namespace(namespace), {})
        points[id] = {"vector": list(vector), "metadata": dict(metadata)}

    async def upsert_records(self, records: List[EmbeddingRecord]) -> None:
        for record in records:
            await self.upsert(
                record.namespace,
                record.chunk_id,
                record.vector,
                record.metadata.model_dump(),
            )

    async def query(self, namespace: str, vector: List[float], top_k: int = 5) -> List[Dict]:
        points = self._namespaces.get(validate_namespace(namespace), {})
        scored = [
            {
                "id": point_id,
                "score": cosine_similarity(vector, point["vector"]),
                "metadata": dict(point["metadata"]),
            }
            for point_id, point in points.items()
        ]
        scored.sort(key=lambda match: (-match["score"], match["id"]))
        return scored[:top_k]

    async def delete_document(self, namespace: str, document_id: str) -> None:
        points = self._namespaces.get(validate_namespace(namespace), {})
        for point_id in [
            point_id
            for point_id, point in points.items()
            if point["metadata"].get("document_id") == document_id
        ]:
            del points[point_id]

    async def list_namespaces(self) -> List[str]:
        return sorted(self._namespaces)

    def count(self, namespace: str) -> int:
        return len(self._namespaces.get(namespace, {}))
