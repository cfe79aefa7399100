"""Contracts for the external collaborators injected into the pipeline."""

from datetime import datetime
from typing import Dict, List, Optional, Protocol, runtime_checkable

from trustrag.models.document import Chunk, Document, DocumentStatus, EmbeddingRecord


@runtime_checkable
class Embedder(Protocol):
    """Turns text into vectors. Failures raise EmbeddingUnavailableError."""

    async def embed(self, text: str) -> List[float]:
        ...

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        ...


@runtime_checkable
class VectorIndex(Protocol):
    """Namespace-partitioned similarity index. Failures raise IndexUnavailableError."""

    async def upsert(self, namespace: str, id: str, vector: List[float], metadata: dict) -> None:
        ...

    async def upsert_records(self, records: List[EmbeddingRecord]) -> None:
        ...

    async def query(self, namespace: str, vector: List[float], top_k: int) -> List[Dict]:
        ...

    async def delete_document(self, namespace: str, document_id: str) -> None:
        ...


@runtime_checkable
class CompletionModel(Protocol):
    """Produces text. Failures raise GenerationProviderError."""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...


@runtime_checkable
class ObjectStorage(Protocol):
    """Supplies raw bytes for a storage key. Failures raise StorageError."""

    async def get(self, key: str) -> bytes:
        ...


@runtime_checkable
class DocumentRepository(Protocol):
    """Persists documents and their chunk lists."""

    async def add(self, document: Document) -> Document:
        ...

    async def get(self, document_id: str) -> Document:
        ...

    async def save(
        self, document: Document, expected_status: Optional[DocumentStatus] = None
    ) -> Document:
        ...

    async def save_chunks(self, document_id: str, chunks: List[Chunk]) -> None:
        ...

    async def get_chunks(self, document_id: str) -> List[Chunk]:
        ...

    async def delete_chunks(self, document_id: str) -> None:
        ...

    async def find_stale(
        self, status: DocumentStatus, updated_before: datetime, limit: Optional[int] = None
    ) -> List[Document]:
        ...
