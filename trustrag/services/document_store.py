"""In-memory document repository."""

from datetime import datetime
from typing import Dict, List, Optional

from trustrag.core.exceptions import DocumentNotFoundError, StaleDocumentError
from trustrag.models.document import Chunk, Document, DocumentStatus


class InMemoryDocumentRepository:
    """In-memory implementation of DocumentRepository.

    Stores copies, so callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, Document] = {}
        self._chunks: Dict[str, List[Chunk]] = {}

    async def add(self, document: Document) -> Document:
        """Create a document."""
        self._documents[document.id] = document.model_copy(deep=True)
        return document

    async def get(self, document_id: str) -> Document:
        """Fetch a document by id."""
        if document_id not in self._documents:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self._documents[document_id].model_copy(deep=True)

    async def save(
        self, document: Document, expected_status: Optional[DocumentStatus] = None
    ) -> Document:
        """Persist changes, optionally only if the stored status is unchanged."""
        stored = self._documents.get(document.id)
        if stored is None:
            raise DocumentNotFoundError(f"Document {document.id} not found")
        if expected_status is not None and stored.status != expected_status:
            raise StaleDocumentError(document.id, expected_status.value, stored.status.value)
        self._documents[document.id] = document.model_copy(deep=True)
        return document

    async def save_chunks(self, document_id: str, chunks: List[Chunk]) -> None:
        self._chunks[document_id] = list(chunks)

    async def get_chunks(self, document_id: str) -> List[Chunk]:
        return list(self._chunks.get(document_id, []))

    async def delete_chunks(self, document_id: str) -> None:
        self._chunks.pop(document_id, None)

    async def find_stale(
        self, status: DocumentStatus, updated_before: datetime, limit: Optional[int] = None
    ) -> List[Document]:
        """Documents in a status whose last update is older than a cutoff."""
        stale = sorted(
            (
                document.model_copy(deep=True)
                for document in self._documents.values()
                if document.status == status and document.updated_at < updated_before
            ),
            key=lambda document: document.updated_at,
        )
        return stale[:limit] if limit is not None else stale
