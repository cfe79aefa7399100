"""Database service for PostgreSQL operations."""

import json
from datetime import datetime
from typing import List, Optional

import asyncpg

from trustrag.core.config import settings
from trustrag.core.exceptions import DatabaseError, DocumentNotFoundError, StaleDocumentError
from trustrag.models.document import Chunk, Document, DocumentStatus

DOCUMENT_COLUMNS = """
    id, organization_id, name, storage_key, mime_type, status, extracted_text,
    parse_confidence, warnings, metadata, completed_steps, failure_reason,
    created_at, updated_at, processed_at
"""


def _load_json(value, default):
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


def row_to_document(row) -> Document:
    """
    Convert a documents row into a Document.

    Args:
        row: asyncpg record or mapping.

    Returns:
        Document model.
    """
    data = dict(row)
    data["id"] = str(data["id"])
    data["organization_id"] = str(data["organization_id"])
    data["status"] = DocumentStatus(data["status"])
    data["warnings"] = _load_json(data.get("warnings"), [])
    data["metadata"] = _load_json(data.get("metadata"), {})
    data["completed_steps"] = _load_json(data.get("completed_steps"), [])
    return Document(**data)


class DatabaseService:
    """asyncpg implementation of DocumentRepository."""

    def __init__(self) -> None:
        """Initialize database service."""
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> None:
        """Create connection pool."""
        try:
            self.pool = await asyncpg.create_pool(
                settings.postgres_url,
                min_size=2,
                max_size=10,
            )
        except Exception as e:
            raise DatabaseError(
                f"Failed to connect to database: {str(e)}") from e

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()

    def _require_pool(self) -> asyncpg.Pool:
        if not self.pool:
            raise DatabaseError("Database not connected")
        return self.pool

    async def add(self, document: Document) -> Document:
        """
        Create a new document.

        Args:
            document: Document to insert.

        Returns:
            The inserted document.
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    f"""
                    INSERT INTO documents ({DOCUMENT_COLUMNS})
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9::jsonb, $10::jsonb,
                            $11::jsonb, $12, $13, $14, $15)
                    """,
                    *self._document_values(document),
                )
                return document
        except Exception as e:
            raise DatabaseError(f"Failed to create document: {str(e)}") from e

    async def get(self, document_id: str) -> Document:
        """
        Get a single document by ID.

        Args:
            document_id: Document ID.

        Returns:
            Document.

        Raises:
            DocumentNotFoundError: If no such document exists.
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {DOCUMENT_COLUMNS} FROM documents WHERE id = $1",
                    document_id,
                )
        except Exception as e:
            raise DatabaseError(f"Failed to fetch document: {str(e)}") from e

        if not row:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return row_to_document(row)

    async def save(
        self, document: Document, expected_status: Optional[DocumentStatus] = None
    ) -> Document:
        """
        Persist a document's mutable fields.

        Args:
            document: Document with changes.
            expected_status: When set, the update only applies while the
                stored row still has this status.

        Returns:
            The saved document.

        Raises:
            DocumentNotFoundError: If no such document exists.
            StaleDocumentError: If the stored status differs from expected_status.
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                result = await conn.execute(
                    """
                    UPDATE documents
                    SET status = $2, extracted_text = $3, parse_confidence = $4,
                        warnings = $5::jsonb, metadata = $6::jsonb,
                        completed_steps = $7::jsonb, failure_reason = $8,
                        updated_at = $9, processed_at = $10
                    WHERE id = $1 AND ($11::text IS NULL OR status = $11::text)
                    """,
                    document.id,
                    document.status.value,
                    document.extracted_text,
                    document.parse_confidence,
                    json.dumps(document.warnings),
                    json.dumps(document.metadata),
                    json.dumps(document.completed_steps),
                    document.failure_reason,
                    document.updated_at,
                    document.processed_at,
                    expected_status.value if expected_status is not None else None,
                )
        except Exception as e:
            raise DatabaseError(f"Failed to update document: {str(e)}") from e

        if result != "UPDATE 1":
            stored = await self.get(document.id)
            raise StaleDocumentError(document.id, expected_status.value, stored.status.value)
        return document

    async def save_chunks(self, document_id: str, chunks: List[Chunk]) -> None:
        """
        Replace the stored chunk list of a document.

        Args:
            document_id: Document ID.
            chunks: Chunks in source order.
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        "DELETE FROM document_chunks WHERE document_id = $1", document_id)
                    await conn.executemany(
                        """
                        INSERT INTO document_chunks
                            (document_id, chunk_index, text, start_offset, end_offset)
                        VALUES ($1, $2, $3, $4, $5)
                        """,
                        [
                            (document_id, chunk.index, chunk.text,
                             chunk.start_offset, chunk.end_offset)
                            for chunk in chunks
                        ],
                    )
        except Exception as e:
            raise DatabaseError(f"Failed to save chunks: {str(e)}") from e

    async def get_chunks(self, document_id: str) -> List[Chunk]:
        """
        Get a document's chunks in order.

        Args:
            document_id: Document ID.

        Returns:
            Chunks ordered by index.
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT document_id, chunk_index, text, start_offset, end_offset
                    FROM document_chunks
                    WHERE document_id = $1
                    ORDER BY chunk_index
                    """,
                    document_id,
                )
        except Exception as e:
            raise DatabaseError(f"Failed to fetch chunks: {str(e)}") from e

        return [
            Chunk(
                document_id=str(row["document_id"]),
                index=row["chunk_index"],
                text=row["text"],
                start_offset=row["start_offset"],
                end_offset=row["end_offset"],
            )
            for row in rows
        ]

    async def delete_chunks(self, document_id: str) -> None:
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    "DELETE FROM document_chunks WHERE document_id = $1", document_id)
        except Exception as e:
            raise DatabaseError(f"Failed to delete chunks: {str(e)}") from e

    async def find_stale(
        self, status: DocumentStatus, updated_before: datetime, limit: Optional[int] = None
    ) -> List[Document]:
        """
        Documents in a status whose last update is older than a cutoff.

        Args:
            status: Status to look for.
            updated_before: Cutoff timestamp.
            limit: Maximum number of documents.

        Returns:
            Oldest documents first.
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE status = $1 AND updated_at < $2
                    ORDER BY updated_at
                    LIMIT $3
                    """,
                    status.value,
                    updated_before,
                    limit,
                )
        except Exception as e:
            raise DatabaseError(f"Failed to fetch stale documents: {str(e)}") from e
        return [row_to_document(row) for row in rows]

    @staticmethod
    def _document_values(document: Document) -> tuple:
        return (
            document.id,
            document.organization_id,
            document.name,
            document.storage_key,
            document.mime_type,
            document.status.value,
            document.extracted_text,
            document.parse_confidence,
            json.dumps(document.warnings),
            json.dumps(document.metadata),
            json.dumps(document.completed_steps),
            document.failure_reason,
            document.created_at,
            document.updated_at,
            document.processed_at,
        )
