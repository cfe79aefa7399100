"""Document models for the ingestion pipeline."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

CHUNK_ID_NAMESPACE = uuid.UUID("00000000-0000-0000-0000-000000000000")


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def chunk_uuid(document_id: str, chunk_index: int) -> str:
    """
    Generate a deterministic UUID for a chunk based on document_id and chunk_index.

    Args:
        document_id: ID of the source document.
        chunk_index: Index of the chunk.

    Returns:
        UUID string for the chunk.
    """
    return str(uuid.uuid5(CHUNK_ID_NAMESPACE, f"{document_id}:{chunk_index}"))


class DocumentStatus(str, Enum):
    """Processing status of an uploaded document."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    FAILED = "FAILED"


class Document(BaseModel):
    """An uploaded document owned by one organization."""

    id: str
    organization_id: str
    name: str
    storage_key: str
    mime_type: str
    status: DocumentStatus = DocumentStatus.PENDING
    extracted_text: Optional[str] = None
    parse_confidence: Optional[int] = Field(default=None, ge=0, le=100)
    warnings: List[str] = Field(default_factory=list)
    metadata: dict = Field(default_factory=dict)
    completed_steps: List[str] = Field(default_factory=list)
    failure_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    processed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def add_warnings(self, warnings: List[str]) -> None:
        """Append warnings, skipping ones already recorded."""
        for warning in warnings:
            if warning not in self.warnings:
                self.warnings.append(warning)


class Chunk(BaseModel):
    """Immutable slice of a document's extracted text."""

    document_id: str
    index: int = Field(ge=0)
    text: str
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def id(self) -> str:
        return chunk_uuid(self.document_id, self.index)


class EmbeddingMetadata(BaseModel):
    """Payload stored next to a chunk vector."""

    organization_id: str
    document_id: str
    document_name: str
    type: str
    chunk_index: int
    text: str


class EmbeddingRecord(BaseModel):
    """A chunk vector written once into an organization namespace."""

    chunk_id: str
    document_id: str
    namespace: str
    vector: List[float]
    metadata: EmbeddingMetadata

    model_config = ConfigDict(frozen=True)
