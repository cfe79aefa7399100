"""Pydantic models for the ingest service API."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from trustrag.models.document import Document, DocumentStatus
from trustrag.models.trust import TrustTier
from trustrag.services.trust_gate import classify, tier_message


class DocumentResponse(BaseModel):
    """Document processing state, without the extracted text."""

    id: str
    organization_id: str
    name: str
    mime_type: str
    status: DocumentStatus
    parse_confidence: Optional[int] = None
    confidence_tier: Optional[TrustTier] = None
    confidence_message: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    completed_steps: List[str] = Field(default_factory=list)
    failure_reason: Optional[str] = None
    chunk_count: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    processed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_document(cls, document: Document) -> "DocumentResponse":
        tier = None
        message = None
        if document.parse_confidence is not None:
            tier = classify(document.parse_confidence)
            message = tier_message(document.parse_confidence, "parse")
        return cls(
            **document.model_dump(exclude={"extracted_text", "metadata", "storage_key"}),
            confidence_tier=tier,
            confidence_message=message,
            chunk_count=document.metadata.get("chunk_count"),
        )


class SweepResponse(BaseModel):
    """Documents marked FAILED by a sweep run."""

    swept_at: datetime
    pending_failed: List[str]
    processing_failed: List[str]
    total: int
