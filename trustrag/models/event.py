"""Kafka event models for document uploads."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class DocumentUploadedEvent(BaseModel):
    """Kafka event emitted after raw bytes land in object storage."""

    document_id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)
    storage_key: str = Field(..., min_length=1)
    mime_type: str
    name: str = "Untitled"
    ts_ms: Optional[int] = None

    def get_timestamp(self) -> datetime:
        """Convert event timestamp to datetime."""
        if self.ts_ms:
            return datetime.fromtimestamp(self.ts_ms / 1000, tz=timezone.utc)
        # Fallback to current time if ts_ms not available
        return datetime.now(timezone.utc)
