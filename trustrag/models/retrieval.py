"""Retrieval models."""

from pydantic import BaseModel, Field


class RetrievalMatch(BaseModel):
    """A chunk returned by a similarity query."""

    chunk_id: str
    document_id: str
    document_name: str
    chunk_index: int = 0
    text: str
    score: float = Field(ge=0.0, le=1.0)
