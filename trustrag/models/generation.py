"""Draft generation models."""

from typing import List, Optional

from pydantic import BaseModel, Field

from trustrag.models.retrieval import RetrievalMatch


class DraftRequest(BaseModel):
    """A request to draft content grounded in an organization's documents."""

    organization_id: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)
    query: Optional[str] = None
    system_prompt: Optional[str] = None
    section_name: Optional[str] = None
    funder_context: Optional[str] = None
    voice_profile: Optional[str] = None
    existing_content: Optional[str] = None
    target_words: Optional[int] = Field(default=None, gt=0)
    top_k: Optional[int] = Field(default=None, ge=1, le=100)

    @property
    def retrieval_query(self) -> str:
        return self.query or self.prompt


class GenerationResult(BaseModel):
    """Model output with its computed confidence."""

    content: str
    confidence_score: int = Field(ge=0, le=100)
    sources_used: List[RetrievalMatch] = Field(default_factory=list)
