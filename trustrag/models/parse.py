"""Parser output models."""

from typing import List, Optional

from pydantic import BaseModel, Field


class ExtractedEntities(BaseModel):
    """Entities pulled from extracted text with regular expressions."""

    amounts: List[str] = Field(default_factory=list)
    dates: List[str] = Field(default_factory=list)
    organizations: List[str] = Field(default_factory=list)


class ParseMetadata(BaseModel):
    """Facts about the extracted text."""

    word_count: int = Field(ge=0)
    page_count: Optional[int] = None
    detected_type: Optional[str] = None
    has_structured_data: bool = False
    entities: ExtractedEntities = Field(default_factory=ExtractedEntities)


class ParseResult(BaseModel):
    """Extracted text with its quality estimate."""

    text: str
    confidence: int = Field(ge=0, le=100)
    warnings: List[str] = Field(default_factory=list)
    metadata: ParseMetadata
