"""Trust tier models shared by parse and generation confidence."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from trustrag.models.retrieval import RetrievalMatch


class TrustTier(str, Enum):
    """Visibility tier derived from a 0-100 confidence score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DraftAction(str, Enum):
    """Actions a display layer may offer on a draft."""

    ACCEPT = "accept"
    EDIT = "edit"
    REGENERATE = "regenerate"
    DRAFT_MANUALLY = "draft_manually"


class GatedDraft(BaseModel):
    """What the caller is allowed to show and do with a generated draft."""

    tier: TrustTier
    confidence_score: int = Field(ge=0, le=100)
    content: Optional[str] = None
    sources: List[RetrievalMatch] = Field(default_factory=list)
    actions: List[DraftAction] = Field(default_factory=list)
    requires_review: bool = False
    show_indicator: bool = False
    banner: Optional[str] = None
    message: str

    @property
    def content_visible(self) -> bool:
        return self.content is not None
