"""Three-tier trust policy for parse and generation confidence."""

from trustrag.models.generation import GenerationResult
from trustrag.models.trust import DraftAction, GatedDraft, TrustTier

HIGH_THRESHOLD = 80
MEDIUM_THRESHOLD = 60

EDITABLE_ACTIONS = [DraftAction.ACCEPT, DraftAction.EDIT, DraftAction.REGENERATE]

MESSAGES = {
    "parse": {
        TrustTier.HIGH: "Document parsed successfully with high confidence",
        TrustTier.MEDIUM: "Document parsed with moderate confidence, may require review",
        TrustTier.LOW: "Document parsing had issues, manual review recommended",
    },
    "generation": {
        TrustTier.HIGH: "Generated content is well-supported by sources",
        TrustTier.MEDIUM: "Generated content has moderate source support",
        TrustTier.LOW: "Generated content has limited source support",
    },
}


def classify(score: float) -> TrustTier:
    """
    Map a 0-100 confidence score to its tier.

    Args:
        score: Confidence score.

    Returns:
        HIGH at 80 and above, MEDIUM from 60, LOW otherwise.
    """
    if score >= HIGH_THRESHOLD:
        return TrustTier.HIGH
    if score >= MEDIUM_THRESHOLD:
        return TrustTier.MEDIUM
    return TrustTier.LOW


def tier_message(score: float, kind: str = "generation") -> str:
    return MESSAGES[kind][classify(score)]


def _source_phrase(count: int) -> str:
    return f"{count} source" if count == 1 else f"{count} sources"


def gate_draft(result: GenerationResult) -> GatedDraft:
    """
    Decide what a caller may show and do with a generated draft.

    Content below the medium threshold is never returned; the caller gets
    the sources only and can draft manually from them.

    Args:
        result: Generated content with its confidence score.

    Returns:
        Gated draft for the display layer.
    """
    tier = classify(result.confidence_score)
    sources = list(result.sources_used)
    message = tier_message(result.confidence_score)

    if tier is TrustTier.HIGH:
        return GatedDraft(
            tier=tier,
            confidence_score=result.confidence_score,
            content=result.content,
            sources=sources,
            actions=list(EDITABLE_ACTIONS),
            show_indicator=True,
            message=message,
        )

    if tier is TrustTier.MEDIUM:
        return GatedDraft(
            tier=tier,
            confidence_score=result.confidence_score,
            content=result.content,
            sources=sources,
            actions=list(EDITABLE_ACTIONS),
            requires_review=True,
            show_indicator=True,
            banner=(
                f"Moderate confidence: based on {_source_phrase(len(sources))}. "
                "Review carefully before using."
            ),
            message=message,
        )

    return GatedDraft(
        tier=tier,
        confidence_score=result.confidence_score,
        content=None,
        sources=sources,
        actions=[DraftAction.DRAFT_MANUALLY],
        requires_review=True,
        show_indicator=True,
        banner=(
            "Not enough source material to generate reliable content. "
            "Draft this section manually from the listed sources."
        ),
        message=message,
    )
