"""Unit tests for trust tier classification and draft gating."""

import pytest

from trustrag.models.generation import GenerationResult
from trustrag.models.retrieval import RetrievalMatch
from trustrag.models.trust import DraftAction, TrustTier
from trustrag.services.trust_gate import classify, gate_draft, tier_message


def _match(score: float = 0.9) -> RetrievalMatch:
    return RetrievalMatch(
        chunk_id="c-1",
        document_id="doc-1",
        document_name="Annual Report",
        chunk_index=0,
        text="Program outcomes",
        score=score,
    )


def test_classify_matches_tier_boundaries_for_every_score() -> None:
    for score in range(0, 101):
        tier = classify(score)
        if score >= 80:
            assert tier is TrustTier.HIGH
        elif score >= 60:
            assert tier is TrustTier.MEDIUM
        else:
            assert tier is TrustTier.LOW


@pytest.mark.parametrize(
    "score,tier",
    [(79.99, TrustTier.MEDIUM), (80, TrustTier.HIGH), (59.9, TrustTier.LOW), (60, TrustTier.MEDIUM)],
)
def test_classify_fractional_scores(score: float, tier: TrustTier) -> None:
    assert classify(score) is tier


def test_tier_messages_differ_by_kind() -> None:
    assert tier_message(90, "parse") == "Document parsed successfully with high confidence"
    assert tier_message(10) == "Generated content has limited source support"


def test_high_tier_shows_content_without_review() -> None:
    gated = gate_draft(GenerationResult(content="Draft", confidence_score=92, sources_used=[_match()]))

    assert gated.tier is TrustTier.HIGH
    assert gated.content == "Draft"
    assert gated.requires_review is False
    assert gated.banner is None
    assert DraftAction.ACCEPT in gated.actions


def test_medium_tier_requires_review_with_source_count() -> None:
    gated = gate_draft(
        GenerationResult(content="Draft", confidence_score=65, sources_used=[_match(), _match()]))

    assert gated.tier is TrustTier.MEDIUM
    assert gated.content_visible
    assert gated.requires_review is True
    assert "2 sources" in gated.banner


def test_low_tier_suppresses_content_and_only_allows_manual_drafting() -> None:
    gated = gate_draft(GenerationResult(content="Unsupported draft", confidence_score=20))

    assert gated.tier is TrustTier.LOW
    assert gated.content is None
    assert not gated.content_visible
    assert gated.actions == [DraftAction.DRAFT_MANUALLY]
    assert gated.sources == []
