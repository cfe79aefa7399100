"""Unit tests for parse and generation confidence."""

import pytest

from trustrag.services.confidence import (
    GenerationSignals,
    alnum_ratio,
    generation_breakdown,
    generation_confidence,
    parse_confidence,
    text_quality_breakdown,
)


def test_clean_long_text_scores_full_confidence() -> None:
    text = " ".join(["lorem"] * 250)

    assert parse_confidence(text) == 100


def test_short_text_takes_length_and_word_penalties() -> None:
    breakdown = text_quality_breakdown("abc")

    assert breakdown.components == {"length": -50, "words": -30, "alnum_ratio": 0.0}
    assert breakdown.score == 20


def test_empty_text_skips_alnum_penalty() -> None:
    breakdown = text_quality_breakdown("")

    assert alnum_ratio("") == 0.0
    assert breakdown.components == {"length": -50, "words": -30, "alnum_ratio": 0.0}
    assert breakdown.score == 20


def test_noisy_text_takes_alnum_penalty() -> None:
    text = " ".join(["ab", "%%%%"] * 150)

    breakdown = text_quality_breakdown(text)

    assert breakdown.components["alnum_ratio"] == -40
    assert breakdown.score == 60


def test_zero_matches_far_from_target_scores_twenty() -> None:
    signals = GenerationSignals(content_length=100, target_words=500)

    breakdown = generation_breakdown(signals)

    assert breakdown.components["no_matches"] == -30
    assert breakdown.components["length_fit"] == 0
    assert breakdown.score == 20


def test_fully_supported_draft_clamps_to_hundred() -> None:
    signals = GenerationSignals(
        match_scores=(0.9,) * 10,
        has_funder_context=True,
        has_voice_profile=True,
        has_prior_draft=True,
        content_length=500,
        target_words=100,
    )

    breakdown = generation_breakdown(signals)

    assert breakdown.components["match_quantity"] == pytest.approx(15)
    assert breakdown.components["match_quality"] == pytest.approx(13.5)
    assert breakdown.raw == pytest.approx(138.5)
    assert breakdown.score == 100


def test_removing_all_matches_applies_exact_penalty() -> None:
    with_zero_match = generation_breakdown(
        GenerationSignals(match_scores=(0.0,), content_length=50))
    without_matches = generation_breakdown(GenerationSignals(content_length=50))

    assert with_zero_match.components["match_quality"] == 0
    assert without_matches.components["no_matches"] == -30
    assert with_zero_match.raw - without_matches.raw == pytest.approx(
        30 + with_zero_match.components["match_quantity"])


@pytest.mark.parametrize(
    "scores,added",
    [
        ((0.7,), 0.7),
        ((0.72, 0.8), 0.9),
        ((0.9,) * 9, 0.95),
        ((0.8,) * 10, 0.8),
    ],
)
def test_adding_matches_at_or_above_average_never_lowers_score(scores, added) -> None:
    before = GenerationSignals(match_scores=scores, content_length=800, target_words=150)
    after = GenerationSignals(
        match_scores=scores + (added,), content_length=800, target_words=150)

    assert generation_confidence(after) >= generation_confidence(before)


@pytest.mark.parametrize(
    "content_length,target_words,expected",
    [
        (500, 100, 15),
        (350, 100, 15),
        (250, 100, 10),
        (750, 100, 10),
        (150, 100, 5),
        (1000, 100, 5),
        (1005, 100, 0),
        (101, None, 10),
        (100, None, 0),
    ],
)
def test_length_fit_bands(content_length: int, target_words, expected: float) -> None:
    signals = GenerationSignals(content_length=content_length, target_words=target_words)

    assert generation_breakdown(signals).components["length_fit"] == expected
