"""Parse and generation confidence as weight tables over one additive scorer."""

import re
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from trustrag.services.scoring import (
    RatioBand,
    ScoreBreakdown,
    Threshold,
    additive_score,
    below_threshold,
    within_band,
)

ALNUM_PATTERN = re.compile(r"[A-Za-z0-9]")


@dataclass(frozen=True)
class ParseWeights:
    """Penalty table for extracted-text quality."""

    base: float = 100.0
    length: Tuple[Threshold, ...] = (Threshold(100, -50), Threshold(500, -20))
    words: Tuple[Threshold, ...] = (Threshold(50, -30), Threshold(200, -10))
    # Guards OCR garbage and binary noise
    alnum_ratio: Tuple[Threshold, ...] = (Threshold(0.5, -40), Threshold(0.7, -20))


@dataclass(frozen=True)
class GenerationWeights:
    """Reward table for how well a draft is grounded."""

    base: float = 50.0
    no_matches: float = -30.0
    match_quantity: float = 15.0
    match_saturation: int = 10
    match_quality: float = 15.0
    funder_context: float = 20.0
    voice_profile: float = 15.0
    prior_draft: float = 10.0
    length_fit: Tuple[RatioBand, ...] = (
        RatioBand(0.7, 1.3, 15),
        RatioBand(0.5, 1.5, 10),
        RatioBand(0.3, 2.0, 5),
    )
    chars_per_word: float = 5.0
    untargeted_length: float = 10.0
    untargeted_min_chars: int = 100


DEFAULT_PARSE_WEIGHTS = ParseWeights()
DEFAULT_GENERATION_WEIGHTS = GenerationWeights()


@dataclass(frozen=True)
class GenerationSignals:
    """Inputs the generation confidence is computed from."""

    match_scores: Sequence[float] = field(default_factory=tuple)
    has_funder_context: bool = False
    has_voice_profile: bool = False
    has_prior_draft: bool = False
    content_length: int = 0
    target_words: Optional[int] = None

    @property
    def mean_match_score(self) -> float:
        if not self.match_scores:
            return 0.0
        return sum(self.match_scores) / len(self.match_scores)


def count_words(text: str) -> int:
    return len(text.split())


def alnum_ratio(text: str) -> float:
    if not text:
        return 0.0
    return len(ALNUM_PATTERN.findall(text)) / len(text)


def text_quality_breakdown(
    text: str, word_count: Optional[int] = None, weights: ParseWeights = DEFAULT_PARSE_WEIGHTS
) -> ScoreBreakdown:
    """
    Score extracted text by length, word count and alphanumeric ratio.

    Empty text has no ratio and takes only the length and word penalties.

    Args:
        text: Extracted text, already trimmed.
        word_count: Precomputed word count, counted from text when omitted.
        weights: Penalty table.

    Returns:
        Score breakdown with one component per signal.
    """
    if word_count is None:
        word_count = count_words(text)
    return additive_score(
        weights.base,
        {
            "length": below_threshold(len(text), weights.length),
            "words": below_threshold(word_count, weights.words),
            "alnum_ratio": (
                below_threshold(alnum_ratio(text), weights.alnum_ratio) if text else 0.0
            ),
        },
    )


def parse_confidence(
    text: str, word_count: Optional[int] = None, weights: ParseWeights = DEFAULT_PARSE_WEIGHTS
) -> int:
    return text_quality_breakdown(text, word_count, weights).score


def _length_fit(signals: GenerationSignals, weights: GenerationWeights) -> float:
    if signals.target_words:
        estimated_words = signals.content_length / weights.chars_per_word
        return within_band(estimated_words / signals.target_words, weights.length_fit)
    if signals.content_length > weights.untargeted_min_chars:
        return weights.untargeted_length
    return 0.0


def generation_breakdown(
    signals: GenerationSignals, weights: GenerationWeights = DEFAULT_GENERATION_WEIGHTS
) -> ScoreBreakdown:
    """
    Score a draft by retrieval support, available context and output length.

    No single absent signal can push a fully supported draft into the low
    tier; only missing retrieval combined with other gaps does.

    Args:
        signals: Generation inputs.
        weights: Reward table.

    Returns:
        Score breakdown with one component per signal.
    """
    components = {}
    if not signals.match_scores:
        components["no_matches"] = weights.no_matches
    else:
        saturation = min(len(signals.match_scores) / weights.match_saturation, 1.0)
        components["match_quantity"] = saturation * weights.match_quantity
        components["match_quality"] = signals.mean_match_score * weights.match_quality

    components["funder_context"] = weights.funder_context if signals.has_funder_context else 0.0
    components["voice_profile"] = weights.voice_profile if signals.has_voice_profile else 0.0
    components["prior_draft"] = weights.prior_draft if signals.has_prior_draft else 0.0
    components["length_fit"] = _length_fit(signals, weights)

    return additive_score(weights.base, components)


def generation_confidence(
    signals: GenerationSignals, weights: GenerationWeights = DEFAULT_GENERATION_WEIGHTS
) -> int:
    return generation_breakdown(signals, weights).score
