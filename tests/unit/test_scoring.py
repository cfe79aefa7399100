"""Unit tests for the shared additive scorer."""

import pytest

from trustrag.services.scoring import (
    RatioBand,
    Threshold,
    additive_score,
    below_threshold,
    round_half_up,
    within_band,
)


def test_below_threshold_uses_first_matching_limit() -> None:
    thresholds = (Threshold(100, -50), Threshold(500, -20))

    assert below_threshold(40, thresholds) == -50
    assert below_threshold(100, thresholds) == -20
    assert below_threshold(499, thresholds) == -20
    assert below_threshold(500, thresholds) == 0


def test_within_band_is_inclusive_and_ordered() -> None:
    bands = (RatioBand(0.7, 1.3, 15), RatioBand(0.5, 1.5, 10))

    assert within_band(0.7, bands) == 15
    assert within_band(1.3, bands) == 15
    assert within_band(1.5, bands) == 10
    assert within_band(1.51, bands) == 0


def test_additive_score_clamps_both_ends() -> None:
    high = additive_score(50, {"a": 40, "b": 48.5})
    low = additive_score(50, {"a": -80})

    assert high.raw == 138.5
    assert high.score == 100
    assert low.raw == -30
    assert low.score == 0


def test_breakdown_keeps_named_components() -> None:
    breakdown = additive_score(100, {"length": -20, "words": 0})

    assert breakdown.components == {"length": -20, "words": 0}
    assert breakdown.value == 80.0
    assert breakdown.score == 80


@pytest.mark.parametrize(
    "value,expected",
    [(92.5, 93), (92.49, 92), (0.5, 1), (79.5, 80)],
)
def test_round_half_up(value: float, expected: int) -> None:
    assert round_half_up(value) == expected
