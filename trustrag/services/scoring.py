"""Additive, clamped scoring shared by parse and generation confidence.

Both confidence scores are computed the same way: a base value plus a set
of named, individually bounded adjustments, clamped to ``[0, 100]``. Each
call site supplies its own weight table; the arithmetic lives here once.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Sequence

SCORE_MIN = 0.0
SCORE_MAX = 100.0


@dataclass(frozen=True)
class Threshold:
    """Points applied when a measured value is strictly below ``limit``."""

    limit: float
    points: float


@dataclass(frozen=True)
class RatioBand:
    """Points applied when a ratio lies within ``[low, high]``."""

    low: float
    high: float
    points: float


def below_threshold(value: float, thresholds: Sequence[Threshold]) -> float:
    """
    Return the points of the first threshold the value falls below.

    Thresholds are checked in order, so list the tightest limit first.

    Args:
        value: Measured value.
        thresholds: Ordered thresholds.

    Returns:
        Points for the first matching threshold, or 0.
    """
    for threshold in thresholds:
        if value < threshold.limit:
            return threshold.points
    return 0.0


def within_band(ratio: float, bands: Sequence[RatioBand]) -> float:
    """
    Return the points of the first band containing the ratio.

    Args:
        ratio: Measured ratio.
        bands: Ordered bands, narrowest first.

    Returns:
        Points for the first matching band, or 0.
    """
    for band in bands:
        if band.low <= ratio <= band.high:
            return band.points
    return 0.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class ScoreBreakdown:
    """A base value and the named adjustments applied to it."""

    base: float
    components: Dict[str, float] = field(default_factory=dict)
    lower: float = SCORE_MIN
    upper: float = SCORE_MAX

    @property
    def raw(self) -> float:
        return self.base + sum(self.components.values())

    @property
    def value(self) -> float:
        return max(self.lower, min(self.upper, self.raw))

    @property
    def score(self) -> int:
        return int(max(self.lower, min(self.upper, round_half_up(self.raw))))


def additive_score(
    base: float,
    components: Mapping[str, float],
    lower: float = SCORE_MIN,
    upper: float = SCORE_MAX,
) -> ScoreBreakdown:
    """
    Combine a base value with named adjustments.

    Args:
        base: Starting score.
        components: Adjustment name to signed points.
        lower: Clamp floor.
        upper: Clamp ceiling.

    Returns:
        Breakdown exposing the raw sum and the clamped score.
    """
    return ScoreBreakdown(
        base=base,
        components=dict(components),
        lower=lower,
        upper=upper,
    )
