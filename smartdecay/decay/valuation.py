"""
Semantic valuation: one score in [0, 100] from three weighted dimensions.

Weights are normalized before use so that raising one of them always takes
its share proportionally from the other two.
"""

import dataclasses
from typing import Optional

from smartdecay.models.archive_item import ArchiveItem
from smartdecay.models.simulation import ValuationWeights

SCORE_MIN = 0.0
SCORE_MAX = 100.0

# Sums this close to 1.0 are already normalized
_NORMALIZED_TOLERANCE = 1e-12


def clamp_score(value: Optional[float]) -> float:
    if value is None:
        return SCORE_MIN
    return max(SCORE_MIN, min(SCORE_MAX, float(value)))


def normalize_weights(weights: ValuationWeights) -> ValuationWeights:
    """Return a copy of ``weights`` scaled to sum to 1.0.

    Raises:
        ValueError: If any weight is negative or all are zero
    """
    values = weights.as_tuple()
    if any(w < 0 for w in values):
        raise ValueError(f"Valuation weights must be non-negative, got {values}")
    total = sum(values)
    if total <= 0:
        raise ValueError("At least one valuation weight must be positive")
    if abs(total - 1.0) <= _NORMALIZED_TOLERANCE:
        return dataclasses.replace(weights)
    return dataclasses.replace(
        weights,
        w_relevance=values[0] / total,
        w_uniqueness=values[1] / total,
        w_reconstructability=values[2] / total,
    )


def score(relevance: float, uniqueness: float, reconstructability: float, weights: ValuationWeights) -> float:
    """Weighted semantic score of the three (clamped) dimension scores."""
    w = normalize_weights(weights)
    combined = (
        clamp_score(relevance) * w.w_relevance
        + clamp_score(uniqueness) * w.w_uniqueness
        + clamp_score(reconstructability) * w.w_reconstructability
    )
    return clamp_score(combined)


def score_item(item: ArchiveItem, weights: ValuationWeights) -> float:
    return round(score(item.val_relevance, item.val_uniqueness, item.val_reconstructability, weights), 2)


def rescore(item: ArchiveItem, weights: ValuationWeights) -> ArchiveItem:
    """Copy of ``item`` whose semantic score reflects ``weights``."""
    return dataclasses.replace(item, semantic_score=score_item(item, weights))
