"""
Quality scoring for reconstructed tables.

Two scores are computed independently:
- ``score_quality``: grid regularity, line-detection confidence, fill ratio
- ``advanced_quality_score``: completeness, table confidence, structural
  consistency and header validity
"""

import logging
from collections import Counter
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .grid import Grid

logger = logging.getLogger(__name__)

REGULARITY_WEIGHT = 0.3
LINE_CONFIDENCE_WEIGHT = 0.4
FILL_WEIGHT = 0.3


# ============================================================================
# Individual Factors
# ============================================================================

def grid_regularity(rows: Grid) -> Optional[float]:
    """Fraction of rows whose cell count equals the most common row length."""
    if not rows:
        return None
    lengths = [len(row) for row in rows]
    modal_length, _ = Counter(lengths).most_common(1)[0]
    return lengths.count(modal_length) / len(lengths)


def mean_line_confidence(line_confidences: Sequence[float]) -> Optional[float]:
    if len(line_confidences) == 0:
        return None
    return float(np.mean(line_confidences))


def fill_ratio(rows: Grid) -> Optional[float]:
    """Fraction of non-void cells holding non-blank text."""
    cells = [cell for row in rows for cell in row if not cell.is_void]
    if not cells:
        return None
    return sum(1 for cell in cells if not cell.is_empty) / len(cells)


def _weighted(factors: List[Tuple[Optional[float], float]]) -> float:
    """Weighted mean over the factors that have data."""
    total = 0.0
    applied = 0.0
    for value, weight in factors:
        if value is None:
            continue
        total += float(np.clip(value, 0.0, 1.0)) * weight
        applied += weight
    return total / applied if applied > 0 else 0.0


# ============================================================================
# Scores
# ============================================================================

def score_quality(
    rows: Grid,
    line_confidences: Sequence[float] = (),
    regularity_weight: float = REGULARITY_WEIGHT,
    line_weight: float = LINE_CONFIDENCE_WEIGHT,
    fill_weight: float = FILL_WEIGHT
) -> float:
    """
    Score a reconstructed grid in [0, 1].

    A factor without data (no rows, no line confidences, no live cells)
    carries no weight and the remaining factors are renormalized.

    Args:
        rows: Table rows, void cells included
        line_confidences: Confidence of each ruling that produced a boundary
        regularity_weight: Weight of the grid regularity factor
        line_weight: Weight of the mean line confidence factor
        fill_weight: Weight of the content fill factor

    Returns:
        Quality score
    """
    score = _weighted([
        (grid_regularity(rows), regularity_weight),
        (mean_line_confidence(line_confidences), line_weight),
        (fill_ratio(rows), fill_weight),
    ])
    logger.debug(f"Base quality {score:.3f}")
    return score


def check_structure_consistency(rows: Grid) -> bool:
    """Whether every row's live cell count is within one of the first row's."""
    lengths = [sum(1 for cell in row if not cell.is_void) for row in rows]
    lengths = [n for n in lengths if n > 0]
    if len(lengths) <= 1 or lengths[0] == 0:
        return False
    return all(abs(n - lengths[0]) <= 1 for n in lengths)


def advanced_quality_score(
    rows: Grid,
    confidence: float,
    headers: Sequence[str]
) -> float:
    """
    Secondary score blending completeness, confidence, consistency and headers.

    Weights are 0.4 for completeness, 0.3 for table confidence (only when it
    is positive), a flat 0.2 when the structure is consistent, and 0.1 scaled
    by the share of non-blank headers. The consistency and header weights
    always count towards the denominator.
    """
    quality = 0.0
    factors = 0.0

    completeness = fill_ratio(rows)
    if completeness is not None:
        quality += completeness * 0.4
        factors += 0.4

    if confidence > 0:
        quality += min(confidence, 1.0) * 0.3
        factors += 0.3

    if check_structure_consistency(rows):
        quality += 0.2
    factors += 0.2

    if headers:
        valid = sum(1 for h in headers if h and h.strip())
        quality += (valid / len(headers)) * 0.1
    factors += 0.1

    return float(np.clip(quality / factors, 0.0, 1.0))
