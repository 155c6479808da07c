"""
Text binding module for table reconstruction.

Provides:
- Positional binding of OCR fragments to cells by overlap area
- Sequential fallback for flat text blobs
- Per-cell confidence recalculation and alignment detection
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, List, Sequence, Tuple

import numpy as np

from .geometry import BoundingBox
from .grid import GRID_BASELINE_CONFIDENCE, Cell, Grid, copy_grid

logger = logging.getLogger(__name__)

DEFAULT_OVERLAP_THRESHOLD = 0.25
TOKENS_PER_CELL = 3
MAX_CELL_CONFIDENCE = 0.95

NUMERIC_RE = re.compile(r"^\d+([.,]\d+)?$")
CAPITALIZED_RE = re.compile(r"^[A-Z][a-z]+")
AMOUNT_RE = re.compile(r"^\d+([.,]\d+)?[%€$]?$")
SHORT_LABEL_RE = re.compile(r"^[A-Z\s]+$")
CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class TextFragment:
    """A piece of recognized text with its position on the page."""
    text: str
    bbox: BoundingBox
    confidence: float = GRID_BASELINE_CONFIDENCE

    @property
    def tokens(self) -> List[str]:
        return self.text.split()


# ============================================================================
# Cell Content Heuristics
# ============================================================================

def clean_cell_content(content: str) -> str:
    """Collapse whitespace and drop control characters."""
    if not content:
        return ""
    content = CONTROL_CHARS_RE.sub("", content)
    return re.sub(r"\s+", " ", content).strip()


def recalculate_cell_confidence(
    text: str,
    confidence: float,
    max_confidence: float = MAX_CELL_CONFIDENCE
) -> float:
    """
    Adjust a cell's confidence from the shape of its content.

    Numbers gain 0.1, capitalized words 0.05. Empty cells are capped at 0.1
    and single characters at 0.2. The result never exceeds ``max_confidence``.
    """
    content = text.strip()

    if NUMERIC_RE.match(content):
        confidence += 0.1
    elif CAPITALIZED_RE.match(content):
        confidence += 0.05

    if len(content) == 0:
        confidence = min(confidence, 0.1)
    elif len(content) == 1:
        confidence = min(confidence, 0.2)

    return float(np.clip(confidence, 0.0, max_confidence))


def detect_alignment(text: str) -> str:
    """Guess horizontal alignment: amounts right, short labels centered."""
    content = text.strip()
    if AMOUNT_RE.match(content):
        return "right"
    if content and len(content) <= 10 and SHORT_LABEL_RE.match(content):
        return "center"
    return "left"


def finalize_cells(
    grid: Grid,
    max_confidence: float = MAX_CELL_CONFIDENCE
) -> Grid:
    """Clean text, recompute confidence and alignment of every non-void cell."""
    result = []
    for row in grid:
        new_row = []
        for cell in row:
            if cell.is_void:
                new_row.append(cell)
                continue
            text = clean_cell_content(cell.text)
            new_row.append(replace(
                cell,
                text=text,
                confidence=recalculate_cell_confidence(text, cell.confidence, max_confidence),
                alignment=detect_alignment(text)
            ))
        result.append(new_row)
    return result


# ============================================================================
# Positional Binding
# ============================================================================

def _split_tokens(
    tokens: List[str],
    primary_area: float,
    secondary_area: float,
    primary_first: bool
) -> Tuple[List[str], List[str]]:
    """Split tokens between two cells in proportion to their overlap."""
    share = primary_area / (primary_area + secondary_area)
    n_primary = int(round(len(tokens) * share))
    n_primary = min(max(n_primary, 1), len(tokens) - 1)

    if primary_first:
        return tokens[:n_primary], tokens[n_primary:]
    n_secondary = len(tokens) - n_primary
    return tokens[n_secondary:], tokens[:n_secondary]


def bind_text_positional(
    grid: Grid,
    fragments: Sequence[TextFragment],
    overlap_threshold: float = DEFAULT_OVERLAP_THRESHOLD,
    baseline_confidence: float = GRID_BASELINE_CONFIDENCE
) -> Grid:
    """
    Attach OCR fragments to the cells they overlap.

    A fragment is a candidate for every non-void cell covering at least
    ``overlap_threshold`` of the fragment's area. With several candidates the
    greatest overlap wins; if the runner-up cell is still empty, the
    fragment's tokens are shared between the two in proportion to overlap.

    Args:
        grid: Grid after span resolution
        fragments: Recognized text with bounding boxes
        overlap_threshold: Minimum fraction of a fragment inside a cell
        baseline_confidence: Starting confidence of cells that get no text

    Returns:
        New grid with text and starting confidence set
    """
    result = copy_grid(grid)
    cells = [cell for row in result for cell in row if not cell.is_void]
    order = {(cell.row, cell.col): i for i, cell in enumerate(cells)}

    texts: Dict[Tuple[int, int], List[str]] = {}
    confidences: Dict[Tuple[int, int], List[float]] = {}

    def assign(cell: Cell, tokens: List[str], confidence: float):
        key = (cell.row, cell.col)
        texts.setdefault(key, []).extend(tokens)
        confidences.setdefault(key, []).append(confidence)

    ordered = sorted(fragments, key=lambda f: (f.bbox.y1, f.bbox.x1))
    unbound = 0

    for fragment in ordered:
        tokens = fragment.tokens
        if not tokens:
            continue

        area = fragment.bbox.area
        if area <= 0:
            # Degenerate box such as a thin rule glyph; bind by its centre
            holder = next(
                (cell for cell in cells if cell.bounds.contains_point(*fragment.bbox.center)),
                None
            )
            if holder is None:
                unbound += 1
                logger.debug(f"No cell holds fragment '{fragment.text}'")
            else:
                assign(holder, tokens, fragment.confidence)
            continue

        candidates = []
        for cell in cells:
            overlap = fragment.bbox.intersection_area(cell.bounds)
            if overlap <= 0:
                continue
            ratio = overlap / area
            if ratio >= overlap_threshold:
                candidates.append((overlap, cell))

        if not candidates:
            unbound += 1
            logger.debug(f"No cell holds fragment '{fragment.text}'")
            continue

        candidates.sort(key=lambda oc: (-oc[0], order[(oc[1].row, oc[1].col)]))
        best_area, best = candidates[0]

        if len(candidates) == 1:
            assign(best, tokens, fragment.confidence)
            continue

        logger.debug(
            f"Ambiguous binding for '{fragment.text}' across "
            f"{len(candidates)} cells, keeping ({best.row}, {best.col})"
        )
        second_area, second = candidates[1]
        second_empty = (second.row, second.col) not in texts

        if len(tokens) > 1 and second_empty:
            primary_first = order[(best.row, best.col)] < order[(second.row, second.col)]
            mine, theirs = _split_tokens(tokens, best_area, second_area, primary_first)
            assign(best, mine, fragment.confidence)
            assign(second, theirs, fragment.confidence)
        else:
            assign(best, tokens, fragment.confidence)

    if unbound:
        logger.info(f"{unbound} fragment(s) fell outside every cell")

    for row in result:
        for i, cell in enumerate(row):
            key = (cell.row, cell.col)
            if cell.is_void:
                continue
            if key not in texts:
                row[i] = replace(cell, confidence=baseline_confidence)
                continue
            row[i] = replace(
                cell,
                text=" ".join(texts[key]),
                confidence=float(np.mean(confidences[key]))
            )

    return result


# ============================================================================
# Sequential Fallback
# ============================================================================

def bind_text_sequential(
    grid: Grid,
    text: str,
    tokens_per_cell: int = TOKENS_PER_CELL,
    baseline_confidence: float = GRID_BASELINE_CONFIDENCE
) -> Grid:
    """
    Distribute a flat text blob over the cells in row-major order.

    Used when OCR gives no positions. Each non-void cell takes up to
    ``tokens_per_cell`` whitespace tokens; cells past the end of the blob
    stay empty. The result is an approximation and the table built from it
    is flagged as such by its extraction method.
    """
    result = copy_grid(grid)
    tokens = text.split() if text else []
    cursor = 0

    for row in result:
        for i, cell in enumerate(row):
            if cell.is_void:
                continue
            chunk = tokens[cursor:cursor + tokens_per_cell]
            cursor += len(chunk)
            row[i] = replace(cell, text=" ".join(chunk), confidence=baseline_confidence)

    if cursor < len(tokens):
        logger.debug(f"{len(tokens) - cursor} token(s) left after filling every cell")

    return result
