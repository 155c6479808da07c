"""
Table entity for table reconstruction.

Provides:
- Table and TableStructure data classes
- Header detection on the first row
- Assembly of a Table from a bound grid (structure, confidence, quality)
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .geometry import BoundingBox
from .grid import Grid
from .quality import advanced_quality_score, grid_regularity, score_quality
from .spans import find_anchor
from .text_binding import MAX_CELL_CONFIDENCE, NUMERIC_RE

logger = logging.getLogger(__name__)


class ExtractionMethod:
    """Provenance tags recorded on every Table."""
    LINE_DETECTION = "line_detection"
    POSITIONAL = "line_detection_positional"
    SEQUENTIAL = "line_detection_sequential"
    MERGED_SUFFIX = "_merged"


HEADER_KEYWORDS = (
    "name", "date", "number", "type", "reference", "article", "description",
    "nom", "numéro", "référence",
)


def make_table_id(bounding_box: BoundingBox, index: Optional[int] = None) -> str:
    """Stable id from the zone position and its index among the page's zones."""
    x, y, w, h = bounding_box.to_xywh()
    prefix = "table" if index is None else f"table_{index}"
    return f"{prefix}_{x:g}_{y:g}_{w:g}_{h:g}"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class TableStructure:
    """Shape summary of a table."""
    row_count: int
    col_count: int
    has_header: bool = False
    is_regular: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_count": self.row_count,
            "col_count": self.col_count,
            "has_header": self.has_header,
            "is_regular": self.is_regular
        }


@dataclass
class Table:
    """A reconstructed table."""
    bounding_box: BoundingBox
    rows: Grid
    structure: TableStructure
    headers: List[str] = field(default_factory=list)
    quality: float = 0.0
    confidence: float = 0.0
    extraction_method: str = ExtractionMethod.LINE_DETECTION
    line_confidences: Tuple[float, ...] = ()
    table_id: str = field(default="", compare=False)

    def __post_init__(self):
        if not self.table_id:
            self.table_id = make_table_id(self.bounding_box)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def col_count(self) -> int:
        return self.structure.col_count

    @property
    def is_sequential(self) -> bool:
        """Whether any part of the text came from the sequential fallback."""
        return ExtractionMethod.SEQUENTIAL in self.extraction_method

    @property
    def advanced_quality(self) -> float:
        return advanced_quality_score(self.rows, self.confidence, self.headers)

    def cell_at(self, row: int, col: int):
        """Cell rendering unit position (row, col), following spans."""
        return find_anchor(self.rows, row, col)

    def to_text_grid(self) -> List[List[str]]:
        """Plain text matrix; positions covered by a span repeat nothing."""
        return [["" if cell.is_void else cell.text for cell in row] for row in self.rows]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table_id": self.table_id,
            "bounding_box": self.bounding_box.to_xywh(),
            "headers": self.headers,
            "structure": self.structure.to_dict(),
            "quality": round(self.quality, 3),
            "confidence": round(self.confidence, 3),
            "extraction_method": self.extraction_method,
            "rows": [[cell.to_dict() for cell in row] for row in self.rows]
        }


# ============================================================================
# Header Detection
# ============================================================================

def detect_header(rows: Grid) -> bool:
    """
    Decide whether the first row holds column labels.

    True when a first-row cell contains a header keyword, or when every
    first-row cell carries non-numeric text while the body has numbers.
    """
    if not rows:
        return False

    first = [cell for cell in rows[0] if not cell.is_void]
    if not first:
        return False

    for cell in first:
        text = cell.text.lower()
        if any(keyword in text for keyword in HEADER_KEYWORDS):
            return True

    if len(rows) < 2:
        return False

    labels = all(
        not cell.is_empty and not NUMERIC_RE.match(cell.text.strip())
        for cell in first
    )
    body_numeric = any(
        NUMERIC_RE.match(cell.text.strip())
        for row in rows[1:] for cell in row if not cell.is_void
    )
    return labels and body_numeric


def header_labels(rows: Grid) -> List[str]:
    """First-row anchor texts, with ``Col N`` standing in for blanks."""
    if not rows:
        return []
    labels = []
    for cell in rows[0]:
        if cell.is_void:
            continue
        labels.append(cell.text.strip() or f"Col {cell.col + 1}")
    return labels


def mark_header_row(rows: Grid) -> Grid:
    """Copy of ``rows`` with the first row flagged as header cells."""
    if not rows:
        return rows
    return [[replace(cell, is_header=True) for cell in rows[0]]] + [list(row) for row in rows[1:]]


# ============================================================================
# Table Assembly
# ============================================================================

def summarize_structure(rows: Grid, has_header: bool) -> TableStructure:
    """Row/column counts and regularity of a cell matrix."""
    col_count = max((len(row) for row in rows), default=0)
    spans = any(cell.is_void for row in rows for cell in row)
    regular = grid_regularity(rows) == 1.0 and not spans
    return TableStructure(
        row_count=len(rows),
        col_count=col_count,
        has_header=has_header,
        is_regular=regular
    )


def table_confidence(rows: Grid, max_confidence: float = MAX_CELL_CONFIDENCE) -> float:
    """Mean confidence of the live cells, capped at ``max_confidence``."""
    values = [cell.confidence for row in rows for cell in row if not cell.is_void]
    if not values:
        return 0.0
    return float(min(np.mean(values), max_confidence))


def build_table(
    rows: Grid,
    bounding_box: BoundingBox,
    line_confidences: Sequence[float] = (),
    extraction_method: str = ExtractionMethod.LINE_DETECTION,
    quality_weights: Optional[Tuple[float, float, float]] = None,
    max_confidence: float = MAX_CELL_CONFIDENCE,
    table_id: str = ""
) -> Table:
    """
    Wrap a bound grid into a Table with headers, structure and scores.

    Args:
        rows: Grid after span resolution and text binding
        bounding_box: Extent of the source zone
        line_confidences: Confidence of rulings that produced boundaries
        extraction_method: Provenance tag
        quality_weights: Optional (regularity, line, fill) weights
        max_confidence: Upper bound on the table confidence
        table_id: Explicit id; derived from the bounding box when empty

    Returns:
        New Table
    """
    has_header = detect_header(rows)
    if has_header:
        rows = mark_header_row(rows)

    weights = quality_weights or ()
    quality = score_quality(rows, line_confidences, *weights)

    table = Table(
        bounding_box=bounding_box,
        rows=rows,
        structure=summarize_structure(rows, has_header),
        headers=header_labels(rows) if has_header else [],
        quality=quality,
        confidence=table_confidence(rows, max_confidence),
        extraction_method=extraction_method,
        line_confidences=tuple(line_confidences),
        table_id=table_id
    )

    logger.debug(
        f"{table.table_id}: {table.structure.row_count}x{table.structure.col_count}, "
        f"quality={quality:.2f}, method={extraction_method}"
    )
    return table


def table_texts_equal(a: Table, b: Table) -> bool:
    """Same bounding box and the same cell texts row for row."""
    return a.bounding_box == b.bounding_box and a.to_text_grid() == b.to_text_grid()


def normalize_label(text: str) -> str:
    """Lower-case label with collapsed whitespace, for header comparison."""
    return re.sub(r"\s+", " ", text.strip().lower())
