"""
Grid construction for table reconstruction.

Turns ordered row/column boundaries into a dense matrix of unit cells.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Tuple

from .geometry import BoundarySet, BoundingBox

logger = logging.getLogger(__name__)

GRID_BASELINE_CONFIDENCE = 0.8

Grid = List[List["Cell"]]


@dataclass
class Cell:
    """A single table cell indexed into the unit grid."""
    row: int
    col: int
    bounds: BoundingBox
    row_span: int = 1
    col_span: int = 1  # 0 marks a cell rendered by an earlier span anchor
    text: str = ""
    confidence: float = GRID_BASELINE_CONFIDENCE
    is_header: bool = False
    alignment: str = "left"

    @property
    def is_void(self) -> bool:
        return self.row_span == 0 or self.col_span == 0

    @property
    def is_anchor(self) -> bool:
        return not self.is_void and (self.row_span > 1 or self.col_span > 1)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.row,
            "col": self.col,
            "row_span": self.row_span,
            "col_span": self.col_span,
            "bounds": self.bounds.to_tuple(),
            "text": self.text,
            "confidence": round(self.confidence, 3),
            "is_header": self.is_header,
            "alignment": self.alignment
        }


def build_grid(
    boundaries: BoundarySet,
    baseline_confidence: float = GRID_BASELINE_CONFIDENCE
) -> Grid:
    """
    Build an (N-1)x(M-1) grid of unit cells.

    Args:
        boundaries: Row and column boundaries of the zone
        baseline_confidence: Confidence given to every cell before text binding

    Returns:
        Row-major list of cell rows
    """
    rows, cols = boundaries.rows, boundaries.cols
    grid = []

    for r in range(len(rows) - 1):
        cell_row = []
        for c in range(len(cols) - 1):
            cell_row.append(Cell(
                row=r,
                col=c,
                bounds=BoundingBox(cols[c], rows[r], cols[c + 1], rows[r + 1]),
                confidence=baseline_confidence
            ))
        grid.append(cell_row)

    logger.debug(f"Built {len(grid)}x{len(cols) - 1} unit grid")
    return grid


def copy_grid(grid: Grid) -> Grid:
    """Shallow-copy every cell so the result can be modified independently."""
    return [[replace(cell) for cell in row] for row in grid]


def iter_cells(grid: Grid, include_void: bool = False):
    """Yield cells in row-major order, skipping void cells by default."""
    for row in grid:
        for cell in row:
            if include_void or not cell.is_void:
                yield cell


def grid_shape(grid: Grid) -> Tuple[int, int]:
    return len(grid), max((len(row) for row in grid), default=0)
