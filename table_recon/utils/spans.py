"""
Merged-cell inference for table reconstruction.

The unit grid is maximal: every boundary found anywhere in the zone cuts every
row and column. A boundary that no detected ruling backs at a given position
is treated as missing, and the unit cells on either side are merged into one
span. Horizontal spans are resolved first, then vertical spans, so a merge
that is both row- and column-spanning comes out as the product of the two.
"""

import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from .geometry import BoundingBox, Line
from .grid import Cell, Grid, copy_grid

logger = logging.getLogger(__name__)

DEFAULT_SPAN_TOLERANCE = 5.0


def _has_ruling(
    lines: Sequence[Line],
    edge: float,
    crossings: Sequence[float],
    tolerance: float
) -> bool:
    """Whether a ruling sits on ``edge`` and reaches any of ``crossings``."""
    for line in lines:
        if abs(line.position - edge) > tolerance:
            continue
        if any(line.covers(point) for point in crossings):
            return True
    return False


def _joins_horizontally(
    left: Cell,
    right: Cell,
    vertical_lines: Sequence[Line],
    row_center: float,
    tolerance: float
) -> bool:
    a, b = left.bounds, right.bounds
    if abs(a.height - b.height) > tolerance or abs(a.y1 - b.y1) > tolerance:
        return False
    if abs(b.x1 - a.x2) > tolerance:
        return False
    return not _has_ruling(vertical_lines, a.x2, [row_center], tolerance)


def _joins_vertically(
    upper: Cell,
    lower: Cell,
    horizontal_lines: Sequence[Line],
    column_centers: Sequence[float],
    tolerance: float
) -> bool:
    a, b = upper.bounds, lower.bounds
    if abs(a.width - b.width) > tolerance or abs(a.x1 - b.x1) > tolerance:
        return False
    if abs(b.y1 - a.y2) > tolerance:
        return False
    return not _has_ruling(horizontal_lines, a.y2, column_centers, tolerance)


def _resolve_horizontal(
    grid: Grid,
    units: Grid,
    vertical_lines: Sequence[Line],
    tolerance: float
) -> int:
    found = 0
    for r, row in enumerate(grid):
        row_center = units[r][0].bounds.center[1] if units[r] else 0.0
        c = 0
        while c < len(row):
            anchor = row[c]
            if anchor.is_void:
                c += 1
                continue

            span = 1
            current = anchor
            while c + span < len(row):
                neighbour = row[c + span]
                if neighbour.is_void:
                    break
                if not _joins_horizontally(current, neighbour, vertical_lines,
                                           row_center, tolerance):
                    break
                current = neighbour
                span += 1

            if span > 1:
                b = anchor.bounds
                row[c] = replace(
                    anchor,
                    col_span=span,
                    bounds=BoundingBox(b.x1, b.y1, current.bounds.x2, b.y2)
                )
                for offset in range(1, span):
                    row[c + offset] = replace(row[c + offset], col_span=0)
                logger.debug(f"Column span {span} anchored at ({r}, {c})")
                found += 1

            c += span
    return found


def _resolve_vertical(
    grid: Grid,
    units: Grid,
    horizontal_lines: Sequence[Line],
    tolerance: float
) -> int:
    found = 0
    n_rows = len(grid)
    for r in range(n_rows):
        for c in range(len(grid[r])):
            anchor = grid[r][c]
            if anchor.is_void:
                continue

            columns = range(c, c + anchor.col_span)
            centers = [units[r][j].bounds.center[0] for j in columns]

            span = 1
            current = anchor
            while r + span < n_rows and c < len(grid[r + span]):
                below = grid[r + span][c]
                if below.is_void or below.col_span != anchor.col_span:
                    break
                if not _joins_vertically(current, below, horizontal_lines,
                                         centers, tolerance):
                    break
                current = below
                span += 1

            if span > 1:
                b = anchor.bounds
                grid[r][c] = replace(
                    anchor,
                    row_span=span,
                    bounds=BoundingBox(b.x1, b.y1, b.x2, current.bounds.y2)
                )
                # Every non-anchor cell of the rectangle is void on both axes
                for dr in range(span):
                    for j in columns:
                        if dr or j != c:
                            grid[r + dr][j] = replace(grid[r + dr][j], row_span=0, col_span=0)
                logger.debug(f"Row span {span} anchored at ({r}, {c})")
                found += 1
    return found


def resolve_spans(
    grid: Grid,
    lines: Sequence[Line],
    tolerance: float = DEFAULT_SPAN_TOLERANCE
) -> Grid:
    """
    Infer merged cells from boundaries no ruling supports.

    Args:
        grid: Dense unit grid from ``build_grid``
        lines: Rulings detected in the zone
        tolerance: Geometry tolerance for edge and size matching

    Returns:
        New grid; anchors carry ``row_span``/``col_span`` > 1 and cover the
        merged rectangle, subsumed cells carry a span of 0. The input grid is
        left untouched.
    """
    result = copy_grid(grid)
    if not result:
        return result

    vertical_lines = [l for l in lines if not l.is_horizontal]
    horizontal_lines = [l for l in lines if l.is_horizontal]

    col_spans = _resolve_horizontal(result, grid, vertical_lines, tolerance)
    row_spans = _resolve_vertical(result, grid, horizontal_lines, tolerance)

    if col_spans or row_spans:
        logger.info(f"Inferred {col_spans} column span(s) and {row_spans} row span(s)")

    return result


def find_anchor(grid: Grid, row: int, col: int) -> Optional[Cell]:
    """Return the non-void cell whose span covers unit position (row, col)."""
    for r in range(row, -1, -1):
        for c in range(min(col, len(grid[r]) - 1), -1, -1):
            cell = grid[r][c]
            if cell.is_void:
                continue
            if r + cell.row_span > row and c + cell.col_span > col:
                return cell
    return None


def anchors_covering(grid: Grid, row: int, col: int) -> List[Cell]:
    """All non-void cells whose span rectangle contains (row, col)."""
    return [
        cell for cell_row in grid for cell in cell_row
        if not cell.is_void
        and cell.row <= row < cell.row + cell.row_span
        and cell.col <= col < cell.col + cell.col_span
    ]
