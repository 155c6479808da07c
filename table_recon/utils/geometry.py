"""
Geometry module for table reconstruction.

Provides:
- Input contracts from the upstream detector (Line, Zone)
- Bounding box arithmetic
- Boundary indexing (row/column coordinates derived from rulings)
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


# ============================================================================
# Errors
# ============================================================================

class InsufficientGeometry(ValueError):
    """Raised when a zone does not carry enough rulings to form a grid."""

    def __init__(self, message: str, zone: Optional["Zone"] = None):
        super().__init__(message)
        self.zone = zone


# ============================================================================
# Data Classes and Enums
# ============================================================================

class Orientation(Enum):
    """Orientation of a detected ruling."""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box with corner coordinates."""
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x1, self.y1, self.x2, self.y2)

    def to_xywh(self) -> Tuple[float, float, float, float]:
        return (self.x1, self.y1, self.width, self.height)

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> 'BoundingBox':
        return cls(x, y, x + w, y + h)

    def intersection_area(self, other: 'BoundingBox') -> float:
        x1 = max(self.x1, other.x1)
        y1 = max(self.y1, other.y1)
        x2 = min(self.x2, other.x2)
        y2 = min(self.y2, other.y2)
        return max(0.0, x2 - x1) * max(0.0, y2 - y1)

    def contains_point(self, x: float, y: float) -> bool:
        return self.x1 <= x <= self.x2 and self.y1 <= y <= self.y2

    def union(self, other: 'BoundingBox') -> 'BoundingBox':
        return BoundingBox(
            min(self.x1, other.x1),
            min(self.y1, other.y1),
            max(self.x2, other.x2),
            max(self.y2, other.y2)
        )


@dataclass(frozen=True)
class Line:
    """A detected ruling segment."""
    orientation: Orientation
    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float = 1.0

    @property
    def is_horizontal(self) -> bool:
        return self.orientation is Orientation.HORIZONTAL

    @property
    def midpoint(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    @property
    def position(self) -> float:
        """Coordinate across the line: midpoint Y for horizontal, X for vertical."""
        mid_x, mid_y = self.midpoint
        return mid_y if self.is_horizontal else mid_x

    @property
    def extent(self) -> Tuple[float, float]:
        """Interval covered along the line's own axis."""
        if self.is_horizontal:
            return (min(self.x1, self.x2), max(self.x1, self.x2))
        return (min(self.y1, self.y2), max(self.y1, self.y2))

    def covers(self, coordinate: float, tolerance: float = 0.0) -> bool:
        """Whether the segment reaches ``coordinate`` along its own axis."""
        start, end = self.extent
        return start - tolerance <= coordinate <= end + tolerance


@dataclass(frozen=True)
class Zone:
    """A candidate table region produced by the upstream detector."""
    x: float
    y: float
    width: float
    height: float
    kind: str = "table"
    lines: Tuple[Line, ...] = field(default_factory=tuple)

    @property
    def bbox(self) -> BoundingBox:
        return BoundingBox.from_xywh(self.x, self.y, self.width, self.height)

    @property
    def is_table(self) -> bool:
        return self.kind == "table"

    @property
    def horizontal_lines(self) -> List[Line]:
        return [l for l in self.lines if l.orientation is Orientation.HORIZONTAL]

    @property
    def vertical_lines(self) -> List[Line]:
        return [l for l in self.lines if l.orientation is Orientation.VERTICAL]


@dataclass(frozen=True)
class BoundarySet:
    """Ordered row and column boundaries of one zone."""
    rows: Tuple[float, ...]
    cols: Tuple[float, ...]
    lines: Tuple[Line, ...] = ()

    @property
    def row_count(self) -> int:
        return len(self.rows) - 1

    @property
    def col_count(self) -> int:
        return len(self.cols) - 1


# ============================================================================
# Boundary Indexing
# ============================================================================

def _axis_boundaries(
    start: float,
    end: float,
    positions: Sequence[float],
    epsilon: float
) -> List[float]:
    """
    Collapse interior positions into a strictly increasing boundary list.

    The first and last entries are always ``start`` and ``end``; an interior
    coordinate within ``epsilon`` of a zone edge snaps onto that edge.
    """
    if end - start < epsilon:
        return [start]

    interior = np.sort(np.asarray(positions, dtype=float))
    boundaries = [float(start)]
    for value in interior:
        if value - boundaries[-1] >= epsilon:
            boundaries.append(float(value))

    if end - boundaries[-1] < epsilon:
        boundaries[-1] = float(end)
    else:
        boundaries.append(float(end))

    return boundaries


def compute_boundaries(
    zone: Zone,
    epsilon: float = 1.0,
    min_lines: int = 2
) -> BoundarySet:
    """
    Derive row and column boundaries for a zone.

    Args:
        zone: Zone with its detected rulings
        epsilon: Coordinates closer than this collapse into one boundary
        min_lines: Minimum number of rulings a zone needs to count as a grid

    Returns:
        BoundarySet bracketing the zone extent

    Raises:
        InsufficientGeometry: If either axis has fewer than 2 boundaries or
            the zone carries fewer than ``min_lines`` rulings
    """
    if len(zone.lines) < min_lines:
        raise InsufficientGeometry(
            f"Zone at ({zone.x}, {zone.y}) has {len(zone.lines)} ruling(s), "
            f"need at least {min_lines}",
            zone
        )

    top, bottom = zone.y, zone.y + zone.height
    left, right = zone.x, zone.x + zone.width

    row_lines = [l for l in zone.horizontal_lines if top < l.position < bottom]
    col_lines = [l for l in zone.vertical_lines if left < l.position < right]

    rows = _axis_boundaries(top, bottom, [l.position for l in row_lines], epsilon)
    cols = _axis_boundaries(left, right, [l.position for l in col_lines], epsilon)

    if len(rows) < 2 or len(cols) < 2:
        raise InsufficientGeometry(
            f"Zone at ({zone.x}, {zone.y}) yields {len(rows)} row and "
            f"{len(cols)} column boundaries",
            zone
        )

    logger.debug(f"Boundaries: {len(rows)} rows, {len(cols)} cols")

    return BoundarySet(
        rows=tuple(rows),
        cols=tuple(cols),
        lines=tuple(row_lines + col_lines)
    )
