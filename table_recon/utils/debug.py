"""
Debug rendering for reconstructed tables.

Draws zone outlines, cell rectangles (anchors only, so merged cells appear as
one box) and detected rulings on top of a page image or a blank canvas.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .geometry import Zone
from .tables import Table

logger = logging.getLogger(__name__)

TABLE_COLOR = (0, 0, 255)
CELL_COLOR = (0, 160, 0)
HEADER_COLOR = (255, 128, 0)
RULING_COLOR = (255, 0, 255)


def _point(x: float, y: float) -> Tuple[int, int]:
    return int(round(x)), int(round(y))


def blank_canvas(tables: Sequence[Table], margin: int = 20) -> np.ndarray:
    """White canvas large enough to hold every table."""
    if not tables:
        return np.full((margin * 2, margin * 2, 3), 255, dtype=np.uint8)
    width = max(t.bounding_box.x2 for t in tables) + margin
    height = max(t.bounding_box.y2 for t in tables) + margin
    return np.full((int(np.ceil(height)), int(np.ceil(width)), 3), 255, dtype=np.uint8)


def draw_table_overlay(
    tables: Sequence[Table],
    image: Optional[np.ndarray] = None,
    zones: Sequence[Zone] = (),
    line_width: int = 1
) -> np.ndarray:
    """
    Draw tables, their cells and optional zone rulings for debugging.

    Args:
        tables: Reconstructed tables
        image: Page image to draw on (grayscale or BGR); a blank canvas
            is used when omitted
        zones: Zones whose rulings should be drawn as well
        line_width: Line thickness

    Returns:
        New BGR image; ``image`` is not modified
    """
    import cv2

    if image is None:
        debug_img = blank_canvas(tables)
    elif len(image.shape) == 2:
        debug_img = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    else:
        debug_img = image.copy()

    for zone in zones:
        for line in zone.lines:
            cv2.line(
                debug_img,
                _point(line.x1, line.y1),
                _point(line.x2, line.y2),
                RULING_COLOR,
                line_width
            )

    for table in tables:
        for row in table.rows:
            for cell in row:
                if cell.is_void:
                    continue
                color = HEADER_COLOR if cell.is_header else CELL_COLOR
                b = cell.bounds
                cv2.rectangle(debug_img, _point(b.x1, b.y1), _point(b.x2, b.y2), color, line_width)

        box = table.bounding_box
        cv2.rectangle(
            debug_img,
            _point(box.x1, box.y1),
            _point(box.x2, box.y2),
            TABLE_COLOR,
            line_width + 1
        )
        cv2.putText(
            debug_img,
            f"{table.row_count}x{table.col_count} q={table.quality:.2f}",
            _point(box.x1, max(box.y1 - 5, 10)),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.4,
            TABLE_COLOR,
            1
        )

    return debug_img


def save_debug_image(
    tables: Sequence[Table],
    output_path: Union[str, Path],
    image: Optional[np.ndarray] = None,
    zones: Sequence[Zone] = ()
) -> Path:
    """Render the overlay and write it to ``output_path``."""
    from .io import save_image

    path = save_image(draw_table_overlay(tables, image, zones), output_path)
    logger.debug(f"Saved debug image: {path}")
    return path
