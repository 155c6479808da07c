"""
Tests for merged-cell inference.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from table_recon.utils.geometry import BoundingBox, Line, Orientation, Zone, compute_boundaries
from table_recon.utils.grid import build_grid
from table_recon.utils.spans import anchors_covering, find_anchor, resolve_spans


def hline(y, x1=0, x2=30):
    return Line(Orientation.HORIZONTAL, x1, y, x2, y)


def vline(x, y1=0, y2=30):
    return Line(Orientation.VERTICAL, x, y1, x, y2)


def resolve(zone, tolerance=5.0):
    grid = build_grid(compute_boundaries(zone))
    return grid, resolve_spans(grid, zone.lines, tolerance)


def assert_partition(grid):
    """Every unit position is covered by exactly one live cell."""
    for r, row in enumerate(grid):
        for c in range(len(row)):
            assert len(anchors_covering(grid, r, c)) == 1, (r, c)


class TestResolveSpans:
    """Tests for resolve_spans."""

    def test_full_grid_has_no_spans(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(10), hline(20), vline(15)))
        _, result = resolve(zone)

        assert len(result) == 3
        assert all(len(row) == 2 for row in result)
        for row in result:
            for cell in row:
                assert cell.row_span == 1
                assert cell.col_span == 1

    def test_missing_vertical_ruling_makes_column_span(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(10), hline(20), vline(15, y1=10)))
        _, result = resolve(zone)

        assert result[0][0].col_span == 2
        assert result[0][1].col_span == 0
        assert result[0][0].bounds == BoundingBox(0, 0, 30, 10)
        assert result[1][0].col_span == 1
        assert result[2][1].col_span == 1
        assert_partition(result)

    def test_missing_horizontal_ruling_makes_row_span(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(10), hline(20, x2=15), vline(15)))
        _, result = resolve(zone)

        assert result[1][1].row_span == 2
        assert result[2][1].row_span == 0
        assert result[1][1].bounds == BoundingBox(15, 10, 30, 30)
        assert result[1][0].row_span == 1
        assert result[2][0].row_span == 1
        assert_partition(result)

    def test_block_span(self):
        # Top-left 2x2 block has no internal rulings
        lines = (
            hline(10, x1=20), hline(20), vline(10, y1=20), vline(20),
        )
        zone = Zone(0, 0, 30, 30, lines=lines)
        _, result = resolve(zone)

        anchor = result[0][0]
        assert anchor.col_span == 2
        assert anchor.row_span == 2
        assert anchor.bounds == BoundingBox(0, 0, 20, 20)
        assert result[0][1].is_void
        assert result[1][0].is_void
        assert result[1][1].is_void
        assert_partition(result)

    def test_block_members_void_on_both_axes(self):
        lines = (hline(10, x1=20), hline(20), vline(10, y1=20), vline(20))
        _, result = resolve(Zone(0, 0, 30, 30, lines=lines))

        for r, c in ((0, 1), (1, 0), (1, 1)):
            d = result[r][c].to_dict()
            assert (d["row_span"], d["col_span"]) == (0, 0), (r, c)
        assert result[0][2].row_span == 1
        assert result[0][2].col_span == 1

    def test_input_grid_untouched(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(10), hline(20), vline(15, y1=10)))
        grid, result = resolve(zone)

        assert result[0][1].col_span == 0
        assert grid[0][1].col_span == 1
        assert grid[0][0].bounds == BoundingBox(0, 0, 15, 10)

    def test_empty_grid(self):
        assert resolve_spans([], []) == []

    def test_ruling_within_tolerance_blocks_span(self):
        # Ruling drawn slightly off the boundary still separates the cells
        zone = Zone(0, 0, 30, 30, lines=(hline(10), hline(20), vline(15, y1=10), vline(15.5, y1=0, y2=10)))
        _, result = resolve(zone)
        assert result[0][0].col_span == 1

    def test_sentinels_consistent(self):
        lines = (hline(10, x1=20), hline(20), vline(10, y1=20), vline(20))
        _, result = resolve(Zone(0, 0, 30, 30, lines=lines))

        for row in result:
            for cell in row:
                if cell.is_void:
                    anchors = anchors_covering(result, cell.row, cell.col)
                    assert len(anchors) == 1
                    assert anchors[0].is_anchor


class TestFindAnchor:
    """Tests for anchor lookup."""

    def test_anchor_of_subsumed_cell(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(10), hline(20), vline(15, y1=10)))
        _, result = resolve(zone)

        anchor = find_anchor(result, 0, 1)
        assert (anchor.row, anchor.col) == (0, 0)

    def test_anchor_of_plain_cell(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(10), hline(20), vline(15)))
        _, result = resolve(zone)

        anchor = find_anchor(result, 2, 1)
        assert (anchor.row, anchor.col) == (2, 1)
