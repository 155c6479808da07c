"""
Tests for geometry and boundary indexing.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from table_recon.utils.geometry import (
    BoundingBox,
    InsufficientGeometry,
    Line,
    Orientation,
    Zone,
    compute_boundaries,
)


def hline(y, x1=0, x2=30, confidence=1.0):
    return Line(Orientation.HORIZONTAL, x1, y, x2, y, confidence)


def vline(x, y1=0, y2=30, confidence=1.0):
    return Line(Orientation.VERTICAL, x, y1, x, y2, confidence)


class TestBoundingBox:
    """Tests for BoundingBox arithmetic."""

    def test_dimensions(self):
        box = BoundingBox(10, 20, 40, 30)
        assert box.width == 30
        assert box.height == 10
        assert box.area == 300
        assert box.center == (25, 25)

    def test_xywh_roundtrip(self):
        box = BoundingBox.from_xywh(5, 5, 10, 20)
        assert box.to_tuple() == (5, 5, 15, 25)
        assert box.to_xywh() == (5, 5, 10, 20)

    def test_intersection(self):
        a = BoundingBox(0, 0, 10, 10)
        b = BoundingBox(5, 5, 15, 15)
        assert a.intersection_area(b) == 25
        assert a.intersection_area(BoundingBox(20, 20, 30, 30)) == 0

    def test_contains_point(self):
        box = BoundingBox(0, 0, 10, 10)
        assert box.contains_point(5, 5)
        assert box.contains_point(10, 0)
        assert not box.contains_point(10.5, 5)

    def test_union(self):
        a = BoundingBox(0, 0, 10, 10)
        b = BoundingBox(5, 20, 15, 30)
        assert a.union(b) == BoundingBox(0, 0, 15, 30)


class TestLine:
    """Tests for Line helpers."""

    def test_position(self):
        assert hline(12).position == 12
        assert vline(7).position == 7

    def test_extent_is_ordered(self):
        line = Line(Orientation.HORIZONTAL, 30, 5, 10, 5)
        assert line.extent == (10, 30)

    def test_covers(self):
        line = vline(15, y1=10, y2=30)
        assert line.covers(20)
        assert not line.covers(5)
        assert line.covers(8, tolerance=2)


class TestComputeBoundaries:
    """Tests for boundary derivation."""

    @pytest.fixture
    def grid_zone(self):
        return Zone(0, 0, 30, 30, lines=(hline(10), hline(20), vline(15)))

    def test_basic_boundaries(self, grid_zone):
        boundaries = compute_boundaries(grid_zone)
        assert boundaries.rows == (0, 10, 20, 30)
        assert boundaries.cols == (0, 15, 30)
        assert boundaries.row_count == 3
        assert boundaries.col_count == 2

    def test_boundaries_strictly_increasing(self):
        zone = Zone(0, 0, 100, 80, lines=(
            hline(60, x2=100), hline(20, x2=100), hline(40, x2=100),
            vline(70, y2=80), vline(30, y2=80)
        ))
        boundaries = compute_boundaries(zone)
        for axis in (boundaries.rows, boundaries.cols):
            assert all(a < b for a, b in zip(axis, axis[1:]))
        assert boundaries.rows[0] == 0 and boundaries.rows[-1] == 80
        assert boundaries.cols[0] == 0 and boundaries.cols[-1] == 100

    def test_close_lines_collapse(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(10), hline(10.5), vline(15)))
        boundaries = compute_boundaries(zone)
        assert boundaries.rows == (0, 10, 30)

    def test_line_near_edge_snaps_to_edge(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(0.5), hline(29.5), hline(15), vline(15)))
        boundaries = compute_boundaries(zone)
        assert boundaries.rows == (0, 15, 30)

    def test_lines_outside_zone_ignored(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(10), hline(45), vline(-5), vline(15)))
        boundaries = compute_boundaries(zone)
        assert boundaries.rows == (0, 10, 30)
        assert boundaries.cols == (0, 15, 30)

    def test_border_lines_are_not_interior(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(0), hline(30), hline(10)))
        boundaries = compute_boundaries(zone)
        assert boundaries.rows == (0, 10, 30)
        assert boundaries.lines == (hline(10),)

    def test_contributing_lines_recorded(self, grid_zone):
        boundaries = compute_boundaries(grid_zone)
        assert len(boundaries.lines) == 3

    def test_horizontal_only_zone(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(10), hline(20)))
        boundaries = compute_boundaries(zone)
        assert boundaries.row_count == 3
        assert boundaries.col_count == 1

    def test_single_line_is_insufficient(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(10),))
        with pytest.raises(InsufficientGeometry) as exc_info:
            compute_boundaries(zone)
        assert exc_info.value.zone is zone

    def test_no_lines_is_insufficient(self):
        with pytest.raises(InsufficientGeometry):
            compute_boundaries(Zone(0, 0, 30, 30))

    def test_degenerate_zone_is_insufficient(self):
        zone = Zone(0, 0, 0, 30, lines=(hline(10), hline(20)))
        with pytest.raises(InsufficientGeometry):
            compute_boundaries(zone)

    def test_insufficient_geometry_is_value_error(self):
        with pytest.raises(ValueError):
            compute_boundaries(Zone(0, 0, 30, 30, lines=(vline(15),)))


class TestZone:
    """Tests for Zone helpers."""

    def test_bbox(self):
        zone = Zone(10, 20, 30, 40)
        assert zone.bbox == BoundingBox(10, 20, 40, 60)

    def test_kind(self):
        assert Zone(0, 0, 1, 1).is_table
        assert not Zone(0, 0, 1, 1, kind="text").is_table

    def test_split_lines(self):
        zone = Zone(0, 0, 30, 30, lines=(hline(10), vline(15), hline(20)))
        assert len(zone.horizontal_lines) == 2
        assert len(zone.vertical_lines) == 1
