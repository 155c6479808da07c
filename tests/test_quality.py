"""
Tests for table quality scoring.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from table_recon.utils.geometry import BoundingBox
from table_recon.utils.grid import Cell
from table_recon.utils.quality import (
    advanced_quality_score,
    check_structure_consistency,
    fill_ratio,
    grid_regularity,
    mean_line_confidence,
    score_quality,
)


def make_rows(texts, size=10):
    """Rows of unit cells from a matrix of strings."""
    return [
        [
            Cell(r, c, BoundingBox(c * size, r * size, (c + 1) * size, (r + 1) * size), text=t)
            for c, t in enumerate(row)
        ]
        for r, row in enumerate(texts)
    ]


class TestFactors:
    """Tests for the individual quality factors."""

    def test_regularity_uses_modal_length(self):
        rows = make_rows([["a", "b"], ["a", "b"], ["a", "b", "c"], ["a", "b"]])
        assert grid_regularity(rows) == pytest.approx(0.75)

    def test_regularity_of_empty_grid(self):
        assert grid_regularity([]) is None

    def test_mean_line_confidence(self):
        assert mean_line_confidence([0.8, 1.0]) == pytest.approx(0.9)
        assert mean_line_confidence([]) is None

    def test_fill_ratio_ignores_void_cells(self):
        rows = make_rows([["Title", ""], ["a", ""]])
        rows[0][1].col_span = 0
        assert fill_ratio(rows) == pytest.approx(2 / 3)

    def test_structure_consistency(self):
        assert check_structure_consistency(make_rows([["a", "b"], ["c", "d", "e"]]))
        assert not check_structure_consistency(make_rows([["a"], ["b", "c", "d"]]))
        assert not check_structure_consistency(make_rows([["a", "b"]]))


class TestScoreQuality:
    """Tests for score_quality."""

    def test_weighted_example(self):
        # 9 of 10 rows share the modal length, 20 of 25 cells filled
        texts = [["x", "x"] for _ in range(9)]
        texts[0] = ["", ""]
        texts[1] = ["x", ""]
        texts.append(["x", "x", "x", "x", "", "", "x"])
        rows = make_rows(texts)

        assert fill_ratio(rows) == pytest.approx(0.8)
        assert grid_regularity(rows) == pytest.approx(0.9)

        score = score_quality(rows, [0.9] * 5)
        assert score == pytest.approx(0.3 * 0.9 + 0.4 * 0.9 + 0.3 * 0.8)
        assert score == pytest.approx(0.87)

    def test_missing_line_confidence_renormalizes(self):
        rows = make_rows([["a", ""], ["b", ""]])
        score = score_quality(rows, [])
        assert score == pytest.approx((0.3 * 1.0 + 0.3 * 0.5) / 0.6)

    def test_perfect_table(self):
        rows = make_rows([["a", "b"], ["c", "d"]])
        assert score_quality(rows, [1.0, 1.0]) == pytest.approx(1.0)

    def test_empty_grid_scores_zero(self):
        assert score_quality([], []) == 0.0

    @pytest.mark.parametrize("texts,lines", [
        ([["a"]], [0.0]),
        ([["", ""], [""]], [1.0]),
        ([["a", "b", "c"], ["d"]], [0.5, 2.0]),
        ([["", "", ""]], []),
    ])
    def test_score_bounded(self, texts, lines):
        score = score_quality(make_rows(texts), lines)
        assert 0.0 <= score <= 1.0

    def test_custom_weights(self):
        rows = make_rows([["a", ""]])
        score = score_quality(rows, [1.0], regularity_weight=0.0, line_weight=0.0, fill_weight=1.0)
        assert score == pytest.approx(0.5)


class TestAdvancedQuality:
    """Tests for advanced_quality_score."""

    def test_complete_table(self):
        rows = make_rows([["A", "B"], ["1", "2"]])
        score = advanced_quality_score(rows, 0.9, ["A", "B"])
        assert score == pytest.approx(0.4 + 0.27 + 0.2 + 0.1)

    def test_zero_confidence_not_counted(self):
        rows = make_rows([["A", "B"], ["1", "2"]])
        score = advanced_quality_score(rows, 0.0, [])
        assert score == pytest.approx((0.4 + 0.2) / 0.7)

    def test_blank_headers_count_against(self):
        rows = make_rows([["A", ""], ["1", "2"]])
        score = advanced_quality_score(rows, 0.9, ["A", ""])
        expected = (0.75 * 0.4 + 0.27 + 0.2 + 0.05) / 1.0
        assert score == pytest.approx(expected)

    def test_bounded(self):
        rows = make_rows([[""]])
        score = advanced_quality_score(rows, 5.0, [])
        assert 0.0 <= score <= 1.0
