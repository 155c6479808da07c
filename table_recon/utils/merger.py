"""
Table merging for table reconstruction.

A logical table is often detected as several zones (a page break, a missing
ruling). The merger groups tables linked by pairwise compatibility, folds
each group top to bottom and repeats until no pair qualifies.
Strategies decide compatibility and build the merged table; inputs are never
modified.
"""

import logging
from dataclasses import replace
from difflib import SequenceMatcher
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .grid import Grid
from .tables import (
    ExtractionMethod,
    Table,
    normalize_label,
    summarize_structure,
    table_texts_equal,
)

logger = logging.getLogger(__name__)

DEFAULT_ADJACENCY_TOLERANCE = 20.0
DEFAULT_ALIGNMENT_TOLERANCE = 10.0
DEFAULT_MAX_COLUMN_DIFFERENCE = 1
DEFAULT_HEADER_SIMILARITY = 0.7


def _merged_method(upper: Table, lower: Table) -> str:
    if upper.extraction_method == lower.extraction_method:
        method = upper.extraction_method
    else:
        method = f"{upper.extraction_method}+{lower.extraction_method}"
    if not method.endswith(ExtractionMethod.MERGED_SUFFIX):
        method += ExtractionMethod.MERGED_SUFFIX
    return method


def _rebase_rows(rows: Grid, offset: int) -> Grid:
    return [
        [replace(cell, row=offset + i) for cell in row]
        for i, row in enumerate(rows)
    ]


# ============================================================================
# Strategies
# ============================================================================

class MergeStrategy:
    """
    Decides whether two tables are one logical table and joins them.

    ``upper`` is always the table that starts higher on the page.
    """

    name = "base"

    def should_merge(self, upper: Table, lower: Table) -> bool:
        raise NotImplementedError

    def merge(self, upper: Table, lower: Table) -> Table:
        raise NotImplementedError


class GeometricMergeStrategy(MergeStrategy):
    """Merge vertically adjacent, left-aligned tables with matching columns."""

    name = "geometric"

    def __init__(
        self,
        adjacency_tolerance: float = DEFAULT_ADJACENCY_TOLERANCE,
        max_column_difference: int = DEFAULT_MAX_COLUMN_DIFFERENCE,
        alignment_tolerance: float = DEFAULT_ALIGNMENT_TOLERANCE
    ):
        self.adjacency_tolerance = adjacency_tolerance
        self.max_column_difference = max_column_difference
        self.alignment_tolerance = alignment_tolerance

    def is_adjacent(self, upper: Table, lower: Table) -> bool:
        gap = lower.bounding_box.y1 - upper.bounding_box.y2
        return abs(gap) < self.adjacency_tolerance

    def columns_compatible(self, upper: Table, lower: Table) -> bool:
        return abs(upper.col_count - lower.col_count) <= self.max_column_difference

    def is_aligned(self, upper: Table, lower: Table) -> bool:
        return abs(upper.bounding_box.x1 - lower.bounding_box.x1) < self.alignment_tolerance

    def should_merge(self, upper: Table, lower: Table) -> bool:
        return (
            self.is_adjacent(upper, lower)
            and self.columns_compatible(upper, lower)
            and self.is_aligned(upper, lower)
        )

    def _lower_rows(self, upper: Table, lower: Table) -> Grid:
        return lower.rows

    def merge(self, upper: Table, lower: Table) -> Table:
        lower_rows = self._lower_rows(upper, lower)
        rows = [list(row) for row in upper.rows] + _rebase_rows(lower_rows, len(upper.rows))

        return Table(
            bounding_box=upper.bounding_box.union(lower.bounding_box),
            rows=rows,
            structure=summarize_structure(rows, upper.structure.has_header),
            headers=list(upper.headers),
            quality=float(np.mean([upper.quality, lower.quality])),
            confidence=float(np.mean([upper.confidence, lower.confidence])),
            extraction_method=_merged_method(upper, lower),
            line_confidences=upper.line_confidences + lower.line_confidences,
            table_id=f"merged_{upper.table_id}_{lower.table_id}"
        )


class ContentAwareMergeStrategy(GeometricMergeStrategy):
    """
    Geometric merge that also compares header text.

    When both tables carry headers they must be similar enough; a lower
    table that repeats the upper header (continuation after a page break)
    has that row dropped before concatenation.
    """

    name = "content"

    def __init__(
        self,
        adjacency_tolerance: float = DEFAULT_ADJACENCY_TOLERANCE,
        max_column_difference: int = DEFAULT_MAX_COLUMN_DIFFERENCE,
        alignment_tolerance: float = DEFAULT_ALIGNMENT_TOLERANCE,
        header_similarity: float = DEFAULT_HEADER_SIMILARITY
    ):
        super().__init__(adjacency_tolerance, max_column_difference, alignment_tolerance)
        self.header_similarity = header_similarity

    @staticmethod
    def header_similarity_score(a: Sequence[str], b: Sequence[str]) -> float:
        """Mean pairwise similarity of header labels, position by position."""
        if not a or not b:
            return 0.0
        width = max(len(a), len(b))
        total = 0.0
        for i in range(width):
            left = normalize_label(a[i]) if i < len(a) else ""
            right = normalize_label(b[i]) if i < len(b) else ""
            if left and right:
                total += SequenceMatcher(None, left, right).ratio()
        return total / width

    def should_merge(self, upper: Table, lower: Table) -> bool:
        if not super().should_merge(upper, lower):
            return False
        if upper.headers and lower.headers:
            score = self.header_similarity_score(upper.headers, lower.headers)
            logger.debug(f"Header similarity {score:.2f} for {upper.table_id}/{lower.table_id}")
            return score >= self.header_similarity
        return True

    def _lower_rows(self, upper: Table, lower: Table) -> Grid:
        if not (upper.headers and lower.structure.has_header and lower.rows):
            return lower.rows
        if any(cell.row_span > 1 for cell in lower.rows[0]):
            # Header cell reaches into the body; keep the row
            return lower.rows
        if self.header_similarity_score(upper.headers, lower.headers) >= self.header_similarity:
            logger.debug(f"Dropping repeated header of {lower.table_id}")
            return lower.rows[1:]
        return lower.rows


STRATEGIES = {
    GeometricMergeStrategy.name: GeometricMergeStrategy,
    ContentAwareMergeStrategy.name: ContentAwareMergeStrategy,
}


def get_merge_strategy(name: str = "geometric", **kwargs) -> MergeStrategy:
    """Instantiate a registered strategy by name."""
    try:
        strategy_cls = STRATEGIES[name]
    except KeyError:
        raise ValueError(f"Unknown merge strategy: {name}") from None
    return strategy_cls(**kwargs)


# ============================================================================
# Merger
# ============================================================================

def _order_key(table: Table) -> Tuple:
    box = table.bounding_box
    texts = tuple(tuple(row) for row in table.to_text_grid())
    return (box.y1, box.x1, box.y2, box.x2, texts)


class TableMerger:
    """
    Merges candidate tables until no pair qualifies.

    Compatibility is tested pairwise on the tables as given, so a chain
    A~B, B~C lands in one group even when the merged A+B would no longer
    pass against C. Each group is folded top to bottom through the strategy.
    """

    def __init__(self, strategy: Optional[MergeStrategy] = None):
        self.strategy = strategy or GeometricMergeStrategy()

    def _related(self, upper: Table, lower: Table) -> bool:
        return table_texts_equal(upper, lower) or self.strategy.should_merge(upper, lower)

    def _groups(self, tables: List[Table]) -> List[List[int]]:
        """Connected components of the pairwise merge relation."""
        parent = list(range(len(tables)))

        def find(i: int) -> int:
            while parent[i] != i:
                parent[i] = parent[parent[i]]
                i = parent[i]
            return i

        for i in range(len(tables)):
            for j in range(i + 1, len(tables)):
                if self._related(tables[i], tables[j]):
                    root_i, root_j = find(i), find(j)
                    if root_i != root_j:
                        parent[max(root_i, root_j)] = min(root_i, root_j)

        groups: Dict[int, List[int]] = {}
        for i in range(len(tables)):
            groups.setdefault(find(i), []).append(i)
        return list(groups.values())

    def _fold(self, members: List[Table]) -> Table:
        merged = members[0]
        kept = [merged]
        for table in members[1:]:
            if any(table_texts_equal(seen, table) for seen in kept):
                logger.debug(f"Dropping duplicate {table.table_id}")
                continue
            logger.debug(f"Merged {merged.table_id} with {table.table_id}")
            merged = self.strategy.merge(merged, table)
            kept.append(table)
        return merged

    def merge_all(self, tables: Sequence[Table]) -> List[Table]:
        """
        Merge every chain of compatible tables.

        Args:
            tables: Reconstructed tables, in any order

        Returns:
            New list ordered top to bottom; tables that merged with nothing
            are returned as they were given
        """
        current = sorted(tables, key=_order_key)

        while len(current) > 1:
            groups = self._groups(current)
            if len(groups) == len(current):
                break
            # Members keep the top-to-bottom order of ``current``
            current = sorted(
                (self._fold([current[i] for i in group]) for group in groups),
                key=_order_key
            )

        if len(current) < len(tables):
            logger.info(f"Merged {len(tables)} table(s) into {len(current)}")
        return current
