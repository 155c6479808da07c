"""
Table assembler module for table reconstruction.

Provides:
- Per-zone pipeline orchestration (boundaries, grid, spans, text, scoring)
- Optional thread fan-out across zones
- Cross-zone merging of split tables
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Union

from ..config import ReconstructionConfig, get_config
from .geometry import InsufficientGeometry, Zone, compute_boundaries
from .grid import build_grid
from .merger import MergeStrategy, TableMerger, get_merge_strategy
from .spans import resolve_spans
from .tables import ExtractionMethod, Table, build_table, make_table_id
from .text_binding import (
    TextFragment,
    bind_text_positional,
    bind_text_sequential,
    finalize_cells,
)

logger = logging.getLogger(__name__)

ZoneText = Union[None, str, Sequence[TextFragment]]


def merge_strategy_from_config(config: ReconstructionConfig) -> MergeStrategy:
    """Instantiate the configured merge strategy with its tolerances."""
    merge = config.merge
    options = {
        "adjacency_tolerance": merge.adjacency_tolerance,
        "max_column_difference": merge.max_column_difference,
        "alignment_tolerance": merge.alignment_tolerance,
    }
    if merge.strategy == "content":
        options["header_similarity"] = merge.header_similarity
    return get_merge_strategy(merge.strategy, **options)


# ============================================================================
# Table Assembler
# ============================================================================

class TableAssembler:
    """
    Orchestrates the table reconstruction pipeline.

    Coordinates:
    - Boundary indexing
    - Grid building and span resolution
    - Text binding
    - Quality scoring
    - Table merging
    """

    def __init__(
        self,
        config: Optional[ReconstructionConfig] = None,
        merge_strategy: Optional[MergeStrategy] = None
    ):
        self.config = config or get_config()
        self._merge_strategy = merge_strategy
        self._merger = None

    @property
    def merger(self) -> TableMerger:
        if self._merger is None:
            strategy = self._merge_strategy or merge_strategy_from_config(self.config)
            self._merger = TableMerger(strategy)
        return self._merger

    def _bind(self, grid, text: ZoneText):
        binding = self.config.binding
        baseline = self.config.grid.baseline_confidence

        if text is None:
            return grid, ExtractionMethod.LINE_DETECTION

        if isinstance(text, str):
            grid = bind_text_sequential(grid, text, binding.tokens_per_cell, baseline)
            method = ExtractionMethod.SEQUENTIAL
        else:
            grid = bind_text_positional(grid, text, binding.overlap_threshold, baseline)
            method = ExtractionMethod.POSITIONAL

        return finalize_cells(grid, binding.max_confidence), method

    def reconstruct_zone(
        self,
        zone: Zone,
        text: ZoneText = None,
        index: Optional[int] = None
    ) -> Optional[Table]:
        """
        Reconstruct a single table zone.

        Args:
            zone: Table zone with its rulings
            text: OCR fragments with positions, a flat text blob, or None
                for geometry only
            index: Position of the zone on the page, used in the table id

        Returns:
            Table, or None when the zone carries too little geometry
        """
        config = self.config

        try:
            boundaries = compute_boundaries(
                zone,
                epsilon=config.geometry.boundary_epsilon,
                min_lines=config.geometry.min_lines
            )
        except InsufficientGeometry as e:
            logger.warning(f"Skipping zone: {e}")
            return None

        grid = build_grid(boundaries, config.grid.baseline_confidence)

        if config.spans.enabled:
            grid = resolve_spans(grid, zone.lines, config.spans.tolerance)

        grid, method = self._bind(grid, text)

        return build_table(
            grid,
            bounding_box=zone.bbox,
            line_confidences=[line.confidence for line in boundaries.lines],
            extraction_method=method,
            quality_weights=config.quality.weights,
            max_confidence=config.binding.max_confidence,
            table_id=make_table_id(zone.bbox, index)
        )

    def reconstruct(
        self,
        zones: Sequence[Zone],
        text: ZoneText = None,
        merge: bool = True
    ) -> List[Table]:
        """
        Reconstruct every table zone and merge tables split across zones.

        A text blob is offered whole to every zone, starting from its first
        token. Fragment lists are offered whole as well; each zone binds only
        the fragments that fall inside its cells.

        Args:
            zones: Zones from the upstream detector, of any kind
            text: OCR fragments, a flat text blob, or None
            merge: Run the table merger after per-zone reconstruction

        Returns:
            Tables ordered top to bottom
        """
        start_time = time.time()

        table_zones = [(i, z) for i, z in enumerate(zones) if z.is_table]
        skipped = len(zones) - len(table_zones)
        if skipped:
            logger.debug(f"Ignoring {skipped} non-table zone(s)")

        workers = max(1, self.config.max_workers)
        if workers > 1 and len(table_zones) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                results = list(executor.map(
                    lambda item: self.reconstruct_zone(item[1], text, item[0]),
                    table_zones
                ))
        else:
            results = [self.reconstruct_zone(z, text, i) for i, z in table_zones]

        tables = [t for t in results if t is not None]

        if merge and self.config.merge.enabled:
            tables = self.merger.merge_all(tables)

        elapsed = time.time() - start_time
        logger.info(
            f"Reconstructed {len(tables)} table(s) from {len(table_zones)} zone(s) "
            f"in {elapsed:.2f}s"
        )
        return tables
