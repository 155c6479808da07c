"""
Utility modules for the table reconstruction pipeline.
"""

from .geometry import (
    BoundarySet, BoundingBox, InsufficientGeometry, Line, Orientation, Zone,
    compute_boundaries,
)
from .grid import Cell, build_grid
from .spans import resolve_spans
from .text_binding import TextFragment, bind_text_positional, bind_text_sequential
from .quality import score_quality, advanced_quality_score
from .tables import Table, TableStructure, build_table
from .merger import (
    ContentAwareMergeStrategy, GeometricMergeStrategy, MergeStrategy, TableMerger,
    get_merge_strategy,
)
from .assembler import TableAssembler
from .io import load_zones, load_text, save_json, ensure_dir

__all__ = [
    # Geometry
    "BoundarySet", "BoundingBox", "InsufficientGeometry", "Line", "Orientation",
    "Zone", "compute_boundaries",
    # Grid
    "Cell", "build_grid", "resolve_spans",
    # Text
    "TextFragment", "bind_text_positional", "bind_text_sequential",
    # Quality
    "score_quality", "advanced_quality_score",
    # Tables
    "Table", "TableStructure", "build_table",
    # Merging
    "MergeStrategy", "GeometricMergeStrategy", "ContentAwareMergeStrategy",
    "TableMerger", "get_merge_strategy",
    # Assembly
    "TableAssembler",
    # IO
    "load_zones", "load_text", "save_json", "ensure_dir",
]
