"""
Configuration and constants for the table reconstruction pipeline.

This module provides:
- Global logging setup
- Per-stage configuration (geometry, grid, spans, text binding, quality, merge)
- Environment overrides

Tolerances are expressed in page geometry units. The defaults were tuned for
scans of roughly 300 DPI and should be re-validated for other resolutions.
"""

import os
import logging
from dataclasses import dataclass, field

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("table_recon")


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class GeometryConfig:
    """Boundary indexing configuration."""
    boundary_epsilon: float = 1.0  # Coordinates closer than this collapse
    min_lines: int = 2  # Fewer rulings than this cannot evidence a grid


@dataclass
class GridConfig:
    """Unit grid configuration."""
    baseline_confidence: float = 0.8  # Grid found, content unknown


@dataclass
class SpanConfig:
    """Merged-cell inference configuration."""
    enabled: bool = True
    tolerance: float = 5.0


@dataclass
class BindingConfig:
    """Text binding configuration."""
    overlap_threshold: float = 0.25  # Fraction of a fragment inside a cell
    tokens_per_cell: int = 3  # Sequential fallback allocation
    max_confidence: float = 0.95


@dataclass
class QualityConfig:
    """Quality score weights."""
    regularity_weight: float = 0.3
    line_confidence_weight: float = 0.4
    fill_weight: float = 0.3

    @property
    def weights(self):
        return (self.regularity_weight, self.line_confidence_weight, self.fill_weight)


@dataclass
class MergeConfig:
    """Table merge configuration."""
    enabled: bool = True
    strategy: str = "geometric"  # geometric, content
    adjacency_tolerance: float = 20.0
    max_column_difference: int = 1
    alignment_tolerance: float = 10.0
    header_similarity: float = 0.7  # content strategy only


@dataclass
class ReconstructionConfig:
    """Main pipeline configuration."""
    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    grid: GridConfig = field(default_factory=GridConfig)
    spans: SpanConfig = field(default_factory=SpanConfig)
    binding: BindingConfig = field(default_factory=BindingConfig)
    quality: QualityConfig = field(default_factory=QualityConfig)
    merge: MergeConfig = field(default_factory=MergeConfig)

    # Global settings
    debug_mode: bool = False
    max_workers: int = 1  # >1 reconstructs zones on a thread pool


# ============================================================================
# Default Configuration Instance
# ============================================================================

def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}")
        return default


def get_config() -> ReconstructionConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = ReconstructionConfig()

    if os.environ.get("TABLE_RECON_DEBUG", "").lower() == "true":
        config.debug_mode = True

    config.spans.tolerance = _env_float(
        "TABLE_RECON_SPAN_TOLERANCE", config.spans.tolerance
    )
    config.merge.adjacency_tolerance = _env_float(
        "TABLE_RECON_MERGE_TOLERANCE", config.merge.adjacency_tolerance
    )
    config.max_workers = int(_env_float("TABLE_RECON_MAX_WORKERS", config.max_workers))

    strategy = os.environ.get("TABLE_RECON_MERGE_STRATEGY")
    if strategy:
        config.merge.strategy = strategy

    return config
