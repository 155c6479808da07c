"""
Table Reconstruction Pipeline
=============================

Rebuilds the structure of tables from zones detected on a scanned page:
ruling lines become row and column boundaries, missing internal rulings
become merged cells, and recognized text is bound to the resulting cells.

Main components:
- Boundary indexing from detected rulings
- Unit grid building and merged-cell inference
- Positional and sequential text binding
- Quality scoring
- Merging of tables split across zones
"""

__version__ = "1.0.0"
__author__ = "Table Reconstruction Team"
