"""Evaluation engine module for datarail.

This module runs resolved operation plans over value bags. One pass walks the
cells in dependency order, keeps cached values, recomputes stale ones and
propagates failures to dependents.

Key types:
- EvaluationReport: What a pass did to each cell
- evaluate: Run one pass of a plan over a bag
"""

from ._engine import EvaluationReport, evaluate

__all__ = [
    "EvaluationReport",
    "evaluate",
]
