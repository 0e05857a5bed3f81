"""Incremental evaluation of dependency-ordered computation cells."""

__all__ = [
    "Bag",
    "CellDef",
    "CellMissingError",
    "CyclicDependencyError",
    "DataRailError",
    "DefinitionSealedError",
    "DependencyGraph",
    "DuplicateCellError",
    "EvaluationReport",
    "Failure",
    "Operation",
    "OperationDefinition",
    "ResolvedCell",
    "UnknownCellError",
    "bag_from_dict",
    "bag_to_dict",
    "evaluate",
    "export_bag_to_toml",
    "is_failure",
    "load_bag_from_toml",
    "resolve",
    "sources",
]

from ._bag import Bag
from ._decorators import sources
from ._definition import CellDef, OperationDefinition
from ._errors import (
    CellMissingError,
    CyclicDependencyError,
    DataRailError,
    DefinitionSealedError,
    DuplicateCellError,
    UnknownCellError,
)
from ._eval_engine import EvaluationReport, evaluate
from ._failure import Failure, is_failure
from ._graph import DependencyGraph
from ._io import bag_from_dict, bag_to_dict, export_bag_to_toml, load_bag_from_toml
from ._operation import Operation
from ._resolve import ResolvedCell, resolve
