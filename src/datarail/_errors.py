"""Exceptions raised by the datarail engine.

Configuration mistakes such as missing cells or cycles are raised as
exceptions. Domain failures are never raised: a cell returns a Failure marker
and the evaluator stores it in the bag like any other value.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class DataRailError(Exception):
    """Base class for all datarail errors."""


class CellMissingError(DataRailError, LookupError):
    """A cell could not be evaluated because something it needs is missing.

    Either a source name resolves to neither a cell nor a bag value, or the
    cell itself has no implementation and no value in the bag. In the second
    case `name` and `cell` are the same.

    Attributes:
        name: The unresolved name.
        cell: The cell that required it.

    """

    def __init__(self, name: str, cell: str) -> None:
        self.name = name
        self.cell = cell
        if name == cell:
            msg = f"Cell '{cell}' is missing '{name}': no implementation and no value in the bag"
        else:
            msg = f"Cell '{cell}' is missing '{name}'"
        super().__init__(msg)

    def __str__(self) -> str:
        # LookupError would otherwise repr() the message like KeyError does
        return str(self.args[0])


class CyclicDependencyError(DataRailError, ValueError):
    """The cells of an operation depend on each other in a cycle."""

    def __init__(self, operation: str, cells: Iterable[str]) -> None:
        self.operation = operation
        self.cells = tuple(cells)
        msg = f"Cycle detected in operation '{operation}' between cells: {', '.join(self.cells)}"
        super().__init__(msg)


class DuplicateCellError(DataRailError, KeyError):
    """A cell name was declared twice in the same operation definition."""

    def __init__(self, operation: str, name: str) -> None:
        self.operation = operation
        self.name = name
        msg = f"Cell with name '{name}' already exists in operation '{operation}'."
        super().__init__(msg)

    def __str__(self) -> str:
        return str(self.args[0])


class DefinitionSealedError(DataRailError, RuntimeError):
    """A declaration was attempted on a definition that is already in use."""


class UnknownCellError(DataRailError, KeyError):
    """An override names a cell the definition does not declare."""

    def __init__(self, operation: str, name: str) -> None:
        self.operation = operation
        self.name = name
        msg = f"Operation '{operation}' has no cell named '{name}'."
        super().__init__(msg)

    def __str__(self) -> str:
        return str(self.args[0])
