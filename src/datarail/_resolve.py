"""Dependency resolution for operations.

Turns an operation definition plus per-instance overrides into an evaluation
plan: the cells in a valid order, each with its effective implementation and
the source names it reads from the bag.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ._definition import parameter_names
from ._errors import CyclicDependencyError, UnknownCellError
from ._graph import CycleError, DependencyGraph

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from ._definition import CellDef, OperationDefinition

logger = logging.getLogger(__name__)

# (overridden cell name, parameter names of the override), sorted by name
type PlanKey = tuple[tuple[str, tuple[str, ...]], ...]
# (cell name, source names) in evaluation order
type Ordering = tuple[tuple[str, tuple[str, ...]], ...]


@dataclass(frozen=True, slots=True)
class ResolvedCell:
    """A cell ready for evaluation.

    Attributes:
        name: The cell name.
        impl: The effective implementation (override, else default), or None.
        sources: Names the implementation reads, after applying the rename map.
            A source naming another cell is a dependency on that cell; any
            other source is read directly from the bag.
        index: Position of the cell in declaration order.

    """

    name: str
    impl: Callable[..., Any] | None = field(repr=False)
    sources: tuple[str, ...] = ()
    index: int = 0

    @property
    def has_impl(self) -> bool:
        return self.impl is not None


def _effective_parameters(cell: CellDef, overrides: Mapping[str, Callable[..., Any]]) -> tuple[str, ...]:
    if cell.name in overrides:
        return parameter_names(overrides[cell.name])
    return cell.parameters


def _plan_key(overrides: Mapping[str, Callable[..., Any]]) -> PlanKey:
    return tuple(sorted((name, parameter_names(impl)) for name, impl in overrides.items()))


def build_dependency_graph(
    definition: OperationDefinition,
    cell_sources: Mapping[str, tuple[str, ...]],
) -> DependencyGraph[str]:
    """Build the cell-to-cell dependency graph of an operation.

    Sources that do not name a cell are raw bag values and add no edge.

    Args:
        definition: The operation definition.
        cell_sources: Source names of every cell.

    Returns:
        Graph over all cell names, in declaration order.

    """
    edges = [
        (source, name)
        for name, sources in cell_sources.items()
        for source in sources
        if source in definition
    ]
    return DependencyGraph.from_edges(edges, nodes=definition.names)


def _order_cells(definition: OperationDefinition, overrides: Mapping[str, Callable[..., Any]]) -> Ordering:
    cell_sources = {cell.name: cell.sources_for(_effective_parameters(cell, overrides)) for cell in definition}
    graph = build_dependency_graph(definition, cell_sources)
    position = {name: i for i, name in enumerate(definition.names)}

    try:
        order = graph.topological_order(key=position.__getitem__)
    except CycleError as e:
        # Only report nodes that lie on a cycle, not everything downstream of one
        in_cycle = [name for name in definition.names if name in e.remaining and name in graph.descendants(name)]
        raise CyclicDependencyError(definition.name, in_cycle) from e

    return tuple((name, cell_sources[name]) for name in order)


def resolve(
    definition: OperationDefinition,
    overrides: Mapping[str, Callable[..., Any]] | None = None,
) -> tuple[ResolvedCell, ...]:
    """Resolve an operation into an ordered evaluation plan.

    The ordering depends only on which cells are overridden and on the
    parameter names of the overrides, so it is cached on the definition and
    shared between operations with the same override shape. Resolving seals
    the definition.

    Args:
        definition: The operation definition.
        overrides: Per-instance implementations, by cell name.

    Returns:
        Tuple of ResolvedCell in evaluation order: every cell comes after the
        cells it reads, and unrelated cells keep their declaration order.

    Raises:
        UnknownCellError: If an override names an undeclared cell.
        CyclicDependencyError: If the cells depend on each other in a cycle.
        TypeError: If an implementation's parameters cannot be determined.

    """
    overrides = dict(overrides or {})
    for name, impl in overrides.items():
        if name not in definition:
            raise UnknownCellError(definition.name, name)
        if not callable(impl):
            msg = f"Override for cell '{name}' must be callable, got {type(impl).__name__}"
            raise TypeError(msg)

    definition.seal()

    key = _plan_key(overrides)
    ordering = definition._plan_cache.get(key)  # noqa: SLF001
    if ordering is None:
        ordering = _order_cells(definition, overrides)
        definition._plan_cache[key] = ordering  # noqa: SLF001
        logger.debug(
            "Resolved operation '%s': %s",
            definition.name,
            " -> ".join(name for name, _ in ordering),
        )
    else:
        logger.debug("Reusing cached plan for operation '%s'", definition.name)

    position = {name: i for i, name in enumerate(definition.names)}
    return tuple(
        ResolvedCell(
            name=name,
            impl=overrides.get(name, definition[name].default),
            sources=sources,
            index=position[name],
        )
        for name, sources in ordering
    )
