"""Immutable directed graph of "depends on" relationships."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from ._algorithms import topological_sort


@dataclass(frozen=True, slots=True)
class DependencyGraph[T]:
    """Directed graph where an edge a -> b means b depends on a.

    Generic over the node type. Node insertion order is remembered and used as
    the default tie-break of `topological_order`.

    Example:
        >>> graph = DependencyGraph.from_edges([("subtotal", "tax"), ("tax", "total")])
        >>> graph.predecessors("total")
        frozenset({'tax'})
        >>> graph.topological_order()
        ['subtotal', 'tax', 'total']

    """

    _order: tuple[T, ...] = ()
    _predecessors: dict[T, frozenset[T]] = field(default_factory=dict)
    _successors: dict[T, frozenset[T]] = field(default_factory=dict)

    @classmethod
    def from_edges(cls, edges: Iterable[tuple[T, T]], nodes: Iterable[T] = ()) -> DependencyGraph[T]:
        """Build a graph from (source, target) pairs.

        Args:
            edges: Pairs (a, b) meaning "b depends on a".
            nodes: Extra nodes, included even without edges. They come first
                in the node order.

        """
        order: dict[T, None] = dict.fromkeys(nodes)
        preds: dict[T, set[T]] = {}
        succs: dict[T, set[T]] = {}
        for src, dst in edges:
            order.setdefault(src)
            order.setdefault(dst)
            preds.setdefault(dst, set()).add(src)
            succs.setdefault(src, set()).add(dst)

        return cls(
            _order=tuple(order),
            _predecessors={node: frozenset(deps) for node, deps in preds.items()},
            _successors={node: frozenset(deps) for node, deps in succs.items()},
        )

    def predecessors(self, node: T) -> frozenset[T]:
        """Get the nodes `node` depends on directly."""
        return self._predecessors.get(node, frozenset())

    def successors(self, node: T) -> frozenset[T]:
        """Get the nodes depending directly on `node`."""
        return self._successors.get(node, frozenset())

    def descendants(self, node: T) -> frozenset[T]:
        """Get every node depending on `node`, directly or transitively.

        A node on a cycle is its own descendant.
        """
        seen: set[T] = set()
        pending = list(self.successors(node))
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            pending.extend(self.successors(current))
        return frozenset(seen)

    def topological_order(self, key: Callable[[T], Any] | None = None) -> list[T]:
        """Order nodes so each one comes after everything it depends on.

        Args:
            key: Sort key for nodes that become ready at the same time.
                Without it, node insertion order decides.

        Raises:
            CycleError: If the graph contains a cycle.

        """
        return topological_sort({node: self.successors(node) for node in self._order}, key=key)

    def __len__(self) -> int:
        return len(self._order)
