"""Graph algorithms for dependency graph operations."""

import heapq
from collections.abc import Callable, Collection, Hashable, Mapping
from typing import Any


class CycleError(ValueError):
    """Raised when a graph that must be acyclic contains a cycle.

    Attributes:
        remaining: Nodes that could not be ordered (members of a cycle, or
            downstream of one).

    """

    def __init__(self, remaining: Collection[Hashable]) -> None:
        self.remaining = tuple(remaining)
        super().__init__("Cycle detected in graph")


def topological_sort[T: Hashable](
    successors: Mapping[T, Collection[T]],
    key: Callable[[T], Any] | None = None,
) -> list[T]:
    """Sort a graph topologically (dependencies before dependents).

    Given a graph represented as a mapping from nodes to their successors
    (nodes that depend on them), return nodes in an order where each node
    appears before all nodes that depend on it.

    Among nodes that are ready at the same time, the one with the smallest
    `key` comes first. Without a key, nodes are taken in the iteration order
    of `successors`, so insertion order acts as the tie-break.

    Args:
        successors: Mapping from node to collection of nodes that depend on it.
            An edge (a -> b) means "b depends on a".
        key: Optional sort key used to break ties between ready nodes.

    Returns:
        List of nodes in topological order.

    Raises:
        CycleError: If the graph contains a cycle.

    Example:
        >>> # a -> b -> c means c depends on b, b depends on a
        >>> topological_sort({"a": ["b"], "b": ["c"], "c": []})
        ['a', 'b', 'c']

    """
    # Calculate in-degree for each node
    indegree: dict[T, int] = dict.fromkeys(successors, 0)
    for deps in successors.values():
        for dep in deps:
            indegree[dep] = indegree.get(dep, 0) + 1

    position = {node: i for i, node in enumerate(indegree)}

    def rank(node: T) -> tuple[Any, int]:
        if key is None:
            return (0, position[node])
        return (key(node), position[node])

    # Start with nodes that have no predecessors (in-degree 0)
    ready = [(rank(node), node) for node, deg in indegree.items() if deg == 0]
    heapq.heapify(ready)
    order: list[T] = []

    while ready:
        _, node = heapq.heappop(ready)
        order.append(node)
        for successor in successors.get(node, []):
            indegree[successor] -= 1
            if indegree[successor] == 0:
                heapq.heappush(ready, (rank(successor), successor))

    if len(order) != len(indegree):
        ordered = set(order)
        raise CycleError([node for node in indegree if node not in ordered])

    return order
