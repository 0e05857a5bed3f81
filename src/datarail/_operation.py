from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ._eval_engine import EvaluationReport, evaluate
from ._failure import is_failure as default_is_failure
from ._failure import or_failure_marker
from ._resolve import build_dependency_graph, resolve

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, MutableMapping

    from ._definition import OperationDefinition
    from ._failure import FailurePredicate
    from ._graph import DependencyGraph
    from ._resolve import ResolvedCell

logger = logging.getLogger(__name__)


class Operation:
    """An operation definition bound to per-instance implementations.

    The evaluation plan is resolved when the operation is created, so cycles
    and unknown overrides are reported before any bag is touched. Operations
    are cheap; create one per use site.

    A custom `is_failure` predicate is combined with the default check for
    `Failure` values, so failures loaded from a saved bag are still retried.

    Example:
        booking = OperationDefinition("booking")
        booking.declare_many("order", "charge")

        operation = Operation(booking, {"order": place_order, "charge": charge_card})
        result = operation({"cart": cart})

    """

    __slots__ = ("_definition", "_is_failure", "_overrides", "_plan")

    def __init__(
        self,
        definition: OperationDefinition,
        overrides: Mapping[str, Callable[..., Any]] | None = None,
        *,
        is_failure: FailurePredicate | None = None,
    ) -> None:
        self._definition = definition
        self._overrides = MappingProxyType(dict(overrides or {}))
        self._is_failure = default_is_failure if is_failure is None else or_failure_marker(is_failure)
        self._plan = resolve(definition, self._overrides)

    @property
    def definition(self) -> OperationDefinition:
        return self._definition

    @property
    def overrides(self) -> Mapping[str, Callable[..., Any]]:
        return self._overrides

    @property
    def plan(self) -> tuple[ResolvedCell, ...]:
        """The resolved cells in evaluation order."""
        return self._plan

    @property
    def order(self) -> tuple[str, ...]:
        """Cell names in evaluation order."""
        return tuple(cell.name for cell in self._plan)

    def sources(self, name: str) -> tuple[str, ...]:
        """Get the source names a cell reads, after renaming.

        Raises:
            KeyError: If the operation has no such cell.

        """
        for cell in self._plan:
            if cell.name == name:
                return cell.sources
        msg = f"Operation '{self._definition.name}' has no cell named '{name}'."
        raise KeyError(msg)

    def dependency_graph(self) -> DependencyGraph[str]:
        """Build the cell-to-cell dependency graph of this operation."""
        return build_dependency_graph(self._definition, {cell.name: cell.sources for cell in self._plan})

    def is_failure(self, value: Any) -> bool:
        return self._is_failure(value)

    def run(self, bag: MutableMapping[str, Any]) -> EvaluationReport:
        """Evaluate the operation over a bag and report what changed.

        Args:
            bag: Mutable mapping holding raw inputs and earlier results.
                Mutated in place.

        Returns:
            EvaluationReport for this pass.

        Raises:
            CellMissingError: If a cell due for evaluation cannot be computed.

        """
        logger.debug("Running operation '%s'", self._definition.name)
        report = evaluate(self._plan, bag, is_failure=self._is_failure)
        logger.debug(
            "Operation '%s' evaluated %d, skipped %d, suppressed %d cells",
            self._definition.name,
            len(report.evaluated),
            len(report.skipped),
            len(report.suppressed),
        )
        return report

    def __call__(self, bag: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
        """Evaluate the operation over a bag, mutating and returning it."""
        self.run(bag)
        return bag

    def __repr__(self) -> str:
        return f"Operation({self._definition.name!r}, overrides={sorted(self._overrides)!r})"
