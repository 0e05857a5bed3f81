"""Core evaluation engine for operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from datarail._errors import CellMissingError
from datarail._failure import is_failure as default_is_failure

if TYPE_CHECKING:
    from collections.abc import MutableMapping, Sequence

    from datarail._failure import FailurePredicate
    from datarail._resolve import ResolvedCell

logger = logging.getLogger(__name__)


class _Suppressed:
    """Stand-in for the value of a cell that was suppressed during this pass."""

    def __repr__(self) -> str:
        return "<suppressed>"


_SUPPRESSED: Final = _Suppressed()


@dataclass(frozen=True, slots=True)
class EvaluationReport:
    """Outcome of one evaluation pass.

    The bag itself carries the results; the report records what the pass did
    to each cell. All name tuples are in evaluation order.

    Attributes:
        bag: The bag that was evaluated (mutated in place).
        evaluated: Cells whose implementation was invoked.
        skipped: Cells whose existing value was kept.
        suppressed: Cells not invoked because a source was a failure; their
            value was cleared from the bag.
        failed: Evaluated cells whose result is a Failure marker.

    """

    bag: MutableMapping[str, Any]
    evaluated: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
    suppressed: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()

    @property
    def touched(self) -> frozenset[str]:
        """Cells recomputed or invalidated during the pass."""
        return frozenset(self.evaluated) | frozenset(self.suppressed)

    @property
    def success(self) -> bool:
        """Check if no cell failed or was suppressed."""
        return not self.failed and not self.suppressed

    def is_touched(self, name: str) -> bool:
        return name in self.touched


def _read_source(
    bag: MutableMapping[str, Any],
    source: str,
    cell_name: str,
    suppressed: set[str],
) -> Any:
    if source in suppressed:
        return _SUPPRESSED
    if source not in bag:
        raise CellMissingError(source, cell_name)
    return bag[source]


def evaluate(
    plan: Sequence[ResolvedCell],
    bag: MutableMapping[str, Any],
    *,
    is_failure: FailurePredicate = default_is_failure,
) -> EvaluationReport:
    """Run one evaluation pass of a resolved plan over a bag.

    A cell is evaluated when it is absent from the bag, holds a Failure
    marker, or reads a cell that was touched earlier in this pass. Otherwise
    its value is kept as is. Evaluated cells are invoked with their source
    values in order, unless one of those values is a failure, in which case
    the cell is cleared from the bag instead.

    Args:
        plan: Resolved cells in evaluation order (see `resolve`).
        bag: Mutable mapping holding raw inputs and cell values. Mutated in place.
        is_failure: Predicate recognising Failure markers.

    Returns:
        EvaluationReport describing what happened to each cell.

    Raises:
        CellMissingError: If a cell due for evaluation reads a name that is not
            in the bag, or has no implementation. Changes made earlier in the
            pass are kept.

    """
    touched: set[str] = set()
    suppressed_names: set[str] = set()
    evaluated: list[str] = []
    skipped: list[str] = []
    suppressed: list[str] = []
    failed: list[str] = []

    logger.debug("Starting evaluation with %d cells in order", len(plan))

    for cell in plan:
        is_absent = cell.name not in bag
        is_failed = not is_absent and is_failure(bag[cell.name])
        source_touched = any(source in touched for source in cell.sources)

        if not (is_absent or is_failed or source_touched):
            logger.debug("Skipping %s (already has value)", cell.name)
            skipped.append(cell.name)
            continue

        args = [_read_source(bag, source, cell.name, suppressed_names) for source in cell.sources]

        if cell.impl is None:
            raise CellMissingError(cell.name, cell.name)

        touched.add(cell.name)

        if any(arg is _SUPPRESSED or is_failure(arg) for arg in args):
            logger.debug("Suppressing %s (a source failed)", cell.name)
            bag.pop(cell.name, None)
            suppressed_names.add(cell.name)
            suppressed.append(cell.name)
            continue

        logger.debug("Evaluating %s", cell.name)
        result = cell.impl(*args)
        bag[cell.name] = result
        evaluated.append(cell.name)
        if is_failure(result):
            logger.debug("Result for %s is a failure: %r", cell.name, result)
            failed.append(cell.name)
        else:
            logger.debug("Result for %s: %r", cell.name, result)

    return EvaluationReport(
        bag=bag,
        evaluated=tuple(evaluated),
        skipped=tuple(skipped),
        suppressed=tuple(suppressed),
        failed=tuple(failed),
    )
