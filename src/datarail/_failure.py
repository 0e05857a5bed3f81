"""Failure markers stored in the value bag."""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

type FailurePredicate = Callable[[Any], bool]


class Failure(BaseModel):
    """A cell result signalling that the computation did not succeed.

    Returning a Failure from a cell is not an error: the value is stored in the
    bag, cells depending on it are not invoked, and the cell is retried on the
    next call.
    """

    model_config = ConfigDict(frozen=True)

    reason: str = ""
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_failure(self) -> bool:
        return True


def is_failure(value: Any) -> bool:
    """Check whether a bag value is a Failure marker.

    Recognises `Failure` instances and any object exposing a truthy
    `is_failure` attribute or zero-argument `is_failure()` method, so result
    types from other libraries can be used without wrapping. Classes are
    never failures, even when their instances may be.

    Examples:
        >>> is_failure(Failure(reason="card declined"))
        True
        >>> is_failure(42)
        False

    """
    if isinstance(value, Failure):
        return True
    if isinstance(value, type):
        return False
    marker = getattr(value, "is_failure", None)
    if marker is None:
        return False
    if callable(marker):
        return bool(marker())
    return bool(marker)


def or_failure_marker(predicate: FailurePredicate) -> FailurePredicate:
    """Extend a custom predicate so it also recognises `Failure` values.

    Failures read back from a saved bag are always `Failure` instances,
    whatever predicate classified them when the bag was written.
    """

    def check(value: Any) -> bool:
        return isinstance(value, Failure) or predicate(value)

    return check
