from __future__ import annotations

from typing import TYPE_CHECKING, ParamSpec, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")
P = ParamSpec("P")


def sources(*names: str) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator to declare the source names of a cell implementation explicitly.

    By default the sources of an implementation are its parameter names. Use
    this for callables whose signature cannot be inspected (partials, test
    doubles) or whose parameter names should not be used.

    Args:
        names: Source names, in the order the values are passed positionally.

    Example:
        @sources("subtotal", "tax_rate")
        def tax(*args):
            subtotal, rate = args
            return subtotal * rate

    """
    for name in names:
        if not isinstance(name, str) or not name:
            msg = f"sources() requires non-empty string names, got: {name!r}"
            raise TypeError(msg)

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        # HACK: the names are attached to the function object so that the
        # same callable can be passed as a default or as an override.
        func.__datarail_sources__ = tuple(names)  # type: ignore[attr-defined]
        return func

    return decorator
