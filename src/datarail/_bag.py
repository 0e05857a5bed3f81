"""Dictionary value bag with attribute access."""

from typing import Any


class Bag(dict[str, Any]):
    """A dict whose keys can also be read and written as attributes.

    Reading a missing attribute raises AttributeError, so `hasattr(bag, name)`
    is a presence check. Deleting an attribute clears the value to absent.

    Example:
        >>> bag = Bag(prices=[50, 25, 25])
        >>> bag.tax_rate = 0.05
        >>> bag["tax_rate"]
        0.05
        >>> del bag.tax_rate
        >>> "tax_rate" in bag
        False

    """

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            msg = f"{type(self).__name__!r} object has no attribute {name!r}"
            raise AttributeError(msg) from None

    def __setattr__(self, name: str, value: Any) -> None:
        self[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self[name]
        except KeyError:
            raise AttributeError(name) from None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict.__repr__(self)})"
