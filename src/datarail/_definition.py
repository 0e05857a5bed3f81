from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ._errors import DefinitionSealedError, DuplicateCellError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Mapping

    from ._failure import FailurePredicate
    from ._operation import Operation
    from ._resolve import Ordering, PlanKey

logger = logging.getLogger(__name__)

_POSITIONAL_KINDS = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def parameter_names(func: Callable[..., Any]) -> tuple[str, ...]:
    """Get the ordered parameter names a cell implementation is called with.

    Names attached with `@sources(...)` take precedence over the signature.

    Args:
        func: The cell implementation.

    Returns:
        Tuple of parameter names in declaration order.

    Raises:
        TypeError: If the signature cannot be inspected or uses variadic or
            keyword-only parameters, which cannot be filled positionally.

    """
    explicit = getattr(func, "__datarail_sources__", None)
    if explicit is not None:
        return tuple(explicit)

    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError) as e:
        msg = f"Cannot inspect the parameters of {func!r}; declare them with @sources(...)"
        raise TypeError(msg) from e

    names: list[str] = []
    for param in sig.parameters.values():
        if param.kind not in _POSITIONAL_KINDS:
            msg = f"Parameter '{param.name}' of {func!r} must be positional, got {param.kind.description}"
            raise TypeError(msg)
        names.append(param.name)
    return tuple(names)


def _check_callable(cell_name: str, impl: object) -> None:
    if not callable(impl):
        msg = f"Implementation of cell '{cell_name}' must be callable, got {type(impl).__name__}"
        raise TypeError(msg)


@dataclass(frozen=True, slots=True)
class CellDef:
    """Declaration of a single cell.

    Attributes:
        name: Unique name of the cell within its operation definition.
        default: Default implementation, or None for a placeholder cell.
        rename: Maps a source cell name to the parameter alias used by the
            implementation, e.g. `{"high_tax_rate": "tax_rate"}`.
        parameters: Parameter names of the default implementation, captured
            once at declaration time. Empty for placeholders.

    """

    name: str
    default: Callable[..., Any] | None = field(default=None, repr=False)
    rename: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    parameters: tuple[str, ...] = ()

    def source_of(self, parameter: str) -> str:
        """Map a parameter alias back to the source name it reads."""
        for source, alias in self.rename.items():
            if alias == parameter:
                return source
        return parameter

    def sources_for(self, parameters: Iterable[str]) -> tuple[str, ...]:
        """Map parameter names through the rename table to source names."""
        return tuple(self.source_of(parameter) for parameter in parameters)


@dataclass(slots=True, eq=False)
class OperationDefinition:
    """The ordered set of cells making up one kind of operation.

    A definition is declared once and shared by every `Operation` created from
    it. It is sealed when the first operation is instantiated, after which no
    more cells can be declared.

    Example:
        bill = OperationDefinition("bill")
        bill.declare_many("subtotal", "tax")

        @bill.cell()
        def total(subtotal, tax):
            return subtotal + tax

    """

    name: str
    _cells: dict[str, CellDef] = field(default_factory=dict)
    _sealed: bool = False
    _plan_cache: dict[PlanKey, Ordering] = field(default_factory=dict, repr=False)

    @property
    def cells(self) -> tuple[CellDef, ...]:
        """Get all cells in declaration order."""
        return tuple(self._cells.values())

    @property
    def names(self) -> tuple[str, ...]:
        """Get all cell names in declaration order."""
        return tuple(self._cells)

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        """Prevent any further declarations."""
        if not self._sealed:
            logger.debug("Sealing operation '%s' with %d cells", self.name, len(self._cells))
        self._sealed = True

    def declare(
        self,
        name: str,
        default: Callable[..., Any] | None = None,
        *,
        rename: Mapping[str, str] | None = None,
        sources: Iterable[str] | None = None,
    ) -> CellDef:
        """Declare a cell.

        Args:
            name: Name of the cell; also the key its value is stored under.
            default: Default implementation. Instances may override it.
            rename: Maps source cell names to parameter aliases of `default`.
            sources: Explicit parameter names of `default`, in call order.
                Defaults to the parameter names of `default`.

        Returns:
            The new cell declaration.

        Raises:
            DuplicateCellError: If a cell with this name is already declared.
            DefinitionSealedError: If the definition is already in use.

        """
        if self._sealed:
            msg = f"Cannot declare cell '{name}': operation '{self.name}' is already in use."
            raise DefinitionSealedError(msg)
        if name in self._cells:
            raise DuplicateCellError(self.name, name)

        parameters: tuple[str, ...] = ()
        if default is not None:
            _check_callable(name, default)
            parameters = tuple(sources) if sources is not None else parameter_names(default)
        elif sources is not None:
            msg = f"Cell '{name}' declares sources but has no default implementation."
            raise TypeError(msg)

        cell = CellDef(
            name=name,
            default=default,
            rename=MappingProxyType(dict(rename or {})),
            parameters=parameters,
        )
        self._cells[name] = cell
        logger.debug("Declared cell '%s' in operation '%s' with parameters %s", name, self.name, parameters)
        return cell

    def declare_many(self, *names: str) -> tuple[CellDef, ...]:
        """Declare placeholder cells with no default implementation.

        Placeholders must be supplied by an override or by a value already
        present in the bag.
        """
        return tuple(self.declare(name) for name in names)

    def cell[F: Callable[..., Any]](
        self,
        name: str | None = None,
        *,
        rename: Mapping[str, str] | None = None,
        sources: Iterable[str] | None = None,
    ) -> Callable[[F], F]:
        """Decorator to declare a function as the default implementation of a cell.

        The cell is named after the function unless `name` is given. The
        function is returned unchanged.
        """

        def decorator(func: F) -> F:
            if name is None:
                if not hasattr(func, "__name__") or not isinstance(func.__name__, str):
                    msg = "Function must have a valid name."
                    raise TypeError(msg)
                cell_name = func.__name__
            else:
                cell_name = name
            self.declare(cell_name, func, rename=rename, sources=sources)
            return func

        return decorator

    def get(self, name: str) -> CellDef | None:
        return self._cells.get(name)

    def instantiate(
        self,
        overrides: Mapping[str, Callable[..., Any]] | None = None,
        /,
        *,
        is_failure: FailurePredicate | None = None,
        **kwargs: Callable[..., Any],
    ) -> Operation:
        """Create an operation from this definition.

        Overrides may be given as a mapping, as keyword arguments, or both.
        A cell named `is_failure` can only be overridden through the mapping,
        since the keyword sets the failure predicate.

        Raises:
            TypeError: If `is_failure` is passed as a keyword while a cell of
                that name exists, which is ambiguous.

        """
        from ._operation import Operation  # noqa: PLC0415

        if is_failure is not None and "is_failure" in self._cells:
            msg = (
                f"Operation '{self.name}' has a cell named 'is_failure'; pass its override "
                "in the overrides mapping and the failure predicate to Operation(...)"
            )
            raise TypeError(msg)

        merged = {**(overrides or {}), **kwargs}
        return Operation(self, merged, is_failure=is_failure)

    __call__ = instantiate

    def __getitem__(self, name: str) -> CellDef:
        return self._cells[name]

    def __contains__(self, name: object) -> bool:
        return name in self._cells

    def __iter__(self) -> Iterator[CellDef]:
        return iter(self._cells.values())

    def __len__(self) -> int:
        return len(self._cells)

