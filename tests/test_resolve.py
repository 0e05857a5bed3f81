"""Tests for dependency resolution."""

import pytest

import datarail as dr
from datarail._resolve import build_dependency_graph


def _bill_definition() -> dr.OperationDefinition:
    definition = dr.OperationDefinition("bill")
    definition.declare_many("total", "tax", "tip", "subtotal")
    return definition


def subtotal(prices):
    return sum(prices)


def tax(subtotal, tax_rate):
    return subtotal * tax_rate


def tip(subtotal, tip_rate):
    return subtotal * tip_rate


def total(subtotal, tax, tip):
    return subtotal + tax + tip


BILL_OVERRIDES = {"subtotal": subtotal, "tax": tax, "tip": tip, "total": total}


class TestResolveOrder:
    """Tests for the evaluation order produced by resolve."""

    def test_sources_come_before_dependents(self) -> None:
        plan = dr.resolve(_bill_definition(), BILL_OVERRIDES)
        assert [cell.name for cell in plan] == ["subtotal", "tax", "tip", "total"]

    def test_unrelated_cells_keep_declaration_order(self) -> None:
        definition = dr.OperationDefinition("unrelated")
        definition.declare("b", lambda: 2)
        definition.declare("a", lambda: 1)
        definition.declare("c", lambda: 3)

        plan = dr.resolve(definition)

        assert [cell.name for cell in plan] == ["b", "a", "c"]

    def test_declaration_order_breaks_ties_after_dependencies(self) -> None:
        definition = dr.OperationDefinition("income")
        definition.declare("high_tax_rate", lambda: 0.4)
        definition.declare("low_tax_rate", lambda: 0.2)
        definition.declare("final_income", lambda income, tax: income - tax)
        definition.declare("income", lambda: 100)
        definition.declare(
            "tax",
            lambda income, tax_rate: income * tax_rate,
            rename={"high_tax_rate": "tax_rate"},
        )

        plan = dr.resolve(definition)

        assert [cell.name for cell in plan] == ["high_tax_rate", "low_tax_rate", "income", "tax", "final_income"]

    def test_index_is_declaration_position(self) -> None:
        plan = dr.resolve(_bill_definition(), BILL_OVERRIDES)
        assert {cell.name: cell.index for cell in plan} == {"total": 0, "tax": 1, "tip": 2, "subtotal": 3}


class TestResolveSources:
    """Tests for source names and effective implementations."""

    def test_sources_from_parameter_names(self) -> None:
        plan = {cell.name: cell for cell in dr.resolve(_bill_definition(), BILL_OVERRIDES)}
        assert plan["total"].sources == ("subtotal", "tax", "tip")
        assert plan["subtotal"].sources == ("prices",)

    def test_rename_maps_alias_to_source(self) -> None:
        definition = dr.OperationDefinition("income")
        definition.declare(
            "tax",
            lambda income, tax_rate: income * tax_rate,
            rename={"high_tax_rate": "tax_rate"},
        )

        (cell,) = dr.resolve(definition)

        assert cell.sources == ("income", "high_tax_rate")

    def test_rename_applies_to_overrides(self) -> None:
        definition = dr.OperationDefinition("income")
        definition.declare("tax", rename={"high_tax_rate": "rate"})

        (cell,) = dr.resolve(definition, {"tax": lambda rate: rate})

        assert cell.sources == ("high_tax_rate",)

    def test_override_wins_over_default(self) -> None:
        definition = dr.OperationDefinition("math")
        definition.declare("math", lambda a, b: a + b)

        def multiply(x, y):
            return x * y

        (cell,) = dr.resolve(definition, {"math": multiply})

        assert cell.impl is multiply
        assert cell.sources == ("x", "y")

    def test_default_used_without_override(self) -> None:
        definition = dr.OperationDefinition("math")
        add = definition.declare("math", lambda a, b: a + b).default

        (cell,) = dr.resolve(definition)

        assert cell.impl is add
        assert cell.has_impl

    def test_placeholder_without_override_has_no_impl(self) -> None:
        definition = dr.OperationDefinition("booking")
        definition.declare_many("order")

        (cell,) = dr.resolve(definition)

        assert cell.impl is None
        assert cell.has_impl is False
        assert cell.sources == ()

    def test_override_changes_dependencies(self) -> None:
        definition = dr.OperationDefinition("chain")
        definition.declare("first", lambda: 1)
        definition.declare("second", lambda first: first + 1)
        definition.declare_many("third")

        default_plan = dr.resolve(definition, {"third": lambda: 0})
        reordered_plan = dr.resolve(definition, {"first": lambda third: third, "third": lambda: 0})

        assert [cell.name for cell in default_plan] == ["first", "second", "third"]
        assert [cell.name for cell in reordered_plan] == ["third", "first", "second"]


class TestResolveErrors:
    """Tests for configuration errors found during resolution."""

    def test_cycle_detected(self) -> None:
        definition = dr.OperationDefinition("loop")
        definition.declare("a", lambda b: b)
        definition.declare("b", lambda a: a)
        definition.declare("downstream", lambda a: a)
        definition.declare("unrelated", lambda: 0)

        with pytest.raises(dr.CyclicDependencyError, match="between cells: a, b") as exc_info:
            dr.resolve(definition)

        assert exc_info.value.cells == ("a", "b")
        assert exc_info.value.operation == "loop"

    def test_self_reference_is_cycle(self) -> None:
        definition = dr.OperationDefinition("loop")
        definition.declare("count", lambda count: count + 1)

        with pytest.raises(dr.CyclicDependencyError):
            dr.resolve(definition)

    def test_cycle_introduced_by_override(self) -> None:
        definition = dr.OperationDefinition("loop")
        definition.declare("a", lambda: 1)
        definition.declare("b", lambda a: a)

        dr.resolve(definition)
        with pytest.raises(ValueError, match="Cycle detected"):
            dr.resolve(definition, {"a": lambda b: b})

    def test_unknown_override(self) -> None:
        definition = _bill_definition()
        with pytest.raises(dr.UnknownCellError, match="no cell named 'discount'"):
            dr.resolve(definition, {"discount": lambda: 0})

    def test_non_callable_override(self) -> None:
        definition = _bill_definition()
        with pytest.raises(TypeError, match="must be callable"):
            dr.resolve(definition, {"tax": 5})  # type: ignore[dict-item]


class TestResolveCache:
    """Tests for plan caching on the definition."""

    def test_same_override_shape_reuses_ordering(self) -> None:
        definition = _bill_definition()

        dr.resolve(definition, BILL_OVERRIDES)
        dr.resolve(definition, {**BILL_OVERRIDES, "tax": lambda subtotal, tax_rate: 0})

        assert len(definition._plan_cache) == 1  # noqa: SLF001

    def test_cached_ordering_uses_current_implementations(self) -> None:
        definition = _bill_definition()

        def free_tax(subtotal, tax_rate):
            return 0

        dr.resolve(definition, BILL_OVERRIDES)
        plan = {cell.name: cell for cell in dr.resolve(definition, {**BILL_OVERRIDES, "tax": free_tax})}

        assert plan["tax"].impl is free_tax

    def test_different_parameters_resolve_separately(self) -> None:
        definition = _bill_definition()

        dr.resolve(definition, BILL_OVERRIDES)
        plan = dr.resolve(definition, {**BILL_OVERRIDES, "tax": lambda subtotal, vat: subtotal * vat})

        assert len(definition._plan_cache) == 2  # noqa: SLF001
        assert {cell.name: cell.sources for cell in plan}["tax"] == ("subtotal", "vat")


class TestBuildDependencyGraph:
    def test_raw_sources_add_no_edges(self) -> None:
        definition = _bill_definition()
        graph = build_dependency_graph(
            definition,
            {"subtotal": ("prices",), "tax": ("subtotal", "tax_rate"), "tip": (), "total": ("subtotal", "tax")},
        )

        assert len(graph) == 4
        assert graph.predecessors("tax") == frozenset({"subtotal"})
        assert graph.successors("subtotal") == frozenset({"tax", "total"})
