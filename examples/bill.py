"""Restaurant bill: subtotal, tax and tip computed from raw prices and rates.

Run with:
    datarail run examples/bill.py --var bill -i examples/bill_input.toml -o examples/bill_output.toml
"""

import datarail as dr

bill_definition = dr.OperationDefinition("bill")
bill_definition.declare_many("total", "tax", "tip")


@bill_definition.cell()
def subtotal(prices: list[float]) -> float:
    return sum(prices)


def compute_total(subtotal: float, tax: float, tip: float) -> float:
    return subtotal + tax + tip


def compute_tax(subtotal: float, tax_rate: float) -> float | dr.Failure:
    if tax_rate < 0:
        return dr.Failure(reason="tax rate must not be negative", details={"tax_rate": tax_rate})
    return subtotal * tax_rate


def compute_tip(subtotal: float, tip_rate: float) -> float:
    return subtotal * tip_rate


bill = bill_definition.instantiate(total=compute_total, tax=compute_tax, tip=compute_tip)
