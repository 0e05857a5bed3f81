"""Net income with constant cells and a renamed source.

The `tax` cell reads the `high_tax_rate` cell through its `tax_rate` parameter.
"""

import datarail as dr

income_definition = dr.OperationDefinition("final_income")

income_definition.declare("high_tax_rate", lambda: 0.4)
income_definition.declare("low_tax_rate", lambda: 0.2)


@income_definition.cell()
def final_income(income: float, tax: float) -> float:
    return income - tax


income_definition.declare("income", lambda: 100)


@income_definition.cell(rename={"high_tax_rate": "tax_rate"})
def tax(income: float, tax_rate: float) -> float:
    return income * tax_rate


if __name__ == "__main__":
    bag = income_definition.instantiate()(dr.Bag())
    print(bag)  # noqa: T201
