"""Recipe costing helpers."""

from decimal import Decimal
from typing import Iterable, List, Tuple

from inventory_engine.schemas.inventory import IngredientCostLine, RecipeCosting
from inventory_engine.services.unit_conversion import Number, convert_units, normalize_unit, to_decimal


def effective_cost(item) -> Decimal:
    """Cost per storage unit, preferring the yield-adjusted cost when set (0 included)."""
    if item.yield_cost_per_unit is not None:
        return to_decimal(item.yield_cost_per_unit)
    return to_decimal(item.cost_per_unit)


def calculate_ingredient_costs(ingredients: Iterable) -> Tuple[List[IngredientCostLine], Decimal]:
    """Cost each recipe ingredient line and return the lines with their total.

    Inventory lines are converted from the recipe unit to the item's storage
    unit when the two are compatible; otherwise the quantity is costed as-is.
    Prep item lines use the prep item's own cost per unit.
    """
    lines: List[IngredientCostLine] = []
    total = Decimal("0")

    for ing in ingredients:
        qty = to_decimal(ing.quantity)
        unit = ing.unit
        unit_cost = Decimal("0")
        conversion_applied = False

        if ing.inventory_item is not None:
            item = ing.inventory_item
            unit_cost = effective_cost(item)
            if ing.unit and item.storage_unit and normalize_unit(ing.unit) != normalize_unit(item.storage_unit):
                converted = convert_units(qty, ing.unit, item.storage_unit)
                if converted is not None:
                    qty = converted
                    unit = item.storage_unit
                    conversion_applied = True
            name = item.name
        elif ing.prep_item is not None:
            unit_cost = to_decimal(ing.prep_item.cost_per_unit)
            name = ing.prep_item.name
        else:
            name = ""

        line_cost = qty * unit_cost
        total += line_cost
        lines.append(IngredientCostLine(
            ingredient_id=ing.id,
            name=name,
            quantity=qty,
            unit=unit,
            unit_cost=unit_cost,
            line_cost=line_cost,
            conversion_applied=conversion_applied,
        ))

    return lines, total


def calculate_recipe_costing(total_cost: Number, sell_price: Number) -> RecipeCosting:
    """Food cost percentage, gross profit and margin for a recipe."""
    total_cost = to_decimal(total_cost)
    sell_price = to_decimal(sell_price)
    gross_profit = sell_price - total_cost

    if sell_price > 0:
        food_cost_percent = total_cost / sell_price * 100
        gross_margin = gross_profit / sell_price * 100
    else:
        food_cost_percent = Decimal("0")
        gross_margin = Decimal("0")

    return RecipeCosting(
        total_cost=total_cost,
        sell_price=sell_price,
        food_cost_percent=food_cost_percent,
        gross_profit=gross_profit,
        gross_margin=gross_margin,
    )
