"""Inventory engine schemas."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class MultiplierSettings(BaseModel):
    """Location overrides for modifier instruction multipliers.

    Built from an ``InventorySettings`` row with ``model_validate`` or
    directly. Unset (or zero) values fall back to the built-in defaults.
    """

    multiplier_lite: Optional[Decimal] = None
    multiplier_extra: Optional[Decimal] = None
    multiplier_triple: Optional[Decimal] = None

    model_config = {"from_attributes": True}


class UsageLine(BaseModel):
    """Theoretical usage of one inventory item."""

    inventory_item_id: int
    name: str
    category: str
    department: str
    quantity: Decimal
    unit: str
    cost_per_unit: Decimal
    total_cost: Decimal


class UsageReport(BaseModel):
    """Theoretical usage across finalized orders in a date range."""

    location_id: int
    start_date: str
    end_date: str
    department: str = "All"
    order_count: int = 0
    usage: List[UsageLine] = Field(default_factory=list)
    total_cost: Decimal = Decimal("0")


class DeductionResult(BaseModel):
    """Outcome of a sale or waste deduction. Never raised, always returned."""

    success: bool
    items_deducted: int = 0
    total_cost: Decimal = Decimal("0")
    errors: List[str] = Field(default_factory=list)


class PrepDeductionLine(BaseModel):
    """Prep-stock change for one daily count ingredient.

    ``quantity_deducted`` is negative for restorations.
    """

    ingredient_id: int
    name: str
    quantity_deducted: Decimal
    unit: str
    stock_before: Decimal
    stock_after: Decimal


class PrepDeductionResult(BaseModel):
    """Outcome of a prep-stock deduction or restoration."""

    success: bool
    deducted_items: List[PrepDeductionLine] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class IngredientCostLine(BaseModel):
    """Costed recipe ingredient line."""

    ingredient_id: int
    name: str
    quantity: Decimal
    unit: str
    unit_cost: Decimal
    line_cost: Decimal
    conversion_applied: bool = False


class RecipeCosting(BaseModel):
    """Food cost metrics for a recipe at a sell price."""

    total_cost: Decimal
    sell_price: Decimal
    food_cost_percent: Decimal
    gross_profit: Decimal
    gross_margin: Decimal
