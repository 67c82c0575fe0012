"""Pydantic schemas for engine inputs and results."""

from inventory_engine.schemas.inventory import (
    DeductionResult,
    IngredientCostLine,
    MultiplierSettings,
    PrepDeductionLine,
    PrepDeductionResult,
    RecipeCosting,
    UsageLine,
    UsageReport,
)

__all__ = [
    "DeductionResult",
    "IngredientCostLine",
    "MultiplierSettings",
    "PrepDeductionLine",
    "PrepDeductionResult",
    "RecipeCosting",
    "UsageLine",
    "UsageReport",
]
