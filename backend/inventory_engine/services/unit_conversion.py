"""Unit conversion between weight, volume and count units.

Every unit belongs to one category with a base unit (g, ml, ea) and a
factor to that base. Conversion only happens within a category:
``qty * from_factor / to_factor``. Pure functions, no state.
"""

import logging
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from inventory_engine.core.exceptions import UnitConversionError

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]


class UnitCategory(str, Enum):
    WEIGHT = "weight"
    VOLUME = "volume"
    COUNT = "count"


# Unit conversion factors (convert TO base unit)
UNIT_CONVERSIONS = {
    # Weight: base unit = g
    "g": (UnitCategory.WEIGHT, Decimal("1")),
    "gram": (UnitCategory.WEIGHT, Decimal("1")),
    "grams": (UnitCategory.WEIGHT, Decimal("1")),
    "kg": (UnitCategory.WEIGHT, Decimal("1000")),
    "kilogram": (UnitCategory.WEIGHT, Decimal("1000")),
    "kilograms": (UnitCategory.WEIGHT, Decimal("1000")),
    "oz": (UnitCategory.WEIGHT, Decimal("28.3495")),
    "ounce": (UnitCategory.WEIGHT, Decimal("28.3495")),
    "ounces": (UnitCategory.WEIGHT, Decimal("28.3495")),
    "lb": (UnitCategory.WEIGHT, Decimal("453.592")),
    "lbs": (UnitCategory.WEIGHT, Decimal("453.592")),
    "pound": (UnitCategory.WEIGHT, Decimal("453.592")),
    "pounds": (UnitCategory.WEIGHT, Decimal("453.592")),

    # Volume: base unit = ml
    "ml": (UnitCategory.VOLUME, Decimal("1")),
    "milliliter": (UnitCategory.VOLUME, Decimal("1")),
    "milliliters": (UnitCategory.VOLUME, Decimal("1")),
    "l": (UnitCategory.VOLUME, Decimal("1000")),
    "liter": (UnitCategory.VOLUME, Decimal("1000")),
    "liters": (UnitCategory.VOLUME, Decimal("1000")),
    "fl oz": (UnitCategory.VOLUME, Decimal("29.5735")),
    "floz": (UnitCategory.VOLUME, Decimal("29.5735")),
    "fluid oz": (UnitCategory.VOLUME, Decimal("29.5735")),
    "cup": (UnitCategory.VOLUME, Decimal("236.588")),
    "cups": (UnitCategory.VOLUME, Decimal("236.588")),
    "pt": (UnitCategory.VOLUME, Decimal("473.176")),
    "pint": (UnitCategory.VOLUME, Decimal("473.176")),
    "pints": (UnitCategory.VOLUME, Decimal("473.176")),
    "qt": (UnitCategory.VOLUME, Decimal("946.353")),
    "quart": (UnitCategory.VOLUME, Decimal("946.353")),
    "quarts": (UnitCategory.VOLUME, Decimal("946.353")),
    "gal": (UnitCategory.VOLUME, Decimal("3785.41")),
    "gallon": (UnitCategory.VOLUME, Decimal("3785.41")),
    "gallons": (UnitCategory.VOLUME, Decimal("3785.41")),
    "tsp": (UnitCategory.VOLUME, Decimal("4.92892")),
    "teaspoon": (UnitCategory.VOLUME, Decimal("4.92892")),
    "teaspoons": (UnitCategory.VOLUME, Decimal("4.92892")),
    "tbsp": (UnitCategory.VOLUME, Decimal("14.7868")),
    "tablespoon": (UnitCategory.VOLUME, Decimal("14.7868")),
    "tablespoons": (UnitCategory.VOLUME, Decimal("14.7868")),

    # Count: base unit = ea
    "ea": (UnitCategory.COUNT, Decimal("1")),
    "each": (UnitCategory.COUNT, Decimal("1")),
    "pc": (UnitCategory.COUNT, Decimal("1")),
    "pcs": (UnitCategory.COUNT, Decimal("1")),
    "piece": (UnitCategory.COUNT, Decimal("1")),
    "pieces": (UnitCategory.COUNT, Decimal("1")),
    "slice": (UnitCategory.COUNT, Decimal("1")),
    "slices": (UnitCategory.COUNT, Decimal("1")),
    "portion": (UnitCategory.COUNT, Decimal("1")),
    "portions": (UnitCategory.COUNT, Decimal("1")),
    "serving": (UnitCategory.COUNT, Decimal("1")),
    "servings": (UnitCategory.COUNT, Decimal("1")),
    "case": (UnitCategory.COUNT, Decimal("1")),  # case size is item-specific
    "cases": (UnitCategory.COUNT, Decimal("1")),
    "dozen": (UnitCategory.COUNT, Decimal("12")),
    "doz": (UnitCategory.COUNT, Decimal("12")),
}


def to_decimal(value: Optional[Number]) -> Decimal:
    """Coerce a stored or user-supplied number to Decimal; None becomes 0."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def normalize_unit(unit: str) -> str:
    return unit.lower().strip()


def _lookup(unit: Optional[str]):
    if not unit:
        return None
    return UNIT_CONVERSIONS.get(normalize_unit(unit))


def get_unit_category(unit: str) -> Optional[UnitCategory]:
    """Get the category of a unit, or None if the unit is unknown."""
    definition = _lookup(unit)
    return definition[0] if definition else None


def are_units_compatible(unit1: str, unit2: str) -> bool:
    """True when both units are known and share a category."""
    def1 = _lookup(unit1)
    def2 = _lookup(unit2)
    if not def1 or not def2:
        return False
    return def1[0] == def2[0]


def convert_units(quantity: Number, from_unit: str, to_unit: str) -> Optional[Decimal]:
    """Convert quantity between units. Returns None if incompatible or unknown."""
    from_def = _lookup(from_unit)
    to_def = _lookup(to_unit)

    if not from_def or not to_def:
        return None

    if from_def[0] != to_def[0]:
        return None

    qty = to_decimal(quantity)

    # Same unit, no conversion needed
    if normalize_unit(from_unit) == normalize_unit(to_unit):
        return qty

    # Convert: from_unit → base → to_unit
    return qty * from_def[1] / to_def[1]


def convert_units_strict(
    quantity: Number, from_unit: str, to_unit: str, item_name: str = ""
) -> Decimal:
    """Like convert_units but raises UnitConversionError instead of returning None."""
    result = convert_units(quantity, from_unit, to_unit)
    if result is None:
        raise UnitConversionError(from_unit, to_unit, item_name)
    return result


def convert_or_fallback(
    quantity: Number,
    from_unit: Optional[str],
    to_unit: Optional[str],
    context: str = "",
) -> tuple[Decimal, bool]:
    """Best-effort conversion used inside usage calculations.

    Returns ``(quantity, fell_back)``. Missing or equal units need no
    conversion. When the units cannot be converted the raw quantity is
    treated as already being in ``to_unit``; that result can be off by
    orders of magnitude, so it is logged as degraded accuracy.
    """
    qty = to_decimal(quantity)
    if not from_unit or not to_unit or normalize_unit(from_unit) == normalize_unit(to_unit):
        return qty, False

    converted = convert_units(qty, from_unit, to_unit)
    if converted is not None:
        return converted, False

    logger.warning(
        f"degraded_accuracy: cannot convert '{from_unit}' to '{to_unit}'"
        f"{' for ' + context if context else ''}; using raw quantity {qty}"
    )
    return qty, True
