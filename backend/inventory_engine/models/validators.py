"""Range checks shared by the models' ``@validates`` hooks.

Recipe quantities, yields and costs are checked as they are assigned, so a
bad row fails at the model rather than as a wrong deduction later.
"""

from decimal import Decimal

from inventory_engine.core.exceptions import InvalidQuantityError


def _as_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def non_negative(model, key: str, value):
    """Allow None or any value >= 0."""
    if value is not None and _as_decimal(value) < 0:
        raise InvalidQuantityError(type(model).__name__, key, value, "cannot be negative")
    return value


def positive(model, key: str, value):
    """Allow None or any value > 0."""
    if value is not None and _as_decimal(value) <= 0:
        raise InvalidQuantityError(type(model).__name__, key, value, "must be positive")
    return value
