"""Modifier instruction interpreter.

Maps pre-modifier instructions ("NO", "LITE", "EXTRA", ...) to usage
multipliers. Shared by the raw-inventory and prep-stock engines.

Location overrides use "truthy or default": an override of 0 is treated
as unset and the built-in default applies.
"""

from decimal import Decimal
from typing import Optional

from inventory_engine.schemas.inventory import MultiplierSettings

DEFAULT_MULTIPLIER_LITE = Decimal("0.5")
DEFAULT_MULTIPLIER_EXTRA = Decimal("2.0")
DEFAULT_MULTIPLIER_TRIPLE = Decimal("3.0")

REMOVAL_INSTRUCTIONS = frozenset({"NO", "NONE", "REMOVE", "WITHOUT", "HOLD"})
LITE_INSTRUCTIONS = frozenset({"LITE", "LIGHT", "EASY", "HALF"})
EXTRA_INSTRUCTIONS = frozenset({"EXTRA", "DOUBLE", "HEAVY"})
TRIPLE_INSTRUCTIONS = frozenset({"TRIPLE", "3X"})


def _normalize(instruction: Optional[str]) -> str:
    return (instruction or "").upper().strip()


def _override_or_default(value, default: Decimal) -> Decimal:
    # Truthy-or-default: None and 0 both mean "use the default"
    return Decimal(str(value)) if value else default


def get_modifier_multiplier(
    instruction: Optional[str],
    settings: Optional[MultiplierSettings] = None,
) -> Decimal:
    """Multiplier to apply to a modifier's usage for the given instruction."""
    normalized = _normalize(instruction) or "NORMAL"
    settings = settings or MultiplierSettings()

    if normalized in REMOVAL_INSTRUCTIONS:
        return Decimal("0")
    if normalized in LITE_INSTRUCTIONS:
        return _override_or_default(settings.multiplier_lite, DEFAULT_MULTIPLIER_LITE)
    if normalized in EXTRA_INSTRUCTIONS:
        return _override_or_default(settings.multiplier_extra, DEFAULT_MULTIPLIER_EXTRA)
    if normalized in TRIPLE_INSTRUCTIONS:
        return _override_or_default(settings.multiplier_triple, DEFAULT_MULTIPLIER_TRIPLE)
    # ADD, NORMAL, REGULAR, SIDE and anything unrecognised
    return Decimal("1")


def is_removal_instruction(instruction: Optional[str]) -> bool:
    """True for instructions that remove the ingredient entirely (NO, HOLD, ...)."""
    return _normalize(instruction) in REMOVAL_INSTRUCTIONS


def settings_for_modifier(
    settings: Optional[MultiplierSettings],
    modifier,
) -> Optional[MultiplierSettings]:
    """Apply a modifier's own lite/extra multipliers on top of the location settings.

    A per-modifier value replaces the location value whenever it is not
    None; the truthy-or-default rule is still applied afterwards by
    ``get_modifier_multiplier``.
    """
    if modifier is None:
        return settings
    updates = {}
    if modifier.lite_multiplier is not None:
        updates["multiplier_lite"] = modifier.lite_multiplier
    if modifier.extra_multiplier is not None:
        updates["multiplier_extra"] = modifier.extra_multiplier
    if not updates:
        return settings
    return (settings or MultiplierSettings()).model_copy(update=updates)
