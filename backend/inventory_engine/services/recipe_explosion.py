"""Recursive prep item explosion.

Expands a prep item into the raw inventory items it consumes, e.g.
BBQ Pizza -> BBQ Sauce -> BBQ Spice Mix -> Paprika. Nesting is limited to
MAX_RECURSION_DEPTH levels, which also terminates cyclic recipes. No
removal filtering happens here; callers drop removed items from the result.
"""

import logging
from decimal import Decimal
from typing import List, NamedTuple, Optional

from inventory_engine.core.cache import BoundedCache
from inventory_engine.models.inventory import InventoryItem
from inventory_engine.models.recipe import PrepItem, Terminal
from inventory_engine.services.unit_conversion import (
    Number,
    convert_or_fallback,
    normalize_unit,
    to_decimal,
)

logger = logging.getLogger(__name__)

MAX_RECURSION_DEPTH = 10


class ExplodedIngredient(NamedTuple):
    inventory_item: InventoryItem
    quantity: Decimal


def explode_prep_item(
    prep_item: PrepItem,
    quantity_needed: Number,
    usage_unit: Optional[str],
    depth: int = 0,
    cache: Optional[BoundedCache] = None,
) -> List[ExplodedIngredient]:
    """Explode ``quantity_needed`` (in ``usage_unit``) of a prep item into raw items.

    When a cache is given, the leaves for one unit of the prep item are
    memoized under ``(prep_item.id, unit, depth)`` and scaled, since the
    expansion is linear in the requested quantity.
    """
    if depth >= MAX_RECURSION_DEPTH:
        logger.warning(f"Max recursion depth reached for prep item: {prep_item.name}")
        return []

    quantity = to_decimal(quantity_needed)
    if cache is None:
        return _expand(prep_item, quantity, usage_unit, depth, None)

    key = (prep_item.id, normalize_unit(usage_unit or ""), depth)
    per_unit = cache.get(key)
    if per_unit is None:
        per_unit = _expand(prep_item, Decimal("1"), usage_unit, depth, cache)
        cache.set(key, per_unit)
    return [ExplodedIngredient(leaf.inventory_item, leaf.quantity * quantity) for leaf in per_unit]


def _expand(
    prep_item: PrepItem,
    quantity: Decimal,
    usage_unit: Optional[str],
    depth: int,
    cache: Optional[BoundedCache],
) -> List[ExplodedIngredient]:
    batch_yield = to_decimal(prep_item.batch_yield) or Decimal("1")
    output_unit = prep_item.output_unit or usage_unit

    # How much prep output is needed, in the prep item's own unit
    scaled_quantity, _ = convert_or_fallback(
        quantity, usage_unit, output_unit, context=f"prep item '{prep_item.name}'"
    )
    scale_factor = scaled_quantity / batch_yield

    results: List[ExplodedIngredient] = []
    for edge in prep_item.ingredients:
        edge_quantity = to_decimal(edge.quantity) * scale_factor
        target = edge.target
        if isinstance(target, Terminal):
            results.append(ExplodedIngredient(target.inventory_item, edge_quantity))
        else:
            results.extend(
                explode_prep_item(target.prep_item, edge_quantity, edge.unit, depth + 1, cache)
            )
    return results
