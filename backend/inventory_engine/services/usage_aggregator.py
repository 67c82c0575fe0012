"""Usage Aggregator - turns order lines into per-inventory-item usage.

This is the calculation shared by the theoretical usage report and the
sale/waste deductions, so both always agree on what an order consumed.

Per order line:
1. Build the removed set: inventory items targeted by a removal
   instruction ("NO onions"), via the modifier's inventory link or, when
   it has none, its ingredient's inventory item.
2. Base recipe: direct inventory edges are added as-is, prep item edges
   are exploded; removed items are skipped in both cases.
3. Liquor recipe: pour_count x pour size (line > bottle > default) oz.
4. Modifiers: instruction multiplier, then EITHER the inventory link OR
   the ingredient fallback, never both.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional, Set

from sqlalchemy.orm import selectinload

from inventory_engine.core.cache import BoundedCache
from inventory_engine.core.config import settings as app_settings
from inventory_engine.models.ingredient import Ingredient
from inventory_engine.models.inventory import InventoryItem
from inventory_engine.models.menu import (
    BottleProduct,
    LiquorRecipeIngredient,
    MenuItem,
    Modifier,
    ModifierInventoryLink,
)
from inventory_engine.models.order import OrderItem, OrderItemModifier
from inventory_engine.models.recipe import MenuItemRecipe, PrepItem, RecipeIngredient, Terminal
from inventory_engine.schemas.inventory import MultiplierSettings
from inventory_engine.services.costing import effective_cost
from inventory_engine.services.modifier_instructions import (
    get_modifier_multiplier,
    is_removal_instruction,
    settings_for_modifier,
)
from inventory_engine.services.recipe_explosion import explode_prep_item
from inventory_engine.services.unit_conversion import convert_or_fallback, to_decimal

logger = logging.getLogger(__name__)

# Eager-load the usage graph of order lines (prep item trees load lazily)
ORDER_ITEM_LOAD_OPTIONS = (
    selectinload(OrderItem.menu_item)
    .selectinload(MenuItem.recipe)
    .selectinload(MenuItemRecipe.ingredients)
    .selectinload(RecipeIngredient.inventory_item),
    selectinload(OrderItem.menu_item)
    .selectinload(MenuItem.liquor_ingredients)
    .selectinload(LiquorRecipeIngredient.bottle_product)
    .selectinload(BottleProduct.inventory_item),
    selectinload(OrderItem.modifiers)
    .selectinload(OrderItemModifier.modifier)
    .selectinload(Modifier.inventory_link)
    .selectinload(ModifierInventoryLink.inventory_item),
    selectinload(OrderItem.modifiers)
    .selectinload(OrderItemModifier.modifier)
    .selectinload(Modifier.ingredient)
    .selectinload(Ingredient.inventory_item),
)


@dataclass
class UsageRecord:
    """Running usage total for one inventory item. Never persisted."""

    inventory_item: InventoryItem
    quantity: Decimal
    cost_per_unit: Decimal

    @property
    def inventory_item_id(self) -> int:
        return self.inventory_item.id

    @property
    def unit(self) -> str:
        return self.inventory_item.storage_unit

    @property
    def total_cost(self) -> Decimal:
        return self.quantity * self.cost_per_unit


UsageMap = Dict[int, UsageRecord]


class UsageAggregator:
    """Computes theoretical usage for a set of order lines."""

    def __init__(
        self,
        cache: Optional[BoundedCache] = None,
        default_pour_size_oz: Optional[Decimal] = None,
    ):
        self.cache = cache
        self.default_pour_size_oz = to_decimal(
            default_pour_size_oz or app_settings.default_pour_size_oz
        )

    def aggregate(
        self,
        order_items: Iterable[OrderItem],
        multiplier_settings: Optional[MultiplierSettings] = None,
        department: Optional[str] = None,
        include_inactive: bool = False,
    ) -> UsageMap:
        """Build a fresh usage map keyed by inventory item id.

        Only active lines count unless ``include_inactive`` is set (the waste
        path aggregates a single voided line). With ``department`` set,
        items of other departments are left out (case-insensitive).
        """
        usage: UsageMap = {}
        for order_item in order_items:
            if not include_inactive and not order_item.is_active:
                continue
            self._add_order_item(usage, order_item, multiplier_settings, department)
        return usage

    # ===== PER-LINE PROCESSING =====

    def _add_order_item(
        self,
        usage: UsageMap,
        order_item: OrderItem,
        multiplier_settings: Optional[MultiplierSettings],
        department: Optional[str],
    ) -> None:
        item_qty = to_decimal(order_item.quantity)
        removed = self._removed_item_ids(order_item)
        # Pour upgrades scale the recipe and liquor pours, not modifiers
        pour_multiplier = to_decimal(order_item.pour_multiplier) or Decimal("1")

        menu_item = order_item.menu_item
        if menu_item is not None:
            if menu_item.recipe is not None:
                for edge in menu_item.recipe.ingredients:
                    edge_qty = to_decimal(edge.quantity) * item_qty * pour_multiplier
                    target = edge.target
                    if isinstance(target, Terminal):
                        if target.inventory_item.id in removed:
                            continue
                        self._add(usage, target.inventory_item, edge_qty, department)
                    else:
                        self._add_exploded(
                            usage, target.prep_item, edge_qty, edge.unit, removed, department
                        )

            for pour in menu_item.liquor_ingredients:
                bottle = pour.bottle_product
                item = bottle.inventory_item if bottle is not None else None
                if item is None or item.id in removed:
                    continue
                pour_count = to_decimal(pour.pour_count) or Decimal("1")
                pour_size = (
                    to_decimal(pour.pour_size_oz)
                    or to_decimal(bottle.pour_size_oz)
                    or self.default_pour_size_oz
                )
                # Liquor inventory is tracked in oz
                self._add(usage, item, pour_count * pour_size * item_qty * pour_multiplier, department)

        for applied in order_item.modifiers:
            self._add_modifier(usage, applied, item_qty, removed, multiplier_settings, department)

    def _removed_item_ids(self, order_item: OrderItem) -> Set[int]:
        removed: Set[int] = set()
        for applied in order_item.modifiers:
            modifier = applied.modifier
            if modifier is None or not is_removal_instruction(applied.pre_modifier):
                continue
            if modifier.inventory_link is not None:
                removed.add(modifier.inventory_link.inventory_item_id)
            elif modifier.ingredient is not None and modifier.ingredient.inventory_item_id:
                removed.add(modifier.ingredient.inventory_item_id)
        return removed

    def _add_modifier(
        self,
        usage: UsageMap,
        applied: OrderItemModifier,
        item_qty: Decimal,
        removed: Set[int],
        multiplier_settings: Optional[MultiplierSettings],
        department: Optional[str],
    ) -> None:
        modifier = applied.modifier
        if modifier is None:
            return

        mod_qty = to_decimal(applied.quantity or 1) * item_qty
        multiplier = get_modifier_multiplier(
            applied.pre_modifier, settings_for_modifier(multiplier_settings, modifier)
        )
        if multiplier == 0:
            return

        # Path A: direct inventory link (takes precedence)
        link = modifier.inventory_link
        if link is not None and link.inventory_item is not None:
            item = link.inventory_item
            qty, _ = convert_or_fallback(
                to_decimal(link.usage_quantity) * mod_qty * multiplier,
                link.usage_unit,
                item.storage_unit,
                context=f"modifier '{modifier.name}' -> '{item.name}'",
            )
            self._add(usage, item, qty, department)
            return

        # Path B: ingredient fallback
        ingredient = modifier.ingredient
        if ingredient is None:
            return
        standard_qty = to_decimal(ingredient.standard_quantity) or Decimal("1")
        if ingredient.inventory_item is not None:
            item = ingredient.inventory_item
            qty, _ = convert_or_fallback(
                standard_qty * mod_qty * multiplier,
                ingredient.standard_unit,
                item.storage_unit,
                context=f"modifier '{modifier.name}' -> '{item.name}'",
            )
            self._add(usage, item, qty, department)
        elif ingredient.prep_item is not None:
            self._add_exploded(
                usage,
                ingredient.prep_item,
                standard_qty * mod_qty * multiplier,
                ingredient.standard_unit or "each",
                removed,
                department,
            )

    # ===== ACCUMULATION =====

    def _add_exploded(
        self,
        usage: UsageMap,
        prep_item: PrepItem,
        quantity: Decimal,
        unit: Optional[str],
        removed: Set[int],
        department: Optional[str],
    ) -> None:
        for leaf in explode_prep_item(prep_item, quantity, unit, cache=self.cache):
            # Removal applies at any nesting depth
            if leaf.inventory_item.id in removed:
                continue
            self._add(usage, leaf.inventory_item, leaf.quantity, department)

    def _add(
        self,
        usage: UsageMap,
        item: InventoryItem,
        quantity: Decimal,
        department: Optional[str],
    ) -> None:
        if department and (item.department or "").lower() != department.lower():
            return

        record = usage.get(item.id)
        if record is None:
            usage[item.id] = UsageRecord(
                inventory_item=item,
                quantity=quantity,
                cost_per_unit=effective_cost(item),
            )
        else:
            record.quantity += quantity
