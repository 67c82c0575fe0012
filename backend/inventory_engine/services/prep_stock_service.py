"""Prep Stock Service - daily count ingredients deducted at send-to-kitchen.

A separate stock pool (Ingredient.current_prep_stock) from raw inventory.
It only shares the modifier instruction rules with the raw-inventory
engine, never its usage map.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Set

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from inventory_engine.models.ingredient import Ingredient, MenuItemIngredient
from inventory_engine.models.menu import MenuItem, Modifier
from inventory_engine.models.order import Order, OrderItem, OrderItemModifier
from inventory_engine.schemas.inventory import MultiplierSettings, PrepDeductionLine, PrepDeductionResult
from inventory_engine.services.modifier_instructions import (
    get_modifier_multiplier,
    is_removal_instruction,
)
from inventory_engine.services.settings_store import get_inventory_settings, multiplier_settings_from
from inventory_engine.services.unit_conversion import convert_or_fallback, to_decimal

logger = logging.getLogger(__name__)

PREP_ITEM_LOAD_OPTIONS = (
    selectinload(OrderItem.menu_item)
    .selectinload(MenuItem.ingredient_links)
    .selectinload(MenuItemIngredient.ingredient)
    .selectinload(Ingredient.children),
    selectinload(OrderItem.modifiers)
    .selectinload(OrderItemModifier.modifier)
    .selectinload(Modifier.ingredient)
    .selectinload(Ingredient.children),
)


@dataclass
class PrepUsage:
    ingredient: Ingredient
    quantity: Decimal

    @property
    def unit(self) -> str:
        return self.ingredient.standard_unit or "each"


class PrepStockService:
    """Deducts and restores prep stock for daily count ingredients."""

    def __init__(self, db: Session):
        self.db = db

    def deduct_prep_stock_for_order(
        self,
        order_id: int,
        item_ids: Optional[Sequence[int]] = None,
    ) -> PrepDeductionResult:
        """Deduct prep stock for lines sent to the kitchen (all active lines if no ids)."""
        try:
            order = self._get_order(order_id)
            if not order:
                return PrepDeductionResult(success=False, errors=["Order not found"])

            location_settings = get_inventory_settings(self.db, order.location_id)
            # No settings row means tracking is on
            if location_settings is not None and not (
                location_settings.track_prep_stock and location_settings.deduct_prep_on_send
            ):
                return PrepDeductionResult(success=True)

            order_items = [
                item for item in self._select_items(order, item_ids) if item.is_active
            ]
            usage = self._build_usage(order_items, multiplier_settings_from(location_settings))
            if not usage:
                return PrepDeductionResult(success=True)

            lines = self._apply_batch(usage.values(), sign=Decimal("-1"))
            logger.info(f"Deducted prep stock for order {order_id}: {len(lines)} ingredients")
            return PrepDeductionResult(success=True, deducted_items=lines)

        except Exception as e:
            self.db.rollback()
            logger.error(f"Prep stock deduction failed for order {order_id}: {e}", exc_info=True)
            return PrepDeductionResult(success=False, errors=[str(e)])

    def restore_prep_stock_for_void(
        self,
        order_id: int,
        item_ids: Optional[Sequence[int]],
        was_made: bool = False,
    ) -> PrepDeductionResult:
        """Give prep stock back for lines voided before they were made.

        If the food was made the stock was consumed and nothing is restored.
        Only the listed lines are restored; an empty list restores nothing.
        """
        if was_made:
            return PrepDeductionResult(success=True)

        try:
            order = self._get_order(order_id)
            if not order:
                return PrepDeductionResult(success=False, errors=["Order not found"])

            location_settings = get_inventory_settings(self.db, order.location_id)
            if location_settings is not None and not location_settings.restore_prep_on_void:
                return PrepDeductionResult(success=True)

            order_items = self._select_voided_items(order, item_ids)
            usage = self._build_usage(order_items, multiplier_settings_from(location_settings))
            if not usage:
                return PrepDeductionResult(success=True)

            lines = self._apply_batch(usage.values(), sign=Decimal("1"))
            logger.info(f"Restored prep stock for order {order_id}: {len(lines)} ingredients")
            return PrepDeductionResult(success=True, deducted_items=lines)

        except Exception as e:
            self.db.rollback()
            logger.error(f"Prep stock restore failed for order {order_id}: {e}", exc_info=True)
            return PrepDeductionResult(success=False, errors=[str(e)])

    # ===== HELPERS =====

    def _get_order(self, order_id: int) -> Optional[Order]:
        return (
            self.db.query(Order)
            .options(selectinload(Order.items).options(*PREP_ITEM_LOAD_OPTIONS))
            .filter(Order.id == order_id)
            .first()
        )

    @staticmethod
    def _select_items(order: Order, item_ids: Optional[Sequence[int]]) -> List[OrderItem]:
        if not item_ids:
            return list(order.items)
        wanted = set(item_ids)
        return [item for item in order.items if item.id in wanted]

    @staticmethod
    def _select_voided_items(order: Order, item_ids: Optional[Sequence[int]]) -> List[OrderItem]:
        # Restore only ever touches the lines it is given
        wanted = set(item_ids or ())
        return [item for item in order.items if item.id in wanted]

    def _build_usage(
        self,
        order_items: Iterable[OrderItem],
        multiplier_settings: Optional[MultiplierSettings],
    ) -> Dict[int, PrepUsage]:
        usage: Dict[int, PrepUsage] = {}

        for order_item in order_items:
            item_qty = to_decimal(order_item.quantity)
            removed = self._removed_ingredient_ids(order_item)

            menu_item = order_item.menu_item
            if menu_item is not None:
                for link in menu_item.ingredient_links:
                    ingredient = link.ingredient
                    if ingredient is None or ingredient.id in removed:
                        continue
                    base_qty = (
                        to_decimal(link.quantity)
                        or to_decimal(ingredient.standard_quantity)
                        or Decimal("1")
                    )
                    total_qty, _ = convert_or_fallback(
                        base_qty * item_qty,
                        link.unit,
                        ingredient.standard_unit,
                        context=f"prep ingredient '{ingredient.name}'",
                    )
                    self._add_with_children(usage, ingredient, total_qty)

            for applied in order_item.modifiers:
                modifier = applied.modifier
                ingredient = modifier.ingredient if modifier is not None else None
                if ingredient is None or ingredient.id in removed:
                    continue
                multiplier = get_modifier_multiplier(applied.pre_modifier, multiplier_settings)
                if multiplier == 0:
                    continue
                mod_qty = to_decimal(applied.quantity or 1) * item_qty
                self._add_with_children(usage, ingredient, mod_qty * multiplier)

        return usage

    @staticmethod
    def _removed_ingredient_ids(order_item: OrderItem) -> Set[int]:
        return {
            applied.modifier.ingredient.id
            for applied in order_item.modifiers
            if applied.modifier is not None
            and applied.modifier.ingredient is not None
            and is_removal_instruction(applied.pre_modifier)
        }

    def _add_with_children(self, usage: Dict[int, PrepUsage], ingredient: Ingredient, quantity: Decimal) -> None:
        self._add(usage, ingredient, quantity)
        for child in ingredient.daily_count_children:
            # Child quantity is per unit of the parent
            self._add(usage, child, (to_decimal(child.standard_quantity) or Decimal("1")) * quantity)

    @staticmethod
    def _add(usage: Dict[int, PrepUsage], ingredient: Ingredient, quantity: Decimal) -> None:
        if not ingredient.is_daily_count_item:
            return
        record = usage.get(ingredient.id)
        if record is None:
            usage[ingredient.id] = PrepUsage(ingredient, quantity)
        else:
            record.quantity += quantity

    def _apply_batch(self, records: Iterable[PrepUsage], sign: Decimal) -> List[PrepDeductionLine]:
        """Relative increment/decrement of every ingredient, one commit.

        ``sign`` is -1 to deduct and +1 to restore.
        """
        lines: List[PrepDeductionLine] = []

        for record in records:
            ingredient = record.ingredient
            stock_before = to_decimal(ingredient.current_prep_stock)
            delta = record.quantity * sign

            self.db.execute(
                update(Ingredient)
                .where(Ingredient.id == ingredient.id)
                .values(current_prep_stock=Ingredient.current_prep_stock + delta)
            )

            if sign < 0:
                # Reported floor at zero; the stored count may go negative
                stock_after = max(Decimal("0"), stock_before - record.quantity)
            else:
                stock_after = stock_before + record.quantity

            lines.append(PrepDeductionLine(
                ingredient_id=ingredient.id,
                name=ingredient.name,
                quantity_deducted=-delta,
                unit=record.unit,
                stock_before=stock_before,
                stock_after=stock_after,
            ))

        self.db.commit()
        return lines


def get_prep_stock_service(db: Session) -> PrepStockService:
    """Factory function to get prep stock service instance."""
    return PrepStockService(db)
