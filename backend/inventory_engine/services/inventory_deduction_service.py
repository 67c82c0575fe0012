"""Inventory Deduction Service - decrements raw stock for sales and waste.

Flow (per call):
1. Fetch the order (sale path) or the voided order line (waste path)
2. Aggregate usage with the same logic as the theoretical usage report
3. Nothing used -> success, nothing written
4. For every used inventory item, in ONE transaction:
   - relative decrement: current_stock = current_stock - qty
   - InventoryTransaction (sale | waste) with before/after snapshot
   - WasteLogEntry (waste path only)
5. Commit; on any error roll back the whole batch

Results are returned, never raised, so a failed deduction cannot block
payment. Callers log ``success=False`` results and move on.
"""

import logging
import re
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from inventory_engine.core.cache import BoundedCache
from inventory_engine.models.inventory import (
    InventoryItem,
    InventoryTransaction,
    TransactionType,
    WasteLogEntry,
)
from inventory_engine.models.order import Order, OrderItem
from inventory_engine.schemas.inventory import DeductionResult, MultiplierSettings
from inventory_engine.services.settings_store import (
    default_pour_size_from,
    get_inventory_settings,
    multiplier_settings_from,
)
from inventory_engine.services.unit_conversion import to_decimal
from inventory_engine.services.usage_aggregator import (
    ORDER_ITEM_LOAD_OPTIONS,
    UsageAggregator,
    UsageRecord,
)

logger = logging.getLogger(__name__)

# Void reasons meaning the food/drink was made and must still be deducted
WASTE_VOID_REASONS = (
    "kitchen_error",
    "customer_disliked",
    "wrong_order",
    "remade",
    "quality_issue",
)


def normalize_void_reason(void_reason: Optional[str]) -> str:
    """'Kitchen Error' -> 'kitchen_error'."""
    return re.sub(r"\s+", "_", (void_reason or "").lower())


def is_waste_void_reason(void_reason: Optional[str]) -> bool:
    return normalize_void_reason(void_reason) in WASTE_VOID_REASONS


class InventoryDeductionService:
    """Applies sale and waste consumption to InventoryItem.current_stock."""

    def __init__(self, db: Session, cache: Optional[BoundedCache] = None):
        self.db = db
        self.cache = cache

    # ===== SALE PATH =====

    def deduct_inventory_for_order(
        self,
        order_id: int,
        employee_id: Optional[int] = None,
        multiplier_settings: Optional[MultiplierSettings] = None,
    ) -> DeductionResult:
        """Deduct inventory for a paid/closed order."""
        try:
            order = (
                self.db.query(Order)
                .options(selectinload(Order.items).options(*ORDER_ITEM_LOAD_OPTIONS))
                .filter(Order.id == order_id)
                .first()
            )
            if not order:
                return DeductionResult(success=False, errors=["Order not found"])

            aggregator, multiplier_settings = self._aggregator_for(order.location_id, multiplier_settings)
            usage = aggregator.aggregate(order.items, multiplier_settings)
            if not usage:
                return DeductionResult(success=True)

            total_cost = self._apply_batch(
                usage.values(),
                transaction_type=TransactionType.SALE,
                location_id=order.location_id,
                reason=f"Order #{order.order_number}",
                reference_type="order",
                reference_id=order.id,
                employee_id=employee_id,
            )
            logger.info(
                f"Deducted {len(usage)} inventory items for order #{order.order_number} "
                f"(cost {total_cost})"
            )
            return DeductionResult(success=True, items_deducted=len(usage), total_cost=total_cost)

        except Exception as e:
            self.db.rollback()
            logger.error(f"Inventory deduction failed for order {order_id}: {e}", exc_info=True)
            return DeductionResult(success=False, errors=[str(e)])

    # ===== WASTE PATH =====

    def deduct_inventory_for_voided_item(
        self,
        order_item_id: int,
        void_reason: str,
        employee_id: Optional[int] = None,
        multiplier_settings: Optional[MultiplierSettings] = None,
    ) -> DeductionResult:
        """Deduct inventory for a voided line whose food was already made.

        Reasons outside WASTE_VOID_REASONS mean nothing was prepared and
        return a no-op success.
        """
        if not is_waste_void_reason(void_reason):
            logger.debug(f"Void reason '{void_reason}' is not waste, no deduction for item {order_item_id}")
            return DeductionResult(success=True)

        try:
            order_item = (
                self.db.query(OrderItem)
                .options(selectinload(OrderItem.order), *ORDER_ITEM_LOAD_OPTIONS)
                .filter(OrderItem.id == order_item_id)
                .first()
            )
            if not order_item:
                return DeductionResult(success=False, errors=["Order item not found"])

            order = order_item.order
            aggregator, multiplier_settings = self._aggregator_for(order.location_id, multiplier_settings)
            usage = aggregator.aggregate([order_item], multiplier_settings, include_inactive=True)
            if not usage:
                return DeductionResult(success=True)

            total_cost = self._apply_batch(
                usage.values(),
                transaction_type=TransactionType.WASTE,
                location_id=order.location_id,
                reason=f"Void: {void_reason} (Order #{order.order_number})",
                reference_type="void",
                reference_id=order_item.id,
                employee_id=employee_id,
                waste_reason=void_reason,
                waste_notes=f"Auto-logged from voided order item (Order #{order.order_number})",
            )
            logger.info(
                f"Logged waste for voided item {order_item_id} ({void_reason}): "
                f"{len(usage)} inventory items, cost {total_cost}"
            )
            return DeductionResult(success=True, items_deducted=len(usage), total_cost=total_cost)

        except Exception as e:
            self.db.rollback()
            logger.error(f"Waste deduction failed for order item {order_item_id}: {e}", exc_info=True)
            return DeductionResult(success=False, errors=[str(e)])

    # ===== HELPERS =====

    def _aggregator_for(self, location_id: int, multiplier_settings: Optional[MultiplierSettings]):
        location_settings = get_inventory_settings(self.db, location_id)
        if multiplier_settings is None:
            multiplier_settings = multiplier_settings_from(location_settings)
        aggregator = UsageAggregator(
            cache=self.cache,
            default_pour_size_oz=default_pour_size_from(location_settings),
        )
        return aggregator, multiplier_settings

    def _apply_batch(
        self,
        records: Iterable[UsageRecord],
        transaction_type: TransactionType,
        location_id: int,
        reason: str,
        reference_type: str,
        reference_id: int,
        employee_id: Optional[int] = None,
        waste_reason: Optional[str] = None,
        waste_notes: Optional[str] = None,
    ) -> Decimal:
        """Write all decrements and audit rows, then commit once.

        Any failure propagates to the caller, which rolls the batch back.
        """
        total_cost = Decimal("0")

        for record in records:
            item = record.inventory_item
            quantity = record.quantity
            line_cost = record.total_cost
            # Audit narrative only; the decrement below is relative
            quantity_before = to_decimal(item.current_stock)

            self.db.execute(
                update(InventoryItem)
                .where(InventoryItem.id == item.id)
                .values(current_stock=InventoryItem.current_stock - quantity)
            )
            self.db.add(InventoryTransaction(
                location_id=location_id,
                inventory_item_id=item.id,
                type=transaction_type.value,
                quantity_before=quantity_before,
                quantity_change=-quantity,
                quantity_after=quantity_before - quantity,
                unit_cost=record.cost_per_unit,
                total_cost=line_cost,
                reason=reason,
                reference_type=reference_type,
                reference_id=reference_id,
                employee_id=employee_id,
            ))
            if transaction_type == TransactionType.WASTE:
                self.db.add(WasteLogEntry(
                    location_id=location_id,
                    inventory_item_id=item.id,
                    quantity=quantity,
                    unit=item.storage_unit,
                    reason=waste_reason,
                    cost_impact=line_cost,
                    employee_id=employee_id,
                    notes=waste_notes,
                ))
            total_cost += line_cost

        self.db.commit()
        return total_cost


def get_inventory_deduction_service(db: Session, cache: Optional[BoundedCache] = None) -> InventoryDeductionService:
    """Factory function to get inventory deduction service instance."""
    return InventoryDeductionService(db, cache)
