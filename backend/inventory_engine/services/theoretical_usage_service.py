"""Theoretical Usage Service - what finalized sales should have consumed.

Read-only: never touches stock. Used for management reporting (actual vs
theoretical variance), not for billing.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from inventory_engine.core.cache import BoundedCache
from inventory_engine.models.order import FINALIZED_ORDER_STATUSES, Order
from inventory_engine.schemas.inventory import MultiplierSettings, UsageLine, UsageReport
from inventory_engine.services.settings_store import (
    default_pour_size_from,
    get_inventory_settings,
    multiplier_settings_from,
)
from inventory_engine.services.usage_aggregator import ORDER_ITEM_LOAD_OPTIONS, UsageAggregator

logger = logging.getLogger(__name__)


class TheoreticalUsageService:
    """Aggregates recipe usage over completed/paid orders of a location."""

    def __init__(self, db: Session, cache: Optional[BoundedCache] = None):
        self.db = db
        self.cache = cache

    def calculate_theoretical_usage(
        self,
        location_id: int,
        start_date: datetime,
        end_date: datetime,
        department: Optional[str] = None,
        multiplier_settings: Optional[MultiplierSettings] = None,
    ) -> UsageReport:
        """Theoretical usage for orders created in [start_date, end_date].

        Multiplier settings default to the location's stored settings.
        Rows are sorted by category, then name.
        """
        location_settings = get_inventory_settings(self.db, location_id)
        if multiplier_settings is None:
            multiplier_settings = multiplier_settings_from(location_settings)

        orders = (
            self.db.query(Order)
            .options(selectinload(Order.items).options(*ORDER_ITEM_LOAD_OPTIONS))
            .filter(
                Order.location_id == location_id,
                Order.status.in_(FINALIZED_ORDER_STATUSES),
                Order.created_at >= start_date,
                Order.created_at <= end_date,
            )
            .order_by(Order.created_at)
            .all()
        )

        aggregator = UsageAggregator(
            cache=self.cache,
            default_pour_size_oz=default_pour_size_from(location_settings),
        )
        order_items = [item for order in orders for item in order.items]
        usage = aggregator.aggregate(order_items, multiplier_settings, department=department)

        lines = [
            UsageLine(
                inventory_item_id=record.inventory_item_id,
                name=record.inventory_item.name,
                category=record.inventory_item.category,
                department=record.inventory_item.department,
                quantity=record.quantity,
                unit=record.unit,
                cost_per_unit=record.cost_per_unit,
                total_cost=record.total_cost,
            )
            for record in usage.values()
        ]
        lines.sort(key=lambda line: (line.category, line.name))
        total_cost = sum((line.total_cost for line in lines), Decimal("0"))

        logger.info(
            f"Theoretical usage for location {location_id}: {len(orders)} orders, "
            f"{len(lines)} items, total cost {total_cost}"
        )

        return UsageReport(
            location_id=location_id,
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
            department=department or "All",
            order_count=len(orders),
            usage=lines,
            total_cost=total_cost,
        )


def get_theoretical_usage_service(db: Session, cache: Optional[BoundedCache] = None) -> TheoreticalUsageService:
    """Factory function to get theoretical usage service instance."""
    return TheoreticalUsageService(db, cache)
