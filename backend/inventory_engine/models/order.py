"""Order models as seen by the inventory engine."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from inventory_engine.db.base import Base
from inventory_engine.models.validators import positive


class OrderStatus(str, Enum):
    OPEN = "open"
    SENT = "sent"
    COMPLETED = "completed"
    PAID = "paid"
    VOIDED = "voided"


# Orders whose sales count toward theoretical usage
FINALIZED_ORDER_STATUSES = (OrderStatus.COMPLETED.value, OrderStatus.PAID.value)


class OrderItemStatus(str, Enum):
    ACTIVE = "active"
    VOIDED = "voided"
    COMPED = "comped"


class Order(Base):
    """A guest check."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    order_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.OPEN.value, nullable=False, index=True)
    employee_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )


class OrderItem(Base):
    """One line of an order."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=OrderItemStatus.ACTIVE.value, nullable=False)
    # Pour size upgrade (double, tall); applies to recipe and liquor usage
    pour_multiplier: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3), nullable=True)
    void_reason: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    menu_item: Mapped[Optional["MenuItem"]] = relationship("MenuItem")
    modifiers: Mapped[list["OrderItemModifier"]] = relationship(
        "OrderItemModifier",
        back_populates="order_item",
        cascade="all, delete-orphan",
        order_by="OrderItemModifier.id",
    )

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return positive(self, key, value)

    @property
    def is_active(self) -> bool:
        return self.status == OrderItemStatus.ACTIVE.value


class OrderItemModifier(Base):
    """A modifier applied to an order line, with its instruction ("NO", "EXTRA")."""

    __tablename__ = "order_item_modifiers"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_item_id: Mapped[int] = mapped_column(
        ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    modifier_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("modifiers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    pre_modifier: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    quantity: Mapped[Optional[int]] = mapped_column(Integer, default=1, nullable=True)

    order_item: Mapped["OrderItem"] = relationship("OrderItem", back_populates="modifiers")
    modifier: Mapped[Optional["Modifier"]] = relationship("Modifier")


# Forward references
from inventory_engine.models.menu import MenuItem, Modifier
