"""Inventory models: raw stock items, audit trail, waste log and location settings."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from inventory_engine.db.base import Base, CreatedAtMixin, TimestampMixin
from inventory_engine.models.validators import non_negative, positive


class TransactionType(str, Enum):
    """Kinds of stock consumption recorded by the engine."""

    SALE = "sale"  # Paid/closed order
    WASTE = "waste"  # Voided item that was already prepared


class InventoryItem(Base, TimestampMixin):
    """A raw, purchased stock unit (e.g. a case of tomatoes, a bottle of vodka)."""

    __tablename__ = "inventory_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    location_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    department: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    storage_unit: Mapped[str] = mapped_column(String(20), default="each", nullable=False)
    cost_per_unit: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=0, nullable=False)
    # Post-trim/waste-adjusted cost, preferred over cost_per_unit when set
    yield_cost_per_unit: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)
    # Only the deduction engine writes this column
    current_stock: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=0, nullable=False)

    transactions: Mapped[list["InventoryTransaction"]] = relationship(
        "InventoryTransaction", back_populates="inventory_item"
    )

    @validates("cost_per_unit", "yield_cost_per_unit")
    def _validate_costs(self, key, value):
        return non_negative(self, key, value)


class InventoryTransaction(Base, CreatedAtMixin):
    """Append-only audit record paired with every stock decrement."""

    __tablename__ = "inventory_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    location_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    inventory_item_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # sale, waste
    # Point-in-time read taken just before the relative decrement
    quantity_before: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    quantity_change: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    quantity_after: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    reference_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # order, void
    reference_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    employee_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    inventory_item: Mapped["InventoryItem"] = relationship(
        "InventoryItem", back_populates="transactions"
    )


class WasteLogEntry(Base, CreatedAtMixin):
    """Waste record written alongside a waste-type transaction."""

    __tablename__ = "waste_log_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    location_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    inventory_item_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)
    cost_impact: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    employee_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    inventory_item: Mapped["InventoryItem"] = relationship("InventoryItem")


class InventorySettings(Base, TimestampMixin):
    """Per-location inventory behaviour (multipliers and prep-stock flags)."""

    __tablename__ = "inventory_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    track_prep_stock: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    deduct_prep_on_send: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    restore_prep_on_void: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    multiplier_lite: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3), default=Decimal("0.5"), nullable=True)
    multiplier_extra: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3), default=Decimal("2.0"), nullable=True)
    multiplier_triple: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3), default=Decimal("3.0"), nullable=True)
    default_pour_size_oz: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3), default=Decimal("1.5"), nullable=True)

    @validates("multiplier_lite", "multiplier_extra", "multiplier_triple")
    def _validate_multipliers(self, key, value):
        return non_negative(self, key, value)

    @validates("default_pour_size_oz")
    def _validate_pour_size(self, key, value):
        return positive(self, key, value)
