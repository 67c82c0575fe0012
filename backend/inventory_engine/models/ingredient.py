"""Prep-stock tier: daily count ingredients and their menu links.

This is a separate stock pool from ``InventoryItem.current_stock``; only
the prep-stock service writes ``current_prep_stock``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_engine.db.base import Base, TimestampMixin


class Ingredient(Base, TimestampMixin):
    """A kitchen ingredient, optionally counted each shift."""

    __tablename__ = "ingredients"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    inventory_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    prep_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("prep_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    standard_quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)
    standard_unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    is_daily_count_item: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    current_prep_stock: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=0, nullable=False)
    parent_ingredient_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=True, index=True
    )

    inventory_item: Mapped[Optional["InventoryItem"]] = relationship("InventoryItem")
    prep_item: Mapped[Optional["PrepItem"]] = relationship("PrepItem")
    parent: Mapped[Optional["Ingredient"]] = relationship(
        "Ingredient", back_populates="children", remote_side="Ingredient.id"
    )
    children: Mapped[list["Ingredient"]] = relationship(
        "Ingredient", back_populates="parent", order_by="Ingredient.id"
    )

    @property
    def daily_count_children(self) -> list["Ingredient"]:
        return [child for child in self.children if child.is_daily_count_item]


class MenuItemIngredient(Base):
    """Menu item to ingredient link with an optional quantity override."""

    __tablename__ = "menu_item_ingredients"

    id: Mapped[int] = mapped_column(primary_key=True)
    menu_item_id: Mapped[int] = mapped_column(
        ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[int] = mapped_column(
        ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    menu_item: Mapped["MenuItem"] = relationship("MenuItem", back_populates="ingredient_links")
    ingredient: Mapped["Ingredient"] = relationship("Ingredient")


# Forward references
from inventory_engine.models.inventory import InventoryItem
from inventory_engine.models.recipe import PrepItem
from inventory_engine.models.menu import MenuItem
