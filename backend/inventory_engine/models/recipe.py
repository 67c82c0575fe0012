"""Recipe (bill of materials) models: prep items and menu item recipes.

Both edge tables point at exactly one of an inventory item (terminal) or a
prep item (recursive). The database enforces this with a CHECK constraint
and ``edge.target`` exposes the edge as a ``Terminal`` or ``Recursive``
value, so callers never inspect two nullable columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from inventory_engine.core.exceptions import RecipeDefinitionError
from inventory_engine.db.base import Base, TimestampMixin
from inventory_engine.models.validators import non_negative, positive


@dataclass(frozen=True)
class Terminal:
    """Edge ending at a raw inventory item."""

    inventory_item: "InventoryItem"


@dataclass(frozen=True)
class Recursive:
    """Edge pointing at another prep item that must be exploded."""

    prep_item: "PrepItem"


EdgeTarget = Union[Terminal, Recursive]


def resolve_edge_target(edge, inventory_item, prep_item) -> EdgeTarget:
    """Turn an edge's two optional links into a single tagged target."""
    if inventory_item is not None and prep_item is not None:
        raise RecipeDefinitionError(
            type(edge).__name__, edge.id, "links both an inventory item and a prep item"
        )
    if inventory_item is not None:
        return Terminal(inventory_item)
    if prep_item is not None:
        return Recursive(prep_item)
    raise RecipeDefinitionError(type(edge).__name__, edge.id, "has no target")


class PrepItem(Base, TimestampMixin):
    """Intermediate recipe output (sauce, dough, spice mix)."""

    __tablename__ = "prep_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # Quantity produced per batch, in output_unit
    batch_yield: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)
    output_unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    cost_per_unit: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)

    ingredients: Mapped[list["PrepItemIngredient"]] = relationship(
        "PrepItemIngredient",
        back_populates="prep_item",
        foreign_keys="PrepItemIngredient.prep_item_id",
        cascade="all, delete-orphan",
        order_by="PrepItemIngredient.id",
    )

    @validates("batch_yield")
    def _validate_batch_yield(self, key, value):
        return positive(self, key, value)


class PrepItemIngredient(Base):
    """One ingredient of a prep item batch."""

    __tablename__ = "prep_item_ingredients"
    __table_args__ = (
        CheckConstraint(
            "(inventory_item_id IS NULL) <> (component_prep_item_id IS NULL)",
            name="ck_prep_item_ingredient_one_target",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    prep_item_id: Mapped[int] = mapped_column(
        ForeignKey("prep_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="each", nullable=False)
    inventory_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=True, index=True
    )
    component_prep_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("prep_items.id", ondelete="CASCADE"), nullable=True, index=True
    )

    prep_item: Mapped["PrepItem"] = relationship(
        "PrepItem", back_populates="ingredients", foreign_keys=[prep_item_id]
    )
    inventory_item: Mapped[Optional["InventoryItem"]] = relationship("InventoryItem")
    component: Mapped[Optional["PrepItem"]] = relationship(
        "PrepItem", foreign_keys=[component_prep_item_id]
    )

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return non_negative(self, key, value)

    @property
    def target(self) -> EdgeTarget:
        return resolve_edge_target(self, self.inventory_item, self.component)


class MenuItemRecipe(Base, TimestampMixin):
    """Food recipe of a menu item."""

    __tablename__ = "menu_item_recipes"

    id: Mapped[int] = mapped_column(primary_key=True)
    menu_item_id: Mapped[int] = mapped_column(
        ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    menu_item: Mapped["MenuItem"] = relationship("MenuItem", back_populates="recipe")
    ingredients: Mapped[list["RecipeIngredient"]] = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.id",
    )


class RecipeIngredient(Base):
    """A single ingredient line of a menu item recipe."""

    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        CheckConstraint(
            "(inventory_item_id IS NULL) <> (prep_item_id IS NULL)",
            name="ck_recipe_ingredient_one_target",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        ForeignKey("menu_item_recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="each", nullable=False)
    inventory_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=True, index=True
    )
    prep_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("prep_items.id", ondelete="CASCADE"), nullable=True, index=True
    )

    recipe: Mapped["MenuItemRecipe"] = relationship("MenuItemRecipe", back_populates="ingredients")
    inventory_item: Mapped[Optional["InventoryItem"]] = relationship("InventoryItem")
    prep_item: Mapped[Optional["PrepItem"]] = relationship("PrepItem")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return non_negative(self, key, value)

    @property
    def target(self) -> EdgeTarget:
        return resolve_edge_target(self, self.inventory_item, self.prep_item)


# Forward references
from inventory_engine.models.inventory import InventoryItem
from inventory_engine.models.menu import MenuItem
