"""Menu models: menu items, liquor pours and modifiers."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from inventory_engine.db.base import Base, TimestampMixin
from inventory_engine.models.validators import non_negative, positive


class MenuItem(Base, TimestampMixin):
    """A sellable item."""

    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)

    recipe: Mapped[Optional["MenuItemRecipe"]] = relationship(
        "MenuItemRecipe", back_populates="menu_item", uselist=False, cascade="all, delete-orphan"
    )
    liquor_ingredients: Mapped[list["LiquorRecipeIngredient"]] = relationship(
        "LiquorRecipeIngredient",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        order_by="LiquorRecipeIngredient.id",
    )
    ingredient_links: Mapped[list["MenuItemIngredient"]] = relationship(
        "MenuItemIngredient",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        order_by="MenuItemIngredient.id",
    )

    @validates("price")
    def _validate_price(self, key, value):
        return non_negative(self, key, value)


class BottleProduct(Base, TimestampMixin):
    """A spirit bottle, tracked in ounces through its inventory item."""

    __tablename__ = "bottle_products"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    pour_size_oz: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3), nullable=True)
    inventory_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True
    )

    inventory_item: Mapped[Optional["InventoryItem"]] = relationship("InventoryItem")


class LiquorRecipeIngredient(Base):
    """Cocktail recipe line: a number of pours from a bottle product."""

    __tablename__ = "liquor_recipe_ingredients"

    id: Mapped[int] = mapped_column(primary_key=True)
    menu_item_id: Mapped[int] = mapped_column(
        ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    bottle_product_id: Mapped[int] = mapped_column(
        ForeignKey("bottle_products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pour_count: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3), nullable=True)
    pour_size_oz: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3), nullable=True)

    menu_item: Mapped["MenuItem"] = relationship("MenuItem", back_populates="liquor_ingredients")
    bottle_product: Mapped["BottleProduct"] = relationship("BottleProduct")


class Modifier(Base, TimestampMixin):
    """An add-on or instruction target ("onions", "bacon", "shot of espresso")."""

    __tablename__ = "modifiers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    # Per-modifier overrides of the location multipliers
    lite_multiplier: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3), nullable=True)
    extra_multiplier: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3), nullable=True)
    # Fallback link, used only when there is no inventory_link
    ingredient_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("ingredients.id", ondelete="SET NULL"), nullable=True, index=True
    )

    inventory_link: Mapped[Optional["ModifierInventoryLink"]] = relationship(
        "ModifierInventoryLink", back_populates="modifier", uselist=False, cascade="all, delete-orphan"
    )
    ingredient: Mapped[Optional["Ingredient"]] = relationship("Ingredient")

    @validates("lite_multiplier", "extra_multiplier")
    def _validate_multipliers(self, key, value):
        return non_negative(self, key, value)


class ModifierInventoryLink(Base):
    """Direct modifier to inventory item usage."""

    __tablename__ = "modifier_inventory_links"

    id: Mapped[int] = mapped_column(primary_key=True)
    modifier_id: Mapped[int] = mapped_column(
        ForeignKey("modifiers.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    inventory_item_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    usage_quantity: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    usage_unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    modifier: Mapped["Modifier"] = relationship("Modifier", back_populates="inventory_link")
    inventory_item: Mapped["InventoryItem"] = relationship("InventoryItem")

    @validates("usage_quantity")
    def _validate_usage_quantity(self, key, value):
        return positive(self, key, value)


# Forward references
from inventory_engine.models.inventory import InventoryItem
from inventory_engine.models.recipe import MenuItemRecipe
from inventory_engine.models.ingredient import Ingredient, MenuItemIngredient
