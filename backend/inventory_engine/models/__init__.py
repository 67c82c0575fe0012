"""SQLAlchemy models."""

from inventory_engine.models.inventory import (
    InventoryItem,
    InventorySettings,
    InventoryTransaction,
    TransactionType,
    WasteLogEntry,
)
from inventory_engine.models.recipe import (
    EdgeTarget,
    MenuItemRecipe,
    PrepItem,
    PrepItemIngredient,
    RecipeIngredient,
    Recursive,
    Terminal,
)
from inventory_engine.models.menu import (
    BottleProduct,
    LiquorRecipeIngredient,
    MenuItem,
    Modifier,
    ModifierInventoryLink,
)
from inventory_engine.models.ingredient import Ingredient, MenuItemIngredient
from inventory_engine.models.order import (
    FINALIZED_ORDER_STATUSES,
    Order,
    OrderItem,
    OrderItemModifier,
    OrderItemStatus,
    OrderStatus,
)

__all__ = [
    "InventoryItem",
    "InventorySettings",
    "InventoryTransaction",
    "TransactionType",
    "WasteLogEntry",
    "EdgeTarget",
    "MenuItemRecipe",
    "PrepItem",
    "PrepItemIngredient",
    "RecipeIngredient",
    "Recursive",
    "Terminal",
    "BottleProduct",
    "LiquorRecipeIngredient",
    "MenuItem",
    "Modifier",
    "ModifierInventoryLink",
    "Ingredient",
    "MenuItemIngredient",
    "FINALIZED_ORDER_STATUSES",
    "Order",
    "OrderItem",
    "OrderItemModifier",
    "OrderItemStatus",
    "OrderStatus",
]
