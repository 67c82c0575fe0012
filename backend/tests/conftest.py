"""Pytest configuration and fixtures."""

from datetime import datetime
from decimal import Decimal
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from inventory_engine.db.base import Base
# Import all models to ensure they're registered with Base.metadata
from inventory_engine.models import *
from inventory_engine.models import (
    BottleProduct,
    Ingredient,
    InventoryItem,
    InventorySettings,
    LiquorRecipeIngredient,
    MenuItem,
    MenuItemIngredient,
    MenuItemRecipe,
    Modifier,
    ModifierInventoryLink,
    Order,
    OrderItem,
    OrderItemModifier,
    PrepItem,
    PrepItemIngredient,
    RecipeIngredient,
)

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

LOCATION_ID = 1


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def kitchen(db_session):
    """A small restaurant: raw items, a nested BBQ sauce, a burger, a cocktail and modifiers.

    BBQ Sauce (batch 10 oz) = 2 oz ketchup + 5 g BBQ Spice Mix
    BBQ Spice Mix (batch 10 g) = 8 g paprika + 2 g salt
    BBQ Burger = 1 bun + 1 patty + 2 oz BBQ Sauce
    Vodka Soda = 1 pour of vodka (bottle pour 1.5 oz)
    """
    db = db_session

    bun = InventoryItem(
        location_id=LOCATION_ID, name="Brioche Bun", category="Bakery", department="Kitchen",
        storage_unit="each", cost_per_unit=Decimal("0.50"), current_stock=Decimal("100"),
    )
    patty = InventoryItem(
        location_id=LOCATION_ID, name="Beef Patty", category="Meat", department="Kitchen",
        storage_unit="each", cost_per_unit=Decimal("2.00"), current_stock=Decimal("50"),
    )
    ketchup = InventoryItem(
        location_id=LOCATION_ID, name="Ketchup", category="Condiments", department="Kitchen",
        storage_unit="oz", cost_per_unit=Decimal("0.10"), current_stock=Decimal("500"),
    )
    paprika = InventoryItem(
        location_id=LOCATION_ID, name="Paprika", category="Spices", department="Kitchen",
        storage_unit="g", cost_per_unit=Decimal("0.05"), current_stock=Decimal("1000"),
    )
    salt = InventoryItem(
        location_id=LOCATION_ID, name="Salt", category="Spices", department="Kitchen",
        storage_unit="g", cost_per_unit=Decimal("0.01"), current_stock=Decimal("1000"),
    )
    onion = InventoryItem(
        location_id=LOCATION_ID, name="Onion", category="Produce", department="Kitchen",
        storage_unit="each", cost_per_unit=Decimal("0.40"), current_stock=Decimal("40"),
    )
    bacon = InventoryItem(
        location_id=LOCATION_ID, name="Bacon", category="Meat", department="Kitchen",
        storage_unit="oz", cost_per_unit=Decimal("0.60"), yield_cost_per_unit=Decimal("0.75"),
        current_stock=Decimal("200"),
    )
    vodka = InventoryItem(
        location_id=LOCATION_ID, name="House Vodka", category="Spirits", department="Bar",
        storage_unit="oz", cost_per_unit=Decimal("0.80"), current_stock=Decimal("250"),
    )
    db.add_all([bun, patty, ketchup, paprika, salt, onion, bacon, vodka])
    db.flush()

    spice_mix = PrepItem(name="BBQ Spice Mix", batch_yield=Decimal("10"), output_unit="g")
    bbq_sauce = PrepItem(name="BBQ Sauce", batch_yield=Decimal("10"), output_unit="oz")
    db.add_all([spice_mix, bbq_sauce])
    db.flush()

    db.add_all([
        PrepItemIngredient(prep_item_id=spice_mix.id, inventory_item_id=paprika.id,
                           quantity=Decimal("8"), unit="g"),
        PrepItemIngredient(prep_item_id=spice_mix.id, inventory_item_id=salt.id,
                           quantity=Decimal("2"), unit="g"),
        PrepItemIngredient(prep_item_id=bbq_sauce.id, inventory_item_id=ketchup.id,
                           quantity=Decimal("2"), unit="oz"),
        PrepItemIngredient(prep_item_id=bbq_sauce.id, component_prep_item_id=spice_mix.id,
                           quantity=Decimal("5"), unit="g"),
    ])

    burger = MenuItem(name="BBQ Burger", category="Burgers", price=Decimal("14.00"))
    vodka_soda = MenuItem(name="Vodka Soda", category="Cocktails", price=Decimal("9.00"))
    db.add_all([burger, vodka_soda])
    db.flush()

    recipe = MenuItemRecipe(menu_item_id=burger.id)
    db.add(recipe)
    db.flush()
    db.add_all([
        RecipeIngredient(recipe_id=recipe.id, inventory_item_id=bun.id, quantity=Decimal("1"), unit="each"),
        RecipeIngredient(recipe_id=recipe.id, inventory_item_id=patty.id, quantity=Decimal("1"), unit="each"),
        RecipeIngredient(recipe_id=recipe.id, prep_item_id=bbq_sauce.id, quantity=Decimal("2"), unit="oz"),
    ])

    bottle = BottleProduct(name="House Vodka 1L", pour_size_oz=Decimal("1.5"), inventory_item_id=vodka.id)
    db.add(bottle)
    db.flush()
    db.add(LiquorRecipeIngredient(menu_item_id=vodka_soda.id, bottle_product_id=bottle.id,
                                  pour_count=Decimal("1")))

    # Ingredient fallback links
    onion_ingredient = Ingredient(name="Sliced Onion", inventory_item_id=onion.id,
                                  standard_quantity=Decimal("1"), standard_unit="each")
    paprika_ingredient = Ingredient(name="Paprika Dust", inventory_item_id=paprika.id,
                                    standard_quantity=Decimal("3"), standard_unit="g")
    db.add_all([onion_ingredient, paprika_ingredient])
    db.flush()

    onion_mod = Modifier(name="Onions", ingredient_id=onion_ingredient.id)
    paprika_mod = Modifier(name="Paprika", ingredient_id=paprika_ingredient.id)
    # Has both a direct link and an ingredient link; the direct link wins
    bacon_mod = Modifier(name="Bacon", price=Decimal("2.00"), ingredient_id=onion_ingredient.id)
    db.add_all([onion_mod, paprika_mod, bacon_mod])
    db.flush()
    db.add(ModifierInventoryLink(modifier_id=bacon_mod.id, inventory_item_id=bacon.id,
                                 usage_quantity=Decimal("2"), usage_unit="oz"))

    db.commit()

    return {
        "db": db,
        "bun": bun,
        "patty": patty,
        "ketchup": ketchup,
        "paprika": paprika,
        "salt": salt,
        "onion": onion,
        "bacon": bacon,
        "vodka": vodka,
        "spice_mix": spice_mix,
        "bbq_sauce": bbq_sauce,
        "burger": burger,
        "vodka_soda": vodka_soda,
        "bottle": bottle,
        "onion_mod": onion_mod,
        "paprika_mod": paprika_mod,
        "bacon_mod": bacon_mod,
        "onion_ingredient": onion_ingredient,
    }


@pytest.fixture
def make_order(db_session):
    """Build and commit an order. Lines are (menu_item, quantity, [(modifier, pre_modifier), ...])."""
    counter = {"n": 1000}

    def _make_order(lines, status="paid", created_at=None, location_id=LOCATION_ID):
        counter["n"] += 1
        order = Order(
            location_id=location_id,
            order_number=counter["n"],
            status=status,
            created_at=created_at or datetime(2024, 3, 15, 19, 30),
        )
        db_session.add(order)
        db_session.flush()

        for line in lines:
            menu_item, quantity = line[0], line[1]
            mods = line[2] if len(line) > 2 else []
            item = OrderItem(order_id=order.id, menu_item_id=menu_item.id, quantity=quantity)
            db_session.add(item)
            db_session.flush()
            for modifier, pre_modifier in mods:
                db_session.add(OrderItemModifier(
                    order_item_id=item.id, modifier_id=modifier.id,
                    name=modifier.name, pre_modifier=pre_modifier,
                ))
        db_session.commit()
        db_session.refresh(order)
        return order

    return _make_order


@pytest.fixture
def stock_of(db_session):
    """Re-read an item's current_stock from the database."""
    def _stock_of(item) -> Decimal:
        db_session.expire_all()
        return db_session.get(InventoryItem, item.id).current_stock

    return _stock_of


@pytest.fixture
def location_settings(db_session):
    """Create the InventorySettings row of the test location."""
    def _location_settings(**kwargs) -> InventorySettings:
        row = InventorySettings(location_id=LOCATION_ID, **kwargs)
        db_session.add(row)
        db_session.commit()
        return row

    return _location_settings
