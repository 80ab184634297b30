import asyncio
from uuid import uuid4

import pytest

from app.core.exceptions import TransientStoreError
from app.models.inventory import PurchaseReceiptItem, SaleItem
from app.models.stock_movement import MovementType
from tests.conftest import TENANT_ID

def test_sale_deducts_recipe_components_per_portion(kitchen):
    flour = kitchen.add_ingredient(name="Flour", stock=10)
    bread = kitchen.add_recipe(name="Bread", components=[(flour.id, 500, "g")], portions=2)
    sale_id = uuid4()

    result = asyncio.run(kitchen.inventory.deduct_stock_from_sale(
        TENANT_ID, sale_id, [SaleItem(recipe_id=bread.id, quantity=3)]
    ))

    assert result.reference_id == sale_id
    assert result.total_movements == 1
    assert kitchen.stock_of(flour) == pytest.approx(9.25)
    [movement] = kitchen.movements.rows
    assert movement.movement_type == MovementType.SALE
    assert movement.reference_id == sale_id
    assert movement.quantity == pytest.approx(-0.75)

def test_sale_aggregates_per_ingredient_and_applies_variant_factor(kitchen):
    flour = kitchen.add_ingredient(name="Flour", stock=10)
    milk = kitchen.add_ingredient(name="Milk", unit="l", stock=5)
    bread = kitchen.add_recipe(name="Bread", components=[(flour.id, 200, "g")])
    pancake = kitchen.add_recipe(name="Pancake", components=[(flour.id, 100, "g"), (milk.id, 250, "ml")])

    result = asyncio.run(kitchen.inventory.deduct_stock_from_sale(TENANT_ID, uuid4(), [
        SaleItem(recipe_id=bread.id, quantity=1),
        SaleItem(recipe_id=pancake.id, quantity=2, variant_factor=1.5),
    ]))

    assert result.total_movements == 2
    assert kitchen.stock_of(flour) == pytest.approx(10 - 0.2 - 0.3)
    assert kitchen.stock_of(milk) == pytest.approx(5 - 0.75)

def test_sale_locks_ingredients_in_id_order(kitchen):
    ingredients = [kitchen.add_ingredient(name=f"I{n}", stock=5) for n in range(4)]
    dish = kitchen.add_recipe(name="Dish", components=[(i.id, 10, "g") for i in reversed(ingredients)])

    asyncio.run(kitchen.inventory.deduct_stock_from_sale(TENANT_ID, uuid4(), [SaleItem(recipe_id=dish.id, quantity=1)]))

    assert kitchen.ingredients.locked == sorted((i.id for i in ingredients), key=str)

def test_sale_skips_unknown_recipes_and_ingredients(kitchen):
    flour = kitchen.add_ingredient(name="Flour", stock=10)
    ghost_ingredient = uuid4()
    bread = kitchen.add_recipe(name="Bread", components=[(flour.id, 100, "g"), (ghost_ingredient, 5, "g")])

    result = asyncio.run(kitchen.inventory.deduct_stock_from_sale(TENANT_ID, uuid4(), [
        SaleItem(recipe_id=uuid4(), quantity=1),
        SaleItem(recipe_id=bread.id, quantity=1),
    ]))

    assert result.total_movements == 1
    assert len(result.skipped) == 2
    assert kitchen.stock_of(flour) == pytest.approx(9.9)

def test_sale_larger_than_stock_floors_at_zero(kitchen):
    flour = kitchen.add_ingredient(name="Flour", stock=0.3)
    bread = kitchen.add_recipe(name="Bread", components=[(flour.id, 500, "g")])

    result = asyncio.run(kitchen.inventory.deduct_stock_from_sale(
        TENANT_ID, uuid4(), [SaleItem(recipe_id=bread.id, quantity=1)]
    ))

    assert kitchen.stock_of(flour) == 0
    assert result.movements[0].truncated

def test_purchase_converts_units_and_adds_stock(kitchen):
    flour = kitchen.add_ingredient(name="Flour", stock=1, min_stock=2)
    sugar = kitchen.add_ingredient(name="Sugar", stock=0)
    purchase_id = uuid4()

    result = asyncio.run(kitchen.inventory.add_stock_from_purchase(TENANT_ID, purchase_id, [
        PurchaseReceiptItem(ingredient_id=flour.id, quantity=2500, unit="g"),
        PurchaseReceiptItem(ingredient_id=sugar.id, quantity=3),
        PurchaseReceiptItem(ingredient_id=uuid4(), quantity=1),
    ]))

    assert result.total_movements == 2
    assert len(result.skipped) == 1
    assert kitchen.stock_of(flour) == pytest.approx(3.5)
    assert kitchen.stock_of(sugar) == 3
    assert {m.movement_type for m in kitchen.movements.rows} == {MovementType.PURCHASE}

def test_low_stock_listing(kitchen):
    kitchen.add_ingredient(name="Flour", stock=1, min_stock=5)
    kitchen.add_ingredient(name="Salt", stock=2, min_stock=3)
    kitchen.add_ingredient(name="Sugar", stock=9, min_stock=3)

    low = asyncio.run(kitchen.inventory.get_low_stock_ingredients(TENANT_ID))

    assert [i.name for i in low] == ["Flour", "Salt"]
    assert low[0].deficit == 4

def test_movement_history(kitchen):
    flour = kitchen.add_ingredient(name="Flour", stock=5)
    asyncio.run(kitchen.inventory.apply_stock_delta(flour.id, TENANT_ID, 1, "count"))
    asyncio.run(kitchen.inventory.record_waste(flour.id, TENANT_ID, 2))

    history = asyncio.run(kitchen.inventory.get_movement_history(flour.id, TENANT_ID))

    assert {m.movement_type for m in history} == {MovementType.ADJUSTMENT, MovementType.WASTE}

def test_failed_sale_leaves_stock_untouched(kitchen, monkeypatch):
    flour, milk = sorted(
        [kitchen.add_ingredient(name="Flour", stock=10), kitchen.add_ingredient(name="Milk", unit="l", stock=5)],
        key=lambda i: str(i.id)
    )
    pancake = kitchen.add_recipe(name="Pancake", components=[(flour.id, 100, "g"), (milk.id, 250, "ml")])
    lock_for_update = kitchen.ingredients.lock_for_update

    async def lock_or_time_out(conn, ingredient_id, tenant_id):
        if ingredient_id == milk.id:
            raise TransientStoreError("lock timeout")
        return await lock_for_update(conn, ingredient_id, tenant_id)

    monkeypatch.setattr(kitchen.ingredients, "lock_for_update", lock_or_time_out)

    with pytest.raises(TransientStoreError):
        asyncio.run(kitchen.inventory.deduct_stock_from_sale(
            TENANT_ID, uuid4(), [SaleItem(recipe_id=pancake.id, quantity=2)]
        ))

    assert kitchen.stock_of(flour) == 10
    assert kitchen.stock_of(milk) == 5
    assert kitchen.movements.rows == []
    assert kitchen.outbox.pending_count == 0
