import asyncio
from uuid import uuid4

import pytest

from app.core.exceptions import NotFoundError
from app.models.alert import AlertSeverity, AlertType
from tests.conftest import TENANT_ID
from tests.fakes import FakeConnection

def test_cascade_skips_soft_deleted_recipes(kitchen):
    butter = kitchen.add_ingredient(name="Butter", price=8.0)
    croissant = kitchen.add_recipe(name="Croissant", components=[(butter.id, 50, "g")], sale_price=3.0)
    brioche = kitchen.add_recipe(name="Brioche", components=[(butter.id, 80, "g")], sale_price=4.0)
    retired = kitchen.add_recipe(name="Old tart", components=[(butter.id, 100, "g")], sale_price=5.0)
    kitchen.recipes.deleted.add(retired.id)

    result = asyncio.run(kitchen.orchestrator.recalculate_by_ingredient(butter.id, TENANT_ID))

    assert result.updated_count == 2
    assert sorted(kitchen.recipes.cost_updates, key=str) == sorted([croissant.id, brioche.id], key=str)
    assert result.failures == []

def test_cascade_records_failures_and_continues(kitchen, monkeypatch):
    butter = kitchen.add_ingredient(name="Butter", price=8.0)
    croissant = kitchen.add_recipe(name="Croissant", components=[(butter.id, 50, "g")], sale_price=3.0)
    vanished_id = uuid4()

    async def find_ids(conn, ingredient_id, tenant_id):
        return [vanished_id, croissant.id]

    monkeypatch.setattr(kitchen.recipes, "find_ids_by_ingredient", find_ids)

    result = asyncio.run(kitchen.orchestrator.recalculate_by_ingredient(butter.id, TENANT_ID))

    assert result.updated_count == 1
    assert [f.recipe_id for f in result.failures] == [vanished_id]
    assert kitchen.recipes.cost_updates == [croissant.id]

def test_each_recipe_gets_its_own_transaction(kitchen):
    butter = kitchen.add_ingredient(name="Butter", price=8.0)
    for name in ("A", "B", "C"):
        kitchen.add_recipe(name=name, components=[(butter.id, 10, "g")])

    asyncio.run(kitchen.orchestrator.recalculate_by_ingredient(butter.id, TENANT_ID))

    # one lookup plus one per recipe
    assert kitchen.connection_factory.opened == 4

def test_nothing_to_recalculate(kitchen):
    result = asyncio.run(kitchen.orchestrator.recalculate_by_ingredient(uuid4(), TENANT_ID))
    assert result.updated_count == 0
    assert result.recipes == []

def test_calculate_recipe_cost_stores_totals_and_raises_alerts(kitchen):
    cheese = kitchen.add_ingredient(name="Cheese", price=30.0)
    pizza = kitchen.add_recipe(name="Pizza", components=[(cheese.id, 300, "g")], sale_price=20.0)

    result = asyncio.run(kitchen.cost_service.calculate_recipe_cost(FakeConnection(), pizza.id, TENANT_ID))

    assert result.breakdown.total_cost == 9.0
    assert result.breakdown.margin_percentage == 55.0
    assert result.recipe.calculated_cost == 9.0
    assert kitchen.recipes.rows[pizza.id].margin_percentage == 55.0
    assert {(a.type, a.severity) for a in result.alerts} == {
        (AlertType.LOW_MARGIN, AlertSeverity.WARNING),
        (AlertType.HIGH_FOOD_COST, AlertSeverity.WARNING),
    }

def test_calculate_recipe_cost_without_alert_evaluation(kitchen):
    cheese = kitchen.add_ingredient(name="Cheese", price=30.0)
    pizza = kitchen.add_recipe(name="Pizza", components=[(cheese.id, 300, "g")], sale_price=20.0)

    result = asyncio.run(kitchen.cost_service.calculate_recipe_cost(
        FakeConnection(), pizza.id, TENANT_ID, evaluate_alerts=False
    ))

    assert result.alerts == []
    assert kitchen.alerts.rows == {}

def test_calculate_unknown_recipe_raises_not_found(kitchen):
    with pytest.raises(NotFoundError):
        asyncio.run(kitchen.cost_service.calculate_recipe_cost(FakeConnection(), uuid4(), TENANT_ID))

def test_cost_statistics_use_alert_thresholds(kitchen):
    cheese = kitchen.add_ingredient(name="Cheese", price=30.0)
    pizza = kitchen.add_recipe(name="Pizza", components=[(cheese.id, 300, "g")], sale_price=20.0)
    salad = kitchen.add_recipe(name="Salad", components=[(cheese.id, 50, "g")], sale_price=10.0)
    for recipe in (pizza, salad):
        asyncio.run(kitchen.cost_service.calculate_recipe_cost(FakeConnection(), recipe.id, TENANT_ID))

    stats = asyncio.run(kitchen.cost_service.get_cost_statistics(FakeConnection(), TENANT_ID))

    assert stats.total_recipes == 2
    assert stats.low_margin_count == 1
    assert stats.high_food_cost_count == 1
    assert stats.avg_margin == pytest.approx((55.0 + 85.0) / 2)

def test_price_change_updates_price_alerts_and_cascades(kitchen):
    flour = kitchen.add_ingredient(name="Flour", price=10.0)
    bread = kitchen.add_recipe(name="Bread", components=[(flour.id, 500, "g")], sale_price=20.0)

    result = asyncio.run(kitchen.ingredients_service.update_price(flour.id, TENANT_ID, 12.0))

    assert result.old_price == 10.0
    assert result.new_price == 12.0
    assert result.change_percent == 20.0
    assert result.alert.type == AlertType.PRICE_INCREASE
    assert result.alert.severity == AlertSeverity.CRITICAL
    assert result.recalculation.updated_count == 1
    assert kitchen.recipes.rows[bread.id].calculated_cost == 6.0

def test_unchanged_price_skips_the_cascade(kitchen):
    flour = kitchen.add_ingredient(name="Flour", price=10.0)
    kitchen.add_recipe(name="Bread", components=[(flour.id, 500, "g")])

    result = asyncio.run(kitchen.ingredients_service.update_price(flour.id, TENANT_ID, 10.0))

    assert result.recalculation is None
    assert result.alert is None
    assert kitchen.recipes.cost_updates == []
