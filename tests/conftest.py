"""
Shared fixtures: a tenant, a few ingredients and recipes, and every service
wired to the in-memory repositories in tests/fakes.py.
"""

from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest

from app.config import AlertThresholds
from app.models.ingredient import Ingredient
from app.models.recipe import Recipe, RecipeComponent
from app.services.alert_service import AlertService
from app.services.cost_calculation_service import CostCalculationService
from app.services.cost_calculator import CostCalculator
from app.services.ingredients_service import IngredientsService
from app.services.inventory_service import InventoryService
from app.services.movement_outbox import MovementOutbox
from app.services.recalculation_service import RecalculationOrchestrator
from app.services.stock_ledger import StockLedger
from tests.fakes import (
    FakeAlertRepository,
    FakeConnectionFactory,
    FakeIngredientRepository,
    FakeRecipeRepository,
    FakeStockMovementRepository,
)

TENANT_ID = UUID("00000000-0000-0000-0000-000000000001")
OTHER_TENANT_ID = UUID("00000000-0000-0000-0000-000000000002")

def make_ingredient(name="Flour", price=10.0, stock=10.0, min_stock=0.0, unit="kg", tenant_id=TENANT_ID):
    return Ingredient(
        id=uuid4(),
        tenant_id=tenant_id,
        name=name,
        unit=unit,
        price_per_unit=price,
        current_stock=stock,
        min_stock=min_stock,
    )

def make_recipe(name="Bread", components=(), portions=1, sale_price=20.0, tenant_id=TENANT_ID):
    return Recipe(
        id=uuid4(),
        tenant_id=tenant_id,
        name=name,
        portions=portions,
        sale_price=sale_price,
        components=[
            RecipeComponent(ingredient_id=ingredient_id, quantity=quantity, unit=unit)
            for ingredient_id, quantity, unit in components
        ],
    )

@dataclass
class Kitchen:
    ingredients: FakeIngredientRepository
    recipes: FakeRecipeRepository
    alerts: FakeAlertRepository
    movements: FakeStockMovementRepository
    connection_factory: FakeConnectionFactory
    outbox: MovementOutbox
    alert_service: AlertService
    cost_service: CostCalculationService
    orchestrator: RecalculationOrchestrator
    ledger: StockLedger
    inventory: InventoryService
    ingredients_service: IngredientsService

    def add_ingredient(self, **kwargs) -> Ingredient:
        ingredient = make_ingredient(**kwargs)
        self.ingredients.rows[ingredient.id] = ingredient
        return ingredient

    def add_recipe(self, **kwargs) -> Recipe:
        recipe = make_recipe(**kwargs)
        self.recipes.rows[recipe.id] = recipe
        return recipe

    def stock_of(self, ingredient: Ingredient) -> float:
        return self.ingredients.rows[ingredient.id].current_stock

@pytest.fixture
def thresholds():
    return AlertThresholds()

@pytest.fixture
def kitchen(thresholds):
    ingredients = FakeIngredientRepository()
    recipes = FakeRecipeRepository()
    alerts = FakeAlertRepository()
    movements = FakeStockMovementRepository()
    connection_factory = FakeConnectionFactory([ingredients, recipes, alerts, movements])

    outbox = MovementOutbox(movements, max_attempts=3, max_pending=100)
    alert_service = AlertService(alerts, thresholds)
    cost_service = CostCalculationService(
        recipes, ingredients, CostCalculator(), thresholds, alert_service=alert_service
    )
    orchestrator = RecalculationOrchestrator(recipes, cost_service, connection_factory)
    ledger = StockLedger(ingredients, outbox, connection_factory, alert_service=alert_service)

    return Kitchen(
        ingredients=ingredients,
        recipes=recipes,
        alerts=alerts,
        movements=movements,
        connection_factory=connection_factory,
        outbox=outbox,
        alert_service=alert_service,
        cost_service=cost_service,
        orchestrator=orchestrator,
        ledger=ledger,
        inventory=InventoryService(ledger, recipes, ingredients, movements, connection_factory),
        ingredients_service=IngredientsService(ingredients, alert_service, orchestrator, connection_factory),
    )
