from dataclasses import dataclass
from typing import Optional
from uuid import UUID
from fastapi import Depends, Request
from app.config import Settings
from app.core.exceptions import AuthenticationError
from app.core.middleware import require_valid_session
from app.repositories.alert_repository import AlertRepository
from app.repositories.ingredient_repository import IngredientRepository
from app.repositories.recipe_repository import RecipeRepository
from app.repositories.stock_movement_repository import StockMovementRepository
from app.services.alert_service import AlertService
from app.services.cost_calculation_service import CostCalculationService
from app.services.cost_calculator import CostCalculator
from app.services.ingredients_service import IngredientsService
from app.services.inventory_service import InventoryService
from app.services.movement_outbox import MovementOutbox
from app.services.recalculation_service import RecalculationOrchestrator
from app.services.stock_ledger import StockLedger

@dataclass
class ServiceContainer:
    """Every service of the application, wired once at startup"""
    connection_factory: object
    outbox: MovementOutbox
    alert_service: AlertService
    cost_service: CostCalculationService
    orchestrator: RecalculationOrchestrator
    ledger: StockLedger
    inventory_service: InventoryService
    ingredients_service: IngredientsService

def build_container(connection_factory, settings: Settings) -> ServiceContainer:
    ingredients = IngredientRepository()
    recipes = RecipeRepository()
    alerts = AlertRepository()
    movements = StockMovementRepository()

    thresholds = settings.alert_thresholds
    outbox = MovementOutbox(
        movements,
        max_attempts=settings.movement_outbox_max_attempts,
        max_pending=settings.movement_outbox_max_pending
    )
    alert_service = AlertService(alerts, thresholds)
    cost_service = CostCalculationService(
        recipes, ingredients, CostCalculator(), thresholds, alert_service=alert_service
    )
    orchestrator = RecalculationOrchestrator(recipes, cost_service, connection_factory)
    ledger = StockLedger(ingredients, outbox, connection_factory, alert_service=alert_service)

    return ServiceContainer(
        connection_factory=connection_factory,
        outbox=outbox,
        alert_service=alert_service,
        cost_service=cost_service,
        orchestrator=orchestrator,
        ledger=ledger,
        inventory_service=InventoryService(ledger, recipes, ingredients, movements, connection_factory),
        ingredients_service=IngredientsService(ingredients, alert_service, orchestrator, connection_factory),
    )

def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container

def get_connection_factory(container: ServiceContainer = Depends(get_container)):
    return container.connection_factory

def get_alert_service(container: ServiceContainer = Depends(get_container)) -> AlertService:
    return container.alert_service

def get_cost_service(container: ServiceContainer = Depends(get_container)) -> CostCalculationService:
    return container.cost_service

def get_orchestrator(container: ServiceContainer = Depends(get_container)) -> RecalculationOrchestrator:
    return container.orchestrator

def get_inventory_service(container: ServiceContainer = Depends(get_container)) -> InventoryService:
    return container.inventory_service

def get_ingredients_service(container: ServiceContainer = Depends(get_container)) -> IngredientsService:
    return container.ingredients_service

def get_current_tenant_id(request: Request) -> UUID:
    """Tenant of the current session; every ledger operation is scoped to it"""
    session_context = require_valid_session(request)
    if not session_context.tenant_id:
        raise AuthenticationError("Tenant ID is required")
    return session_context.tenant_id

def get_current_user_id(request: Request) -> Optional[UUID]:
    session_context = require_valid_session(request)
    return session_context.user_id
