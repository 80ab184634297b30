from fastapi import APIRouter, Depends
from uuid import UUID
from app.core.dependencies import get_connection_factory, get_cost_service, get_current_tenant_id, get_orchestrator
from app.models.recipe import CostStatisticsResponse, RecalculationResponse, RecipeCostResponse
from app.services.cost_calculation_service import CostCalculationService
from app.services.recalculation_service import RecalculationOrchestrator

router = APIRouter()

@router.get("/cost-statistics", response_model=CostStatisticsResponse)
async def cost_statistics_endpoint(
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: CostCalculationService = Depends(get_cost_service),
    connection_factory=Depends(get_connection_factory)
):
    """
    Averages and threshold counts over the tenant's costed recipes
    """
    async with connection_factory() as conn:
        stats = await service.get_cost_statistics(conn, tenant_id)
    return CostStatisticsResponse(data=stats)

@router.post("/recalculate-by-ingredient/{ingredient_id}", response_model=RecalculationResponse)
async def recalculate_by_ingredient_endpoint(
    ingredient_id: UUID,
    tenant_id: UUID = Depends(get_current_tenant_id),
    orchestrator: RecalculationOrchestrator = Depends(get_orchestrator)
):
    result = await orchestrator.recalculate_by_ingredient(ingredient_id, tenant_id)
    return RecalculationResponse(data=result)

@router.post("/{recipe_id}/calculate-cost", response_model=RecipeCostResponse)
async def calculate_cost_endpoint(
    recipe_id: UUID,
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: CostCalculationService = Depends(get_cost_service),
    connection_factory=Depends(get_connection_factory)
):
    """
    Recompute a recipe's cost breakdown, store its totals and evaluate its alerts
    """
    async with connection_factory() as conn:
        result = await service.calculate_recipe_cost(conn, recipe_id, tenant_id)
    return RecipeCostResponse(data=result)
