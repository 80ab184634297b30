from fastapi import APIRouter, Depends, Query
from typing import Optional
from uuid import UUID
from app.core.dependencies import get_current_tenant_id, get_ingredients_service, get_inventory_service
from app.models.ingredient import IngredientsListResponse, LowStockResponse, PriceChangeResponse, PriceUpdate
from app.models.inventory import BulkStockRequest, BulkStockResult, StockDeltaRequest, StockDeltaResponse, WasteRequest
from app.models.stock_movement import StockMovementsResponse
from app.services.ingredients_service import IngredientsService
from app.services.inventory_service import InventoryService

router = APIRouter()

@router.get("", response_model=IngredientsListResponse)
async def get_ingredients_endpoint(
    page: int = Query(default=1, ge=1, description="Page number"),
    limit: int = Query(default=50, ge=1, le=250, description="Items per page"),
    search: Optional[str] = Query(default=None, description="Search by name"),
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: IngredientsService = Depends(get_ingredients_service)
):
    """
    Get ingredients list with tenant isolation
    Requires valid session with tenant context
    """
    ingredients, total = await service.get_ingredients_list(tenant_id, page, limit, search)
    return IngredientsListResponse(total=total, data=ingredients)

@router.get("/low-stock", response_model=LowStockResponse)
async def get_low_stock_endpoint(
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: InventoryService = Depends(get_inventory_service)
):
    """Active ingredients below their minimum stock, largest deficit first"""
    return LowStockResponse(data=await service.get_low_stock_ingredients(tenant_id))

@router.post("/bulk-adjust-stock", response_model=BulkStockResult)
async def bulk_adjust_stock_endpoint(
    payload: BulkStockRequest,
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: InventoryService = Depends(get_inventory_service)
):
    """
    Apply several stock adjustments at once.
    Items that fail are reported in 'errors'; the others are still applied.
    """
    return await service.apply_stock_delta_bulk(payload.adjustments, tenant_id, payload.reason)

@router.post("/{ingredient_id}/adjust-stock", response_model=StockDeltaResponse)
async def adjust_stock_endpoint(
    ingredient_id: UUID,
    payload: StockDeltaRequest,
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: InventoryService = Depends(get_inventory_service)
):
    result = await service.apply_stock_delta(ingredient_id, tenant_id, payload.delta, payload.reason)
    return StockDeltaResponse(data=result)

@router.post("/{ingredient_id}/waste", response_model=StockDeltaResponse)
async def record_waste_endpoint(
    ingredient_id: UUID,
    payload: WasteRequest,
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: InventoryService = Depends(get_inventory_service)
):
    result = await service.record_waste(ingredient_id, tenant_id, payload.quantity, payload.reason)
    return StockDeltaResponse(data=result)

@router.patch("/{ingredient_id}/price", response_model=PriceChangeResponse)
async def update_price_endpoint(
    ingredient_id: UUID,
    payload: PriceUpdate,
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: IngredientsService = Depends(get_ingredients_service)
):
    """
    Change an ingredient's price and recalculate every recipe that uses it
    """
    result = await service.update_price(ingredient_id, tenant_id, payload.price_per_unit)
    return PriceChangeResponse(data=result)

@router.get("/{ingredient_id}/movements", response_model=StockMovementsResponse)
async def get_movements_endpoint(
    ingredient_id: UUID,
    limit: int = Query(default=100, ge=1, le=500),
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: InventoryService = Depends(get_inventory_service)
):
    return StockMovementsResponse(data=await service.get_movement_history(ingredient_id, tenant_id, limit))
